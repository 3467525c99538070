from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..access.gate import Capability, authorize
from ..common.http import current_caller, make_login_required
from ..container import Container
from ..core.exceptions import ValidationError


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)

    @api.route("/hardware/upload-csv", methods=["POST"], endpoint="hardware_upload_csv")
    @login_required
    def hardware_upload_csv():
        authorize(current_caller(), Capability.UPLOAD_ATTENDANCE)
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        try:
            text = upload.read().decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded")
        result = container.csv_importer.import_text(current_caller(), text)
        return jsonify(result.to_dict())
