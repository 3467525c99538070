from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..common.http import current_caller, json_body, make_login_required
from ..container import Container


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)
    service = container.complaint_service

    @api.route("/complaints", methods=["POST"], endpoint="complaints_create")
    @login_required
    def complaints_create():
        created = service.file_complaint(current_caller(), json_body().get("message"))
        return jsonify(created.to_dict()), 201

    @api.route("/complaints", methods=["GET"], endpoint="complaints_list")
    @login_required
    def complaints_list():
        items = service.list_complaints(current_caller(), status=request.args.get("status"))
        return jsonify([c.to_dict() for c in items])

    @api.route("/complaints/mine", methods=["GET"], endpoint="complaints_mine")
    @login_required
    def complaints_mine():
        return jsonify([c.to_dict() for c in service.my_complaints(current_caller())])

    @api.route("/complaints/<complaint_id>", methods=["PUT"], endpoint="complaints_update")
    @login_required
    def complaints_update(complaint_id: str):
        updated = service.update_status(current_caller(), complaint_id, json_body().get("status"))
        return jsonify(updated.to_dict())
