from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..common.datetime_utils import parse_optional_date
from ..common.http import current_caller, json_body, make_login_required
from ..container import Container


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)
    service = container.leave_service

    @api.route("/permissions", methods=["POST"], endpoint="permissions_create")
    @login_required
    def permissions_create():
        data = json_body()
        created = service.request_leave(
            current_caller(),
            faculty_id=data.get("faculty_id"),
            reason=data.get("reason"),
            start_date=parse_optional_date(data.get("start_date")),
            end_date=parse_optional_date(data.get("end_date")),
        )
        return jsonify(created.to_dict()), 201

    @api.route("/permissions", methods=["GET"], endpoint="permissions_list")
    @login_required
    def permissions_list():
        items = service.list_requests(current_caller(), status=request.args.get("status"))
        return jsonify([i.to_dict() for i in items])

    @api.route("/permissions/mine", methods=["GET"], endpoint="permissions_mine")
    @login_required
    def permissions_mine():
        return jsonify([i.to_dict() for i in service.my_requests(current_caller())])

    @api.route("/permissions/<request_id>", methods=["PUT"], endpoint="permissions_decide")
    @login_required
    def permissions_decide(request_id: str):
        updated = service.decide(current_caller(), request_id, json_body().get("status"))
        return jsonify(updated.to_dict())
