from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..common.http import current_caller, json_body, make_login_required
from ..container import Container


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)
    service = container.schedule_service

    @api.route("/timetable", methods=["GET"], endpoint="timetable_list")
    @login_required
    def timetable_list():
        periods = service.list_timetable(
            current_caller(),
            day=request.args.get("day"),
            department=request.args.get("department"),
            class_name=request.args.get("class_name"),
        )
        return jsonify([p.to_dict() for p in periods])

    @api.route("/timetable/my-schedule", methods=["GET"], endpoint="timetable_my_schedule")
    @login_required
    def timetable_my_schedule():
        return jsonify([p.to_dict() for p in service.my_schedule(current_caller())])

    @api.route("/timetable", methods=["POST"], endpoint="timetable_create")
    @login_required
    def timetable_create():
        created = service.create_period(current_caller(), json_body())
        return jsonify(created.to_dict()), 201

    @api.route("/timetable/<period_row_id>", methods=["DELETE"], endpoint="timetable_delete")
    @login_required
    def timetable_delete(period_row_id: str):
        service.delete_period(current_caller(), period_row_id)
        return jsonify({"ok": True, "message": "Period deleted"})
