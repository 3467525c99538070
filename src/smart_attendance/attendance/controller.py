from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..access.gate import Capability, authorize
from ..common.datetime_utils import parse_optional_date, parse_timestamp
from ..common.http import current_caller, json_body, make_login_required
from ..container import Container


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)
    service = container.attendance_service

    @api.route("/attendance", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        records = service.list_marks(
            current_caller(),
            student_id=request.args.get("student_id"),
            department=request.args.get("department"),
            class_name=request.args.get("class_name"),
            start=parse_optional_date(request.args.get("from")),
            end=parse_optional_date(request.args.get("to")),
        )
        return jsonify([r.to_dict() for r in records])

    @api.route("/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def attendance_today():
        snapshot = service.today(current_caller(), period_id=request.args.get("period_id"))
        return jsonify(snapshot.to_dict())

    @api.route("/attendance/manual", methods=["POST"], endpoint="attendance_manual")
    @login_required
    def attendance_manual():
        data = json_body()
        record = service.manual_mark(
            current_caller(),
            student_id=data.get("student_id"),
            status=data.get("status"),
            period_id=data.get("period_id"),
            att_date=parse_optional_date(data.get("date")),
        )
        return jsonify({"ok": True, "record": record.to_dict()})

    # Scanner endpoint: devices post without a user token.
    @api.route("/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    def attendance_mark():
        data = json_body()
        raw_time = data.get("timestamp") or data.get("time")
        record = service.record_scan(
            uid=data.get("uid"),
            student_id=data.get("student_id"),
            status=data.get("status"),
            name=data.get("name"),
            timestamp=parse_timestamp(raw_time) if raw_time else None,
            att_date=parse_optional_date(data.get("date")),
            period_id=data.get("period_id"),
        )
        body = {"ok": True, "recorded": record is not None}
        if record is not None:
            body["record"] = record.to_dict()
        return jsonify(body)

    @api.route("/attendance/csv", methods=["GET"], endpoint="attendance_scan_log")
    @login_required
    def attendance_scan_log():
        authorize(current_caller(), Capability.VIEW_SCAN_LOG)
        log = service.scan_log
        return jsonify(log.read_all() if log else [])

    @api.route("/attendance/live", methods=["GET"], endpoint="attendance_live")
    @login_required
    def attendance_live():
        authorize(current_caller(), Capability.VIEW_SCAN_LOG)
        log = service.scan_log
        return jsonify(log.live_summary() if log else [])
