from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..common.datetime_utils import parse_optional_date
from ..common.http import current_caller, make_login_required
from ..container import Container


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)
    service = container.report_service

    def _range_args() -> dict:
        return {
            "start": parse_optional_date(request.args.get("from")),
            "end": parse_optional_date(request.args.get("to")),
        }

    @api.route("/reports/attendance-percent", methods=["GET"], endpoint="reports_attendance_percent")
    @login_required
    def reports_attendance_percent():
        return jsonify(
            service.attendance_percent(current_caller(), student_id=request.args.get("student_id"), **_range_args())
        )

    @api.route("/reports/subject-wise", methods=["GET"], endpoint="reports_subject_wise")
    @login_required
    def reports_subject_wise():
        return jsonify(
            service.subject_wise(current_caller(), student_id=request.args.get("student_id"), **_range_args())
        )

    @api.route("/reports/attendance-history", methods=["GET"], endpoint="reports_attendance_history")
    @login_required
    def reports_attendance_history():
        return jsonify(
            service.attendance_history(current_caller(), student_id=request.args.get("student_id"), **_range_args())
        )

    @api.route("/reports/faculty-stats", methods=["GET"], endpoint="reports_faculty_stats")
    @login_required
    def reports_faculty_stats():
        return jsonify(service.faculty_stats(current_caller(), **_range_args()))

    @api.route("/reports/overall-stats", methods=["GET"], endpoint="reports_overall_stats")
    @login_required
    def reports_overall_stats():
        return jsonify(service.overall_stats(current_caller()))
