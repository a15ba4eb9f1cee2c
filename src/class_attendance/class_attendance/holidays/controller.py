from __future__ import annotations

from flask import Flask, g, request

from ..common.http import class_context_from, identity_required, json_body, render_result
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gateway = container.gateway

    @app.route("/api/holidays", methods=["POST"], endpoint="holidays_declare")
    @identity_required
    def holidays_declare():
        data = json_body()
        context = class_context_from(data, g.faculty.department)
        result = gateway.declare_holiday(
            context=context,
            holiday_date=data.get("date") or "",
            reason=data.get("reason") or "",
            scope=data.get("scope") or "class",
            declared_by=g.faculty.faculty_id,
        )
        return render_result(result, success_status=201, message="Holiday declared successfully")

    @app.route("/api/holidays", methods=["GET"], endpoint="holidays_list")
    @identity_required
    def holidays_list():
        context = class_context_from(request.args, g.faculty.department)
        result = gateway.list_holidays(
            context=context,
            start_date=request.args.get("start") or "",
            end_date=request.args.get("end") or "",
        )
        return render_result(result)

    @app.route("/api/holidays/check", methods=["GET"], endpoint="holidays_check")
    @identity_required
    def holidays_check():
        context = class_context_from(request.args, g.faculty.department)
        return render_result(gateway.check_holiday(context=context, holiday_date=request.args.get("date") or ""))

    @app.route("/api/holidays/summary", methods=["GET"], endpoint="holidays_summary")
    @identity_required
    def holidays_summary():
        context = class_context_from(request.args, g.faculty.department)
        result = gateway.holiday_summary(
            context=context,
            start_date=request.args.get("start") or "",
            end_date=request.args.get("end") or "",
        )
        return render_result(result)

    @app.route("/api/holidays/calendar/<int:year>/<int:month>", methods=["GET"], endpoint="holidays_calendar")
    @identity_required
    def holidays_calendar(year: int, month: int):
        context = class_context_from(request.args, g.faculty.department)
        return render_result(gateway.holiday_calendar(context=context, year=year, month=month))

    @app.route("/api/holidays/<int:holiday_id>", methods=["PATCH"], endpoint="holidays_update")
    @identity_required
    def holidays_update(holiday_id: int):
        data = json_body()
        result = gateway.update_holiday_reason(
            holiday_id=holiday_id,
            reason=data.get("reason") or "",
            actor=g.faculty.faculty_id,
        )
        return render_result(result, message="Holiday updated successfully")

    @app.route("/api/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holidays_revoke")
    @identity_required
    def holidays_revoke(holiday_id: int):
        result = gateway.revoke_holiday(holiday_id=holiday_id, actor=g.faculty.faculty_id)
        return render_result(result, message="Holiday deleted successfully")
