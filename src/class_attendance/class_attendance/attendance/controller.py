from __future__ import annotations

from flask import Flask, g, request

from ..common.http import class_context_from, identity_required, json_body, render_result
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gateway = container.gateway

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_mark")
    @identity_required
    def attendance_mark():
        data = json_body()
        context = class_context_from(data, g.faculty.department)
        result = gateway.mark_attendance(
            context=context,
            attendance_date=data.get("date") or "",
            faculty=g.faculty,
            entries=data.get("students"),
            notes=data.get("notes"),
        )
        return render_result(result, success_status=201, message="Attendance marked successfully")

    @app.route("/api/attendance/<class_id>/<date_s>", methods=["PUT"], endpoint="attendance_edit")
    @identity_required
    def attendance_edit(class_id: str, date_s: str):
        data = json_body()
        result = gateway.edit_attendance(
            class_id=class_id,
            attendance_date=date_s,
            faculty=g.faculty,
            entries=data.get("students"),
            notes=data.get("notes"),
        )
        return render_result(result, message="Attendance updated successfully")

    @app.route("/api/attendance/<class_id>/<date_s>", methods=["GET"], endpoint="attendance_view")
    @identity_required
    def attendance_view(class_id: str, date_s: str):
        context = class_context_from({"classId": class_id}, g.faculty.department)
        faculty_id = request.args.get("facultyId") or None
        return render_result(gateway.get_attendance(context=context, attendance_date=date_s, faculty_id=faculty_id))

    @app.route("/api/attendance/<class_id>/<date_s>/record", methods=["GET"], endpoint="attendance_record")
    @identity_required
    def attendance_record(class_id: str, date_s: str):
        return render_result(
            gateway.get_record(class_id=class_id, attendance_date=date_s, faculty_id=g.faculty.faculty_id)
        )

    @app.route("/api/attendance/<class_id>/<date_s>/absentees", methods=["GET"], endpoint="attendance_absentees")
    @identity_required
    def attendance_absentees(class_id: str, date_s: str):
        context = class_context_from({"classId": class_id}, g.faculty.department)
        return render_result(gateway.absentees(context=context, attendance_date=date_s))

    @app.route("/api/attendance/<class_id>/check", methods=["GET"], endpoint="attendance_check")
    @identity_required
    def attendance_check(class_id: str):
        result = gateway.is_marked(
            class_id=class_id,
            attendance_date=request.args.get("date") or "",
            faculty_id=g.faculty.faculty_id,
        )
        return render_result(result)

    @app.route("/api/attendance/<class_id>/history", methods=["GET"], endpoint="attendance_history")
    @identity_required
    def attendance_history(class_id: str):
        result = gateway.attendance_history(
            class_id=class_id,
            start_date=request.args.get("start") or "",
            end_date=request.args.get("end") or "",
            faculty_id=request.args.get("facultyId") or None,
        )
        return render_result(result)

    @app.route("/api/attendance/<class_id>/range", methods=["GET"], endpoint="attendance_range")
    @identity_required
    def attendance_range(class_id: str):
        context = class_context_from({"classId": class_id}, g.faculty.department)
        result = gateway.get_attendance_range(
            context=context,
            start_date=request.args.get("start") or "",
            end_date=request.args.get("end") or "",
            faculty_id=request.args.get("facultyId") or None,
        )
        return render_result(result)
