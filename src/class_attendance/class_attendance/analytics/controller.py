from __future__ import annotations

from flask import Flask, g, request

from ..common.http import class_context_from, identity_required, render_result
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gateway = container.gateway

    @app.route("/api/analytics/<class_id>", methods=["GET"], endpoint="analytics_class")
    @identity_required
    def analytics_class(class_id: str):
        context = class_context_from({"classId": class_id}, g.faculty.department)
        result = gateway.analyze_attendance(
            context=context,
            start_date=request.args.get("start") or "",
            end_date=request.args.get("end") or "",
            faculty_id=request.args.get("facultyId") or None,
        )
        return render_result(result)

    @app.route("/api/analytics/<class_id>/students/<student_id>", methods=["GET"], endpoint="analytics_student")
    @identity_required
    def analytics_student(class_id: str, student_id: str):
        context = class_context_from({"classId": class_id}, g.faculty.department)
        result = gateway.student_report(
            context=context,
            student_id=student_id,
            start_date=request.args.get("start") or "",
            end_date=request.args.get("end") or "",
        )
        return render_result(result)
