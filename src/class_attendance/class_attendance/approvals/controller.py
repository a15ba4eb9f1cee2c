from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import identity_required, json_body, render_result, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gateway = container.gateway
    workflow = container.od_workflow

    @app.route("/api/approvals/pending", methods=["GET"], endpoint="approvals_pending")
    @identity_required
    def approvals_pending():
        department = request.args.get("department") or g.faculty.department
        items = workflow.list_pending(department=department)
        return jsonify({"success": True, "data": to_json(list(items)), "message": "Success"}), 200

    @app.route("/api/approvals/counts", methods=["GET"], endpoint="approvals_counts")
    @identity_required
    def approvals_counts():
        return jsonify({"success": True, "data": workflow.pending_counts(), "message": "Success"}), 200

    @app.route("/api/approvals/<request_id>/decision", methods=["POST"], endpoint="approvals_decide")
    @identity_required
    def approvals_decide(request_id: str):
        data = json_body()
        result = gateway.resolve_od_request(
            request_id=request_id,
            outcome=data.get("outcome") or "",
            decided_by=g.faculty.faculty_id,
            remarks=data.get("remarks"),
        )
        return render_result(result, message="Decision recorded")
