from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_optional_date
from ..common.http import current_context, json_body, login_required, ok, roles_required
from ..common.paging import page_params
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import Forbidden, ValidationError

_DECIDERS = (Role.ADMIN, Role.MANAGER)


def _body_date(body: dict, key: str):
    raw = body.get(key)
    try:
        return parse_optional_date(str(raw) if raw is not None else None)
    except ValueError as exc:
        raise ValidationError(f"{key} must be a date in YYYY-MM-DD format") from exc


def register(app: Flask, container: Container) -> None:
    workflow = container.leave_workflow
    default_size = int(app.config.get("DEFAULT_PAGE_SIZE", 20))

    @app.route("/api/leaves/types", methods=["GET"], endpoint="leave_types")
    @login_required
    def leave_types():
        return ok(workflow.leave_types())

    @app.route("/api/leaves/request", methods=["POST"], endpoint="leave_request")
    @login_required
    def leave_request():
        body = json_body()
        leave = workflow.request_leave(
            current_context().require_user_id(),
            body.get("leaveType"),
            _body_date(body, "startDate"),
            _body_date(body, "endDate"),
            body.get("reason"),
        )
        return ok(leave, "Leave request submitted successfully")

    @app.route("/api/leaves/my-leaves", methods=["GET"], endpoint="leave_my_leaves")
    @login_required
    def leave_my_leaves():
        page, size = page_params(request.args, default_size=default_size)
        return ok(workflow.get_user_leaves_paginated(current_context().require_user_id(), page, size))

    @app.route("/api/leaves/my-stats", methods=["GET"], endpoint="leave_my_stats")
    @login_required
    def leave_my_stats():
        year = request.args.get("year", type=int)
        return ok(workflow.get_leave_stats(current_context().require_user_id(), year))

    @app.route("/api/leaves/<int:leave_id>", methods=["GET"], endpoint="leave_get")
    @login_required
    def leave_get(leave_id: int):
        ctx = current_context()
        leave = workflow.get_leave(leave_id)
        if leave.user_id != ctx.current_user_id and ctx.role not in _DECIDERS:
            raise Forbidden("Access denied")
        return ok(leave)

    @app.route("/api/leaves/<int:leave_id>/cancel", methods=["POST"], endpoint="leave_cancel")
    @login_required
    def leave_cancel(leave_id: int):
        leave = workflow.cancel_leave(leave_id, current_context().require_user_id())
        return ok(leave, "Leave request cancelled")

    # -------- Approvers --------
    @app.route("/api/leaves/admin/all", methods=["GET"], endpoint="leave_admin_all")
    @roles_required(*_DECIDERS)
    def leave_admin_all():
        page, size = page_params(request.args, default_size=default_size)
        return ok(workflow.get_all_paginated(page, size))

    @app.route("/api/leaves/admin/pending", methods=["GET"], endpoint="leave_admin_pending")
    @roles_required(*_DECIDERS)
    def leave_admin_pending():
        page, size = page_params(request.args, default_size=default_size)
        return ok(workflow.get_pending_paginated(page, size))

    @app.route("/api/leaves/admin/pending-count", methods=["GET"], endpoint="leave_admin_pending_count")
    @roles_required(*_DECIDERS)
    def leave_admin_pending_count():
        return ok({"count": workflow.get_pending_count()})

    @app.route("/api/leaves/admin/<int:leave_id>/approve", methods=["POST"], endpoint="leave_admin_approve")
    @roles_required(*_DECIDERS)
    def leave_admin_approve(leave_id: int):
        leave = workflow.approve_leave(leave_id, current_context().require_user_id(), json_body().get("comment"))
        return ok(leave, "Leave approved")

    @app.route("/api/leaves/admin/<int:leave_id>/reject", methods=["POST"], endpoint="leave_admin_reject")
    @roles_required(*_DECIDERS)
    def leave_admin_reject(leave_id: int):
        leave = workflow.reject_leave(leave_id, current_context().require_user_id(), json_body().get("comment"))
        return ok(leave, "Leave rejected")
