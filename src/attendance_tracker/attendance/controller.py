from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_context, date_arg, json_body, login_required, ok, roles_required
from ..common.paging import page_params
from ..container import Container
from ..core.constants import MY_RECORDS_PAGE_SIZE
from ..core.enums import Role
from ..core.exceptions import Forbidden, ValidationError


def _flag(value, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _can_view(user_id: int) -> None:
    ctx = current_context()
    if ctx.current_user_id != user_id and ctx.role not in (Role.ADMIN, Role.MANAGER):
        raise Forbidden("Access denied")


def register(app: Flask, container: Container) -> None:
    ledger = container.attendance_ledger
    default_size = int(app.config.get("DEFAULT_PAGE_SIZE", 20))

    # -------- Self service --------
    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @login_required
    def attendance_mark():
        body = json_body()
        record = ledger.mark_today(
            current_context().require_user_id(),
            present=_flag(body.get("present")),
            notes=body.get("notes"),
        )
        return ok(record, "Attendance marked successfully")

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="attendance_checkout")
    @login_required
    def attendance_checkout():
        record = ledger.check_out(current_context().require_user_id())
        return ok(record, "Checked out successfully")

    @app.route("/api/attendance/my-records", methods=["GET"], endpoint="attendance_my_records")
    @login_required
    def attendance_my_records():
        page, size = page_params(request.args, default_size=MY_RECORDS_PAGE_SIZE)
        records = ledger.get_user_attendance_paginated(
            current_context().require_user_id(),
            page,
            size,
            start=date_arg("startDate"),
            end=date_arg("endDate"),
        )
        return ok(records)

    @app.route("/api/attendance/my-stats", methods=["GET"], endpoint="attendance_my_stats")
    @login_required
    def attendance_my_stats():
        stats = ledger.get_stats(current_context().require_user_id(), date_arg("startDate"), date_arg("endDate"))
        return ok(stats)

    @app.route("/api/attendance/today-status", methods=["GET"], endpoint="attendance_today_status")
    @login_required
    def attendance_today_status():
        return ok(ledger.today_status(current_context().require_user_id()))

    @app.route("/api/attendance/range", methods=["GET"], endpoint="attendance_range")
    @login_required
    def attendance_range():
        user_id = request.args.get("userId", type=int) or current_context().require_user_id()
        _can_view(user_id)
        records = ledger.get_attendance_by_range(
            user_id, date_arg("startDate", required=True), date_arg("endDate", required=True)
        )
        return ok(list(records))

    @app.route("/api/attendance/user/<int:user_id>", methods=["GET"], endpoint="attendance_for_user")
    @login_required
    def attendance_for_user(user_id: int):
        _can_view(user_id)
        return ok(list(ledger.get_attendance(user_id)))

    # -------- Admin --------
    @app.route("/api/admin/attendance", methods=["GET"], endpoint="admin_attendance_list")
    @roles_required(Role.ADMIN)
    def admin_attendance_list():
        page, size = page_params(request.args, default_size=default_size)
        records = ledger.search_attendance(
            page,
            size,
            user_id=request.args.get("userId", type=int),
            start=date_arg("startDate"),
            end=date_arg("endDate"),
        )
        return ok(records)

    @app.route("/api/admin/attendance/mark", methods=["POST"], endpoint="admin_attendance_mark")
    @roles_required(Role.ADMIN)
    def admin_attendance_mark():
        body = json_body()
        try:
            user_id = int(body["userId"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError("userId is required") from exc
        try:
            work_date = parse_iso_date(body["date"]) if body.get("date") else None
        except ValueError as exc:
            raise ValidationError("date must be a date in YYYY-MM-DD format") from exc

        if work_date is None:
            record = ledger.mark_today(user_id, present=_flag(body.get("present")), notes=body.get("notes"))
        else:
            record = ledger.mark_attendance(user_id, work_date, _flag(body.get("present")), body.get("notes"))
        return ok(record, "Attendance marked successfully")

    @app.route("/api/admin/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="admin_attendance_delete")
    @roles_required(Role.ADMIN)
    def admin_attendance_delete(attendance_id: int):
        ledger.delete_attendance(attendance_id)
        return ok(message="Attendance record deleted successfully")

    @app.route("/api/admin/attendance/user/<int:user_id>/stats", methods=["GET"], endpoint="admin_attendance_stats")
    @roles_required(Role.ADMIN)
    def admin_attendance_stats(user_id: int):
        return ok(ledger.get_stats(user_id, date_arg("startDate"), date_arg("endDate")))

    @app.route("/api/admin/attendance/summary", methods=["GET"], endpoint="admin_attendance_summary")
    @roles_required(Role.ADMIN)
    def admin_attendance_summary():
        return ok(ledger.get_attendance_summary(date_arg("startDate"), date_arg("endDate")))
