from __future__ import annotations

import logging

from flask import Flask, session

from ..common.http import SESSION_PRINCIPAL, current_context, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import Forbidden, ValidationError
from ..stats.aggregator import system_stats

logger = logging.getLogger(__name__)


def parse_role(value) -> Role:
    try:
        return Role(str(value or "").strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown role: {value}") from exc


def register(app: Flask, container: Container) -> None:
    users = container.user_directory

    # -------- Auth --------
    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def auth_register():
        body = json_body()
        user = users.register_local_user(
            username=body.get("username"),
            email=body.get("email"),
            raw_password=body.get("password"),
            first_name=body.get("firstName"),
            last_name=body.get("lastName"),
        )
        return ok(user, "User registered successfully", 201)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        body = json_body()
        identifier = body.get("usernameOrEmail") or body.get("username") or ""
        user = users.authenticate(identifier, body.get("password") or "")

        session.clear()
        session[SESSION_PRINCIPAL] = user.username
        logger.info("User %s signed in", user.username)
        return ok(user, "Login successful")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def auth_logout():
        session.clear()
        return ok(message="Logged out")

    # -------- Self service --------
    @app.route("/api/users/profile", methods=["GET"], endpoint="profile_get")
    @login_required
    def profile_get():
        return ok(users.get_user(current_context().require_user_id()))

    @app.route("/api/users/profile", methods=["PUT"], endpoint="profile_update")
    @login_required
    def profile_update():
        body = json_body()
        user = users.update_profile(
            current_context().require_user_id(),
            first_name=body.get("firstName"),
            last_name=body.get("lastName"),
            email=body.get("email"),
        )
        # The session remembers the username, which a profile update never changes.
        return ok(user, "Profile updated successfully")

    @app.route("/api/users/change-password", methods=["POST"], endpoint="change_password")
    @login_required
    def change_password():
        body = json_body()
        users.change_password(
            current_context().require_user_id(),
            current_password=body.get("currentPassword") or "",
            new_password=body.get("newPassword") or "",
            confirm_password=body.get("confirmPassword") or "",
        )
        return ok(message="Password changed successfully")

    @app.route("/api/users/link-account", methods=["POST"], endpoint="link_account")
    @login_required
    def link_account():
        body = json_body()
        user = users.link_oauth_account(
            current_context().require_user_id(),
            raw_password=body.get("password") or "",
            confirm_password=body.get("confirmPassword") or "",
        )
        return ok(user, "Local password linked successfully")

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="user_get")
    @login_required
    def user_get(user_id: int):
        ctx = current_context()
        if ctx.current_user_id != user_id and ctx.role not in (Role.ADMIN, Role.MANAGER):
            raise Forbidden("Access denied")
        return ok(users.get_user(user_id))

    # -------- Admin: users --------
    @app.route("/api/admin/users", methods=["GET"], endpoint="admin_users_list")
    @roles_required(Role.ADMIN)
    def admin_users_list():
        return ok(list(users.list_users()))

    @app.route("/api/admin/users", methods=["POST"], endpoint="admin_users_create")
    @roles_required(Role.ADMIN)
    def admin_users_create():
        body = json_body()
        user = users.register_local_user(
            username=body.get("username"),
            email=body.get("email"),
            raw_password=body.get("password"),
            first_name=body.get("firstName"),
            last_name=body.get("lastName"),
            role=parse_role(body.get("role") or Role.USER.value),
        )
        return ok(user, "User created successfully", 201)

    @app.route("/api/admin/users/<int:user_id>", methods=["GET"], endpoint="admin_users_get")
    @roles_required(Role.ADMIN)
    def admin_users_get(user_id: int):
        return ok(users.get_user(user_id))

    @app.route("/api/admin/users/<int:user_id>", methods=["DELETE"], endpoint="admin_users_delete")
    @roles_required(Role.ADMIN)
    def admin_users_delete(user_id: int):
        users.delete_user(acting_user_id=current_context().require_user_id(), target_id=user_id)
        return ok(message="User deleted successfully")

    @app.route("/api/admin/users/<int:user_id>/role", methods=["PUT"], endpoint="admin_users_role")
    @roles_required(Role.ADMIN)
    def admin_users_role(user_id: int):
        role = parse_role(json_body().get("role"))
        user = users.update_role(acting_user_id=current_context().require_user_id(), target_id=user_id, role=role)
        return ok(user, "User role updated successfully")

    @app.route("/api/admin/users/<int:user_id>/toggle-status", methods=["PUT"], endpoint="admin_users_toggle")
    @roles_required(Role.ADMIN)
    def admin_users_toggle(user_id: int):
        user = users.toggle_enabled(acting_user_id=current_context().require_user_id(), target_id=user_id)
        return ok(user, "User status updated successfully")

    @app.route("/api/admin/users/<int:user_id>/reset-password", methods=["POST"], endpoint="admin_users_reset")
    @roles_required(Role.ADMIN)
    def admin_users_reset(user_id: int):
        users.admin_reset_password(user_id, json_body().get("password") or "")
        return ok(message="Password reset successfully")

    @app.route("/api/admin/stats", methods=["GET"], endpoint="admin_stats")
    @roles_required(Role.ADMIN)
    def admin_stats():
        stats = system_stats(users.list_users(), pending_leaves=container.leave_workflow.get_pending_count())
        return ok(stats)
