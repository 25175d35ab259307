from __future__ import annotations

import logging
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import blank_to_none, require_email, require_min_length, require_non_empty
from ..core.constants import MAX_PROVISION_ATTEMPTS, MIN_PASSWORD_LENGTH
from ..core.context import RequestContext
from ..core.enums import AuthProvider, Role
from ..core.exceptions import (
    AuthenticationError,
    DuplicateIdentity,
    IdentityResolutionError,
    ResourceNotFound,
    SelfActionForbidden,
    ValidationError,
)
from ..database.errors import DuplicateKeyError
from .model import User
from .principal import BareIdentifier, FormLoginPrincipal, OAuth2Principal, OidcPrincipal, Principal
from .repository import EMAIL_KEY, USERNAME_KEY, UserRepository

logger = logging.getLogger(__name__)

_BAD_CREDENTIALS = "Invalid username or password"


def _password_matches(password_hash: Optional[str], raw_password) -> bool:
    if not password_hash or not isinstance(raw_password, str):
        return False
    try:
        return check_password_hash(password_hash, raw_password)
    except (ValueError, TypeError):
        # placeholder or corrupted hashes
        return False


def split_names(
    first_name: Optional[str], last_name: Optional[str], full_name: Optional[str]
) -> tuple[Optional[str], Optional[str]]:
    """Prefer explicit given/family names, else split the display name on its first space."""
    first, last = blank_to_none(first_name), blank_to_none(last_name)
    name = blank_to_none(full_name)
    if first is None and name:
        parts = name.split(" ", 1)
        first = parts[0]
        if last is None and len(parts) > 1:
            last = blank_to_none(parts[1])
    return first, last


class UserDirectory:
    """Use cases around user identity: resolve, provision, register, administer."""

    def __init__(self, users: UserRepository):
        self._users = users

    # -------- Resolution --------
    def resolve_principal(self, principal: Principal) -> Optional[User]:
        match principal:
            case OidcPrincipal(
                email=email,
                given_name=given,
                family_name=family,
                full_name=full,
                external_subject=subject,
                provider=provider,
            ):
                return self._resolve_external(email, given, family, full, subject, provider)
            case OAuth2Principal() as oauth:
                return self._resolve_external(
                    oauth.email,
                    oauth.given_name,
                    oauth.family_name,
                    oauth.full_name,
                    oauth.external_id,
                    oauth.provider,
                )
            case FormLoginPrincipal(username_or_email=identifier) | BareIdentifier(value=identifier):
                return self._find_by_identifier(identifier)
            case _:
                raise TypeError(f"Unsupported principal: {type(principal).__name__}")

    def context_for(self, identifier: Optional[str]) -> RequestContext:
        """Turn the principal name remembered in the session into a request context."""
        if not identifier:
            return RequestContext.anonymous()
        user = self.resolve_principal(BareIdentifier(identifier))
        if not user or not user.enabled:
            return RequestContext.anonymous()
        return RequestContext(current_user_id=user.user_id, role=user.role, username=user.username)

    def _find_by_identifier(self, identifier: Optional[str]) -> Optional[User]:
        if not isinstance(identifier, str):
            return None
        identifier = identifier.strip()
        if not identifier:
            return None
        return self._users.get_by_username(identifier) or self._users.get_by_email(identifier)

    def _resolve_external(
        self,
        email: Optional[str],
        given_name: Optional[str],
        family_name: Optional[str],
        full_name: Optional[str],
        external_id: Optional[str],
        provider: AuthProvider,
    ) -> User:
        email = blank_to_none(email)
        if not email:
            logger.warning("Rejected %s login without an email address", provider.value)
            raise IdentityResolutionError(
                "Email not found from OAuth2 provider",
                reason=IdentityResolutionError.MISSING_EMAIL,
            )

        existing = self._users.get_by_email(email)
        if existing is None:
            return self.provision_oauth_user(
                email=email,
                first_name=given_name,
                last_name=family_name,
                full_name=full_name,
                external_id=external_id,
                provider=provider,
            )
        return self._refresh_external_profile(existing, given_name, family_name, external_id)

    def _refresh_external_profile(
        self,
        user: User,
        given_name: Optional[str],
        family_name: Optional[str],
        external_id: Optional[str],
    ) -> User:
        first = blank_to_none(given_name) or user.first_name
        last = blank_to_none(family_name) or user.last_name
        provider_id = blank_to_none(external_id) or user.provider_id

        if (first, last, provider_id) == (user.first_name, user.last_name, user.provider_id):
            return user

        self._users.update_external_identity(user.user_id, first_name=first, last_name=last, provider_id=provider_id)
        logger.info("Refreshed external profile for %s", user.email)
        return self._users.get_by_id(user.user_id) or user

    # -------- Provisioning / registration --------
    def _next_free_username(self, base: str) -> str:
        candidate = base
        counter = 1
        while self._users.exists_by_username(candidate):
            candidate = f"{base}{counter}"
            counter += 1
        return candidate

    def provision_oauth_user(
        self,
        *,
        email: str,
        first_name: Optional[str],
        last_name: Optional[str],
        full_name: Optional[str],
        external_id: Optional[str],
        provider: AuthProvider,
    ) -> User:
        email = require_email(email)
        first, last = split_names(first_name, last_name, full_name)
        base = email.split("@", 1)[0]

        for attempt in range(1, MAX_PROVISION_ATTEMPTS + 1):
            username = self._next_free_username(base)
            try:
                user_id = self._users.create_user(
                    username=username,
                    email=email,
                    password_hash=None,
                    first_name=first,
                    last_name=last,
                    role=Role.USER,
                    auth_provider=provider,
                    provider_id=blank_to_none(external_id),
                )
            except DuplicateKeyError as exc:
                # Another request may have provisioned the same email first.
                winner = self._users.get_by_email(email)
                if winner is not None:
                    logger.info("Concurrent provisioning for %s resolved to user %s", email, winner.user_id)
                    return winner
                if exc.constraint not in (USERNAME_KEY, None):
                    raise DuplicateIdentity(f"User already exists with email: '{email}'") from exc
                logger.warning(
                    "Username %s was taken concurrently (attempt %d/%d)", username, attempt, MAX_PROVISION_ATTEMPTS
                )
                continue

            logger.info("Created new user %s from %s login", username, provider.value)
            return self._require(user_id)

        raise DuplicateIdentity(f"Could not allocate a unique username for '{email}'")

    def register_local_user(
        self,
        *,
        username: str,
        email: str,
        raw_password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: Role = Role.USER,
    ) -> User:
        username = require_non_empty(username, "Username")
        email = require_email(email)
        require_min_length(raw_password, "Password", MIN_PASSWORD_LENGTH)

        if self._users.exists_by_username(username):
            raise DuplicateIdentity(f"User already exists with username: '{username}'")
        if self._users.exists_by_email(email):
            raise DuplicateIdentity(f"User already exists with email: '{email}'")

        try:
            user_id = self._users.create_user(
                username=username,
                email=email,
                password_hash=generate_password_hash(raw_password),
                first_name=blank_to_none(first_name),
                last_name=blank_to_none(last_name),
                role=role,
                auth_provider=AuthProvider.LOCAL,
            )
        except DuplicateKeyError as exc:
            field = "email" if exc.constraint == EMAIL_KEY else "username"
            value = email if field == "email" else username
            raise DuplicateIdentity(f"User already exists with {field}: '{value}'") from exc

        logger.info("Registered local user %s", username)
        return self._require(user_id)

    def authenticate(self, username_or_email: str, password: str) -> User:
        user = self.resolve_principal(FormLoginPrincipal(username_or_email))
        if not user or not user.enabled or not user.password_hash:
            logger.warning("Failed login for %s", username_or_email)
            raise AuthenticationError(_BAD_CREDENTIALS)

        if not _password_matches(user.password_hash, password):
            logger.warning("Failed login for %s", username_or_email)
            raise AuthenticationError(_BAD_CREDENTIALS)
        return user

    # -------- Profile / credentials --------
    def get_user(self, user_id: int) -> User:
        return self._require(user_id)

    def list_users(self) -> Sequence[User]:
        return self._users.list_all()

    def update_profile(
        self,
        user_id: int,
        *,
        first_name: Optional[str],
        last_name: Optional[str],
        email: Optional[str] = None,
    ) -> User:
        user = self._require(user_id)
        email = require_email(email) if email else user.email

        if email != user.email and self._users.exists_by_email(email, exclude_user_id=user.user_id):
            raise DuplicateIdentity(f"User already exists with email: '{email}'")

        try:
            self._users.update_profile(
                user.user_id,
                first_name=blank_to_none(first_name),
                last_name=blank_to_none(last_name),
                email=email,
            )
        except DuplicateKeyError as exc:
            raise DuplicateIdentity(f"User already exists with email: '{email}'") from exc
        return self._require(user.user_id)

    def change_password(self, user_id: int, *, current_password: str, new_password: str, confirm_password: str) -> None:
        user = self._require(user_id)
        if user.auth_provider != AuthProvider.LOCAL:
            raise ValidationError("Cannot change password for SSO users")

        if not _password_matches(user.password_hash, current_password):
            raise ValidationError("Current password is incorrect")

        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)

        self._users.update_password(user.user_id, password_hash=generate_password_hash(new_password))
        logger.info("Password changed for user %s", user.username)

    def admin_reset_password(self, user_id: int, new_password: str) -> None:
        user = self._require(user_id)
        if user.auth_provider != AuthProvider.LOCAL:
            raise ValidationError("Account signs in through SSO; link a local password first")
        require_min_length(new_password, "Password", MIN_PASSWORD_LENGTH)

        self._users.update_password(user.user_id, password_hash=generate_password_hash(new_password))
        logger.info("Password reset by admin for user %s", user.username)

    def link_oauth_account(self, user_id: int, *, raw_password: str, confirm_password: str) -> User:
        """Give an SSO account a local password, converting it to LOCAL."""
        user = self._require(user_id)
        if user.auth_provider == AuthProvider.LOCAL:
            raise ValidationError("Account already uses a local password")
        if raw_password != confirm_password:
            raise ValidationError("Passwords do not match")
        require_min_length(raw_password, "Password", MIN_PASSWORD_LENGTH)

        if not self._users.link_local_credentials(user.user_id, password_hash=generate_password_hash(raw_password)):
            raise ValidationError("Account already uses a local password")
        logger.info("Linked local credentials to %s account %s", user.auth_provider.value, user.username)
        return self._require(user.user_id)

    # -------- Administration --------
    def toggle_enabled(self, *, acting_user_id: int, target_id: int) -> User:
        if int(acting_user_id) == int(target_id):
            raise SelfActionForbidden("Cannot disable your own account")
        user = self._require(target_id)
        self._users.set_enabled(user.user_id, enabled=not user.enabled)
        logger.info("User %s %s by %s", user.username, "disabled" if user.enabled else "enabled", acting_user_id)
        return self._require(user.user_id)

    def update_role(self, *, acting_user_id: int, target_id: int, role: Role) -> User:
        if int(acting_user_id) == int(target_id):
            raise SelfActionForbidden("Cannot change your own role")
        user = self._require(target_id)
        self._users.update_role(user.user_id, role=role)
        logger.info("User %s role changed %s -> %s by %s", user.username, user.role.value, role.value, acting_user_id)
        return self._require(user.user_id)

    def delete_user(self, *, acting_user_id: int, target_id: int) -> None:
        if int(acting_user_id) == int(target_id):
            raise SelfActionForbidden("Cannot delete your own account")
        user = self._require(target_id)
        if not self._users.delete_by_id(user.user_id):
            raise ResourceNotFound("User", "id", target_id)
        logger.info("User %s deleted by %s", user.username, acting_user_id)

    def _require(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise ResourceNotFound("User", "id", user_id)
        return user
