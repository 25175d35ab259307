"""Principal descriptors handed to the user directory by the auth layer.

Each login mechanism produces exactly one of these variants:

* ``OidcPrincipal`` - an OpenID Connect login (claims already verified).
* ``OAuth2Principal`` - a plain OAuth2 login carrying the provider's raw
  attribute map.
* ``FormLoginPrincipal`` - a username-or-email typed into the login form.
* ``BareIdentifier`` - the principal name remembered in the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from ..core.enums import AuthProvider


@dataclass(frozen=True)
class OidcPrincipal:
    email: Optional[str]
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    full_name: Optional[str] = None
    external_subject: Optional[str] = None
    provider: AuthProvider = AuthProvider.GOOGLE


@dataclass(frozen=True)
class OAuth2Principal:
    attributes: Mapping[str, Any] = field(default_factory=dict)
    provider: AuthProvider = AuthProvider.GITHUB

    def _text(self, key: str) -> Optional[str]:
        value = self.attributes.get(key)
        return str(value) if value is not None else None

    @property
    def email(self) -> Optional[str]:
        return self._text("email")

    @property
    def external_id(self) -> Optional[str]:
        # Google-style providers send "sub", GitHub sends a numeric "id".
        return self._text("sub") or self._text("id")

    @property
    def given_name(self) -> Optional[str]:
        return self._text("given_name")

    @property
    def family_name(self) -> Optional[str]:
        return self._text("family_name")

    @property
    def full_name(self) -> Optional[str]:
        return self._text("name")


@dataclass(frozen=True)
class FormLoginPrincipal:
    username_or_email: str


@dataclass(frozen=True)
class BareIdentifier:
    value: str


Principal = Union[OidcPrincipal, OAuth2Principal, FormLoginPrincipal, BareIdentifier]


def principal_from_oauth_login(registration_id: str, attributes: Mapping[str, Any]) -> Principal:
    """Build the descriptor for an OAuth callback.

    Providers that issue an ID token (they send ``sub``) become
    ``OidcPrincipal``; everything else keeps its raw attribute map.
    """

    provider = AuthProvider.from_registration_id(registration_id)
    if attributes.get("sub") is not None:
        return OidcPrincipal(
            email=attributes.get("email"),
            given_name=attributes.get("given_name"),
            family_name=attributes.get("family_name"),
            full_name=attributes.get("name"),
            external_subject=str(attributes["sub"]),
            provider=provider,
        )
    return OAuth2Principal(attributes=dict(attributes), provider=provider)
