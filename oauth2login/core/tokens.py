"""Authentication tokens and principals.

LoginAuthenticationToken carries a callback through the authentication
engine. AuthenticatedPrincipal is the final result handed to the success
handler.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from oauth2login.core.authorization import AuthorizationExchange
from oauth2login.core.registration import ClientRegistration

ROLE_USER = "ROLE_USER"


@dataclass(frozen=True)
class AccessToken:
    """An OAuth2 access token issued by the provider."""

    token_value: str
    token_type: str = "Bearer"
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    scopes: tuple[str, ...] = field(default_factory=tuple)
    refresh_token: str | None = None

    @property
    def is_expired(self) -> bool:
        """Check if the token is expired."""
        if self.expires_at is None:
            return False
        return datetime.now(UTC) >= self.expires_at

    def __repr__(self) -> str:
        return f"AccessToken(token_type={self.token_type!r}, expires_at={self.expires_at!r}, scopes={self.scopes!r})"


@dataclass(frozen=True)
class OAuth2User:
    """A user resolved from the provider's user-info endpoint."""

    attributes: Mapping[str, Any]
    name_attribute_key: str = "sub"
    authorities: tuple[str, ...] = (ROLE_USER,)

    def __post_init__(self) -> None:
        if self.name_attribute_key not in self.attributes:
            raise ValueError(f"Missing attribute '{self.name_attribute_key}' in user attributes")

    @property
    def name(self) -> str:
        """The user's name, read from the configured name attribute."""
        return str(self.attributes[self.name_attribute_key])


@dataclass(frozen=True)
class LoginAuthenticationToken:
    """Pre-authentication carrier for one callback.

    Before the engine runs only the registration and exchange are set.
    The engine returns a copy with the principal and access token filled in.
    """

    client_registration: ClientRegistration
    authorization_exchange: AuthorizationExchange
    principal: OAuth2User | None = None
    access_token: AccessToken | None = None
    authorities: tuple[str, ...] = field(default_factory=tuple)
    authenticated: bool = False

    @property
    def authorization_code(self) -> str | None:
        return self.authorization_exchange.response.code

    def authenticate(
        self,
        principal: OAuth2User,
        access_token: AccessToken,
        authorities: tuple[str, ...] | None = None,
    ) -> LoginAuthenticationToken:
        """Return an authenticated copy of this token."""
        return replace(
            self,
            principal=principal,
            access_token=access_token,
            authorities=tuple(authorities if authorities is not None else principal.authorities),
            authenticated=True,
        )


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """An authenticated user, the outcome of a successful login callback."""

    principal: OAuth2User
    authorities: tuple[str, ...]
    registration_id: str

    def principal_name(self) -> str:
        """Name of the authenticated user."""
        return self.principal.name


@dataclass
class SecurityContext:
    """Request-scoped holder of the current authentication."""

    authentication: AuthenticatedPrincipal | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.authentication is not None

    def clear(self) -> None:
        """Drop any authentication held by this context."""
        self.authentication = None
