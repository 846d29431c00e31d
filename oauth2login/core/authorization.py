"""Authorization request and response models.

The AuthorizationRequest is created when the login flow starts (outside this
package) and stored until the provider redirects back. The
AuthorizationResponse is parsed from the callback's query parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Query parameter names
CODE = "code"
STATE = "state"
ERROR = "error"
ERROR_DESCRIPTION = "error_description"
ERROR_URI = "error_uri"

# Additional parameter naming the originating client registration
REGISTRATION_ID = "registration_id"


@dataclass(frozen=True)
class AuthorizationRequest:
    """An OAuth2 authorization request awaiting its callback."""

    client_id: str
    authorization_uri: str
    redirect_uri: str
    state: str
    scopes: tuple[str, ...] = field(default_factory=tuple)
    additional_parameters: Mapping[str, Any] = field(default_factory=dict)
    grant_type: str = "authorization_code"

    def __post_init__(self) -> None:
        object.__setattr__(self, "scopes", tuple(self.scopes))
        object.__setattr__(self, "additional_parameters", dict(self.additional_parameters))

    @property
    def registration_id(self) -> str | None:
        """Registration id of the client that issued this request."""
        value = self.additional_parameters.get(REGISTRATION_ID)
        return str(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for session storage."""
        return {
            "client_id": self.client_id,
            "authorization_uri": self.authorization_uri,
            "redirect_uri": self.redirect_uri,
            "state": self.state,
            "scopes": list(self.scopes),
            "additional_parameters": dict(self.additional_parameters),
            "grant_type": self.grant_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthorizationRequest:
        """Reconstruct from dictionary."""
        return cls(
            client_id=data["client_id"],
            authorization_uri=data["authorization_uri"],
            redirect_uri=data["redirect_uri"],
            state=data["state"],
            scopes=tuple(data.get("scopes", ())),
            additional_parameters=data.get("additional_parameters", {}),
            grant_type=data.get("grant_type", "authorization_code"),
        )


@dataclass(frozen=True)
class AuthorizationResponse:
    """The provider's answer, parsed from the callback query string."""

    redirect_uri: str
    state: str | None = None
    code: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @property
    def is_success(self) -> bool:
        """Check if the provider issued an authorization code."""
        return not self.is_error and bool(self.code)

    @property
    def is_error(self) -> bool:
        """Check if the provider returned an error."""
        return bool(self.error)

    @classmethod
    def from_params(cls, params: Mapping[str, str], redirect_uri: str) -> AuthorizationResponse:
        """Parse callback query parameters.

        Args:
            params: Query parameters of the callback request.
            redirect_uri: Callback URL without its query string.

        Returns:
            Parsed AuthorizationResponse.
        """
        return cls(
            redirect_uri=redirect_uri,
            state=params.get(STATE),
            code=params.get(CODE),
            error=params.get(ERROR),
            error_description=params.get(ERROR_DESCRIPTION),
            error_uri=params.get(ERROR_URI),
        )


@dataclass(frozen=True)
class AuthorizationExchange:
    """A stored authorization request paired with its callback response."""

    request: AuthorizationRequest
    response: AuthorizationResponse
