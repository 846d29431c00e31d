"""Authentication error taxonomy for the OAuth2 login callback.

Every failure on the callback leg is represented by a subclass of
OAuth2AuthenticationError carrying an OAuth2Error with a stable error code.
Failure handlers branch on ``error.error_code``; the codes are part of the
external contract.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

# Error codes produced by the login filter itself
AUTHORIZATION_REQUEST_NOT_FOUND = "authorization_request_not_found"
INVALID_STATE_PARAMETER = "invalid_state_parameter"
CLIENT_REGISTRATION_NOT_FOUND = "client_registration_not_found"
INVALID_REQUEST = "invalid_request"

# Error codes reported by the authentication engine
INVALID_TOKEN_RESPONSE = "invalid_token_response"
INVALID_USER_INFO_RESPONSE = "invalid_user_info_response"
INVALID_REDIRECT_URI_PARAMETER = "invalid_redirect_uri_parameter"
TOKEN_ENDPOINT_TIMEOUT = "token_endpoint_timeout"


@dataclass(frozen=True)
class OAuth2Error:
    """An OAuth2 error as defined by RFC 6749 section 4.1.2.1."""

    error_code: str
    description: str | None = None
    uri: str | None = None

    def __str__(self) -> str:
        if self.description:
            return f"[{self.error_code}] {self.description}"
        return f"[{self.error_code}]"


class OAuth2AuthenticationError(Exception):
    """Base class for all login callback failures."""

    def __init__(self, error: OAuth2Error) -> None:
        super().__init__(str(error))
        self.error = error

    @property
    def error_code(self) -> str:
        """The stable error code of this failure."""
        return self.error.error_code


class ProviderError(OAuth2AuthenticationError):
    """The provider rejected the authorization request."""


class AuthorizationRequestNotFound(OAuth2AuthenticationError):
    """No pending authorization request correlates with the callback."""


class InvalidStateParameter(OAuth2AuthenticationError):
    """The anti-forgery state check failed."""


class ClientRegistrationNotFound(OAuth2AuthenticationError):
    """The stored authorization request names an unknown client registration."""


class InvalidRequest(OAuth2AuthenticationError):
    """The callback is neither a success nor an error authorization response."""


class EngineError(OAuth2AuthenticationError):
    """Token exchange or user-info retrieval failed."""


def from_provider_response(params: Mapping[str, str]) -> ProviderError:
    """Map an error authorization response to a ProviderError.

    The provider's error code is passed through verbatim.

    Args:
        params: Callback query parameters containing ``error``.

    Returns:
        ProviderError carrying the provider's code and description.
    """
    return ProviderError(
        OAuth2Error(
            error_code=params["error"],
            description=params.get("error_description"),
            uri=params.get("error_uri"),
        )
    )


def authorization_request_not_found() -> AuthorizationRequestNotFound:
    return AuthorizationRequestNotFound(
        OAuth2Error(AUTHORIZATION_REQUEST_NOT_FOUND, "No pending authorization request for this state")
    )


def invalid_state_parameter() -> InvalidStateParameter:
    return InvalidStateParameter(
        OAuth2Error(INVALID_STATE_PARAMETER, "State parameter is missing or does not match")
    )


def client_registration_not_found(registration_id: str | None) -> ClientRegistrationNotFound:
    return ClientRegistrationNotFound(
        OAuth2Error(CLIENT_REGISTRATION_NOT_FOUND, f"Client registration not found: {registration_id}")
    )


def invalid_request(description: str) -> InvalidRequest:
    return InvalidRequest(OAuth2Error(INVALID_REQUEST, description))


def engine_error(error_code: str, description: str | None = None) -> EngineError:
    """Create an EngineError with the given code."""
    return EngineError(OAuth2Error(error_code, description))


def map_engine_failure(exc: OAuth2AuthenticationError) -> OAuth2AuthenticationError:
    """Normalise a failure raised by the authentication engine.

    Engine-specific subclasses are passed through untouched. A bare
    OAuth2AuthenticationError is rewrapped as EngineError with the same
    OAuth2Error, so the reported code never changes.

    Args:
        exc: Exception raised by the engine.

    Returns:
        The typed failure to hand to the failure handler.
    """
    if type(exc) is OAuth2AuthenticationError:
        mapped = EngineError(exc.error)
        mapped.__cause__ = exc
        return mapped
    return exc
