"""Authentication engine: token exchange and user resolution.

The login filter hands a LoginAuthenticationToken to an AuthenticationEngine,
which exchanges the authorization code for an access token and resolves the
user. HttpAuthenticationEngine does this against the provider's token and
user-info endpoints with httpx.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

import httpx

from oauth2login.core.errors import (
    INVALID_REDIRECT_URI_PARAMETER,
    INVALID_TOKEN_RESPONSE,
    INVALID_USER_INFO_RESPONSE,
    TOKEN_ENDPOINT_TIMEOUT,
    engine_error,
)
from oauth2login.core.logging import ProtocolLogger, get_protocol_logger
from oauth2login.core.registration import ClientAuthenticationMethod, ClientRegistration
from oauth2login.core.tokens import ROLE_USER, AccessToken, LoginAuthenticationToken, OAuth2User

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@runtime_checkable
class AuthenticationEngine(Protocol):
    """Turns a login token into an authenticated login token.

    Implementations raise an OAuth2AuthenticationError (normally EngineError)
    carrying the failure's error code.
    """

    def authenticate(self, token: LoginAuthenticationToken) -> LoginAuthenticationToken: ...


class HttpAuthenticationEngine:
    """Authentication engine backed by the provider's HTTP endpoints.

    Steps:
    1. Check the callback redirect URI against the stored request
    2. Exchange the authorization code at the token endpoint
    3. Fetch the user from the user-info endpoint
    4. Grant ROLE_USER plus one SCOPE_ authority per granted scope
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        protocol_logger: ProtocolLogger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            timeout: Timeout in seconds for each provider request.
            protocol_logger: Optional protocol logger for HTTP traffic capture.
            transport: Optional httpx transport (wrapped for logging).
        """
        self.timeout = timeout
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self._transport = transport
        self._http_client: httpx.Client | None = None

    @property
    def http_client(self) -> httpx.Client:
        """Get or create HTTP client with logging."""
        if self._http_client is None:
            self._http_client = httpx.Client(
                transport=self._protocol_logger.create_transport(self._transport),
                timeout=self.timeout,
                follow_redirects=False,
            )
        return self._http_client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def authenticate(self, token: LoginAuthenticationToken) -> LoginAuthenticationToken:
        """Exchange the code and resolve the user.

        Args:
            token: Unauthenticated login token.

        Returns:
            Authenticated copy of the token.

        Raises:
            EngineError: If any step fails.
        """
        registration = token.client_registration
        exchange = token.authorization_exchange

        if exchange.response.redirect_uri != exchange.request.redirect_uri:
            raise engine_error(
                INVALID_REDIRECT_URI_PARAMETER,
                "Callback redirect URI does not match the authorization request",
            )

        logger.debug(f"Exchanging authorization code for registration {registration.registration_id}")
        access_token = self.exchange_code(
            registration,
            code=token.authorization_code or "",
            redirect_uri=exchange.request.redirect_uri,
            requested_scopes=exchange.request.scopes,
        )
        user = self.load_user(registration, access_token)

        authorities = (ROLE_USER, *(f"SCOPE_{scope}" for scope in access_token.scopes))
        return token.authenticate(user, access_token, authorities)

    def exchange_code(
        self,
        registration: ClientRegistration,
        code: str,
        redirect_uri: str,
        requested_scopes: tuple[str, ...] = (),
    ) -> AccessToken:
        """Exchange an authorization code for an access token.

        Args:
            registration: Client registration with token endpoint and credentials.
            code: Authorization code from the callback.
            redirect_uri: Redirect URI sent in the authorization request.
            requested_scopes: Scopes granted when the response omits ``scope``.

        Returns:
            The issued AccessToken.

        Raises:
            EngineError: On transport failure or an error token response.
        """
        data: dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        auth: httpx.BasicAuth | None = None

        method = registration.client_authentication_method
        if method == ClientAuthenticationMethod.CLIENT_SECRET_BASIC:
            auth = httpx.BasicAuth(registration.client_id, registration.client_secret or "")
        else:
            data["client_id"] = registration.client_id
            if method == ClientAuthenticationMethod.CLIENT_SECRET_POST and registration.client_secret:
                data["client_secret"] = registration.client_secret

        try:
            response = self.http_client.post(
                registration.token_uri,
                data=data,
                auth=auth,
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as e:
            raise engine_error(TOKEN_ENDPOINT_TIMEOUT, f"Token request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise engine_error(INVALID_TOKEN_RESPONSE, f"HTTP error during token exchange: {e}") from e

        response_data = _json_object(response) or {}

        # GitHub reports errors with status 200
        if response_data.get("error") or response.status_code != 200:
            raise engine_error(
                str(response_data.get("error") or INVALID_TOKEN_RESPONSE),
                response_data.get(
                    "error_description",
                    f"Token request failed with status {response.status_code}",
                ),
            )

        if not response_data.get("access_token"):
            raise engine_error(INVALID_TOKEN_RESPONSE, "Token response did not contain an access_token")

        return _parse_access_token(response_data, requested_scopes)

    def load_user(self, registration: ClientRegistration, access_token: AccessToken) -> OAuth2User:
        """Fetch the user from the user-info endpoint.

        Args:
            registration: Client registration with user-info endpoint.
            access_token: Bearer token for authorization.

        Returns:
            OAuth2User named by the registration's user name attribute.

        Raises:
            EngineError: If the user cannot be retrieved.
        """
        if not registration.user_info_uri:
            raise engine_error(
                INVALID_USER_INFO_RESPONSE,
                f"No user-info endpoint configured for {registration.registration_id}",
            )

        try:
            response = self.http_client.get(
                registration.user_info_uri,
                headers={
                    "Authorization": f"Bearer {access_token.token_value}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise engine_error(INVALID_USER_INFO_RESPONSE, f"HTTP error fetching user info: {e}") from e

        attributes = _json_object(response)
        if response.status_code != 200 or attributes is None:
            raise engine_error(
                INVALID_USER_INFO_RESPONSE,
                f"User-info request failed with status {response.status_code}",
            )

        try:
            return OAuth2User(attributes=attributes, name_attribute_key=registration.user_name_attribute)
        except ValueError as e:
            raise engine_error(INVALID_USER_INFO_RESPONSE, str(e)) from e


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Decode a JSON object body, or None if the body is not one."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _parse_access_token(data: dict[str, Any], requested_scopes: tuple[str, ...]) -> AccessToken:
    issued_at = datetime.now(UTC)
    expires_at = None
    expires_in = data.get("expires_in")
    if expires_in is not None:
        try:
            expires_at = issued_at + timedelta(seconds=int(expires_in))
        except (TypeError, ValueError) as e:
            raise engine_error(INVALID_TOKEN_RESPONSE, f"Invalid expires_in: {expires_in!r}") from e

    # Providers may omit scope when it equals the requested scope (RFC 6749 5.1)
    scope = data.get("scope")
    scopes = tuple(scope.replace(",", " ").split()) if isinstance(scope, str) else tuple(requested_scopes)

    return AccessToken(
        token_value=data["access_token"],
        token_type=data.get("token_type") or "Bearer",
        issued_at=issued_at,
        expires_at=expires_at,
        scopes=scopes,
        refresh_token=data.get("refresh_token"),
    )

