"""Authentication attempt for a matched login callback.

Runs the callback through its states:
- START: parse the callback's query parameters
- STORE_LOOKUP: retrieve and invalidate the stored authorization request
- STATE_VALIDATED: compare the stored and returned state
- EXCHANGING: hand the login token to the authentication engine
- AUTHENTICATED: build the principal

Any state may end in FAILED with a typed error. Failures are returned in the
AttemptResult rather than raised.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from enum import StrEnum

from oauth2login.core.authorization import AuthorizationExchange, AuthorizationResponse
from oauth2login.core.authorized import AuthorizedClient, AuthorizedClientService
from oauth2login.core.engine import AuthenticationEngine
from oauth2login.core.errors import (
    OAuth2AuthenticationError,
    authorization_request_not_found,
    client_registration_not_found,
    from_provider_response,
    invalid_request,
    invalid_state_parameter,
    map_engine_failure,
)
from oauth2login.core.registration import ClientRegistrationRepository
from oauth2login.core.request import CallbackRequest
from oauth2login.core.store import AuthorizationRequestRepository
from oauth2login.core.tokens import AuthenticatedPrincipal, LoginAuthenticationToken

logger = logging.getLogger(__name__)


class AttemptStatus(StrEnum):
    """States of an authentication attempt."""

    START = "start"
    STORE_LOOKUP = "store_lookup"
    STATE_VALIDATED = "state_validated"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class AttemptResult:
    """Outcome of an authentication attempt."""

    status: AttemptStatus
    principal: AuthenticatedPrincipal | None = None
    error: OAuth2AuthenticationError | None = None

    # State reached before failing
    failed_in: AttemptStatus | None = None

    # Engine output, kept for the authorized client record
    login_token: LoginAuthenticationToken | None = field(default=None, repr=False)

    @property
    def is_success(self) -> bool:
        """Check if the attempt authenticated the user."""
        return self.status == AttemptStatus.AUTHENTICATED and self.principal is not None

    @property
    def error_code(self) -> str | None:
        return self.error.error_code if self.error else None


class AuthenticationAttempt:
    """Authenticates one matched callback request.

    An attempt is single-shot: the stored authorization request is removed
    during STORE_LOOKUP, so replaying the same callback fails with
    ``authorization_request_not_found``.
    """

    def __init__(
        self,
        registrations: ClientRegistrationRepository,
        authorization_requests: AuthorizationRequestRepository,
        engine: AuthenticationEngine,
        authorized_clients: AuthorizedClientService | None = None,
    ) -> None:
        """Initialize the attempt.

        Args:
            registrations: Repository resolving the stored request's registration.
            authorization_requests: Store holding pending authorization requests.
            engine: Performs token exchange and user resolution.
            authorized_clients: Optional service recording issued access tokens.
        """
        self.registrations = registrations
        self.authorization_requests = authorization_requests
        self.engine = engine
        self.authorized_clients = authorized_clients

    def run(self, request: CallbackRequest) -> AttemptResult:
        """Run the attempt for a callback request.

        Args:
            request: The matched callback request.

        Returns:
            AttemptResult holding the principal or the typed error.
        """
        status = AttemptStatus.START
        params = request.query

        response = AuthorizationResponse.from_params(params, redirect_uri=request.url)
        if response.is_error:
            return self._fail(status, from_provider_response(params))
        if not response.is_success:
            return self._fail(status, invalid_request("Callback carries neither 'code' nor 'error'"))
        if not response.state:
            return self._fail(status, invalid_state_parameter())

        status = AttemptStatus.STORE_LOOKUP
        stored = self.authorization_requests.retrieve_and_remove(response.state, request.session)
        if stored is None:
            return self._fail(status, authorization_request_not_found())

        status = AttemptStatus.STATE_VALIDATED
        if not secrets.compare_digest(stored.state.encode(), response.state.encode()):
            return self._fail(status, invalid_state_parameter())

        status = AttemptStatus.EXCHANGING
        registration = self.registrations.find_by_registration_id(stored.registration_id or "")
        if registration is None:
            return self._fail(status, client_registration_not_found(stored.registration_id))

        login_token = LoginAuthenticationToken(
            client_registration=registration,
            authorization_exchange=AuthorizationExchange(request=stored, response=response),
        )
        try:
            authenticated = self.engine.authenticate(login_token)
        except OAuth2AuthenticationError as e:
            return self._fail(status, map_engine_failure(e))

        if not authenticated.authenticated or authenticated.principal is None:
            raise RuntimeError("Authentication engine returned an unauthenticated token")

        principal = AuthenticatedPrincipal(
            principal=authenticated.principal,
            authorities=authenticated.authorities,
            registration_id=registration.registration_id,
        )

        if self.authorized_clients is not None and authenticated.access_token is not None:
            self.authorized_clients.save_authorized_client(
                AuthorizedClient(
                    client_registration=registration,
                    principal_name=principal.principal_name(),
                    access_token=authenticated.access_token,
                )
            )

        logger.info(f"Authenticated '{principal.principal_name()}' via {registration.registration_id}")
        return AttemptResult(
            status=AttemptStatus.AUTHENTICATED,
            principal=principal,
            login_token=authenticated,
        )

    def _fail(self, status: AttemptStatus, error: OAuth2AuthenticationError) -> AttemptResult:
        logger.warning(f"Login callback failed in {status}: {error.error_code}")
        return AttemptResult(status=AttemptStatus.FAILED, error=error, failed_in=status)
