"""Login filter: entry point for OAuth2 login callbacks.

Sits in the host's request pipeline. Requests that are not callbacks pass
through untouched; callbacks are authenticated and routed to the configured
success or failure handler.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Protocol, runtime_checkable

from oauth2login.core.attempt import AttemptResult, AuthenticationAttempt
from oauth2login.core.authorized import AuthorizedClientService
from oauth2login.core.config import LoginConfig
from oauth2login.core.engine import AuthenticationEngine, HttpAuthenticationEngine
from oauth2login.core.errors import OAuth2AuthenticationError
from oauth2login.core.matcher import CallbackMatcher
from oauth2login.core.registration import (
    DEFAULT_REDIRECT_URI_TEMPLATE,
    ClientRegistration,
    InMemoryClientRegistrationRepository,
)
from oauth2login.core.request import CallbackRequest
from oauth2login.core.store import AuthorizationRequestRepository, SessionAuthorizationRequestRepository
from oauth2login.core.tokens import AuthenticatedPrincipal

logger = logging.getLogger(__name__)

NextHandler = Callable[[CallbackRequest], Any]


@runtime_checkable
class SuccessHandler(Protocol):
    """Produces the response for a successful login."""

    def on_authentication_success(self, request: CallbackRequest, principal: AuthenticatedPrincipal) -> Any: ...


@runtime_checkable
class FailureHandler(Protocol):
    """Produces the response for a failed login."""

    def on_authentication_failure(self, request: CallbackRequest, error: OAuth2AuthenticationError) -> Any: ...


class LoginFilter:
    """Request-scoped gate for the OAuth2 login callback.

    The filter never writes a response itself: it returns whatever the next
    handler, the success handler or the failure handler returns.
    """

    def __init__(
        self,
        matcher: CallbackMatcher,
        attempt: AuthenticationAttempt,
        success_handler: SuccessHandler,
        failure_handler: FailureHandler,
        owned_engine: HttpAuthenticationEngine | None = None,
    ) -> None:
        self.matcher = matcher
        self.attempt = attempt
        self.success_handler = success_handler
        self.failure_handler = failure_handler
        self._owned_engine = owned_engine

    def close(self) -> None:
        """Close the engine this filter created, if any.

        Engines passed in by the caller are left open.
        """
        if self._owned_engine is not None:
            self._owned_engine.close()

    def requires_authentication(self, request: CallbackRequest) -> bool:
        """Check if the request is a login callback."""
        return self.matcher.match(request.method, request.path) is not None

    def handle(self, request: CallbackRequest, call_next: NextHandler) -> Any:
        """Process a request.

        Args:
            request: The inbound request.
            call_next: Continues the host pipeline for non-callback requests.

        Returns:
            The response from ``call_next`` or from the selected handler.
        """
        if not self.requires_authentication(request):
            return call_next(request)

        try:
            result = self.attempt.run(request)
        except Exception:
            request.security_context.clear()
            raise

        return self._dispatch(request, result)

    def _dispatch(self, request: CallbackRequest, result: AttemptResult) -> Any:
        if result.is_success and result.principal is not None:
            request.security_context.authentication = result.principal
            try:
                return self.success_handler.on_authentication_success(request, result.principal)
            except Exception:
                request.security_context.clear()
                raise

        request.security_context.clear()
        if result.error is None:
            raise RuntimeError(f"Authentication attempt ended in {result.status} without an error")
        logger.debug(f"Dispatching failure {result.error.error_code} to failure handler")
        return self.failure_handler.on_authentication_failure(request, result.error)


def build_login_filter(
    config: LoginConfig,
    success_handler: SuccessHandler,
    failure_handler: FailureHandler,
    engine: AuthenticationEngine | None = None,
    authorization_requests: AuthorizationRequestRepository | None = None,
    authorized_clients: AuthorizedClientService | None = None,
) -> LoginFilter:
    """Assemble a LoginFilter from configuration.

    Registrations that keep the default redirect URI template get one
    built from the configured callback path, so the path the provider
    redirects to is the path the filter matches.

    Args:
        config: Login configuration with at least one registration.
        success_handler: Handler for successful logins.
        failure_handler: Handler for failed logins.
        engine: Authentication engine. Defaults to an HttpAuthenticationEngine
            owned by the filter and released by ``LoginFilter.close``.
        authorization_requests: Store of pending requests. Defaults to a
            session store using the configured TTL and size bound.
        authorized_clients: Optional authorized client service.

    Returns:
        Configured LoginFilter.
    """
    settings = config.login
    registrations = InMemoryClientRegistrationRepository(
        [_with_callback_path(registration, settings.callback_path) for registration in config.registrations]
    )
    owned_engine = None if engine is not None else HttpAuthenticationEngine(timeout=settings.http_timeout)

    attempt = AuthenticationAttempt(
        registrations=registrations,
        authorization_requests=authorization_requests
        or SessionAuthorizationRequestRepository(
            ttl=settings.request_ttl,
            max_requests=settings.max_pending_requests,
        ),
        engine=engine if engine is not None else owned_engine,
        authorized_clients=authorized_clients,
    )
    return LoginFilter(
        matcher=CallbackMatcher(settings.callback_path, registrations),
        attempt=attempt,
        success_handler=success_handler,
        failure_handler=failure_handler,
        owned_engine=owned_engine,
    )


def _with_callback_path(registration: ClientRegistration, callback_path: str) -> ClientRegistration:
    template = "{base_url}" + callback_path
    if registration.redirect_uri_template != DEFAULT_REDIRECT_URI_TEMPLATE or template == DEFAULT_REDIRECT_URI_TEMPLATE:
        return registration
    return replace(registration, redirect_uri_template=template)
