"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from flask import Flask
from flask.testing import FlaskClient

from oauth2login.app import create_app
from oauth2login.core import (
    AccessToken,
    AuthenticatedPrincipal,
    AuthenticationAttempt,
    AuthorizationRequest,
    CallbackMatcher,
    CallbackRequest,
    ClientRegistration,
    CommonOAuth2Provider,
    InMemoryAuthorizedClientService,
    InMemoryClientRegistrationRepository,
    LoginConfig,
    LoginAuthenticationToken,
    LoginFilter,
    OAuth2AuthenticationError,
    OAuth2User,
    SessionAuthorizationRequestRepository,
)
from oauth2login.core.authorization import REGISTRATION_ID
from oauth2login.core.tokens import ROLE_USER

BASE_URL = "http://localhost"
GITHUB_CALLBACK_PATH = "/login/oauth2/code/github"
GITHUB_REDIRECT_URI = f"{BASE_URL}{GITHUB_CALLBACK_PATH}"


class FakeEngine:
    """Authentication engine that resolves a fixed user without HTTP."""

    def __init__(
        self,
        attributes: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.attributes = attributes or {"id": 583231, "login": "octocat", "name": "The Octocat"}
        self.error = error
        self.calls: list[LoginAuthenticationToken] = []

    def authenticate(self, token: LoginAuthenticationToken) -> LoginAuthenticationToken:
        self.calls.append(token)
        if self.error is not None:
            raise self.error
        user = OAuth2User(self.attributes, name_attribute_key=token.client_registration.user_name_attribute)
        access_token = AccessToken("access-token-123", scopes=("read:user",))
        return token.authenticate(user, access_token, (ROLE_USER, "SCOPE_read:user"))


class RecordingStore(SessionAuthorizationRequestRepository):
    """Session store that records every call made to it."""

    def __init__(self) -> None:
        super().__init__()
        self.saved: list[str] = []
        self.lookups: list[str] = []

    def save(self, request: AuthorizationRequest, context: Any) -> None:
        self.saved.append(request.state)
        super().save(request, context)

    def retrieve_and_remove(self, state: str, context: Any) -> AuthorizationRequest | None:
        self.lookups.append(state)
        return super().retrieve_and_remove(state, context)


class RecordingSuccessHandler:
    def __init__(self) -> None:
        self.principals: list[AuthenticatedPrincipal] = []

    def on_authentication_success(self, request: CallbackRequest, principal: AuthenticatedPrincipal) -> Any:
        self.principals.append(principal)
        return ("success", principal.principal_name())


class RecordingFailureHandler:
    def __init__(self) -> None:
        self.errors: list[OAuth2AuthenticationError] = []

    def on_authentication_failure(self, request: CallbackRequest, error: OAuth2AuthenticationError) -> Any:
        self.errors.append(error)
        return ("failure", error.error_code)


@pytest.fixture
def github_registration() -> ClientRegistration:
    """GitHub registration naming users by their login."""
    return CommonOAuth2Provider.GITHUB.registration(
        "github",
        client_id="github-client",
        client_secret="github-secret",
        user_name_attribute="login",
    )


@pytest.fixture
def google_registration() -> ClientRegistration:
    return CommonOAuth2Provider.GOOGLE.registration(
        "google",
        client_id="google-client",
        client_secret="google-secret",
    )


@pytest.fixture
def registrations(
    github_registration: ClientRegistration,
    google_registration: ClientRegistration,
) -> InMemoryClientRegistrationRepository:
    return InMemoryClientRegistrationRepository([github_registration, google_registration])


@pytest.fixture
def login_config(
    github_registration: ClientRegistration,
    google_registration: ClientRegistration,
) -> LoginConfig:
    return LoginConfig(registrations=[github_registration, google_registration])


@pytest.fixture
def make_authorization_request() -> Callable[..., AuthorizationRequest]:
    """Factory for stored authorization requests."""

    def factory(
        state: str = "S1",
        registration_id: str = "github",
        redirect_uri: str = GITHUB_REDIRECT_URI,
    ) -> AuthorizationRequest:
        return AuthorizationRequest(
            client_id=f"{registration_id}-client",
            authorization_uri="https://github.com/login/oauth/authorize",
            redirect_uri=redirect_uri,
            state=state,
            scopes=("read:user",),
            additional_parameters={REGISTRATION_ID: registration_id},
        )

    return factory


@pytest.fixture
def session() -> dict[str, Any]:
    """Plain dict standing in for the user's session."""
    return {}


@pytest.fixture
def make_callback(session: dict[str, Any]) -> Callable[..., CallbackRequest]:
    """Factory for callback requests sharing the session fixture."""

    def factory(
        query: dict[str, str] | None = None,
        path: str = GITHUB_CALLBACK_PATH,
        method: str = "GET",
    ) -> CallbackRequest:
        return CallbackRequest(
            method=method,
            path=path,
            query=query or {},
            base_url=BASE_URL,
            session=session,
        )

    return factory


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def authorized_clients() -> InMemoryAuthorizedClientService:
    return InMemoryAuthorizedClientService()


@pytest.fixture
def attempt(
    registrations: InMemoryClientRegistrationRepository,
    store: RecordingStore,
    engine: FakeEngine,
    authorized_clients: InMemoryAuthorizedClientService,
) -> AuthenticationAttempt:
    return AuthenticationAttempt(
        registrations=registrations,
        authorization_requests=store,
        engine=engine,
        authorized_clients=authorized_clients,
    )


@pytest.fixture
def success_handler() -> RecordingSuccessHandler:
    return RecordingSuccessHandler()


@pytest.fixture
def failure_handler() -> RecordingFailureHandler:
    return RecordingFailureHandler()


@pytest.fixture
def login_filter(
    registrations: InMemoryClientRegistrationRepository,
    attempt: AuthenticationAttempt,
    success_handler: RecordingSuccessHandler,
    failure_handler: RecordingFailureHandler,
) -> LoginFilter:
    return LoginFilter(
        matcher=CallbackMatcher(registrations=registrations),
        attempt=attempt,
        success_handler=success_handler,
        failure_handler=failure_handler,
    )


@pytest.fixture
def app(login_config: LoginConfig, engine: FakeEngine, store: RecordingStore) -> Generator[Flask, None, None]:
    """Create application for testing with a fake authentication engine."""
    app = create_app(
        login_config,
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
        },
        engine=engine,
        authorization_requests=store,
    )
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create test client."""
    return app.test_client()
