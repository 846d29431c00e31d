"""Core OAuth2 login callback implementation."""

from oauth2login.core.attempt import AttemptResult, AttemptStatus, AuthenticationAttempt
from oauth2login.core.authorization import (
    AuthorizationExchange,
    AuthorizationRequest,
    AuthorizationResponse,
)
from oauth2login.core.authorized import (
    AuthorizedClient,
    AuthorizedClientService,
    InMemoryAuthorizedClientService,
)
from oauth2login.core.config import ConfigError, LoginConfig, LoginSettings, load_config
from oauth2login.core.engine import AuthenticationEngine, HttpAuthenticationEngine
from oauth2login.core.errors import (
    AuthorizationRequestNotFound,
    ClientRegistrationNotFound,
    EngineError,
    InvalidRequest,
    InvalidStateParameter,
    OAuth2AuthenticationError,
    OAuth2Error,
    ProviderError,
)
from oauth2login.core.filter import FailureHandler, LoginFilter, SuccessHandler, build_login_filter
from oauth2login.core.logging import (
    HTTPExchange,
    LogLevel,
    ProtocolLogger,
    configure_logging,
    get_protocol_logger,
    redact_sensitive,
    set_protocol_logger,
)
from oauth2login.core.matcher import CallbackMatch, CallbackMatcher
from oauth2login.core.providers import CommonOAuth2Provider
from oauth2login.core.registration import (
    ClientAuthenticationMethod,
    ClientRegistration,
    ClientRegistrationRepository,
    InMemoryClientRegistrationRepository,
)
from oauth2login.core.request import CallbackRequest
from oauth2login.core.store import AuthorizationRequestRepository, SessionAuthorizationRequestRepository
from oauth2login.core.tokens import (
    AccessToken,
    AuthenticatedPrincipal,
    LoginAuthenticationToken,
    OAuth2User,
    SecurityContext,
)

__all__ = [
    # Attempt
    "AttemptResult",
    "AttemptStatus",
    "AuthenticationAttempt",
    # Authorization
    "AuthorizationExchange",
    "AuthorizationRequest",
    "AuthorizationResponse",
    # Authorized clients
    "AuthorizedClient",
    "AuthorizedClientService",
    "InMemoryAuthorizedClientService",
    # Config
    "ConfigError",
    "LoginConfig",
    "LoginSettings",
    "load_config",
    # Engine
    "AuthenticationEngine",
    "HttpAuthenticationEngine",
    # Errors
    "AuthorizationRequestNotFound",
    "ClientRegistrationNotFound",
    "EngineError",
    "InvalidRequest",
    "InvalidStateParameter",
    "OAuth2AuthenticationError",
    "OAuth2Error",
    "ProviderError",
    # Filter
    "FailureHandler",
    "LoginFilter",
    "SuccessHandler",
    "build_login_filter",
    # Logging
    "HTTPExchange",
    "LogLevel",
    "ProtocolLogger",
    "configure_logging",
    "get_protocol_logger",
    "redact_sensitive",
    "set_protocol_logger",
    # Matching
    "CallbackMatch",
    "CallbackMatcher",
    # Registrations
    "ClientAuthenticationMethod",
    "ClientRegistration",
    "ClientRegistrationRepository",
    "CommonOAuth2Provider",
    "InMemoryClientRegistrationRepository",
    # Requests and storage
    "AuthorizationRequestRepository",
    "CallbackRequest",
    "SessionAuthorizationRequestRepository",
    # Tokens
    "AccessToken",
    "AuthenticatedPrincipal",
    "LoginAuthenticationToken",
    "OAuth2User",
    "SecurityContext",
]
