"""Flask application factory."""

from __future__ import annotations

import atexit
import os
import secrets
from typing import Any

from flask import Flask, jsonify, request, session

from oauth2login.core.authorized import AuthorizedClientService, InMemoryAuthorizedClientService
from oauth2login.core.config import LoginConfig, load_config
from oauth2login.core.engine import AuthenticationEngine
from oauth2login.core.filter import FailureHandler, SuccessHandler, build_login_filter
from oauth2login.core.logging import configure_logging
from oauth2login.core.store import AuthorizationRequestRepository
from oauth2login.web.handlers import PRINCIPAL_SESSION_KEY, RedirectFailureHandler, RedirectSuccessHandler
from oauth2login.web.login import init_login


def create_app(
    login_config: LoginConfig | None = None,
    config: dict[str, Any] | None = None,
    engine: AuthenticationEngine | None = None,
    authorization_requests: AuthorizationRequestRepository | None = None,
    authorized_clients: AuthorizedClientService | None = None,
    success_handler: SuccessHandler | None = None,
    failure_handler: FailureHandler | None = None,
) -> Flask:
    """Create a Flask application with the login filter installed.

    Args:
        login_config: Login configuration. Loads from file/env if not provided.
        config: Optional Flask configuration overriding the defaults.
        engine: Authentication engine. Defaults to an HttpAuthenticationEngine
            whose HTTP client is closed at interpreter exit. A supplied engine
            stays owned by the caller.
        authorization_requests: Store of pending authorization requests.
        authorized_clients: Service recording issued access tokens.
        success_handler: Defaults to RedirectSuccessHandler(success_url).
        failure_handler: Defaults to RedirectFailureHandler(failure_url).

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    if login_config is None:
        login_config = load_config()
    settings = login_config.login

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("OAUTH2LOGIN_SECRET_KEY") or secrets.token_hex(32),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )
    if config:
        app.config.from_mapping(config)

    if not app.testing:
        configure_logging(settings.log_level)

    login_filter = build_login_filter(
        login_config,
        success_handler=success_handler or RedirectSuccessHandler(settings.success_url),
        failure_handler=failure_handler or RedirectFailureHandler(settings.failure_url),
        engine=engine,
        authorization_requests=authorization_requests,
        authorized_clients=authorized_clients if authorized_clients is not None else InMemoryAuthorizedClientService(),
    )
    init_login(app, login_filter)
    if engine is None:
        atexit.register(login_filter.close)

    @app.route("/health")
    def health() -> Any:
        return jsonify({"status": "healthy"})

    @app.route("/login")
    def login_page() -> Any:
        # Landing page for failed callbacks; the error code is in the query
        return jsonify({"authenticated": False, "error": request.args.get("error")})

    @app.route("/")
    def index() -> Any:
        principal = session.get(PRINCIPAL_SESSION_KEY)
        if principal is None:
            return jsonify({"authenticated": False})
        return jsonify({"authenticated": True, **principal})

    return app
