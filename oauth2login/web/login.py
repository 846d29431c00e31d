"""Flask integration for the login filter."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import Flask, g, request, session

from oauth2login.core.request import CallbackRequest
from oauth2login.core.tokens import AuthenticatedPrincipal, SecurityContext

if TYPE_CHECKING:
    from werkzeug.wrappers import Response as WerkzeugResponse

    from oauth2login.core.filter import LoginFilter

# Flask extension key
EXTENSION_KEY = "oauth2login"


def build_callback_request() -> CallbackRequest:
    """Build a CallbackRequest for the current Flask request.

    The Flask session is the context in which authorization requests are
    stored. The base URL includes the script root, so the reconstructed
    callback URL matches the redirect URI of an app mounted under a prefix.
    """
    return CallbackRequest(
        method=request.method,
        path=request.path,
        query=request.args.to_dict(flat=True),
        base_url=request.root_url.rstrip("/"),
        session=session,
        native=request,
    )


def init_login(app: Flask, login_filter: LoginFilter) -> None:
    """Install the login filter on a Flask app.

    Registers a ``before_request`` hook that runs the filter. Callbacks are
    answered by the filter's handlers; every other request continues to its
    view. The request's security context is available as
    ``g.security_context``.

    Args:
        app: Flask application instance.
        login_filter: Configured login filter.
    """
    app.extensions[EXTENSION_KEY] = login_filter

    @app.before_request
    def run_login_filter() -> WerkzeugResponse | None:
        callback_request = build_callback_request()
        g.security_context = callback_request.security_context
        return login_filter.handle(callback_request, _continue)


def _continue(_: CallbackRequest) -> None:
    # Returning None from before_request lets Flask dispatch to the view
    return None


def get_login_filter(app: Flask) -> LoginFilter:
    """Get the login filter installed on an app."""
    login_filter: LoginFilter = app.extensions[EXTENSION_KEY]
    return login_filter


def current_security_context() -> SecurityContext:
    """Get the security context of the current request."""
    context = g.get("security_context")
    if context is None:
        context = SecurityContext()
        g.security_context = context
    return context


def current_principal() -> AuthenticatedPrincipal | None:
    """Get the principal authenticated during the current request, if any."""
    return current_security_context().authentication


def login_state_snapshot() -> dict[str, Any]:
    """Summarise the current request's authentication for templates and JSON."""
    principal = current_principal()
    if principal is None:
        return {"authenticated": False}
    return {
        "authenticated": True,
        "name": principal.principal_name(),
        "registration_id": principal.registration_id,
        "authorities": list(principal.authorities),
    }
