"""Flask integration for oauth2login."""

from oauth2login.web.handlers import RedirectFailureHandler, RedirectSuccessHandler
from oauth2login.web.login import (
    build_callback_request,
    current_principal,
    current_security_context,
    get_login_filter,
    init_login,
    login_state_snapshot,
)

__all__ = [
    "RedirectFailureHandler",
    "RedirectSuccessHandler",
    "build_callback_request",
    "current_principal",
    "current_security_context",
    "get_login_filter",
    "init_login",
    "login_state_snapshot",
]
