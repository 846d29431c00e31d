"""Default success and failure handlers for Flask apps."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

from flask import redirect, session

from oauth2login.core.errors import OAuth2AuthenticationError
from oauth2login.core.request import CallbackRequest
from oauth2login.core.tokens import AuthenticatedPrincipal

if TYPE_CHECKING:
    from werkzeug.wrappers import Response as WerkzeugResponse

# Session key for the logged-in user
PRINCIPAL_SESSION_KEY = "oauth2_principal"


class RedirectSuccessHandler:
    """Records the principal in the session and redirects to a target URL."""

    def __init__(self, default_target_url: str = "/") -> None:
        self.default_target_url = default_target_url

    def on_authentication_success(
        self,
        request: CallbackRequest,
        principal: AuthenticatedPrincipal,
    ) -> WerkzeugResponse:
        session[PRINCIPAL_SESSION_KEY] = {
            "name": principal.principal_name(),
            "registration_id": principal.registration_id,
            "authorities": list(principal.authorities),
        }
        return redirect(self.default_target_url)


class RedirectFailureHandler:
    """Redirects to a failure URL with the error code in the query string."""

    def __init__(self, failure_url: str = "/login") -> None:
        self.failure_url = failure_url

    def on_authentication_failure(
        self,
        request: CallbackRequest,
        error: OAuth2AuthenticationError,
    ) -> WerkzeugResponse:
        session.pop(PRINCIPAL_SESSION_KEY, None)
        separator = "&" if "?" in self.failure_url else "?"
        return redirect(f"{self.failure_url}{separator}{urlencode({'error': error.error_code})}")
