"""Callback request matching.

Decides whether an inbound request is the provider's redirect back to this
application, and which client registration it is for.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit

from oauth2login.core.registration import ClientRegistration, ClientRegistrationRepository

DEFAULT_CALLBACK_PATH_TEMPLATE = "/login/oauth2/code/{registration_id}"

_PLACEHOLDER = "{registration_id}"


@dataclass(frozen=True)
class CallbackMatch:
    """A matched callback request."""

    registration_id: str
    path: str


def compile_path_template(template: str) -> re.Pattern[str]:
    """Compile a callback path template into an anchored regex.

    The ``{registration_id}`` placeholder matches exactly one path segment.

    Args:
        template: Path template, e.g. ``/login/oauth2/code/{registration_id}``.

    Returns:
        Compiled pattern with a ``registration_id`` group.

    Raises:
        ValueError: If the template lacks the placeholder or is not absolute.
    """
    if not template.startswith("/"):
        raise ValueError(f"Callback path template must start with '/': {template}")
    if template.count(_PLACEHOLDER) != 1:
        raise ValueError(f"Callback path template must contain {_PLACEHOLDER} exactly once: {template}")

    prefix, suffix = template.split(_PLACEHOLDER)
    return re.compile(f"^{re.escape(prefix)}(?P<registration_id>[^/]+){re.escape(suffix)}$")


class CallbackMatcher:
    """Matches authorization callbacks by path template or redirect URI.

    Only GET requests are recognised.
    """

    def __init__(
        self,
        path_template: str = DEFAULT_CALLBACK_PATH_TEMPLATE,
        registrations: ClientRegistrationRepository | None = None,
    ) -> None:
        """Initialize the matcher.

        Args:
            path_template: Callback path template embedding the registration id.
            registrations: Optional repository. If it is iterable, the paths of
                the registrations' declared redirect URIs are matched as well.
        """
        self.path_template = path_template
        self._pattern = compile_path_template(path_template)
        self._redirect_paths = _declared_redirect_paths(registrations)

    def match(self, method: str, path: str) -> CallbackMatch | None:
        """Match a request against the callback endpoints.

        Args:
            method: HTTP method of the request.
            path: Request path without query string.

        Returns:
            CallbackMatch for a callback, None for any other request.
        """
        if method.upper() != "GET":
            return None

        m = self._pattern.match(path)
        if m:
            return CallbackMatch(registration_id=m.group("registration_id"), path=path)

        registration_id = self._redirect_paths.get(path)
        if registration_id is not None:
            return CallbackMatch(registration_id=registration_id, path=path)

        return None


def _declared_redirect_paths(registrations: ClientRegistrationRepository | None) -> dict[str, str]:
    """Map redirect URI paths to registration ids."""
    if not isinstance(registrations, Iterable):
        return {}

    paths: dict[str, str] = {}
    registration: ClientRegistration
    for registration in registrations:
        path = urlsplit(registration.expand_redirect_uri()).path
        if path:
            paths[path] = registration.registration_id
    return paths
