"""Framework-neutral view of an inbound HTTP request."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from oauth2login.core.store import SessionContext
from oauth2login.core.tokens import SecurityContext


@dataclass
class CallbackRequest:
    """An inbound request as seen by the login filter.

    The session scopes stored authorization requests. The security context
    lives and dies with this object and is never shared between requests.
    """

    method: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    base_url: str = ""
    session: SessionContext = field(default_factory=dict)
    security_context: SecurityContext = field(default_factory=SecurityContext)

    # Host framework request, for handlers that need it
    native: Any = None

    @property
    def url(self) -> str:
        """Request URL without the query string."""
        return f"{self.base_url.rstrip('/')}{self.path}"
