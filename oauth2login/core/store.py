"""Authorization request storage.

Correlates an in-flight authorization request with its callback. Requests
are keyed by their ``state`` and scoped to a caller-provided context, which
is a session-like mutable mapping (for example ``flask.session``).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import MutableMapping
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from oauth2login.core.authorization import AuthorizationRequest

logger = logging.getLogger(__name__)

# Session key holding pending authorization requests
AUTHORIZATION_REQUESTS_KEY = "oauth2_authorization_requests"

# Defaults bounding abandoned login attempts
DEFAULT_REQUEST_TTL = timedelta(minutes=10)
DEFAULT_MAX_REQUESTS_PER_CONTEXT = 8

SessionContext = MutableMapping[str, Any]


@runtime_checkable
class AuthorizationRequestRepository(Protocol):
    """Persists authorization requests between redirect and callback."""

    def save(self, request: AuthorizationRequest, context: SessionContext) -> None: ...

    def retrieve_and_remove(self, state: str, context: SessionContext) -> AuthorizationRequest | None: ...


class SessionAuthorizationRequestRepository:
    """Stores authorization requests in a session mapping.

    Each request is stored under its state together with an expiry time.
    Expired entries are treated as absent and purged on every access. The
    whole pending-request dict is reassigned on each write so that
    cookie-backed sessions see the modification.

    Lookups and removals run under a lock, so when two callbacks race on the
    same context exactly one of them gets the request. Cookie-backed sessions
    hold a separate copy per request and cannot give that guarantee across
    processes; use a server-side session for that.
    """

    def __init__(
        self,
        ttl: timedelta | None = DEFAULT_REQUEST_TTL,
        max_requests: int = DEFAULT_MAX_REQUESTS_PER_CONTEXT,
        session_key: str = AUTHORIZATION_REQUESTS_KEY,
    ) -> None:
        """Initialize the repository.

        Args:
            ttl: Lifetime of a stored request. None disables expiry.
            max_requests: Maximum pending requests per context; the oldest
                is dropped when exceeded.
            session_key: Key under which requests are kept in the context.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self._ttl = ttl
        self._max_requests = max_requests
        self._session_key = session_key
        self._lock = threading.RLock()

    @property
    def ttl(self) -> timedelta | None:
        return self._ttl

    def save(self, request: AuthorizationRequest, context: SessionContext) -> None:
        """Store an authorization request keyed by its state.

        Args:
            request: The authorization request to store.
            context: Session mapping scoping the request.

        Raises:
            ValueError: If the request has no state.
        """
        if not request.state:
            raise ValueError("Authorization request state cannot be empty")

        now = datetime.now(UTC)
        with self._lock:
            pending = self._load(context, now)
            pending.pop(request.state, None)
            pending[request.state] = {
                "request": request.to_dict(),
                "expires_at": (now + self._ttl).isoformat() if self._ttl else None,
            }
            # Dicts keep insertion order, so the first keys are the oldest
            while len(pending) > self._max_requests:
                dropped = next(iter(pending))
                del pending[dropped]
                logger.debug("Dropped oldest pending authorization request")
            context[self._session_key] = pending

    def retrieve_and_remove(self, state: str, context: SessionContext) -> AuthorizationRequest | None:
        """Atomically find and invalidate the request stored for a state.

        Args:
            state: State parameter from the callback.
            context: Session mapping scoping the request.

        Returns:
            The stored request, or None if no live request has this exact state.
        """
        if not state:
            return None

        with self._lock:
            pending = self._load(context, datetime.now(UTC))
            entry = pending.pop(state, None)
            if pending:
                context[self._session_key] = pending
            else:
                context.pop(self._session_key, None)

        if entry is None:
            return None
        return AuthorizationRequest.from_dict(entry["request"])

    def _load(self, context: SessionContext, now: datetime) -> dict[str, dict[str, Any]]:
        """Copy the pending requests out of the context, dropping expired ones."""
        stored = context.get(self._session_key) or {}
        pending: dict[str, dict[str, Any]] = {}
        for state, entry in stored.items():
            expires_at = entry.get("expires_at")
            if expires_at and datetime.fromisoformat(expires_at) <= now:
                logger.debug("Discarding expired authorization request")
                continue
            pending[state] = entry
        return pending
