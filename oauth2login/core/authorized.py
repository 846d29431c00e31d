"""Authorized client storage.

After a successful login the access token obtained for the user is recorded
as an AuthorizedClient, keyed by registration id and principal name.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from oauth2login.core.registration import ClientRegistration
from oauth2login.core.tokens import AccessToken


@dataclass(frozen=True)
class AuthorizedClient:
    """A client registration authorized by a user, with its access token."""

    client_registration: ClientRegistration
    principal_name: str
    access_token: AccessToken

    @property
    def registration_id(self) -> str:
        return self.client_registration.registration_id


@runtime_checkable
class AuthorizedClientService(Protocol):
    """Stores authorized clients."""

    def save_authorized_client(self, client: AuthorizedClient) -> None: ...

    def load_authorized_client(self, registration_id: str, principal_name: str) -> AuthorizedClient | None: ...

    def remove_authorized_client(self, registration_id: str, principal_name: str) -> None: ...


class InMemoryAuthorizedClientService:
    """Thread-safe in-memory AuthorizedClientService."""

    def __init__(self) -> None:
        self._clients: dict[tuple[str, str], AuthorizedClient] = {}
        self._lock = threading.Lock()

    def save_authorized_client(self, client: AuthorizedClient) -> None:
        with self._lock:
            self._clients[(client.registration_id, client.principal_name)] = client

    def load_authorized_client(self, registration_id: str, principal_name: str) -> AuthorizedClient | None:
        with self._lock:
            return self._clients.get((registration_id, principal_name))

    def remove_authorized_client(self, registration_id: str, principal_name: str) -> None:
        with self._lock:
            self._clients.pop((registration_id, principal_name), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
