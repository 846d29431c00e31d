"""OAuth2 client registrations.

A ClientRegistration is the static descriptor of one configured client and
provider pairing. Registrations are looked up by their registration id.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

DEFAULT_REDIRECT_URI_TEMPLATE = "{base_url}/login/oauth2/code/{registration_id}"


class ClientAuthenticationMethod(StrEnum):
    """How the client authenticates at the token endpoint."""

    CLIENT_SECRET_BASIC = "client_secret_basic"
    CLIENT_SECRET_POST = "client_secret_post"
    NONE = "none"


@dataclass(frozen=True)
class ClientRegistration:
    """Configuration for an OAuth2 client registered with a provider."""

    registration_id: str
    client_id: str
    client_secret: str | None = None
    client_authentication_method: ClientAuthenticationMethod = ClientAuthenticationMethod.CLIENT_SECRET_BASIC
    authorization_grant_type: str = "authorization_code"
    redirect_uri_template: str = DEFAULT_REDIRECT_URI_TEMPLATE
    scopes: tuple[str, ...] = field(default_factory=tuple)

    # Provider endpoints
    authorization_uri: str = ""
    token_uri: str = ""
    user_info_uri: str = ""
    user_name_attribute: str = "sub"

    client_name: str = ""

    def __post_init__(self) -> None:
        if not self.registration_id:
            raise ValueError("registration_id cannot be empty")
        if not self.client_id:
            raise ValueError("client_id cannot be empty")
        # Accept lists from callers and config files
        object.__setattr__(self, "scopes", tuple(self.scopes))
        object.__setattr__(
            self,
            "client_authentication_method",
            ClientAuthenticationMethod(self.client_authentication_method),
        )
        if not self.client_name:
            object.__setattr__(self, "client_name", self.registration_id)

    def expand_redirect_uri(self, base_url: str = "") -> str:
        """Render the redirect URI template.

        Args:
            base_url: Scheme, host and port of this application.

        Returns:
            The redirect URI for this registration.
        """
        return self.redirect_uri_template.format(
            base_url=base_url.rstrip("/"),
            registration_id=self.registration_id,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientRegistration:
        """Create a ClientRegistration from a dictionary."""
        return cls(
            registration_id=data["registration_id"],
            client_id=data["client_id"],
            client_secret=data.get("client_secret"),
            client_authentication_method=data.get(
                "client_authentication_method", ClientAuthenticationMethod.CLIENT_SECRET_BASIC
            ),
            authorization_grant_type=data.get("authorization_grant_type", "authorization_code"),
            redirect_uri_template=data.get("redirect_uri_template", DEFAULT_REDIRECT_URI_TEMPLATE),
            scopes=tuple(data.get("scopes", ())),
            authorization_uri=data.get("authorization_uri", ""),
            token_uri=data.get("token_uri", ""),
            user_info_uri=data.get("user_info_uri", ""),
            user_name_attribute=data.get("user_name_attribute", "sub"),
            client_name=data.get("client_name", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        The client secret is omitted.
        """
        return {
            "registration_id": self.registration_id,
            "client_id": self.client_id,
            "client_authentication_method": str(self.client_authentication_method),
            "authorization_grant_type": self.authorization_grant_type,
            "redirect_uri_template": self.redirect_uri_template,
            "scopes": list(self.scopes),
            "authorization_uri": self.authorization_uri,
            "token_uri": self.token_uri,
            "user_info_uri": self.user_info_uri,
            "user_name_attribute": self.user_name_attribute,
            "client_name": self.client_name,
        }


@runtime_checkable
class ClientRegistrationRepository(Protocol):
    """Looks up client registrations by id."""

    def find_by_registration_id(self, registration_id: str) -> ClientRegistration | None: ...


class InMemoryClientRegistrationRepository:
    """Immutable, in-memory ClientRegistrationRepository."""

    def __init__(self, registrations: Iterable[ClientRegistration]) -> None:
        """Initialize the repository.

        Args:
            registrations: Client registrations to serve.

        Raises:
            ValueError: If no registrations are given or an id is duplicated.
        """
        by_id: dict[str, ClientRegistration] = {}
        for registration in registrations:
            if registration.registration_id in by_id:
                raise ValueError(f"Duplicate registration_id: {registration.registration_id}")
            by_id[registration.registration_id] = registration
        if not by_id:
            raise ValueError("At least one client registration is required")
        self._registrations = by_id

    def find_by_registration_id(self, registration_id: str) -> ClientRegistration | None:
        return self._registrations.get(registration_id)

    def __iter__(self) -> Iterator[ClientRegistration]:
        return iter(self._registrations.values())

    def __len__(self) -> int:
        return len(self._registrations)
