"""Presets for common OAuth2 providers.

Builds ClientRegistrations with the endpoints, scopes and user name attribute
of well-known providers, so only client credentials need configuring.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from oauth2login.core.registration import (
    DEFAULT_REDIRECT_URI_TEMPLATE,
    ClientAuthenticationMethod,
    ClientRegistration,
)

_PRESETS: dict[str, dict[str, Any]] = {
    "google": {
        "scopes": ("openid", "profile", "email"),
        "authorization_uri": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_uri": "https://www.googleapis.com/oauth2/v4/token",
        "user_info_uri": "https://www.googleapis.com/oauth2/v3/userinfo",
        "user_name_attribute": "sub",
        "client_name": "Google",
    },
    "github": {
        "scopes": ("read:user",),
        "authorization_uri": "https://github.com/login/oauth/authorize",
        "token_uri": "https://github.com/login/oauth/access_token",
        "user_info_uri": "https://api.github.com/user",
        "user_name_attribute": "id",
        "client_name": "GitHub",
    },
    "facebook": {
        "scopes": ("public_profile", "email"),
        "authorization_uri": "https://www.facebook.com/v2.8/dialog/oauth",
        "token_uri": "https://graph.facebook.com/v2.8/oauth/access_token",
        "user_info_uri": "https://graph.facebook.com/me",
        "user_name_attribute": "id",
        "client_name": "Facebook",
        "client_authentication_method": ClientAuthenticationMethod.CLIENT_SECRET_POST,
    },
    # Okta endpoints are per organisation; see _okta_endpoints
    "okta": {
        "scopes": ("openid", "profile", "email"),
        "user_name_attribute": "sub",
        "client_name": "Okta",
    },
}


class CommonOAuth2Provider(Enum):
    """Well-known OAuth2 providers."""

    GOOGLE = "google"
    GITHUB = "github"
    FACEBOOK = "facebook"
    OKTA = "okta"

    def registration(
        self,
        registration_id: str,
        client_id: str,
        client_secret: str | None = None,
        **overrides: Any,
    ) -> ClientRegistration:
        """Build a ClientRegistration for this provider.

        Args:
            registration_id: Registration id for the new client.
            client_id: OAuth2 client ID.
            client_secret: OAuth2 client secret.
            **overrides: Any ClientRegistration field. Okta also accepts
                ``okta_domain`` (e.g. ``dev-123.okta.com``).

        Returns:
            ClientRegistration populated with the provider defaults.

        Raises:
            ValueError: If Okta is used without a domain or explicit endpoints.
        """
        values: dict[str, Any] = {
            "redirect_uri_template": DEFAULT_REDIRECT_URI_TEMPLATE,
            **_PRESETS[self.value],
        }
        if self is CommonOAuth2Provider.OKTA:
            values.update(_okta_endpoints(overrides.pop("okta_domain", None), overrides))

        values.update(overrides)
        return ClientRegistration(
            registration_id=registration_id,
            client_id=client_id,
            client_secret=client_secret,
            **values,
        )


def _okta_endpoints(domain: str | None, overrides: dict[str, Any]) -> dict[str, str]:
    endpoints = ("authorization_uri", "token_uri", "user_info_uri")
    if domain is None:
        if all(overrides.get(name) for name in endpoints):
            return {}
        raise ValueError("Okta registrations require okta_domain or explicit endpoint URIs")

    base = f"https://{domain.removeprefix('https://').rstrip('/')}/oauth2/v1"
    return {
        "authorization_uri": f"{base}/authorize",
        "token_uri": f"{base}/token",
        "user_info_uri": f"{base}/userinfo",
    }
