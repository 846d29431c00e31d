"""Tests for provider presets and client registrations."""

import pytest

from oauth2login.core import (
    ClientAuthenticationMethod,
    ClientRegistration,
    CommonOAuth2Provider,
    InMemoryClientRegistrationRepository,
)


class TestCommonOAuth2Provider:
    """Tests for the built-in provider presets."""

    def test_github(self):
        registration = CommonOAuth2Provider.GITHUB.registration("github", "gh-client", "gh-secret")

        assert registration.registration_id == "github"
        assert registration.client_id == "gh-client"
        assert registration.client_secret == "gh-secret"
        assert registration.client_authentication_method == ClientAuthenticationMethod.CLIENT_SECRET_BASIC
        assert registration.token_uri == "https://github.com/login/oauth/access_token"
        assert registration.user_info_uri == "https://api.github.com/user"
        assert registration.user_name_attribute == "id"
        assert registration.client_name == "GitHub"

    def test_google(self):
        registration = CommonOAuth2Provider.GOOGLE.registration("google", "g-client")

        assert registration.scopes == ("openid", "profile", "email")
        assert registration.user_name_attribute == "sub"
        assert registration.client_secret is None

    def test_facebook_posts_credentials(self):
        registration = CommonOAuth2Provider.FACEBOOK.registration("facebook", "fb-client", "fb-secret")
        assert registration.client_authentication_method == ClientAuthenticationMethod.CLIENT_SECRET_POST

    def test_overrides(self):
        """Test any field can be overridden."""
        registration = CommonOAuth2Provider.GITHUB.registration(
            "github-enterprise",
            "ghe-client",
            scopes=("read:user", "read:org"),
            user_name_attribute="login",
        )

        assert registration.scopes == ("read:user", "read:org")
        assert registration.user_name_attribute == "login"
        assert registration.authorization_uri == "https://github.com/login/oauth/authorize"

    def test_okta_domain(self):
        registration = CommonOAuth2Provider.OKTA.registration("okta", "okta-client", okta_domain="dev-123.okta.com")

        assert registration.authorization_uri == "https://dev-123.okta.com/oauth2/v1/authorize"
        assert registration.token_uri == "https://dev-123.okta.com/oauth2/v1/token"
        assert registration.user_info_uri == "https://dev-123.okta.com/oauth2/v1/userinfo"

    def test_okta_domain_with_scheme(self):
        registration = CommonOAuth2Provider.OKTA.registration(
            "okta", "okta-client", okta_domain="https://dev-123.okta.com/"
        )
        assert registration.token_uri == "https://dev-123.okta.com/oauth2/v1/token"

    def test_okta_requires_domain(self):
        with pytest.raises(ValueError, match="okta_domain"):
            CommonOAuth2Provider.OKTA.registration("okta", "okta-client")

    def test_okta_explicit_endpoints(self):
        registration = CommonOAuth2Provider.OKTA.registration(
            "okta",
            "okta-client",
            authorization_uri="https://login.example.com/authorize",
            token_uri="https://login.example.com/token",
            user_info_uri="https://login.example.com/userinfo",
        )
        assert registration.token_uri == "https://login.example.com/token"


class TestClientRegistration:
    """Tests for ClientRegistration."""

    def test_expand_redirect_uri(self):
        registration = ClientRegistration(registration_id="github", client_id="c")
        assert registration.expand_redirect_uri("https://app.example.com/") == (
            "https://app.example.com/login/oauth2/code/github"
        )

    def test_coerces_config_values(self):
        """Test list scopes and string methods are accepted."""
        registration = ClientRegistration(
            registration_id="corp",
            client_id="c",
            scopes=["openid"],
            client_authentication_method="none",
        )
        assert registration.scopes == ("openid",)
        assert registration.client_authentication_method is ClientAuthenticationMethod.NONE
        assert registration.client_name == "corp"

    @pytest.mark.parametrize(("registration_id", "client_id"), [("", "c"), ("corp", "")])
    def test_requires_ids(self, registration_id, client_id):
        with pytest.raises(ValueError):
            ClientRegistration(registration_id=registration_id, client_id=client_id)

    def test_to_dict_omits_secret(self):
        registration = ClientRegistration(registration_id="corp", client_id="c", client_secret="s")
        data = registration.to_dict()
        assert "client_secret" not in data
        assert ClientRegistration.from_dict(data) == ClientRegistration(registration_id="corp", client_id="c")


class TestInMemoryClientRegistrationRepository:
    def test_lookup(self):
        github = ClientRegistration(registration_id="github", client_id="c")
        repository = InMemoryClientRegistrationRepository([github])

        assert repository.find_by_registration_id("github") is github
        assert repository.find_by_registration_id("GitHub") is None
        assert list(repository) == [github]
        assert len(repository) == 1

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            InMemoryClientRegistrationRepository([])

    def test_rejects_duplicates(self):
        registration = ClientRegistration(registration_id="github", client_id="c")
        with pytest.raises(ValueError, match="Duplicate"):
            InMemoryClientRegistrationRepository([registration, registration])
