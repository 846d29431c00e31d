"""Login configuration management.

Loads configuration from config.yaml files and environment variables.
Environment variables take precedence over config file settings.
Everything here can also be built programmatically.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from oauth2login.core.matcher import DEFAULT_CALLBACK_PATH_TEMPLATE
from oauth2login.core.providers import CommonOAuth2Provider
from oauth2login.core.registration import ClientRegistration
from oauth2login.core.store import DEFAULT_MAX_REQUESTS_PER_CONTEXT, DEFAULT_REQUEST_TTL

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".oauth2login"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# Environment variable prefix
ENV_PREFIX = "OAUTH2LOGIN_"


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded."""


@dataclass
class LoginSettings:
    """Callback handling settings."""

    callback_path: str = DEFAULT_CALLBACK_PATH_TEMPLATE
    success_url: str = "/"
    failure_url: str = "/login"
    request_ttl_seconds: int | None = int(DEFAULT_REQUEST_TTL.total_seconds())
    max_pending_requests: int = DEFAULT_MAX_REQUESTS_PER_CONTEXT
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def request_ttl(self) -> timedelta | None:
        """Lifetime of a pending authorization request, None if unbounded."""
        if not self.request_ttl_seconds:
            return None
        return timedelta(seconds=self.request_ttl_seconds)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoginSettings:
        """Create LoginSettings from a dictionary."""
        defaults = cls()
        return cls(
            callback_path=data.get("callback_path", defaults.callback_path),
            success_url=data.get("success_url", defaults.success_url),
            failure_url=data.get("failure_url", defaults.failure_url),
            request_ttl_seconds=data.get("request_ttl_seconds", defaults.request_ttl_seconds),
            max_pending_requests=data.get("max_pending_requests", defaults.max_pending_requests),
            http_timeout=data.get("http_timeout", defaults.http_timeout),
            log_level=data.get("log_level", defaults.log_level),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "callback_path": self.callback_path,
            "success_url": self.success_url,
            "failure_url": self.failure_url,
            "request_ttl_seconds": self.request_ttl_seconds,
            "max_pending_requests": self.max_pending_requests,
            "http_timeout": self.http_timeout,
            "log_level": self.log_level,
        }


@dataclass
class LoginConfig:
    """Main login configuration."""

    login: LoginSettings = field(default_factory=LoginSettings)
    registrations: list[ClientRegistration] = field(default_factory=list)
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> LoginConfig:
        """Create LoginConfig from a dictionary."""
        login_data = data.get("login", {})
        return cls(
            login=LoginSettings.from_dict(login_data) if login_data else LoginSettings(),
            registrations=[_registration_from_dict(r) for r in data.get("registrations", [])],
            config_path=config_path,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.

        Client secrets are not written out.
        """
        return {
            "login": self.login.to_dict(),
            "registrations": [r.to_dict() for r in self.registrations],
        }

    def save(self, path: Path | None = None) -> None:
        """Save configuration to a YAML file.

        Args:
            path: Path to save to. Uses config_path or default if not specified.
        """
        save_path = path or self.config_path or DEFAULT_CONFIG_FILE
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _registration_from_dict(data: dict[str, Any]) -> ClientRegistration:
    """Build a registration, expanding a ``provider`` preset if given."""
    data = dict(data)
    provider = data.pop("provider", None)
    try:
        if provider is None:
            return ClientRegistration.from_dict(data)

        preset = CommonOAuth2Provider(provider.lower())
        registration_id = data.pop("registration_id", preset.value)
        client_id = data.pop("client_id")
        client_secret = data.pop("client_secret", None)
        if "scopes" in data:
            data["scopes"] = tuple(data["scopes"])
        return preset.registration(registration_id, client_id, client_secret, **data)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid client registration {data.get('registration_id', provider)!r}: {e}") from e


def _get_env_int(key: str, default: int | None) -> int | None:
    """Get an integer from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get a float from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_secret_key(registration_id: str) -> str:
    return f"{ENV_PREFIX}{registration_id.upper().replace('-', '_')}_CLIENT_SECRET"


def load_config(config_path: Path | None = None) -> LoginConfig:
    """Load login configuration.

    Configuration is loaded in this order (later values override earlier):
    1. Default values
    2. config.yaml file (if exists)
    3. Environment variables

    Client secrets can be kept out of the file with
    ``OAUTH2LOGIN_<REGISTRATION_ID>_CLIENT_SECRET``.

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        LoginConfig with merged settings.

    Raises:
        ConfigError: If the config file exists but cannot be parsed.
    """
    config = LoginConfig()

    file_path = config_path or DEFAULT_CONFIG_FILE
    if file_path.exists():
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config file {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping")
        config = LoginConfig.from_dict(data, config_path=file_path)

    login = config.login

    if os.environ.get(f"{ENV_PREFIX}CALLBACK_PATH"):
        login.callback_path = os.environ[f"{ENV_PREFIX}CALLBACK_PATH"]

    if os.environ.get(f"{ENV_PREFIX}SUCCESS_URL"):
        login.success_url = os.environ[f"{ENV_PREFIX}SUCCESS_URL"]

    if os.environ.get(f"{ENV_PREFIX}FAILURE_URL"):
        login.failure_url = os.environ[f"{ENV_PREFIX}FAILURE_URL"]

    login.request_ttl_seconds = _get_env_int(f"{ENV_PREFIX}REQUEST_TTL_SECONDS", login.request_ttl_seconds)
    login.max_pending_requests = (
        _get_env_int(f"{ENV_PREFIX}MAX_PENDING_REQUESTS", login.max_pending_requests) or login.max_pending_requests
    )
    login.http_timeout = _get_env_float(f"{ENV_PREFIX}HTTP_TIMEOUT", login.http_timeout)

    if os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        login.log_level = os.environ[f"{ENV_PREFIX}LOG_LEVEL"]

    # Client secrets
    registrations = []
    for registration in config.registrations:
        secret = os.environ.get(_env_secret_key(registration.registration_id))
        if secret:
            registration = replace(registration, client_secret=secret)
        registrations.append(registration)
    config.registrations = registrations

    return config


def get_default_config_yaml() -> str:
    """Get the default config.yaml content as a string.

    Useful for generating example configuration files.
    """
    return """\
# OAuth2 Login Configuration File
# Environment variables override these settings (prefix: OAUTH2LOGIN_)

login:
  # Callback path; {registration_id} names the client registration
  callback_path: "/login/oauth2/code/{registration_id}"

  # Where the default handlers redirect after login
  success_url: "/"
  failure_url: "/login"

  # Lifetime of a pending authorization request (seconds, null disables expiry)
  request_ttl_seconds: 600

  # Pending authorization requests kept per session
  max_pending_requests: 8

  # Timeout for token and user-info requests (seconds)
  http_timeout: 10.0

  log_level: "INFO"

registrations:
  # Provider presets: google, github, facebook, okta
  - provider: github
    registration_id: github
    client_id: "your-client-id"
    # Prefer OAUTH2LOGIN_GITHUB_CLIENT_SECRET
    # client_secret: "your-client-secret"

  # Fully specified registration
  # - registration_id: corp
  #   client_id: "corp-client"
  #   client_authentication_method: client_secret_post
  #   scopes: [openid, profile]
  #   authorization_uri: https://sso.example.com/authorize
  #   token_uri: https://sso.example.com/token
  #   user_info_uri: https://sso.example.com/userinfo
  #   user_name_attribute: sub
"""
