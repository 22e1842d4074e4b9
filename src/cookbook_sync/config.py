"""Chef server connection settings.

Settings come from keyword arguments or from the environment:

    CHEF_SERVER_URL    Base URL, including the organization path if any
    CHEF_CLIENT_NAME   API client name (informational, used by signing auth)
    CHEF_TIMEOUT       Request timeout in seconds (default 30)
    CHEF_SSL_VERIFY    "false"/"0"/"no" disables certificate checks
    CHEF_VERSION       Value of the X-Chef-Version header
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .paths import validate_url

DEFAULT_TIMEOUT = 30.0
DEFAULT_CHEF_VERSION = "12.0.0"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ServerConfig:
    """Connection settings for one Chef server."""

    server_url: str
    client_name: str = ""
    timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True
    chef_version: str = DEFAULT_CHEF_VERSION

    def __post_init__(self) -> None:
        if not self.server_url:
            raise ValueError("A Chef server URL is required")
        validate_url(self.server_url, require_scheme=True)
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "ServerConfig":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Values that take precedence over the environment.
                         None values are ignored.

        Returns:
            ServerConfig instance

        Raises:
            ValueError: If the server URL is missing or a value is malformed
        """
        env = os.environ if environ is None else environ

        values: dict[str, object] = {
            "server_url": env.get("CHEF_SERVER_URL", ""),
            "client_name": env.get("CHEF_CLIENT_NAME", ""),
            "chef_version": env.get("CHEF_VERSION", DEFAULT_CHEF_VERSION),
        }

        timeout = env.get("CHEF_TIMEOUT")
        if timeout:
            try:
                values["timeout"] = float(timeout)
            except ValueError:
                raise ValueError(f"CHEF_TIMEOUT must be a number, got {timeout!r}") from None

        verify = env.get("CHEF_SSL_VERIFY")
        if verify:
            values["verify_ssl"] = verify.strip().lower() not in _FALSE_VALUES

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]
