"""CredentialSettings — declarative configuration for a path-based credential.

Values come from keyword arguments or from ``ROTATING_TLS_``-prefixed
environment variables (``ROTATING_TLS_CA_PATH``, ``ROTATING_TLS_INTERVAL``,
and so on).

Example
-------
::

    settings = CredentialSettings.from_env()
    with settings.build_credential() as credential:
        context = credential.config().server_context()
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from rotating_tls.credential import RotatingCredential
from rotating_tls.errors import ConfigurationError
from rotating_tls.loader.path import PathLoader

ENV_PREFIX = "ROTATING_TLS_"


class CredentialSettings(BaseSettings):
    """Settings for a :class:`RotatingCredential` backed by PEM files."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, case_sensitive=False)

    ca_path: Path
    cert_path: Path
    key_path: Path
    interval: float = Field(
        default=300.0, gt=0, allow_inf_nan=False, description="Refresh interval in seconds."
    )
    load_timeout: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    require_client_certificate: bool = True

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "CredentialSettings":
        """Build settings from the environment alone.

        Parameters
        ----------
        prefix:
            Prefix shared by every variable.

        Raises
        ------
        ConfigurationError
            If one of the path variables is missing.
        pydantic.ValidationError
            If a value fails validation.
        """
        try:
            return cls(_env_prefix=prefix)
        except ValidationError as exc:
            missing = [
                f"{prefix}{str(error['loc'][0]).upper()}"
                for error in exc.errors()
                if error["type"] == "missing"
            ]
            if missing:
                raise ConfigurationError(
                    f"missing environment variable(s): {', '.join(missing)}"
                ) from exc
            raise

    def build_loader(self) -> PathLoader:
        return PathLoader(self.ca_path, self.cert_path, self.key_path)

    def build_credential(self) -> RotatingCredential:
        """Load the configured files and start refreshing them."""
        return RotatingCredential(
            self.build_loader(),
            self.interval,
            load_timeout=self.load_timeout,
            require_client_certificate=self.require_client_certificate,
        )
