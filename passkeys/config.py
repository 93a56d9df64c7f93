"""
Relying party configuration for passkey ceremonies.

Environment-based settings are loaded with pydantic-settings and converted
into immutable PasskeyOptions that travel with every ceremony.
"""

from collections.abc import Iterable
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings


class PasskeyOptions(BaseModel):
    """
    Relying party identity used for a ceremony.

    `domain` is the relying party identifier (rpId): a bare registrable domain
    such as ``example.com``, without scheme or path. `origins` lists the exact
    scheme + host + port values the browser reports in client data. The domain
    must be the effective domain of every origin; this is not checked here and
    a mismatch only shows up as a verification failure.
    """

    model_config = ConfigDict(frozen=True)

    app_name: str
    domain: str
    origins: tuple[str, ...]

    @field_validator("origins", mode="before")
    @classmethod
    def _collect_origins(cls, value: Iterable[str] | str) -> tuple[str, ...]:
        if isinstance(value, str):
            return (value,)
        return tuple(value)


class PasskeySettings(BaseSettings):
    """Environment-based configuration using pydantic-settings."""

    APP_NAME: str = "Localhost"
    DOMAIN: str = "localhost"
    ORIGINS: list[str] = ["http://localhost:8000"]

    # Logging
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    model_config = {"env_prefix": "PASSKEYS_", "env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> PasskeySettings:
    """Get the cached PasskeySettings instance."""
    return PasskeySettings()


def get_default_options(settings: PasskeySettings | None = None) -> PasskeyOptions:
    """
    Build PasskeyOptions from settings.

    Args:
        settings: Settings to read (defaults to the cached environment settings)

    Returns:
        Options for ceremonies that do not pass their own
    """
    settings = settings or get_settings()
    return PasskeyOptions(
        app_name=settings.APP_NAME,
        domain=settings.DOMAIN,
        origins=settings.ORIGINS,
    )
