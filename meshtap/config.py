"""
Configuration for meshtap.

Settings come from ``MESHTAP_``-prefixed environment variables, optionally
loaded from a .env file. Command-line options override them per run.
"""

from __future__ import annotations

import os
import pathlib
from typing import Any, TypeVar

import lazy_object_proxy
import pydantic
import pydantic_settings

from meshtap import k8s
from meshtap.exceptions import OutputFormatError
from meshtap.services.render import OutputFormat, parse_output_format

T = TypeVar('T', bound='TapSettings')


class TapSettings(pydantic_settings.BaseSettings):
    """Settings for rendering tap sessions."""

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='MESHTAP_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,  # Fail fast on misconfiguration
        extra='forbid',  # Reject unknown MESHTAP_ variables
    )

    # Application metadata
    APP_NAME: str = 'meshtap'
    VERSION: str = '0.1.0'

    # Output format used when --output is not given
    DEFAULT_OUTPUT: OutputFormat = 'default'

    # Canonical resource kind -> abbreviation shown in wide output
    RESOURCE_SHORT_NAMES: dict[str, str] = pydantic.Field(default_factory=lambda: dict(k8s.DEFAULT_SHORT_NAMES))

    @pydantic.field_validator('DEFAULT_OUTPUT', mode='before')
    @classmethod
    def validate_default_output(cls, v: Any) -> Any:
        """Accept '' as the default format; reject unknown formats."""
        if not isinstance(v, str):
            return v
        try:
            return parse_output_format(v)
        except OutputFormatError as e:
            raise ValueError(str(e)) from e


def get_settings(settings_class: type[T], env_file: str | None = None) -> T:
    """
    Factory for creating settings with dynamic .env file loading.

    LOAD_ENV_FILE environment variable specifies custom .env file path.
    When unset, loads from environment variables (and ./.env if present).

    Args:
        settings_class: Settings class to instantiate
        env_file: Optional path to .env file (overrides LOAD_ENV_FILE)

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If specified .env file doesn't exist
    """
    env_file_path = env_file or os.getenv('LOAD_ENV_FILE')

    if not env_file_path:
        return settings_class()

    resolved_path = pathlib.Path(env_file_path).resolve()
    if not resolved_path.exists():
        raise FileNotFoundError(f'Environment file not found: {resolved_path}')

    return settings_class(_env_file=resolved_path)


def lazy_settings(settings_class: type[T]) -> T:
    """
    Lazy settings - defers instantiation until first access.

    Args:
        settings_class: Settings class to instantiate

    Returns:
        Proxy that instantiates settings on first access
    """
    return lazy_object_proxy.Proxy(lambda: get_settings(settings_class))


# Module-level singleton (lazy-loaded)
settings = lazy_settings(TapSettings)
