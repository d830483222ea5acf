"""Repository configuration loading and the atomic config store.

The configuration file is a JSON array of repository entries. Loading
resolves Vault-backed credentials (when a resolver is configured),
validates every enabled entry, and produces an immutable tuple of
:class:`RepositoryConfig` values which :class:`ConfigStore` publishes.
"""

from __future__ import annotations

from .errors import (
    ConfigError,
    ConfigFileError,
    ConfigValidationError,
    SecretResolutionError,
)
from .loader import load_repositories, parse_config
from .models import B2Credentials, BackendExtra, ConfigEntry, RepositoryConfig
from .store import ConfigStore

__all__ = [
    "B2Credentials",
    "BackendExtra",
    "ConfigEntry",
    "ConfigError",
    "ConfigFileError",
    "ConfigStore",
    "ConfigValidationError",
    "RepositoryConfig",
    "SecretResolutionError",
    "load_repositories",
    "parse_config",
]
