"""Secret resolution for credential placeholders in the configuration."""

from __future__ import annotations

from .errors import VaultConfigError
from .protocol import SecretResolver
from .vault import VaultConfig, VaultSecretResolver

__all__ = [
    "SecretResolver",
    "VaultConfig",
    "VaultConfigError",
    "VaultSecretResolver",
]
