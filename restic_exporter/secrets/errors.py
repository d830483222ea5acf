"""Errors for secret resolver configuration."""

from __future__ import annotations

from restic_exporter.repositories.errors import ConfigError


class VaultConfigError(ConfigError):
    """Raised when Vault is enabled but cannot be configured."""

    @classmethod
    def missing_credentials(cls) -> VaultConfigError:
        """Return an error when neither a token nor an AppRole pair is set."""
        return cls(
            "VAULT_ADDR is set but neither VAULT_TOKEN nor "
            "VAULT_ROLE_ID and VAULT_SECRET_ID are available"
        )
