"""Errors raised while loading repository configuration."""

from __future__ import annotations

from pathlib import Path


class ConfigError(Exception):
    """Base class for configuration errors.

    Fatal when raised during startup; logged and ignored on reload so the
    previous configuration stays in effect.
    """


class ConfigFileError(ConfigError):
    """Raised when the configuration file cannot be read or decoded."""

    def __init__(self, path: Path | str, reason: str) -> None:
        """Initialise with the offending path and failure reason."""
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot load configuration {self.path}: {reason}")


class ConfigValidationError(ConfigError):
    """Raised when a repository entry violates the credential rules."""

    def __init__(self, repo: str, reason: str) -> None:
        """Initialise with the repository URL and the violated rule."""
        self.repo = repo
        self.reason = reason
        super().__init__(f"Invalid configuration for {repo}: {reason}")

    @classmethod
    def missing_credential(cls, repo: str) -> ConfigValidationError:
        """Return an error for entries without a usable password."""
        return cls(repo, "no password and no resolvable vault_material")

    @classmethod
    def partial_b2_identity(cls, repo: str) -> ConfigValidationError:
        """Return an error when only one of the B2 identity fields is set."""
        return cls(repo, "b2_account_id and b2_key must be given together")

    @classmethod
    def duplicate_repository(cls, repo: str) -> ConfigValidationError:
        """Return an error when an enabled repository URL is listed twice."""
        return cls(repo, "repository is listed more than once")


class SecretResolutionError(ConfigError):
    """Raised when a credential placeholder cannot be resolved."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialise with the secret path and failure reason."""
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot resolve secret {path}: {reason}")

    @classmethod
    def missing_field(cls, path: str, field: str) -> SecretResolutionError:
        """Return an error for secrets lacking an expected field."""
        return cls(path, f"secret has no string field {field!r}")
