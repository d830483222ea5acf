"""Typed repository configuration structures."""

from __future__ import annotations

import msgspec


class ConfigEntry(msgspec.Struct, kw_only=True):
    """One raw entry of the JSON configuration file.

    Attributes
    ----------
    repo : str
        Restic repository URL, e.g. ``b2:bucket:path`` or ``rest:https://...``.
    disabled : bool
        Skip this repository during collection.
    password : str, optional
        Literal repository password.
    vault_material : str, optional
        Vault path whose ``key`` field holds the repository password.
    b2_vault_material : str, optional
        Vault path whose ``id`` and ``key`` fields hold B2 credentials.
    b2_account_id : str, optional
        Literal B2 account or application key ID.
    b2_key : str, optional
        Literal B2 application key.

    """

    repo: str
    disabled: bool = False
    password: str = ""
    vault_material: str = ""
    b2_vault_material: str = ""
    b2_account_id: str = ""
    b2_key: str = ""


class B2Credentials(msgspec.Struct, frozen=True, kw_only=True, tag="b2"):
    """Backblaze B2 identity override for ``b2:`` repositories."""

    account_id: str
    key: str

    def __repr__(self) -> str:
        """Hide the key from logs and tracebacks."""
        return f"B2Credentials(account_id={self.account_id!r}, key='***')"


# Decided once at load time; readers dispatch on the concrete type.
BackendExtra = B2Credentials | None


class RepositoryConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Resolved, immutable configuration for one repository.

    Attributes
    ----------
    url : str
        Repository URL, also the repository's identity in metrics.
    credential : str
        Resolved repository password.
    extra : BackendExtra
        Backend-specific configuration, ``None`` when not needed.
    disabled : bool
        Whether collection skips this repository.

    """

    url: str
    credential: str = ""
    extra: B2Credentials | None = None
    disabled: bool = False

    def __repr__(self) -> str:
        """Hide the credential from logs and tracebacks."""
        return (
            f"RepositoryConfig(url={self.url!r}, credential='***', "
            f"extra={self.extra!r}, disabled={self.disabled!r})"
        )
