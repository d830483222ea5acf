"""JSON loader turning the configuration file into repository configs."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import msgspec

from .errors import ConfigFileError, ConfigValidationError, SecretResolutionError
from .models import B2Credentials, ConfigEntry, RepositoryConfig

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from restic_exporter.secrets.protocol import SecretResolver

_PASSWORD_FIELD = "key"
_B2_ID_FIELD = "id"
_B2_KEY_FIELD = "key"

_DECODER = msgspec.json.Decoder(list[ConfigEntry])


def parse_config(raw: bytes | str, *, source: Path | str = "<config>") -> list[ConfigEntry]:
    """Decode raw JSON into config entries without resolving secrets."""
    try:
        return _DECODER.decode(raw)
    except msgspec.DecodeError as exc:
        raise ConfigFileError(source, str(exc)) from exc


async def load_repositories(
    path: Path | str,
    resolver: SecretResolver | None = None,
) -> tuple[RepositoryConfig, ...]:
    """Load, resolve and validate the repository list stored at ``path``.

    Parameters
    ----------
    path
        JSON configuration file holding an array of repository entries.
    resolver
        Optional secret resolver. When ``None`` only literal credentials are
        used.

    Returns
    -------
    tuple[RepositoryConfig, ...]
        The repositories in file order, disabled entries included.

    Raises
    ------
    ConfigFileError
        If the file cannot be read or decoded.
    ConfigValidationError
        If an enabled entry has no usable credential or an enabled URL is
        listed twice.
    SecretResolutionError
        If any secret lookup fails. The whole load fails.

    """
    path_obj = Path(path)
    try:
        raw = path_obj.read_bytes()
    except OSError as exc:
        raise ConfigFileError(path_obj, exc.strerror or str(exc)) from exc

    entries = parse_config(raw, source=path_obj)
    _reject_duplicates(entries)
    return tuple([await _resolve_entry(entry, resolver) for entry in entries])


def _reject_duplicates(entries: cabc.Sequence[ConfigEntry]) -> None:
    seen: set[str] = set()
    for entry in entries:
        if entry.disabled:
            continue
        if entry.repo in seen:
            raise ConfigValidationError.duplicate_repository(entry.repo)
        seen.add(entry.repo)


async def _resolve_entry(
    entry: ConfigEntry,
    resolver: SecretResolver | None,
) -> RepositoryConfig:
    if entry.disabled:
        return RepositoryConfig(url=entry.repo, disabled=True)

    password = entry.password
    if not password and entry.vault_material and resolver is not None:
        secret = await resolver.read_secret(entry.vault_material)
        password = _secret_field(secret, entry.vault_material, _PASSWORD_FIELD)

    if not password:
        raise ConfigValidationError.missing_credential(entry.repo)

    return RepositoryConfig(
        url=entry.repo,
        credential=password,
        extra=await _resolve_b2(entry, resolver),
    )


async def _resolve_b2(
    entry: ConfigEntry,
    resolver: SecretResolver | None,
) -> B2Credentials | None:
    account_id, key = entry.b2_account_id, entry.b2_key

    if not key and entry.b2_vault_material and resolver is not None:
        secret = await resolver.read_secret(entry.b2_vault_material)
        account_id = _secret_field(secret, entry.b2_vault_material, _B2_ID_FIELD)
        key = _secret_field(secret, entry.b2_vault_material, _B2_KEY_FIELD)

    if not account_id and not key:
        return None
    if not (account_id and key):
        raise ConfigValidationError.partial_b2_identity(entry.repo)
    return B2Credentials(account_id=account_id, key=key)


def _secret_field(
    secret: cabc.Mapping[str, object],
    path: str,
    field: str,
) -> str:
    value = secret.get(field)
    if not isinstance(value, str) or not value:
        raise SecretResolutionError.missing_field(path, field)
    return value
