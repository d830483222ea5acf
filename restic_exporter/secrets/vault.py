"""HashiCorp Vault secret resolver over httpx.

Vault is enabled by the presence of ``VAULT_ADDR``. Authentication uses
``VAULT_TOKEN`` when set, otherwise an AppRole login with ``VAULT_ROLE_ID``
and ``VAULT_SECRET_ID``. Secrets are read with a plain logical read of the
configured path; KV v2 responses are unwrapped transparently.

Usage
-----
>>> config = VaultConfig.from_env()
>>> if config is not None:
...     resolver = VaultSecretResolver(config)
...     await resolver.authenticate()
...     data = await resolver.read_secret("kv/data/backups/laptop")

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import os
import typing as typ

import httpx

from restic_exporter.logging import get_logger, log_info
from restic_exporter.repositories.errors import SecretResolutionError

from .errors import VaultConfigError

logger = get_logger(__name__)

_DEFAULT_TIMEOUT_S = 10.0
_DEFAULT_APPROLE_MOUNT = "approle"


@dataclasses.dataclass(frozen=True, slots=True)
class VaultConfig:
    """Connection and authentication settings for Vault.

    Attributes
    ----------
    address
        Base URL of the Vault server, e.g. ``https://vault.example:8200``.
    token
        Static client token. Takes precedence over AppRole credentials.
    role_id
        AppRole role ID.
    secret_id
        AppRole secret ID.
    approle_mount
        Mount path of the AppRole auth method.
    namespace
        Optional Vault Enterprise namespace.
    timeout_s
        Per-request timeout in seconds.

    """

    address: str
    token: str | None = None
    role_id: str | None = None
    secret_id: str | None = None
    approle_mount: str = _DEFAULT_APPROLE_MOUNT
    namespace: str | None = None
    timeout_s: float = _DEFAULT_TIMEOUT_S

    def __post_init__(self) -> None:
        """Require either a token or a complete AppRole pair."""
        if self.token:
            return
        if not (self.role_id and self.secret_id):
            raise VaultConfigError.missing_credentials()

    def __repr__(self) -> str:
        """Hide credentials from logs and tracebacks."""
        return (
            f"VaultConfig(address={self.address!r}, "
            f"approle_mount={self.approle_mount!r}, namespace={self.namespace!r})"
        )

    @classmethod
    def from_env(cls) -> VaultConfig | None:
        """Build configuration from ``VAULT_*`` environment variables.

        Returns
        -------
        VaultConfig | None
            ``None`` when ``VAULT_ADDR`` is unset, meaning Vault is disabled.

        Raises
        ------
        VaultConfigError
            If Vault is enabled but no usable credentials are present.

        """
        address = os.environ.get("VAULT_ADDR", "").strip()
        if not address:
            return None

        def _opt(name: str) -> str | None:
            return os.environ.get(name, "").strip() or None

        return cls(
            address=address,
            token=_opt("VAULT_TOKEN"),
            role_id=_opt("VAULT_ROLE_ID"),
            secret_id=_opt("VAULT_SECRET_ID"),
            approle_mount=_opt("VAULT_APPROLE_MOUNT") or _DEFAULT_APPROLE_MOUNT,
            namespace=_opt("VAULT_NAMESPACE"),
        )


class _TokenRejectedError(SecretResolutionError):
    """Raised when Vault answers 403 to an authenticated request."""


class VaultSecretResolver:
    """:class:`~restic_exporter.secrets.protocol.SecretResolver` backed by Vault."""

    def __init__(
        self,
        config: VaultConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the resolver; no network access happens here."""
        self._config = config
        self._token = config.token
        self._can_login = bool(config.role_id and config.secret_id)
        self._owns_client = http_client is None
        headers = {"Accept": "application/json"}
        if config.namespace:
            headers["X-Vault-Namespace"] = config.namespace
        self._client = http_client or httpx.AsyncClient(
            base_url=config.address,
            timeout=config.timeout_s,
            headers=headers,
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def authenticate(self) -> None:
        """Obtain a client token, logging in via AppRole when needed.

        Raises
        ------
        SecretResolutionError
            If the AppRole login fails or returns no token.

        """
        if self._token:
            return
        mount = self._config.approle_mount.strip("/")
        payload = await self._request(
            "POST",
            f"/v1/auth/{mount}/login",
            json={"role_id": self._config.role_id, "secret_id": self._config.secret_id},
            authenticated=False,
        )
        auth = payload.get("auth")
        token = auth.get("client_token") if isinstance(auth, dict) else None
        if not isinstance(token, str) or not token:
            raise SecretResolutionError(f"auth/{mount}/login", "no client_token in response")
        self._token = token
        log_info(logger, "Authenticated to Vault at %s via AppRole", self._config.address)

    async def read_secret(self, path: str) -> cabc.Mapping[str, object]:
        """Read the secret stored at ``path``.

        With AppRole credentials, a 403 answer is taken as an expired token:
        the resolver logs in again and retries the read once.

        Raises
        ------
        SecretResolutionError
            On HTTP, network or response-shape failures.

        """
        if not self._token:
            await self.authenticate()

        url = f"/v1/{path.lstrip('/')}"
        try:
            payload = await self._request("GET", url, label=path)
        except _TokenRejectedError:
            if not self._can_login:
                raise
            # AppRole tokens expire; log in again and retry once.
            log_info(logger, "Vault rejected the client token, logging in again")
            self._token = None
            await self.authenticate()
            payload = await self._request("GET", url, label=path)
        data = payload.get("data")
        if not isinstance(data, dict):
            raise SecretResolutionError(path, "response has no data object")

        # KV v2 nests the secret under data.data alongside data.metadata.
        inner = data.get("data")
        if isinstance(inner, dict) and "metadata" in data:
            data = inner
        return typ.cast("dict[str, object]", data)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: object | None = None,
        authenticated: bool = True,
        label: str | None = None,
    ) -> dict[str, typ.Any]:
        label = label or url
        headers = {"X-Vault-Token": self._token} if authenticated and self._token else {}
        try:
            response = await self._client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise SecretResolutionError(label, "request timed out") from exc
        except httpx.HTTPError as exc:
            raise SecretResolutionError(label, f"network error: {exc}") from exc

        if authenticated and response.status_code == httpx.codes.FORBIDDEN:
            raise _TokenRejectedError(label, f"Vault HTTP {response.status_code}")
        if response.status_code >= httpx.codes.BAD_REQUEST:
            raise SecretResolutionError(label, f"Vault HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise SecretResolutionError(label, "response is not JSON") from exc
        if not isinstance(payload, dict):
            raise SecretResolutionError(label, "response is not a JSON object")
        return payload
