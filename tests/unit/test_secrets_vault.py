"""Unit tests for the Vault secret resolver."""

from __future__ import annotations

import json

import httpx
import pytest

from restic_exporter.repositories import SecretResolutionError
from restic_exporter.secrets import VaultConfig, VaultConfigError, VaultSecretResolver

VAULT_ADDR = "https://vault.example:8200"


def _resolver(
    transport: httpx.MockTransport,
    **overrides: object,
) -> VaultSecretResolver:
    fields: dict[str, object] = {"address": VAULT_ADDR, "token": "s.root"}
    fields.update(overrides)
    config = VaultConfig(**fields)  # type: ignore[arg-type]
    client = httpx.AsyncClient(base_url=VAULT_ADDR, transport=transport)
    return VaultSecretResolver(config, http_client=client)


class TestVaultConfig:
    """Tests for ``VaultConfig`` construction."""

    def test_from_env_disabled_without_address(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """No VAULT_ADDR means no Vault."""
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        assert VaultConfig.from_env() is None

    def test_from_env_reads_approle(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """AppRole credentials and mount are read from the environment."""
        monkeypatch.setenv("VAULT_ADDR", VAULT_ADDR)
        monkeypatch.delenv("VAULT_TOKEN", raising=False)
        monkeypatch.setenv("VAULT_ROLE_ID", "role")
        monkeypatch.setenv("VAULT_SECRET_ID", "secret")
        monkeypatch.setenv("VAULT_APPROLE_MOUNT", "ci-approle")
        monkeypatch.setenv("VAULT_NAMESPACE", "ops")

        config = VaultConfig.from_env()

        assert config is not None
        assert config.role_id == "role"
        assert config.approle_mount == "ci-approle"
        assert config.namespace == "ops"
        assert "secret" not in repr(config)

    def test_missing_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Enabling Vault without credentials fails."""
        monkeypatch.setenv("VAULT_ADDR", VAULT_ADDR)
        for name in ("VAULT_TOKEN", "VAULT_ROLE_ID", "VAULT_SECRET_ID"):
            monkeypatch.delenv(name, raising=False)
        with pytest.raises(VaultConfigError):
            VaultConfig.from_env()


class TestReadSecret:
    """Tests for ``VaultSecretResolver.read_secret``."""

    @pytest.mark.asyncio
    async def test_kv_v1_payload(self) -> None:
        """KV v1 responses return ``data`` directly with the token header."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"key": "pw"}})

        resolver = _resolver(httpx.MockTransport(handler))
        secret = await resolver.read_secret("secret/backups/nas")

        assert secret == {"key": "pw"}
        assert seen[0].url.path == "/v1/secret/backups/nas"
        assert seen[0].headers["X-Vault-Token"] == "s.root"

    @pytest.mark.asyncio
    async def test_kv_v2_payload_is_unwrapped(self) -> None:
        """KV v2 nests the secret under data.data next to metadata."""

        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"data": {"data": {"id": "a", "key": "k"}, "metadata": {"version": 3}}},
            )

        resolver = _resolver(httpx.MockTransport(handler))
        assert await resolver.read_secret("kv/data/b2") == {"id": "a", "key": "k"}

    @pytest.mark.asyncio
    async def test_approle_login_precedes_read(self) -> None:
        """Without a token the resolver logs in via AppRole first."""
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.url.path == "/v1/auth/approle/login":
                body = json.loads(request.content)
                assert body == {"role_id": "role", "secret_id": "sid"}
                return httpx.Response(200, json={"auth": {"client_token": "s.app"}})
            assert request.headers["X-Vault-Token"] == "s.app"
            return httpx.Response(200, json={"data": {"key": "pw"}})

        resolver = _resolver(
            httpx.MockTransport(handler), token=None, role_id="role", secret_id="sid"
        )
        await resolver.read_secret("secret/x")
        await resolver.read_secret("secret/y")

        assert seen == [
            ("POST", "/v1/auth/approle/login"),
            ("GET", "/v1/secret/x"),
            ("GET", "/v1/secret/y"),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(403, json={"errors": ["permission denied"]}),
            httpx.Response(200, text="<html>"),
            httpx.Response(200, json=["not", "an", "object"]),
            httpx.Response(200, json={"warnings": []}),
        ],
    )
    async def test_bad_responses_raise(self, response: httpx.Response) -> None:
        """HTTP errors and malformed bodies become SecretResolutionError."""
        resolver = _resolver(httpx.MockTransport(lambda _request: response))
        with pytest.raises(SecretResolutionError):
            await resolver.read_secret("secret/x")

    @pytest.mark.asyncio
    async def test_network_error_raises(self) -> None:
        """Transport failures become SecretResolutionError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        resolver = _resolver(httpx.MockTransport(handler))
        with pytest.raises(SecretResolutionError, match="network error"):
            await resolver.read_secret("secret/x")

    @pytest.mark.asyncio
    async def test_login_without_token_raises(self) -> None:
        """An AppRole login response lacking a token is rejected."""
        resolver = _resolver(
            httpx.MockTransport(lambda _request: httpx.Response(200, json={"auth": None})),
            token=None,
            role_id="role",
            secret_id="sid",
        )
        with pytest.raises(SecretResolutionError, match="client_token"):
            await resolver.read_secret("secret/x")


class TestTokenExpiry:
    """Tests for re-authentication after Vault rejects the client token."""

    @pytest.mark.asyncio
    async def test_expired_approle_token_triggers_login_and_retry(self) -> None:
        """A 403 with AppRole credentials logs in again and retries once."""
        tokens = iter(["s.first", "s.second"])
        valid: set[str] = set()
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.url.path == "/v1/auth/approle/login":
                token = next(tokens)
                valid.clear()
                valid.add(token)
                return httpx.Response(200, json={"auth": {"client_token": token}})
            if request.headers.get("X-Vault-Token") not in valid:
                return httpx.Response(403, json={"errors": ["permission denied"]})
            return httpx.Response(200, json={"data": {"key": "pw"}})

        resolver = _resolver(
            httpx.MockTransport(handler), token=None, role_id="role", secret_id="sid"
        )
        assert await resolver.read_secret("kv/a") == {"key": "pw"}

        valid.clear()
        assert await resolver.read_secret("kv/a") == {"key": "pw"}

        assert seen == [
            ("POST", "/v1/auth/approle/login"),
            ("GET", "/v1/kv/a"),
            ("GET", "/v1/kv/a"),
            ("POST", "/v1/auth/approle/login"),
            ("GET", "/v1/kv/a"),
        ]

    @pytest.mark.asyncio
    async def test_persistent_denial_is_retried_once(self) -> None:
        """A path the role cannot read fails after a single retry."""
        logins: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/auth/approle/login":
                logins.append(request.url.path)
                return httpx.Response(200, json={"auth": {"client_token": "s.app"}})
            return httpx.Response(403, json={"errors": ["permission denied"]})

        resolver = _resolver(
            httpx.MockTransport(handler), token=None, role_id="role", secret_id="sid"
        )
        with pytest.raises(SecretResolutionError, match="Vault HTTP 403"):
            await resolver.read_secret("kv/forbidden")

        assert len(logins) == 2

    @pytest.mark.asyncio
    async def test_static_token_rejection_is_not_retried(self) -> None:
        """Without AppRole credentials there is nothing to log in with."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(403, json={"errors": ["permission denied"]})

        resolver = _resolver(httpx.MockTransport(handler))
        with pytest.raises(SecretResolutionError, match="Vault HTTP 403"):
            await resolver.read_secret("kv/a")

        assert seen == ["/v1/kv/a"]
