"""Vault KV client for fetching credentials missing from the environment."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class VaultError(Exception):
    """Fetching a secret from Vault failed."""


class VaultClient:
    """Minimal client for the Vault KV v2 read endpoint."""

    def __init__(
        self,
        url: str,
        token: str,
        path: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.path = path.strip("/")
        self.timeout = timeout
        self._token = token
        self._transport = transport

    def fetch_secret(self, key: str, entry: str) -> str:
        """Return one entry of the secret stored under ``key``.

        Raises:
            VaultError: On transport failure, non-200 status or missing entry.
        """
        endpoint = f"{self.url}/v1/kv/data/{self.path}/{key}"
        try:
            with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
                response = client.get(
                    endpoint,
                    headers={"accept": "*/*", "X-Vault-Token": self._token},
                )
        except httpx.HTTPError as e:
            raise VaultError(f"Error contacting Vault: {e}") from e

        if response.status_code != 200:
            raise VaultError(f"Unexpected status code from Vault: {response.status_code}")

        try:
            value = response.json()["data"]["data"][entry]
        except (ValueError, KeyError, TypeError) as e:
            raise VaultError(f"Entry {entry!r} not found in Vault secret {key!r}") from e

        if not isinstance(value, str):
            raise VaultError(f"Entry {entry!r} in Vault secret {key!r} is not a string")
        return value
