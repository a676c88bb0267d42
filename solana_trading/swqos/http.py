from __future__ import annotations

import json
import logging
import random
from typing import Any, Sequence

import aiohttp
from solders.pubkey import Pubkey

from solana_trading.common import log_event
from solana_trading.trading.transaction import SignedTransaction

SWQOS_RPC_TIMEOUT_SECONDS = 10.0


class RelayRateLimitError(RuntimeError):
    def __init__(self, message: str, *, retry_after_seconds: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


def _parse_retry_after_seconds(raw: str | None) -> float | None:
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def _error_message_from_payload(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if message:
            return str(message)
    return str(payload)


def select_tip_account(accounts: Sequence[Pubkey], rng: random.Random) -> Pubkey | None:
    if not accounts:
        return None
    if len(accounts) == 1:
        return accounts[0]
    return rng.choice(list(accounts))


def jsonrpc_body(method: str, params: list[Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": method,
        "params": params,
    }


class RelayHttpClient:
    """Shared HTTP plumbing for relays: one lazy session, optional auth header, a tip-account chunk."""

    provider_name = "relay"

    def __init__(
        self,
        *,
        logger: logging.Logger,
        endpoint: str,
        auth_header: tuple[str, str] | None = None,
        tip_accounts: Sequence[Pubkey] = (),
        timeout_seconds: float = SWQOS_RPC_TIMEOUT_SECONDS,
        rng: random.Random | None = None,
        name: str | None = None,
    ) -> None:
        self._logger = logger
        self._endpoint = endpoint.strip().rstrip("/")
        self._auth_header = auth_header
        self._tip_accounts = tuple(tip_accounts)
        self._timeout_seconds = timeout_seconds
        self._rng = rng or random.Random()
        self._name = name or self.provider_name
        self._http_session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def tip_accounts(self) -> tuple[Pubkey, ...]:
        return self._tip_accounts

    def tip_account(self) -> Pubkey | None:
        return select_tip_account(self._tip_accounts, self._rng)

    async def close(self) -> None:
        if self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            headers = dict([self._auth_header]) if self._auth_header else None
            self._http_session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        return self._http_session

    async def _json_post(
        self,
        url: str,
        body: dict[str, Any],
        *,
        transactions: Sequence[SignedTransaction],
    ) -> Any:
        if not self._endpoint:
            raise RuntimeError(f"{self._name} relay endpoint is not configured.")

        signatures = [str(transaction.signature) for transaction in transactions]
        async with self._session().post(url, json=body) as response:
            status = response.status
            retry_after_seconds = _parse_retry_after_seconds(response.headers.get("Retry-After"))
            raw_text = await response.text()

        parsed: Any = None
        try:
            parsed = json.loads(raw_text) if raw_text else {}
        except json.JSONDecodeError:
            parsed = {"raw": raw_text}

        if status == 429:
            raise RelayRateLimitError(
                f"{self._name} submission rate-limited: status={status} body={str(raw_text)[:240]!r}",
                retry_after_seconds=retry_after_seconds,
            )

        if status >= 400:
            raise RuntimeError(
                f"{self._name} submission failed: status={status} body={str(raw_text)[:240]!r}"
            )

        if isinstance(parsed, dict) and parsed.get("error"):
            raise RuntimeError(
                f"{self._name} submission failed: {_error_message_from_payload(parsed['error'])}"
            )

        log_event(
            self._logger,
            level="debug",
            event="swqos_http_accepted",
            message="Relay accepted submission",
            provider=self._name,
            url=url,
            signatures=signatures,
        )
        return parsed.get("result") if isinstance(parsed, dict) else parsed

