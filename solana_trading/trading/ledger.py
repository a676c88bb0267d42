from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Protocol

import aiohttp
from solders.hash import Hash
from solders.pubkey import Pubkey

from solana_trading.common import log_event

from .errors import LedgerQueryError
from .types import AccountData, TokenAccountData

TOKEN_ACCOUNT_MIN_SIZE = 72


class Ledger(Protocol):
    async def get_latest_blockhash(self) -> Hash:
        ...

    async def get_account(self, address: Pubkey) -> AccountData | None:
        ...

    async def get_program_accounts(
        self,
        program_id: Pubkey,
        *,
        filters: list[dict[str, Any]] | None = None,
    ) -> list[AccountData]:
        ...

    async def get_token_account(self, address: Pubkey) -> TokenAccountData | None:
        ...

    async def close(self) -> None:
        ...


def decode_token_account(address: Pubkey, data: bytes) -> TokenAccountData:
    """SPL token account: mint (32) | owner (32) | amount (u64 LE) | ..."""
    if len(data) < TOKEN_ACCOUNT_MIN_SIZE:
        raise LedgerQueryError(
            f"Account {address} is not a token account: size={len(data)}",
            method="getAccountInfo",
        )
    return TokenAccountData(
        address=address,
        mint=Pubkey.from_bytes(data[0:32]),
        owner=Pubkey.from_bytes(data[32:64]),
        amount=int.from_bytes(data[64:72], "little"),
    )


def _decode_account(address: Pubkey, value: dict[str, Any]) -> AccountData:
    raw_data = value.get("data")
    if not isinstance(raw_data, list) or not raw_data or not isinstance(raw_data[0], str):
        raise LedgerQueryError(f"Unexpected account data for {address}: {raw_data}", method="getAccountInfo")

    return AccountData(
        address=address,
        owner=Pubkey.from_string(str(value.get("owner"))),
        lamports=int(value.get("lamports") or 0),
        data=base64.b64decode(raw_data[0]),
    )


class LedgerClient:
    """Minimal JSON-RPC client for the reads the trading path needs."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc_url: str,
        timeout_seconds: float = 10.0,
        commitment: str = "processed",
    ) -> None:
        self._logger = logger
        self._rpc_url = rpc_url
        self._timeout_seconds = timeout_seconds
        self._commitment = commitment
        self._http_session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        if not self._rpc_url:
            raise ValueError("RPC_URL is required.")
        if self._http_session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._http_session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    async def get_latest_blockhash(self) -> Hash:
        result = await self._rpc_call("getLatestBlockhash", [{"commitment": self._commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not isinstance(blockhash, str) or not blockhash:
            raise LedgerQueryError(f"Missing blockhash in RPC response: {result}", method="getLatestBlockhash")
        return Hash.from_string(blockhash)

    async def get_account(self, address: Pubkey) -> AccountData | None:
        result = await self._rpc_call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._commitment}],
        )
        if not isinstance(result, dict):
            raise LedgerQueryError(f"Unexpected getAccountInfo response: {result}", method="getAccountInfo")

        value = result.get("value")
        if value is None:
            return None
        if not isinstance(value, dict):
            raise LedgerQueryError(f"Unexpected getAccountInfo payload: {result}", method="getAccountInfo")
        return _decode_account(address, value)

    async def get_program_accounts(
        self,
        program_id: Pubkey,
        *,
        filters: list[dict[str, Any]] | None = None,
    ) -> list[AccountData]:
        config: dict[str, Any] = {"encoding": "base64", "commitment": self._commitment}
        if filters:
            config["filters"] = filters

        result = await self._rpc_call("getProgramAccounts", [str(program_id), config])
        if not isinstance(result, list):
            raise LedgerQueryError(f"Unexpected getProgramAccounts response: {result}", method="getProgramAccounts")

        accounts: list[AccountData] = []
        for item in result:
            if not isinstance(item, dict) or not isinstance(item.get("account"), dict):
                continue
            address = Pubkey.from_string(str(item.get("pubkey")))
            accounts.append(_decode_account(address, item["account"]))
        return accounts

    async def get_token_account(self, address: Pubkey) -> TokenAccountData | None:
        account = await self.get_account(address)
        if account is None:
            return None
        return decode_token_account(address, account.data)

    async def _rpc_call(self, method: str, params: list[Any] | None = None) -> Any:
        if self._http_session is None:
            await self.connect()
        if self._http_session is None:
            raise LedgerQueryError("RPC HTTP session is not initialized.", method=method)

        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params or [],
        }

        try:
            async with self._http_session.post(self._rpc_url, json=payload) as response:
                status = response.status
                body = await response.json(content_type=None)
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as error:
            self._log_failure(method=method, error=str(error))
            raise LedgerQueryError(f"RPC call failed: method={method} error={error}", method=method) from error

        if status >= 400:
            self._log_failure(method=method, error=f"status={status}")
            raise LedgerQueryError(f"RPC call failed: method={method} status={status} body={body}", method=method)

        if not isinstance(body, dict):
            self._log_failure(method=method, error="invalid_body")
            raise LedgerQueryError(f"Invalid RPC response for {method}: {body}", method=method)

        error_payload = body.get("error")
        if error_payload:
            code = error_payload.get("code") if isinstance(error_payload, dict) else None
            self._log_failure(method=method, error=str(error_payload), code=code)
            raise LedgerQueryError(f"RPC error for {method}: {error_payload}", method=method, code=code)

        return body.get("result")

    def _log_failure(self, **fields: Any) -> None:
        log_event(
            self._logger,
            level="warning",
            event="ledger_rpc_error",
            message="Ledger RPC call failed",
            rpc_url=self._rpc_url,
            **fields,
        )
