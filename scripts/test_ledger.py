from __future__ import annotations

import asyncio
import base64
import logging
import unittest
from typing import Any
from unittest.mock import MagicMock

import aiohttp
from solders.hash import Hash
from solders.keypair import Keypair

from solana_trading.trading.errors import LedgerQueryError
from solana_trading.trading.ledger import LedgerClient, decode_token_account

LOGGER = logging.getLogger("test.ledger")


class _FakeResponse:
    def __init__(self, status: int, body: Any) -> None:
        self.status = status
        self._body = body

    async def json(self, content_type: str | None = None) -> Any:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def __aenter__(self) -> "_FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


def _token_account_bytes(mint: bytes, owner: bytes, amount: int) -> bytes:
    return mint + owner + amount.to_bytes(8, "little") + bytes(165 - 72)


class DecodeTokenAccountTests(unittest.TestCase):
    def test_decodes_mint_owner_and_amount(self) -> None:
        mint = Keypair.from_seed(bytes([1]) * 32).pubkey()
        owner = Keypair.from_seed(bytes([2]) * 32).pubkey()
        address = Keypair.from_seed(bytes([3]) * 32).pubkey()

        account = decode_token_account(address, _token_account_bytes(bytes(mint), bytes(owner), 123_456_789))

        self.assertEqual(account.address, address)
        self.assertEqual(account.mint, mint)
        self.assertEqual(account.owner, owner)
        self.assertEqual(account.amount, 123_456_789)

    def test_short_data_is_rejected(self) -> None:
        address = Keypair.from_seed(bytes([3]) * 32).pubkey()
        with self.assertRaises(LedgerQueryError):
            decode_token_account(address, bytes(40))


class LedgerClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, response: Any) -> tuple[LedgerClient, MagicMock]:
        client = LedgerClient(logger=LOGGER, rpc_url="https://rpc.example")
        session = MagicMock()
        if isinstance(response, Exception):
            session.post = MagicMock(side_effect=response)
        else:
            session.post = MagicMock(return_value=response)
        client._http_session = session
        return client, session

    async def test_latest_blockhash_is_parsed(self) -> None:
        blockhash = Hash.new_unique()
        client, session = self._client(
            _FakeResponse(200, {"result": {"value": {"blockhash": str(blockhash), "lastValidBlockHeight": 1}}})
        )

        self.assertEqual(await client.get_latest_blockhash(), blockhash)
        payload = session.post.call_args.kwargs["json"]
        self.assertEqual(payload["method"], "getLatestBlockhash")

    async def test_missing_account_returns_none(self) -> None:
        client, _ = self._client(_FakeResponse(200, {"result": {"context": {"slot": 1}, "value": None}}))
        address = Keypair.from_seed(bytes([5]) * 32).pubkey()
        self.assertIsNone(await client.get_account(address))

    async def test_token_account_round_trips_through_rpc_encoding(self) -> None:
        mint = Keypair.from_seed(bytes([1]) * 32).pubkey()
        owner = Keypair.from_seed(bytes([2]) * 32).pubkey()
        data = _token_account_bytes(bytes(mint), bytes(owner), 42)
        client, _ = self._client(
            _FakeResponse(
                200,
                {
                    "result": {
                        "value": {
                            "data": [base64.b64encode(data).decode("ascii"), "base64"],
                            "owner": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
                            "lamports": 2_039_280,
                        }
                    }
                },
            )
        )

        account = await client.get_token_account(Keypair.from_seed(bytes([6]) * 32).pubkey())

        assert account is not None
        self.assertEqual((account.mint, account.owner, account.amount), (mint, owner, 42))

    async def test_program_accounts_pass_filters_and_skip_malformed_items(self) -> None:
        program = Keypair.from_seed(bytes([9]) * 32).pubkey()
        holder = Keypair.from_seed(bytes([10]) * 32).pubkey()
        client, session = self._client(
            _FakeResponse(
                200,
                {
                    "result": [
                        {
                            "pubkey": str(holder),
                            "account": {
                                "data": [base64.b64encode(b"\x01\x02").decode("ascii"), "base64"],
                                "owner": str(program),
                                "lamports": 10,
                            },
                        },
                        {"pubkey": str(holder)},
                    ]
                },
            )
        )

        accounts = await client.get_program_accounts(program, filters=[{"dataSize": 2}])

        self.assertEqual([(account.address, account.data) for account in accounts], [(holder, b"\x01\x02")])
        params = session.post.call_args.kwargs["json"]["params"]
        self.assertEqual(params[1]["filters"], [{"dataSize": 2}])

    async def test_rpc_error_payload_raises_with_code(self) -> None:
        client, _ = self._client(_FakeResponse(200, {"error": {"code": -32005, "message": "node is behind"}}))
        with self.assertRaises(LedgerQueryError) as context:
            await client.get_latest_blockhash()
        self.assertEqual(context.exception.code, -32005)
        self.assertEqual(context.exception.method, "getLatestBlockhash")

    async def test_http_status_raises(self) -> None:
        client, _ = self._client(_FakeResponse(502, {"message": "bad gateway"}))
        with self.assertRaisesRegex(LedgerQueryError, "status=502"):
            await client.get_latest_blockhash()

    async def test_transport_errors_are_wrapped(self) -> None:
        for error in (aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()):
            with self.subTest(error=type(error).__name__):
                client, _ = self._client(error)
                with self.assertRaises(LedgerQueryError) as context:
                    await client.get_latest_blockhash()
                self.assertIs(context.exception.__cause__, error)

    async def test_non_json_body_is_wrapped(self) -> None:
        client, _ = self._client(_FakeResponse(200, ValueError("not json")))
        with self.assertRaises(LedgerQueryError):
            await client.get_latest_blockhash()

    async def test_connect_requires_rpc_url(self) -> None:
        with self.assertRaises(ValueError):
            await LedgerClient(logger=LOGGER, rpc_url="").connect()


if __name__ == "__main__":
    unittest.main()
