from __future__ import annotations

from typing import Any

from solana_trading.trading.transaction import SignedTransaction

from .nextblock import NextBlockClient

BLOX_ENDPOINTS = {
    "frankfurt": "https://germany.solana.dex.blxrbdn.com",
    "amsterdam": "https://amsterdam.solana.dex.blxrbdn.com",
    "newyork": "https://ny.solana.dex.blxrbdn.com",
    "london": "https://uk.solana.dex.blxrbdn.com",
    "losangeles": "https://la.solana.dex.blxrbdn.com",
    "tokyo": "https://tokyo.solana.dex.blxrbdn.com",
}


class BloxClient(NextBlockClient):
    """Same submit API as NextBlock, routed through staked RPCs."""

    provider_name = "blox"

    def _submit_body(self, transaction: SignedTransaction) -> dict[str, Any]:
        body = super()._submit_body(transaction)
        body["useStakedRPCs"] = True
        return body
