from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from solana_trading.common import gather_or_cancel, log_event
from solana_trading.swqos import SWQOS_RPC_TIMEOUT_SECONDS, SWQoSConfig, SWQoSRuntime
from solana_trading.trading import LedgerClient, TradingEndpoint, VenueTrader
from solana_trading.trading.ledger import Ledger
from solana_trading.trading.transaction import TransactionVersion
from solana_trading.trading.venues import PumpfunVenue, PumpSwapVenue


@dataclass(slots=True)
class TradingConfig:
    rpc_url: str
    swqos: list[SWQoSConfig] = field(default_factory=list)
    swqos_timeout_seconds: float = SWQOS_RPC_TIMEOUT_SECONDS
    ledger_timeout_seconds: float = 10.0
    transaction_version: TransactionVersion = "legacy"


class TradingClient:
    """Wires one ledger client, every configured relay runtime and a trader per venue."""

    def __init__(
        self,
        config: TradingConfig,
        *,
        logger: logging.Logger,
        ledger: Ledger | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if not config.swqos:
            raise ValueError("At least one SWQoS entry is required.")

        self._logger = logger
        self.ledger = ledger or LedgerClient(
            logger=logger,
            rpc_url=config.rpc_url,
            timeout_seconds=config.ledger_timeout_seconds,
        )

        runtimes: list[SWQoSRuntime] = []
        for swqos_config in config.swqos:
            runtimes.extend(
                swqos_config.build_runtimes(
                    logger=logger,
                    timeout_seconds=config.swqos_timeout_seconds,
                    rng=rng,
                )
            )
        self.endpoint = TradingEndpoint(
            ledger=self.ledger,
            runtimes=runtimes,
            logger=logger,
            transaction_version=config.transaction_version,
        )

        self.venues: dict[str, VenueTrader] = {
            venue.name: VenueTrader(venue=venue, endpoint=self.endpoint, logger=logger)
            for venue in (
                PumpfunVenue(ledger=self.ledger, logger=logger),
                PumpSwapVenue(ledger=self.ledger, logger=logger, rng=rng),
            )
        }

        log_event(
            logger,
            level="info",
            event="trading_client_ready",
            message="Trading client constructed",
            runtime_count=len(runtimes),
            providers=sorted({runtime.name for runtime in runtimes}),
            venues=sorted(self.venues),
        )

    def venue(self, name: str) -> VenueTrader:
        trader = self.venues.get(name.strip().lower())
        if trader is None:
            raise ValueError(f"Unknown venue {name!r}; expected one of {', '.join(sorted(self.venues))}")
        return trader

    async def initialize(self) -> None:
        await gather_or_cancel(*(trader.initialize() for trader in self.venues.values()))

    async def close(self) -> None:
        await self.endpoint.close()
