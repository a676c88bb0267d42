from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.instructions import get_associated_token_address

from solana_trading.common import gather_or_cancel, log_event

from .amm import ReserveSimulator, buy_token_out, sell_sol_out, with_slippage_buy, with_slippage_sell
from .endpoint import TradingEndpoint
from .errors import InstructionBuildError, LedgerQueryError, VenueUnsupportedOperationError
from .instructions import (
    build_sol_sell_instructions,
    build_token_account_instructions,
    build_wsol_buy_instructions,
    build_wsol_sell_instructions,
)
from .types import (
    OPERATION_BUY,
    OPERATION_CREATE,
    OPERATION_SELL,
    SELL_ALL,
    BatchBuyParam,
    BatchSellParam,
    BatchTxItem,
    CreateAta,
    CreateParams,
    PoolInfo,
    PriorityFee,
    SwapInfo,
    TokenAmount,
)
from .venues.base import Venue

TradeSide = Literal["buy", "sell"]


@dataclass(slots=True, frozen=True)
class TradeQuote:
    side: TradeSide
    pool: PoolInfo
    amount_in: int
    expected_out: int
    limit: int

    def to_dict(self) -> dict[str, object]:
        return {
            "side": self.side,
            "pool": str(self.pool.pool),
            "token_reserves": self.pool.token_reserves,
            "sol_reserves": self.pool.sol_reserves,
            "amount_in": self.amount_in,
            "expected_out": self.expected_out,
            "limit": self.limit,
        }


def _require_amount(value: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{field} must be a non-negative integer, got {value!r}")
    return value


class VenueTrader:
    """Venue-independent trading algorithm over a pluggable venue and a relay endpoint."""

    def __init__(self, *, venue: Venue, endpoint: TradingEndpoint, logger: logging.Logger) -> None:
        self.venue = venue
        self.endpoint = endpoint
        self._logger = logger

    @property
    def name(self) -> str:
        return self.venue.name

    async def initialize(self) -> None:
        await self.venue.initialize()

    async def quote(self, mint: Pubkey, *, side: TradeSide, amount: int, slippage_bps: int) -> TradeQuote:
        """Price a trade against current reserves without building or sending anything."""
        _require_amount(amount, "amount")
        pool = await self.venue.get_pool(mint)
        return self._price(side, pool, amount, slippage_bps)

    async def buy(
        self,
        payer: Keypair,
        mint: Pubkey,
        sol_amount: int,
        slippage_bps: int,
        *,
        fee: PriorityFee | None = None,
        tip: int = 0,
        create_ata: CreateAta = CreateAta(),
    ) -> list[Signature]:
        _require_amount(sol_amount, "sol_amount")
        pool, blockhash = await self._fetch_pool_and_blockhash(mint)
        quote = self._price("buy", pool, sol_amount, slippage_bps)
        self._log_quote(mint, quote)

        return await self.buy_immediately(
            payer,
            mint,
            creator_vault=pool.creator_vault,
            sol_amount=quote.limit,
            token_amount=quote.expected_out,
            blockhashes=[blockhash],
            create_ata=create_ata,
            additional_fee=fee,
            additional_tip=tip,
        )

    async def buy_immediately(
        self,
        payer: Keypair,
        mint: Pubkey,
        *,
        creator_vault: Pubkey | None,
        sol_amount: int,
        token_amount: int,
        blockhashes: Sequence[Hash],
        nonce_instruction: Instruction | None = None,
        create_ata: CreateAta = CreateAta(),
        additional_fee: PriorityFee | None = None,
        additional_tip: int = 0,
    ) -> list[Signature]:
        """Buy with already-priced amounts; no ledger reads happen here."""
        instructions = self._buy_instructions(
            payer,
            mint,
            creator_vault=creator_vault,
            swap=SwapInfo(token_amount=token_amount, sol_amount=sol_amount),
            create_ata=create_ata,
        )
        return await self.endpoint.build_and_broadcast_tx(
            kind=OPERATION_BUY,
            payer=payer,
            instructions=instructions,
            blockhashes=blockhashes,
            nonce_instruction=nonce_instruction,
            additional_fee=additional_fee,
            additional_tip=additional_tip,
        )

    async def sell(
        self,
        payer: Keypair,
        mint: Pubkey,
        token_amount: TokenAmount,
        slippage_bps: int,
        *,
        custom_ata: Pubkey | None = None,
        close_mint_ata: bool = False,
        fee: PriorityFee | None = None,
        tip: int = 0,
    ) -> list[Signature]:
        if token_amount == SELL_ALL:
            pool, blockhash, amount = await gather_or_cancel(
                self.venue.get_pool(mint),
                self.endpoint.get_latest_blockhash(),
                self._token_balance(payer.pubkey(), mint, custom_ata),
            )
        else:
            amount = _require_amount(token_amount, "token_amount")
            pool, blockhash = await self._fetch_pool_and_blockhash(mint)

        if amount == 0:
            raise InstructionBuildError(f"Nothing to sell for mint {mint}")

        quote = self._price("sell", pool, amount, slippage_bps)
        self._log_quote(mint, quote)

        return await self.sell_immediately(
            payer,
            mint,
            creator_vault=pool.creator_vault,
            token_amount=amount,
            sol_amount=quote.limit,
            blockhashes=[blockhash],
            custom_ata=custom_ata,
            close_mint_ata=close_mint_ata,
            additional_fee=fee,
            additional_tip=tip,
        )

    async def sell_immediately(
        self,
        payer: Keypair,
        mint: Pubkey,
        *,
        creator_vault: Pubkey | None,
        token_amount: int,
        sol_amount: int,
        blockhashes: Sequence[Hash],
        custom_ata: Pubkey | None = None,
        close_mint_ata: bool = False,
        nonce_instruction: Instruction | None = None,
        additional_fee: PriorityFee | None = None,
        additional_tip: int = 0,
    ) -> list[Signature]:
        instructions = self._sell_instructions(
            payer,
            mint,
            creator_vault=creator_vault,
            swap=SwapInfo(token_amount=token_amount, sol_amount=sol_amount),
            custom_ata=custom_ata,
            close_mint_ata=close_mint_ata,
        )
        return await self.endpoint.build_and_broadcast_tx(
            kind=OPERATION_SELL,
            payer=payer,
            instructions=instructions,
            blockhashes=blockhashes,
            nonce_instruction=nonce_instruction,
            additional_fee=additional_fee,
            additional_tip=additional_tip,
        )

    async def batch_buy(
        self,
        mint: Pubkey,
        slippage_bps: int,
        *,
        items: Sequence[BatchBuyParam],
        fee: PriorityFee | None = None,
        tip: int = 0,
    ) -> list[Signature]:
        """Price every item against a running copy of the reserves, in order, then broadcast.

        Each item still lands as its own transaction; see ``ReserveSimulator``.
        """
        if not items:
            return []

        pool, blockhash = await self._fetch_pool_and_blockhash(mint)
        simulator = ReserveSimulator.from_pool(pool)
        batch: list[BatchTxItem] = []
        for index, item in enumerate(items):
            sol_amount = _require_amount(item.sol_amount, "sol_amount")
            bought = simulator.buy(sol_amount)
            swap = SwapInfo(token_amount=bought, sol_amount=with_slippage_buy(sol_amount, slippage_bps))
            self._log_batch_item(mint, OPERATION_BUY, index, swap, simulator)
            batch.append(
                BatchTxItem(
                    payer=item.payer,
                    instructions=self._buy_instructions(
                        item.payer,
                        mint,
                        creator_vault=pool.creator_vault,
                        swap=swap,
                        create_ata=CreateAta(),
                    ),
                )
            )

        return await self.endpoint.build_and_broadcast_batch_txs(
            kind=OPERATION_BUY,
            items=batch,
            blockhash=blockhash,
            additional_fee=fee,
            additional_tip=tip,
        )

    async def batch_sell(
        self,
        mint: Pubkey,
        slippage_bps: int,
        *,
        items: Sequence[BatchSellParam],
        fee: PriorityFee | None = None,
        tip: int = 0,
    ) -> list[Signature]:
        if not items:
            return []

        pool, blockhash = await self._fetch_pool_and_blockhash(mint)
        simulator = ReserveSimulator.from_pool(pool)
        batch: list[BatchTxItem] = []
        for index, item in enumerate(items):
            token_amount = _require_amount(item.token_amount, "token_amount")
            received = simulator.sell(token_amount)
            swap = SwapInfo(token_amount=token_amount, sol_amount=with_slippage_sell(received, slippage_bps))
            self._log_batch_item(mint, OPERATION_SELL, index, swap, simulator)
            batch.append(
                BatchTxItem(
                    payer=item.payer,
                    instructions=self._sell_instructions(
                        item.payer,
                        mint,
                        creator_vault=pool.creator_vault,
                        swap=swap,
                        custom_ata=item.custom_ata,
                        close_mint_ata=item.close_mint_ata,
                    ),
                )
            )

        return await self.endpoint.build_and_broadcast_batch_txs(
            kind=OPERATION_SELL,
            items=batch,
            blockhash=blockhash,
            additional_fee=fee,
            additional_tip=tip,
        )

    async def create(
        self,
        payer: Keypair,
        params: CreateParams,
        *,
        fee: PriorityFee | None = None,
        tip: int = 0,
    ) -> list[Signature]:
        if not self.venue.supports_create:
            raise VenueUnsupportedOperationError(self.venue.name, "create")

        instructions = self.venue.build_create_instructions(payer=payer, params=params)
        blockhash = await self.endpoint.get_latest_blockhash()
        return await self.endpoint.build_and_broadcast_tx(
            kind=OPERATION_CREATE,
            payer=payer,
            instructions=instructions,
            blockhashes=[blockhash],
            additional_fee=fee,
            additional_tip=tip,
            extra_signers=[params.mint_keypair],
        )

    async def _fetch_pool_and_blockhash(self, mint: Pubkey) -> tuple[PoolInfo, Hash]:
        pool, blockhash = await gather_or_cancel(
            self.venue.get_pool(mint),
            self.endpoint.get_latest_blockhash(),
        )
        return pool, blockhash

    async def _token_balance(self, owner: Pubkey, mint: Pubkey, custom_ata: Pubkey | None) -> int:
        token_account = custom_ata or get_associated_token_address(owner, mint)
        account = await self.endpoint.ledger.get_token_account(token_account)
        if account is None:
            raise LedgerQueryError(f"Token account {token_account} not found", method="getAccountInfo")
        return account.amount

    def _price(self, side: TradeSide, pool: PoolInfo, amount: int, slippage_bps: int) -> TradeQuote:
        if side == "buy":
            expected = buy_token_out(
                sol_reserves=pool.sol_reserves,
                token_reserves=pool.token_reserves,
                sol_amount=amount,
            )
            limit = with_slippage_buy(amount, slippage_bps)
        else:
            expected = sell_sol_out(
                sol_reserves=pool.sol_reserves,
                token_reserves=pool.token_reserves,
                token_amount=amount,
            )
            limit = with_slippage_sell(expected, slippage_bps)
        return TradeQuote(side=side, pool=pool, amount_in=amount, expected_out=expected, limit=limit)

    def _buy_instructions(
        self,
        payer: Keypair,
        mint: Pubkey,
        *,
        creator_vault: Pubkey | None,
        swap: SwapInfo,
        create_ata: CreateAta,
    ) -> list[Instruction]:
        token_account, instructions = build_token_account_instructions(payer, mint, create_ata)
        buy_ix = self.venue.build_buy_instruction(
            payer=payer,
            mint=mint,
            creator_vault=creator_vault,
            token_account=token_account,
            swap=swap,
        )
        if self.venue.use_wsol:
            instructions.extend(build_wsol_buy_instructions(payer, swap.sol_amount, buy_ix))
        else:
            instructions.append(buy_ix)
        return instructions

    def _sell_instructions(
        self,
        payer: Keypair,
        mint: Pubkey,
        *,
        creator_vault: Pubkey | None,
        swap: SwapInfo,
        custom_ata: Pubkey | None,
        close_mint_ata: bool,
    ) -> list[Instruction]:
        sell_ix = self.venue.build_sell_instruction(
            payer=payer,
            mint=mint,
            custom_ata=custom_ata,
            creator_vault=creator_vault,
            swap=swap,
        )
        if self.venue.use_wsol:
            return build_wsol_sell_instructions(payer, mint, sell_ix, close_mint_ata, custom_ata)
        return build_sol_sell_instructions(payer, mint, sell_ix, close_mint_ata, custom_ata)

    def _log_quote(self, mint: Pubkey, quote: TradeQuote) -> None:
        log_event(
            self._logger,
            level="info",
            event="trade_quote",
            message="Priced trade against pool reserves",
            venue=self.venue.name,
            mint=str(mint),
            **quote.to_dict(),
        )

    def _log_batch_item(
        self,
        mint: Pubkey,
        kind: str,
        index: int,
        swap: SwapInfo,
        simulator: ReserveSimulator,
    ) -> None:
        log_event(
            self._logger,
            level="debug",
            event="batch_item_priced",
            message="Priced batch item against simulated reserves",
            venue=self.venue.name,
            mint=str(mint),
            kind=kind,
            index=index,
            token_amount=swap.token_amount,
            sol_amount=swap.sol_amount,
            simulated_sol_reserves=simulator.sol_reserves,
            simulated_token_reserves=simulator.token_reserves,
        )
