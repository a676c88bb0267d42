from __future__ import annotations

import logging
import random
import struct
from dataclasses import dataclass

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT
from spl.token.instructions import get_associated_token_address

from solana_trading.common import OnceCell, gather_or_cancel, log_event

from ..errors import (
    InstructionBuildError,
    PoolUninitializedError,
    VenueNotInitializedError,
    VenueUnsupportedOperationError,
)
from ..ledger import Ledger
from ..types import CreateParams, PoolInfo, SwapInfo
from .base import BUY_DISCRIMINATOR, SELL_DISCRIMINATOR, encode_swap, find_pda, readonly, writable
from .pumpfun import PUMPFUN_PROGRAM

PUMPSWAP_PROGRAM = Pubkey.from_string("pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA")
GLOBAL_CONFIG = Pubkey.from_string("ADyA8hdefvWN2dbGGWFotbzWxrAvLW83WG6QCVXvJKqw")
EVENT_AUTHORITY = Pubkey.from_string("GS4CU59F31iL7aR2Q8zVS8DRrcRnXX1yjQ66TqNVQnaR")

PROTOCOL_FEE_RECIPIENTS_OFFSET = 57
PROTOCOL_FEE_RECIPIENT_COUNT = 8
POOL_COIN_CREATOR_OFFSET = 211


@dataclass(slots=True, frozen=True)
class PumpSwapGlobalConfig:
    protocol_fee_recipients: tuple[Pubkey, ...]

    @classmethod
    def from_bytes(cls, data: bytes) -> "PumpSwapGlobalConfig":
        end = PROTOCOL_FEE_RECIPIENTS_OFFSET + 32 * PROTOCOL_FEE_RECIPIENT_COUNT
        if len(data) < end:
            raise InstructionBuildError(f"Invalid pumpswap global config data: size={len(data)}")
        recipients = tuple(
            Pubkey.from_bytes(data[start:start + 32])
            for start in range(PROTOCOL_FEE_RECIPIENTS_OFFSET, end, 32)
        )
        return cls(protocol_fee_recipients=tuple(r for r in recipients if r != Pubkey.default()))


def decode_pool_creator(data: bytes) -> Pubkey:
    end = POOL_COIN_CREATOR_OFFSET + 32
    if len(data) < end:
        raise PoolUninitializedError(f"Invalid pumpswap pool data: size={len(data)}")
    return Pubkey.from_bytes(data[POOL_COIN_CREATOR_OFFSET:end])


def pool_authority_pda(mint: Pubkey) -> Pubkey:
    return find_pda([b"pool-authority", bytes(mint)], PUMPFUN_PROGRAM)


def pool_pda(mint: Pubkey) -> Pubkey:
    """Canonical pool a migrated pumpfun mint lands in (index 0, quoted in WSOL)."""
    return find_pda(
        [
            b"pool",
            struct.pack("<H", 0),
            bytes(pool_authority_pda(mint)),
            bytes(mint),
            bytes(WRAPPED_SOL_MINT),
        ],
        PUMPSWAP_PROGRAM,
    )


def creator_vault_pda(creator: Pubkey) -> Pubkey:
    return find_pda([b"creator_vault", bytes(creator)], PUMPSWAP_PROGRAM)


class PumpSwapVenue:
    """Constant-product pool quoted in wrapped SOL."""

    name = "pumpswap"
    use_wsol = True
    supports_create = False

    def __init__(
        self,
        *,
        ledger: Ledger,
        logger: logging.Logger,
        rng: random.Random | None = None,
    ) -> None:
        self._ledger = ledger
        self._logger = logger
        self._rng = rng or random.Random()
        self._global: OnceCell[PumpSwapGlobalConfig] = OnceCell("pumpswap global config")

    @property
    def initialized(self) -> bool:
        return self._global.is_set

    async def initialize(self) -> None:
        account = await self._ledger.get_account(GLOBAL_CONFIG)
        if account is None:
            raise InstructionBuildError(f"Pumpswap global config {GLOBAL_CONFIG} not found.")
        snapshot = PumpSwapGlobalConfig.from_bytes(account.data)
        if not snapshot.protocol_fee_recipients:
            raise InstructionBuildError("Pumpswap global config lists no protocol fee recipients.")
        self._global.set(snapshot)
        log_event(
            self._logger,
            level="info",
            event="venue_initialized",
            message="Venue global state loaded",
            venue=self.name,
            fee_recipient_count=len(snapshot.protocol_fee_recipients),
        )

    async def get_pool(self, mint: Pubkey) -> PoolInfo:
        pool = pool_pda(mint)
        pool_account, base_account, quote_account = await gather_or_cancel(
            self._ledger.get_account(pool),
            self._ledger.get_token_account(get_associated_token_address(pool, mint)),
            self._ledger.get_token_account(get_associated_token_address(pool, WRAPPED_SOL_MINT)),
        )
        if pool_account is None or not pool_account.data:
            raise PoolUninitializedError(f"Pool account not found for mint {mint}")
        if base_account is None:
            raise PoolUninitializedError(f"Pool base account not found for mint {mint}")
        if quote_account is None:
            raise PoolUninitializedError(f"Pool quote account not found for mint {mint}")

        creator = decode_pool_creator(pool_account.data)
        return PoolInfo(
            pool=pool,
            token_reserves=base_account.amount,
            sol_reserves=quote_account.amount,
            creator=creator,
            creator_vault=creator_vault_pda(creator),
        )

    def build_buy_instruction(
        self,
        *,
        payer: Keypair,
        mint: Pubkey,
        creator_vault: Pubkey | None,
        token_account: Pubkey,
        swap: SwapInfo,
    ) -> Instruction:
        return self._swap_instruction(
            BUY_DISCRIMINATOR,
            payer=payer,
            mint=mint,
            token_account=token_account,
            creator_vault=creator_vault,
            swap=swap,
        )

    def build_sell_instruction(
        self,
        *,
        payer: Keypair,
        mint: Pubkey,
        custom_ata: Pubkey | None,
        creator_vault: Pubkey | None,
        swap: SwapInfo,
    ) -> Instruction:
        return self._swap_instruction(
            SELL_DISCRIMINATOR,
            payer=payer,
            mint=mint,
            token_account=custom_ata or get_associated_token_address(payer.pubkey(), mint),
            creator_vault=creator_vault,
            swap=swap,
        )

    def build_create_instructions(self, *, payer: Keypair, params: CreateParams) -> list[Instruction]:
        raise VenueUnsupportedOperationError(self.name, "create")

    def _fee_recipient(self) -> Pubkey:
        snapshot = self._global.get()
        if snapshot is None:
            raise VenueNotInitializedError(self.name)
        return self._rng.choice(snapshot.protocol_fee_recipients)

    def _swap_instruction(
        self,
        discriminator: bytes,
        *,
        payer: Keypair,
        mint: Pubkey,
        token_account: Pubkey,
        creator_vault: Pubkey | None,
        swap: SwapInfo,
    ) -> Instruction:
        fee_recipient = self._fee_recipient()
        if creator_vault is None:
            raise InstructionBuildError("Creator vault is required for pumpswap swaps.")

        owner = payer.pubkey()
        pool = pool_pda(mint)
        return Instruction(
            PUMPSWAP_PROGRAM,
            encode_swap(discriminator, swap),
            [
                readonly(pool),
                writable(owner, signer=True),
                readonly(GLOBAL_CONFIG),
                readonly(mint),
                readonly(WRAPPED_SOL_MINT),
                writable(token_account),
                writable(get_associated_token_address(owner, WRAPPED_SOL_MINT)),
                writable(get_associated_token_address(pool, mint)),
                writable(get_associated_token_address(pool, WRAPPED_SOL_MINT)),
                readonly(fee_recipient),
                writable(get_associated_token_address(fee_recipient, WRAPPED_SOL_MINT)),
                readonly(TOKEN_PROGRAM_ID),
                readonly(TOKEN_PROGRAM_ID),
                readonly(SYSTEM_PROGRAM_ID),
                readonly(ASSOCIATED_TOKEN_PROGRAM_ID),
                readonly(EVENT_AUTHORITY),
                readonly(PUMPSWAP_PROGRAM),
                writable(get_associated_token_address(creator_vault, WRAPPED_SOL_MINT)),
                readonly(creator_vault),
            ],
        )
