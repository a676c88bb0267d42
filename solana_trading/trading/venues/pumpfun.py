from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID
from spl.token.instructions import create_associated_token_account, get_associated_token_address

from solana_trading.common import OnceCell, log_event

from ..amm import buy_token_out, with_slippage_buy
from ..errors import InstructionBuildError, PoolUninitializedError, VenueNotInitializedError
from ..ledger import Ledger
from ..types import CreateParams, PoolInfo, SwapInfo
from .base import (
    BUY_DISCRIMINATOR,
    SELL_DISCRIMINATOR,
    encode_borsh_string,
    encode_swap,
    find_pda,
    readonly,
    writable,
)

PUMPFUN_PROGRAM = Pubkey.from_string("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P")
GLOBAL_ACCOUNT = Pubkey.from_string("4wTV1YmiEkRvAtNtsSGPtUrqRYQMe5SKy2uB4Jjaxnjf")
EVENT_AUTHORITY = Pubkey.from_string("Ce6TQqeHC9p8KetsN6JsjHK7UTZk7nasjjnr7XxXp9F1")
METADATA_PROGRAM = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

GLOBAL_SEED = b"global"
MINT_AUTHORITY_SEED = b"mint-authority"
BONDING_CURVE_SEED = b"bonding-curve"
CREATOR_VAULT_SEED = b"creator-vault"
USER_VOLUME_ACCUMULATOR_SEED = b"user_volume_accumulator"
GLOBAL_VOLUME_ACCUMULATOR_SEED = b"global_volume_accumulator"
METADATA_SEED = b"metadata"

CREATE_DISCRIMINATOR = bytes.fromhex("181ec828051c0777")

_GLOBAL_LAYOUT = struct.Struct("<Q?32s32sQQQQQ")
_BONDING_CURVE_LAYOUT = struct.Struct("<QQQQQQ?32s")


@dataclass(slots=True, frozen=True)
class PumpfunGlobal:
    initialized: bool
    authority: Pubkey
    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "PumpfunGlobal":
        try:
            fields = _GLOBAL_LAYOUT.unpack_from(data)
        except struct.error as error:
            raise InstructionBuildError(f"Invalid pumpfun global account data: {error}") from error
        _, initialized, authority, fee_recipient, *amounts = fields
        return cls(
            initialized,
            Pubkey.from_bytes(authority),
            Pubkey.from_bytes(fee_recipient),
            *amounts,
        )


@dataclass(slots=True, frozen=True)
class BondingCurve:
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool
    creator: Pubkey

    @classmethod
    def from_bytes(cls, data: bytes) -> "BondingCurve":
        try:
            _, *amounts, complete, creator = _BONDING_CURVE_LAYOUT.unpack_from(data)
        except struct.error as error:
            raise PoolUninitializedError(f"Invalid bonding curve data: {error}") from error
        return cls(*amounts, complete, Pubkey.from_bytes(creator))


def bonding_curve_pda(mint: Pubkey) -> Pubkey:
    return find_pda([BONDING_CURVE_SEED, bytes(mint)], PUMPFUN_PROGRAM)


def creator_vault_pda(creator: Pubkey) -> Pubkey:
    return find_pda([CREATOR_VAULT_SEED, bytes(creator)], PUMPFUN_PROGRAM)


def user_volume_accumulator_pda(user: Pubkey) -> Pubkey:
    return find_pda([USER_VOLUME_ACCUMULATOR_SEED, bytes(user)], PUMPFUN_PROGRAM)


def global_volume_accumulator_pda() -> Pubkey:
    return find_pda([GLOBAL_VOLUME_ACCUMULATOR_SEED], PUMPFUN_PROGRAM)


def mint_authority_pda() -> Pubkey:
    return find_pda([MINT_AUTHORITY_SEED], PUMPFUN_PROGRAM)


def global_pda() -> Pubkey:
    return find_pda([GLOBAL_SEED], PUMPFUN_PROGRAM)


def metadata_pda(mint: Pubkey) -> Pubkey:
    return find_pda([METADATA_SEED, bytes(METADATA_PROGRAM), bytes(mint)], METADATA_PROGRAM)


class PumpfunVenue:
    """Bonding-curve launchpad traded against native SOL."""

    name = "pumpfun"
    use_wsol = False
    supports_create = True

    def __init__(self, *, ledger: Ledger, logger: logging.Logger) -> None:
        self._ledger = ledger
        self._logger = logger
        self._global: OnceCell[PumpfunGlobal] = OnceCell("pumpfun global account")

    @property
    def initialized(self) -> bool:
        return self._global.is_set

    @property
    def global_account(self) -> PumpfunGlobal:
        snapshot = self._global.get()
        if snapshot is None:
            raise VenueNotInitializedError(self.name)
        return snapshot

    def _require_initialized(self) -> None:
        if not self._global.is_set:
            raise VenueNotInitializedError(self.name)

    async def initialize(self) -> None:
        account = await self._ledger.get_account(GLOBAL_ACCOUNT)
        if account is None:
            raise InstructionBuildError(f"Pumpfun global account {GLOBAL_ACCOUNT} not found.")
        snapshot = PumpfunGlobal.from_bytes(account.data)
        self._global.set(snapshot)
        log_event(
            self._logger,
            level="info",
            event="venue_initialized",
            message="Venue global state loaded",
            venue=self.name,
            fee_basis_points=snapshot.fee_basis_points,
        )

    async def get_pool(self, mint: Pubkey) -> PoolInfo:
        bonding_curve = bonding_curve_pda(mint)
        account = await self._ledger.get_account(bonding_curve)
        if account is None or not account.data:
            raise PoolUninitializedError(f"Bonding curve not found for mint {mint}")

        curve = BondingCurve.from_bytes(account.data)
        return PoolInfo(
            pool=bonding_curve,
            token_reserves=curve.virtual_token_reserves,
            sol_reserves=curve.virtual_sol_reserves,
            creator=curve.creator,
            creator_vault=creator_vault_pda(curve.creator),
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
            creator_vault_before_token_program=False,
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
            creator_vault_before_token_program=True,
        )

    def build_create_instructions(self, *, payer: Keypair, params: CreateParams) -> list[Instruction]:
        """Create the mint and bonding curve, optionally followed by the creator's first buy.

        The first buy is priced against the initial virtual reserves, since the curve
        does not exist on the ledger yet.
        """
        self._require_initialized()
        owner = payer.pubkey()
        mint = params.mint_keypair.pubkey()
        bonding_curve = bonding_curve_pda(mint)

        data = (
            CREATE_DISCRIMINATOR
            + encode_borsh_string(params.name)
            + encode_borsh_string(params.symbol)
            + encode_borsh_string(params.uri)
            + bytes(owner)
        )
        create_ix = Instruction(
            PUMPFUN_PROGRAM,
            data,
            [
                writable(mint, signer=True),
                writable(mint_authority_pda()),
                writable(bonding_curve),
                writable(get_associated_token_address(bonding_curve, mint)),
                readonly(global_pda()),
                readonly(METADATA_PROGRAM),
                writable(metadata_pda(mint)),
                writable(owner, signer=True),
                readonly(SYSTEM_PROGRAM_ID),
                readonly(TOKEN_PROGRAM_ID),
                readonly(ASSOCIATED_TOKEN_PROGRAM_ID),
                readonly(RENT),
                readonly(EVENT_AUTHORITY),
                readonly(PUMPFUN_PROGRAM),
                readonly(PUMPFUN_PROGRAM),
                readonly(PUMPFUN_PROGRAM),
            ],
        )
        instructions = [create_ix]

        if params.buy_sol_amount:
            snapshot = self.global_account
            token_amount = buy_token_out(
                sol_reserves=snapshot.initial_virtual_sol_reserves,
                token_reserves=snapshot.initial_virtual_token_reserves,
                sol_amount=params.buy_sol_amount,
            )
            instructions.append(create_associated_token_account(owner, owner, mint))
            instructions.append(
                self.build_buy_instruction(
                    payer=payer,
                    mint=mint,
                    creator_vault=creator_vault_pda(owner),
                    token_account=get_associated_token_address(owner, mint),
                    swap=SwapInfo(
                        token_amount=token_amount,
                        sol_amount=with_slippage_buy(params.buy_sol_amount, params.slippage_bps or 0),
                    ),
                )
            )
        return instructions

    def _swap_instruction(
        self,
        discriminator: bytes,
        *,
        payer: Keypair,
        mint: Pubkey,
        token_account: Pubkey,
        creator_vault: Pubkey | None,
        swap: SwapInfo,
        creator_vault_before_token_program: bool,
    ) -> Instruction:
        self._require_initialized()
        if creator_vault is None:
            raise InstructionBuildError("Creator vault is required for pumpfun swaps.")

        owner = payer.pubkey()
        bonding_curve = bonding_curve_pda(mint)
        # buy and sell list the creator vault and token program in opposite order
        if creator_vault_before_token_program:
            program_metas = [readonly(SYSTEM_PROGRAM_ID), writable(creator_vault), readonly(TOKEN_PROGRAM_ID)]
        else:
            program_metas = [readonly(SYSTEM_PROGRAM_ID), readonly(TOKEN_PROGRAM_ID), writable(creator_vault)]

        return Instruction(
            PUMPFUN_PROGRAM,
            encode_swap(discriminator, swap),
            [
                readonly(GLOBAL_ACCOUNT),
                writable(self.global_account.fee_recipient),
                readonly(mint),
                writable(bonding_curve),
                writable(get_associated_token_address(bonding_curve, mint)),
                writable(token_account),
                writable(owner, signer=True),
                *program_metas,
                readonly(EVENT_AUTHORITY),
                readonly(PUMPFUN_PROGRAM),
                writable(global_volume_accumulator_pda()),
                writable(user_volume_accumulator_pda(owner)),
            ],
        )
