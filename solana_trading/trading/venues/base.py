from __future__ import annotations

import struct
from typing import Protocol

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ..errors import InstructionBuildError
from ..types import CreateParams, PoolInfo, SwapInfo

BUY_DISCRIMINATOR = bytes.fromhex("66063d1201daebea")
SELL_DISCRIMINATOR = bytes.fromhex("33e685a4017f83ad")


class Venue(Protocol):
    """Venue-specific account derivation and instruction encoding."""

    name: str
    use_wsol: bool
    supports_create: bool

    @property
    def initialized(self) -> bool:
        ...

    async def initialize(self) -> None:
        ...

    async def get_pool(self, mint: Pubkey) -> PoolInfo:
        ...

    def build_buy_instruction(
        self,
        *,
        payer: Keypair,
        mint: Pubkey,
        creator_vault: Pubkey | None,
        token_account: Pubkey,
        swap: SwapInfo,
    ) -> Instruction:
        ...

    def build_sell_instruction(
        self,
        *,
        payer: Keypair,
        mint: Pubkey,
        custom_ata: Pubkey | None,
        creator_vault: Pubkey | None,
        swap: SwapInfo,
    ) -> Instruction:
        ...

    def build_create_instructions(self, *, payer: Keypair, params: CreateParams) -> list[Instruction]:
        ...


def encode_swap(discriminator: bytes, swap: SwapInfo) -> bytes:
    """discriminator | token_amount (u64 LE) | sol_amount (u64 LE)"""
    try:
        return discriminator + struct.pack("<QQ", swap.token_amount, swap.sol_amount)
    except struct.error as error:
        raise InstructionBuildError(f"Swap amounts do not fit u64: {swap}") from error


def encode_borsh_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def writable(pubkey: Pubkey, *, signer: bool = False) -> AccountMeta:
    return AccountMeta(pubkey, is_signer=signer, is_writable=True)


def readonly(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey, is_signer=False, is_writable=False)


def find_pda(seeds: list[bytes], program_id: Pubkey) -> Pubkey:
    address, _ = Pubkey.find_program_address(seeds, program_id)
    return address
