from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Literal, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from .errors import InstructionBuildError, SigningError
from .fee_policy import build_fee_instructions
from .types import PriorityFee, TipFee

TransactionVersion = Literal["legacy", "v0"]

MAX_TRANSACTION_SIZE_BYTES = 1232


@dataclass(slots=True, frozen=True)
class SignedTransaction:
    version: TransactionVersion
    payload: Transaction | VersionedTransaction

    @property
    def signature(self) -> Signature:
        signatures = self.payload.signatures
        if not signatures:
            raise SigningError("Signed transaction has no signatures.")
        return signatures[0]

    def to_bytes(self) -> bytes:
        return bytes(self.payload)

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")


def build_tip_instruction(payer: Pubkey, tip: TipFee) -> Instruction:
    return transfer(
        TransferParams(
            from_pubkey=payer,
            to_pubkey=tip.tip_account,
            lamports=int(tip.tip_lamports),
        )
    )


def compose_instructions(
    *,
    payer: Pubkey,
    instructions: Sequence[Instruction],
    nonce_instruction: Instruction | None = None,
    fee: PriorityFee | None = None,
    tip: TipFee | None = None,
) -> list[Instruction]:
    composed: list[Instruction] = []
    if nonce_instruction is not None:
        composed.append(nonce_instruction)
    composed.extend(build_fee_instructions(fee))
    if tip is not None:
        composed.append(build_tip_instruction(payer, tip))
    composed.extend(instructions)
    return composed


def build_transaction(
    payer: Keypair,
    instructions: Sequence[Instruction],
    blockhash: Hash,
    extra_signers: Sequence[Keypair] = (),
    *,
    version: TransactionVersion = "v0",
) -> SignedTransaction:
    signers = [payer, *extra_signers]

    try:
        if version == "legacy":
            legacy_message = Message.new_with_blockhash(list(instructions), payer.pubkey(), blockhash)
        else:
            v0_message = MessageV0.try_compile(payer.pubkey(), list(instructions), [], blockhash)
    except Exception as error:
        raise InstructionBuildError(f"Transaction message compile failed: {error}") from error

    try:
        if version == "legacy":
            signed = SignedTransaction(version="legacy", payload=Transaction(signers, legacy_message, blockhash))
        else:
            signed = SignedTransaction(version="v0", payload=VersionedTransaction(v0_message, signers))
    except Exception as error:
        raise SigningError(f"Transaction signing failed: {error}") from error

    raw_size = len(signed.to_bytes())
    if raw_size > MAX_TRANSACTION_SIZE_BYTES:
        raise InstructionBuildError(f"Transaction is oversized; size={raw_size} bytes")
    return signed
