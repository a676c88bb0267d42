from __future__ import annotations

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import (
    CreateAccountWithSeedParams,
    TransferParams,
    create_account_with_seed,
    transfer,
)
from spl.token.constants import TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT
from spl.token.instructions import (
    CloseAccountParams,
    InitializeAccountParams,
    SyncNativeParams,
    close_account,
    create_associated_token_account,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    initialize_account,
    sync_native,
)

from .errors import InstructionBuildError
from .types import CreateAta

TOKEN_ACCOUNT_SPACE = 165
SEEDED_TOKEN_ACCOUNT_LAMPORTS = 2_139_280


def close_token_account(account: Pubkey, owner: Pubkey) -> Instruction:
    return close_account(
        CloseAccountParams(
            program_id=TOKEN_PROGRAM_ID,
            account=account,
            dest=owner,
            owner=owner,
            signers=[],
        )
    )


def build_seeded_token_account(payer: Pubkey, mint: Pubkey, seed: str) -> tuple[Pubkey, list[Instruction]]:
    """Token account derived from ``payer`` + ``seed``, created and initialized in place.

    Cheaper than an associated token account when the account is discarded after the trade.
    """
    if not seed:
        raise InstructionBuildError("Seeded token account requires a non-empty seed.")
    try:
        token_account = Pubkey.create_with_seed(payer, seed, TOKEN_PROGRAM_ID)
    except Exception as error:
        raise InstructionBuildError(f"Invalid token account seed {seed!r}: {error}") from error

    create_ix = create_account_with_seed(
        CreateAccountWithSeedParams(
            from_pubkey=payer,
            to_pubkey=token_account,
            base=payer,
            seed=seed,
            lamports=SEEDED_TOKEN_ACCOUNT_LAMPORTS,
            space=TOKEN_ACCOUNT_SPACE,
            owner=TOKEN_PROGRAM_ID,
        )
    )
    init_ix = initialize_account(
        InitializeAccountParams(
            program_id=TOKEN_PROGRAM_ID,
            account=token_account,
            mint=mint,
            owner=payer,
        )
    )
    return token_account, [create_ix, init_ix]


def build_token_account_instructions(
    payer: Keypair,
    mint: Pubkey,
    create_ata: CreateAta,
) -> tuple[Pubkey, list[Instruction]]:
    """Return the token account that receives ``mint`` and the instructions that prepare it."""
    owner = payer.pubkey()
    if create_ata.mode == "seeded":
        return build_seeded_token_account(owner, mint, create_ata.seed)

    ata = get_associated_token_address(owner, mint)
    if create_ata.mode == "create":
        return ata, [create_associated_token_account(owner, owner, mint)]
    if create_ata.mode == "idempotent":
        return ata, [create_idempotent_associated_token_account(owner, owner, mint)]
    if create_ata.mode == "none":
        return ata, []
    raise InstructionBuildError(f"Unknown token account mode: {create_ata.mode}")


def build_wsol_buy_instructions(
    payer: Keypair,
    sol_amount: int,
    buy_instruction: Instruction,
) -> list[Instruction]:
    """Wrap ``sol_amount`` into the payer's WSOL account around ``buy_instruction`` and unwrap the rest."""
    owner = payer.pubkey()
    wsol_ata = get_associated_token_address(owner, WRAPPED_SOL_MINT)

    instructions = [create_idempotent_associated_token_account(owner, owner, WRAPPED_SOL_MINT)]
    instructions.append(transfer(TransferParams(from_pubkey=owner, to_pubkey=wsol_ata, lamports=sol_amount)))
    instructions.append(sync_native(SyncNativeParams(program_id=TOKEN_PROGRAM_ID, account=wsol_ata)))
    instructions.append(buy_instruction)
    instructions.append(close_token_account(wsol_ata, owner))
    return instructions


def build_wsol_sell_instructions(
    payer: Keypair,
    mint: Pubkey,
    sell_instruction: Instruction,
    close_mint_ata: bool,
    token_account: Pubkey | None = None,
) -> list[Instruction]:
    owner = payer.pubkey()
    wsol_ata = get_associated_token_address(owner, WRAPPED_SOL_MINT)

    instructions = [
        create_idempotent_associated_token_account(owner, owner, WRAPPED_SOL_MINT),
        sell_instruction,
        close_token_account(wsol_ata, owner),
    ]
    if close_mint_ata:
        instructions.append(close_token_account(token_account or get_associated_token_address(owner, mint), owner))
    return instructions


def build_sol_sell_instructions(
    payer: Keypair,
    mint: Pubkey,
    sell_instruction: Instruction,
    close_mint_ata: bool,
    token_account: Pubkey | None = None,
) -> list[Instruction]:
    instructions = [sell_instruction]
    if close_mint_ata:
        owner = payer.pubkey()
        instructions.append(close_token_account(token_account or get_associated_token_address(owner, mint), owner))
    return instructions
