from __future__ import annotations

import logging
import random
import struct
import unittest
from unittest.mock import AsyncMock

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT
from spl.token.instructions import get_associated_token_address

from solana_trading.trading.amm import buy_token_out
from solana_trading.trading.errors import (
    PoolUninitializedError,
    VenueNotInitializedError,
    VenueUnsupportedOperationError,
)
from solana_trading.trading.instructions import (
    build_token_account_instructions,
    build_wsol_buy_instructions,
    build_wsol_sell_instructions,
)
from solana_trading.trading.types import AccountData, CreateAta, CreateParams, SwapInfo, TokenAccountData
from solana_trading.trading.venues import PumpfunVenue, PumpSwapVenue
from solana_trading.trading.venues.base import BUY_DISCRIMINATOR, SELL_DISCRIMINATOR
from solana_trading.trading.venues.pumpfun import (
    PUMPFUN_PROGRAM,
    bonding_curve_pda,
    creator_vault_pda,
)
from solana_trading.trading.venues.pumpswap import (
    POOL_COIN_CREATOR_OFFSET,
    PROTOCOL_FEE_RECIPIENTS_OFFSET,
    PUMPSWAP_PROGRAM,
    pool_pda,
)

LOGGER = logging.getLogger("test.venues")

INITIAL_VIRTUAL_TOKEN_RESERVES = 1_073_000_000_000_000
INITIAL_VIRTUAL_SOL_RESERVES = 30_000_000_000


def _pubkey(seed: int) -> Pubkey:
    return Keypair.from_seed(bytes([seed]) * 32).pubkey()


def _account(address: Pubkey, data: bytes) -> AccountData:
    return AccountData(address=address, owner=PUMPFUN_PROGRAM, lamports=1, data=data)


def _pumpfun_global(
    token_reserves: int = INITIAL_VIRTUAL_TOKEN_RESERVES,
    sol_reserves: int = INITIAL_VIRTUAL_SOL_RESERVES,
) -> bytes:
    return struct.pack(
        "<Q?32s32sQQQQQ",
        0,
        True,
        bytes(_pubkey(1)),
        bytes(_pubkey(2)),
        token_reserves,
        sol_reserves,
        793_100_000_000_000,
        1_000_000_000_000_000,
        100,
    )


def _bonding_curve(creator: Pubkey) -> bytes:
    return struct.pack(
        "<QQQQQQ?32s",
        0,
        1_000_000_000_000_000,
        40_000_000_000,
        700_000_000_000_000,
        10_000_000_000,
        1_000_000_000_000_000,
        False,
        bytes(creator),
    )


class PumpfunVenueTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.ledger = AsyncMock()
        self.venue = PumpfunVenue(ledger=self.ledger, logger=LOGGER)
        self.payer = Keypair.from_seed(bytes([7]) * 32)
        self.mint = _pubkey(8)

    async def _initialize(self) -> None:
        self.ledger.get_account.return_value = _account(_pubkey(9), _pumpfun_global())
        await self.venue.initialize()

    async def test_instructions_require_initialize(self) -> None:
        self.assertFalse(self.venue.initialized)
        with self.assertRaises(VenueNotInitializedError):
            self.venue.build_buy_instruction(
                payer=self.payer,
                mint=self.mint,
                creator_vault=_pubkey(3),
                token_account=_pubkey(4),
                swap=SwapInfo(token_amount=1, sol_amount=1),
            )

    async def test_initialize_stores_global_snapshot(self) -> None:
        await self._initialize()
        self.assertTrue(self.venue.initialized)
        self.assertEqual(self.venue.global_account.fee_basis_points, 100)
        self.assertEqual(self.venue.global_account.fee_recipient, _pubkey(2))

    async def test_get_pool_reads_virtual_reserves_and_creator(self) -> None:
        creator = _pubkey(5)
        self.ledger.get_account.return_value = _account(bonding_curve_pda(self.mint), _bonding_curve(creator))

        pool = await self.venue.get_pool(self.mint)

        self.assertEqual(pool.pool, bonding_curve_pda(self.mint))
        self.assertEqual(pool.token_reserves, 1_000_000_000_000_000)
        self.assertEqual(pool.sol_reserves, 40_000_000_000)
        self.assertEqual(pool.creator, creator)
        self.assertEqual(pool.creator_vault, creator_vault_pda(creator))

    async def test_missing_curve_raises_pool_uninitialized(self) -> None:
        self.ledger.get_account.return_value = None
        with self.assertRaises(PoolUninitializedError):
            await self.venue.get_pool(self.mint)

    async def test_buy_and_sell_encode_amounts_and_order_accounts(self) -> None:
        await self._initialize()
        vault = creator_vault_pda(_pubkey(5))
        token_account = get_associated_token_address(self.payer.pubkey(), self.mint)
        swap = SwapInfo(token_amount=1_000, sol_amount=2_000)

        buy = self.venue.build_buy_instruction(
            payer=self.payer, mint=self.mint, creator_vault=vault, token_account=token_account, swap=swap
        )
        sell = self.venue.build_sell_instruction(
            payer=self.payer, mint=self.mint, custom_ata=None, creator_vault=vault, swap=swap
        )

        self.assertEqual(buy.program_id, PUMPFUN_PROGRAM)
        self.assertEqual(bytes(buy.data), BUY_DISCRIMINATOR + struct.pack("<QQ", 1_000, 2_000))
        self.assertEqual(bytes(sell.data)[:8], SELL_DISCRIMINATOR)
        self.assertEqual(buy.accounts[5].pubkey, token_account)
        self.assertEqual(sell.accounts[5].pubkey, token_account)
        self.assertEqual([meta.pubkey for meta in buy.accounts[8:10]], [TOKEN_PROGRAM_ID, vault])
        self.assertEqual([meta.pubkey for meta in sell.accounts[8:10]], [vault, TOKEN_PROGRAM_ID])
        self.assertTrue(buy.accounts[6].is_signer)
        self.assertEqual(buy.accounts[1].pubkey, self.venue.global_account.fee_recipient)
        self.assertEqual(sell.accounts[1].pubkey, _pubkey(2))

    async def test_create_with_initial_buy(self) -> None:
        await self._initialize()
        mint_keypair = Keypair.from_seed(bytes([12]) * 32)
        params = CreateParams(
            mint_keypair=mint_keypair,
            name="Coin",
            symbol="COIN",
            uri="https://example.invalid/coin.json",
            buy_sol_amount=1_000_000_000,
            slippage_bps=100,
        )

        instructions = self.venue.build_create_instructions(payer=self.payer, params=params)

        self.assertEqual(len(instructions), 3)
        self.assertEqual(instructions[0].accounts[0].pubkey, mint_keypair.pubkey())
        self.assertTrue(instructions[0].accounts[0].is_signer)
        token_amount, sol_amount = struct.unpack("<QQ", bytes(instructions[2].data)[8:24])
        self.assertEqual(token_amount, 34_612_903_225_806)
        self.assertEqual(sol_amount, 1_010_000_000)

    async def test_create_without_buy_is_one_instruction(self) -> None:
        await self._initialize()
        params = CreateParams(
            mint_keypair=Keypair.from_seed(bytes([12]) * 32),
            name="Coin",
            symbol="COIN",
            uri="https://example.invalid/coin.json",
        )
        self.assertEqual(len(self.venue.build_create_instructions(payer=self.payer, params=params)), 1)

    async def test_create_buy_prices_against_global_snapshot_reserves(self) -> None:
        self.ledger.get_account.return_value = _account(
            _pubkey(9), _pumpfun_global(token_reserves=2_000_000_000_000_000, sol_reserves=40_000_000_000)
        )
        await self.venue.initialize()
        params = CreateParams(
            mint_keypair=Keypair.from_seed(bytes([12]) * 32),
            name="Coin",
            symbol="COIN",
            uri="https://example.invalid/coin.json",
            buy_sol_amount=1_000_000_000,
            slippage_bps=0,
        )

        instructions = self.venue.build_create_instructions(payer=self.payer, params=params)

        token_amount, _ = struct.unpack("<QQ", bytes(instructions[2].data)[8:24])
        self.assertEqual(
            token_amount,
            buy_token_out(sol_reserves=40_000_000_000, token_reserves=2_000_000_000_000_000, sol_amount=1_000_000_000),
        )
        self.assertNotEqual(token_amount, 34_612_903_225_806)


def _pumpswap_global(recipients: list[Pubkey]) -> bytes:
    slots = recipients + [Pubkey.default()] * (8 - len(recipients))
    return bytes(PROTOCOL_FEE_RECIPIENTS_OFFSET) + b"".join(bytes(recipient) for recipient in slots)


def _pumpswap_pool(creator: Pubkey) -> bytes:
    return bytes(POOL_COIN_CREATOR_OFFSET) + bytes(creator) + bytes(32)


class PumpSwapVenueTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.ledger = AsyncMock()
        self.recipients = [_pubkey(21), _pubkey(22), _pubkey(23)]
        self.ledger.get_account.return_value = _account(_pubkey(20), _pumpswap_global(self.recipients))
        self.venue = PumpSwapVenue(ledger=self.ledger, logger=LOGGER, rng=random.Random(3))
        self.payer = Keypair.from_seed(bytes([7]) * 32)
        self.mint = _pubkey(8)

    async def test_initialize_drops_empty_recipient_slots(self) -> None:
        await self.venue.initialize()
        self.assertTrue(self.venue.initialized)
        self.assertEqual(self.venue._global.get().protocol_fee_recipients, tuple(self.recipients))

    async def test_get_pool_reads_vault_balances(self) -> None:
        creator = _pubkey(30)
        pool = pool_pda(self.mint)
        self.ledger.get_account.return_value = _account(pool, _pumpswap_pool(creator))
        balances = {
            get_associated_token_address(pool, self.mint): 5_000_000,
            get_associated_token_address(pool, WRAPPED_SOL_MINT): 7_000,
        }

        async def token_account(address: Pubkey) -> TokenAccountData:
            return TokenAccountData(address=address, mint=self.mint, owner=pool, amount=balances[address])

        self.ledger.get_token_account.side_effect = token_account

        info = await self.venue.get_pool(self.mint)

        self.assertEqual((info.token_reserves, info.sol_reserves), (5_000_000, 7_000))
        self.assertEqual(info.creator, creator)

    async def test_swap_uses_given_token_account_and_token_program(self) -> None:
        await self.venue.initialize()
        token_account = _pubkey(40)
        instruction = self.venue.build_buy_instruction(
            payer=self.payer,
            mint=self.mint,
            creator_vault=_pubkey(41),
            token_account=token_account,
            swap=SwapInfo(token_amount=10, sol_amount=20),
        )

        self.assertEqual(instruction.program_id, PUMPSWAP_PROGRAM)
        self.assertEqual(len(instruction.accounts), 19)
        self.assertEqual(instruction.accounts[5].pubkey, token_account)
        self.assertEqual(instruction.accounts[11].pubkey, TOKEN_PROGRAM_ID)
        self.assertIn(instruction.accounts[9].pubkey, self.recipients)

    async def test_fee_recipient_choice_is_reproducible_with_seed(self) -> None:
        other = PumpSwapVenue(ledger=self.ledger, logger=LOGGER, rng=random.Random(3))
        await self.venue.initialize()
        await other.initialize()
        self.assertEqual(
            [self.venue._fee_recipient() for _ in range(5)],
            [other._fee_recipient() for _ in range(5)],
        )

    async def test_create_is_unsupported(self) -> None:
        self.assertFalse(self.venue.supports_create)
        with self.assertRaises(VenueUnsupportedOperationError):
            self.venue.build_create_instructions(
                payer=self.payer,
                params=CreateParams(mint_keypair=Keypair(), name="a", symbol="b", uri="c"),
            )

    async def test_swap_before_initialize_raises(self) -> None:
        with self.assertRaises(VenueNotInitializedError):
            self.venue.build_sell_instruction(
                payer=self.payer,
                mint=self.mint,
                custom_ata=None,
                creator_vault=_pubkey(41),
                swap=SwapInfo(token_amount=10, sol_amount=0),
            )


class TokenAccountInstructionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.payer = Keypair.from_seed(bytes([7]) * 32)
        self.mint = _pubkey(8)

    def test_modes(self) -> None:
        ata = get_associated_token_address(self.payer.pubkey(), self.mint)
        for mode, count in (("create", 1), ("idempotent", 1), ("none", 0)):
            with self.subTest(mode=mode):
                account, instructions = build_token_account_instructions(self.payer, self.mint, CreateAta(mode=mode))
                self.assertEqual(account, ata)
                self.assertEqual(len(instructions), count)

    def test_seeded_account_is_derived_from_payer_and_seed(self) -> None:
        account, instructions = build_token_account_instructions(self.payer, self.mint, CreateAta.seeded("trade-1"))
        self.assertEqual(account, Pubkey.create_with_seed(self.payer.pubkey(), "trade-1", TOKEN_PROGRAM_ID))
        self.assertEqual(len(instructions), 2)
        self.assertEqual(instructions[1].program_id, TOKEN_PROGRAM_ID)

    def test_wsol_buy_wraps_around_the_trade(self) -> None:
        trade = build_token_account_instructions(self.payer, self.mint, CreateAta(mode="create"))[1][0]
        instructions = build_wsol_buy_instructions(self.payer, 1_000, trade)
        self.assertEqual(len(instructions), 5)
        self.assertEqual(instructions[3], trade)
        self.assertEqual(instructions[4].program_id, TOKEN_PROGRAM_ID)

    def test_wsol_sell_optionally_closes_mint_account(self) -> None:
        trade = build_token_account_instructions(self.payer, self.mint, CreateAta(mode="create"))[1][0]
        self.assertEqual(len(build_wsol_sell_instructions(self.payer, self.mint, trade, False)), 3)
        closing = build_wsol_sell_instructions(self.payer, self.mint, trade, True)
        self.assertEqual(len(closing), 4)
        ata = get_associated_token_address(self.payer.pubkey(), self.mint)
        self.assertEqual(closing[3].accounts[0].pubkey, ata)


if __name__ == "__main__":
    unittest.main()
