from __future__ import annotations

import unittest
from decimal import Decimal

from solders.pubkey import Pubkey

from solana_trading.common import Lamports
from solana_trading.trading.amm import (
    ReserveSimulator,
    buy_token_out,
    sell_sol_out,
    with_slippage_buy,
    with_slippage_sell,
)
from solana_trading.trading.errors import PoolUninitializedError
from solana_trading.trading.types import PoolInfo

SOL_RESERVES = 30_000_000_000
TOKEN_RESERVES = 1_073_000_000_000_000


class ConstantProductTests(unittest.TestCase):
    def test_buy_against_initial_curve_floors_output(self) -> None:
        token_out = buy_token_out(
            sol_reserves=SOL_RESERVES,
            token_reserves=TOKEN_RESERVES,
            sol_amount=1_000_000_000,
        )
        self.assertEqual(token_out, 34_612_903_225_806)

    def test_output_is_monotonic_and_bounded_by_reserves(self) -> None:
        previous = 0
        for sol_amount in (1, 10_000, 1_000_000_000, 50_000_000_000, 10**15):
            token_out = buy_token_out(
                sol_reserves=SOL_RESERVES,
                token_reserves=TOKEN_RESERVES,
                sol_amount=sol_amount,
            )
            self.assertGreaterEqual(token_out, previous)
            self.assertLess(token_out, TOKEN_RESERVES)
            previous = token_out

    def test_zero_amount_yields_zero(self) -> None:
        self.assertEqual(sell_sol_out(sol_reserves=SOL_RESERVES, token_reserves=TOKEN_RESERVES, token_amount=0), 0)

    def test_zero_reserves_raise_pool_uninitialized(self) -> None:
        with self.assertRaises(PoolUninitializedError):
            buy_token_out(sol_reserves=0, token_reserves=TOKEN_RESERVES, sol_amount=1)
        with self.assertRaises(PoolUninitializedError):
            sell_sol_out(sol_reserves=SOL_RESERVES, token_reserves=0, token_amount=1)

    def test_slippage_bounds(self) -> None:
        self.assertEqual(with_slippage_buy(1_000_000, 100), 1_010_000)
        self.assertEqual(with_slippage_sell(1_000_000, 100), 990_000)
        # allowance rounds against the trader
        self.assertEqual(with_slippage_buy(999, 1), 1_000)
        self.assertEqual(with_slippage_sell(999, 1), 998)
        self.assertEqual(with_slippage_sell(10, 20_000), 0)
        self.assertEqual(with_slippage_buy(1_000, 0), 1_000)

    def test_negative_slippage_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            with_slippage_buy(1_000, -1)


class ReserveSimulatorTests(unittest.TestCase):
    def test_sequential_buys_match_independent_recomputation(self) -> None:
        pool = PoolInfo(pool=Pubkey.default(), token_reserves=TOKEN_RESERVES, sol_reserves=SOL_RESERVES)
        simulator = ReserveSimulator.from_pool(pool)
        amounts = [1_000_000_000, 500_000_000, 2_000_000_000]

        sol, token = SOL_RESERVES, TOKEN_RESERVES
        for amount in amounts:
            expected = (amount * token) // (sol + amount)
            self.assertEqual(simulator.buy(amount), expected)
            sol += amount
            token -= expected

        self.assertEqual(simulator.sol_reserves, sol)
        self.assertEqual(simulator.token_reserves, token)

    def test_second_buy_of_same_size_gets_fewer_tokens(self) -> None:
        simulator = ReserveSimulator(sol_reserves=SOL_RESERVES, token_reserves=TOKEN_RESERVES)
        first = simulator.buy(1_000_000_000)
        second = simulator.buy(1_000_000_000)
        self.assertEqual(first, 34_612_903_225_806)
        self.assertLess(second, first)

    def test_sell_moves_reserves_the_other_way(self) -> None:
        simulator = ReserveSimulator(sol_reserves=SOL_RESERVES, token_reserves=TOKEN_RESERVES)
        received = simulator.sell(34_612_903_225_806)
        self.assertEqual(simulator.sol_reserves, SOL_RESERVES - received)
        self.assertEqual(simulator.token_reserves, TOKEN_RESERVES + 34_612_903_225_806)


class LamportsTests(unittest.TestCase):
    def test_from_sol_rounds_to_nearest_lamport(self) -> None:
        self.assertEqual(Lamports.from_sol("0.000000001").value, 1)
        self.assertEqual(Lamports.from_sol(0.001).value, 1_000_000)
        self.assertEqual(Lamports.from_sol("1.5").value, 1_500_000_000)

    def test_invalid_values_are_rejected(self) -> None:
        for value in ("abc", "-1", "nan"):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    Lamports.from_sol(value)
        with self.assertRaises(TypeError):
            Lamports.from_sol(True)
        with self.assertRaises(ValueError):
            Lamports(2**64)

    def test_arithmetic_keeps_lamports(self) -> None:
        total = Lamports(1_000) + 500
        self.assertEqual(total, Lamports(1_500))
        self.assertEqual(int(total - Lamports(1_000)), 500)
        self.assertEqual(Lamports(2_500_000_000).to_sol(), Decimal("2.5"))

    def test_sol_conversion_round_trips_across_u64(self) -> None:
        for value in (0, 1, 2**53 + 1, 2**64 - 1):
            with self.subTest(value=value):
                self.assertEqual(Lamports.from_sol(Lamports(value).to_sol()).value, value)

    def test_half_lamport_rounds_up(self) -> None:
        self.assertEqual(Lamports.from_sol("0.0000000015").value, 2)
        self.assertEqual(Lamports.from_sol("0.0000000014").value, 1)


if __name__ == "__main__":
    unittest.main()
