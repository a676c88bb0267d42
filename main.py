from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Sequence

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from solana_trading import TradingClient, TradingConfig
from solana_trading.common import Lamports, log_event
from solana_trading.runtime import AppSettings, setup_logger
from solana_trading.trading import SELL_ALL, CreateAta


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Broadcast AMM trades through every configured relay.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--venue", default="pumpfun", help="pumpfun or pumpswap")
        sub.add_argument("--mint", required=True, help="token mint address")
        sub.add_argument("--slippage-bps", type=int, default=100)

    buy = subcommands.add_parser("buy", help="buy tokens with SOL")
    add_common(buy)
    buy.add_argument("--sol", required=True, help="SOL amount to spend")
    buy.add_argument("--tip-sol", default="0", help="extra tip on top of the configured one")
    buy.add_argument(
        "--create-ata",
        default="idempotent",
        choices=["create", "idempotent", "none", "seeded"],
    )
    buy.add_argument("--ata-seed", default="", help="seed used with --create-ata seeded")

    sell = subcommands.add_parser("sell", help="sell tokens for SOL")
    add_common(sell)
    sell.add_argument("--amount", required=True, help="raw token amount, or 'all'")
    sell.add_argument("--tip-sol", default="0", help="extra tip on top of the configured one")
    sell.add_argument("--close-ata", action="store_true", help="close the token account after selling")

    quote = subcommands.add_parser("quote", help="price a trade without sending anything")
    add_common(quote)
    quote.add_argument("--side", choices=["buy", "sell"], default="buy")
    quote.add_argument("--amount", required=True, help="SOL for buys, raw token amount for sells")

    return parser


def _token_amount(raw: str) -> int | str:
    value = raw.strip().lower()
    if value == SELL_ALL:
        return SELL_ALL
    return int(value)


async def run_command(args: argparse.Namespace, *, client: TradingClient, settings: AppSettings) -> dict[str, Any]:
    trader = client.venue(args.venue)
    mint = Pubkey.from_string(args.mint)

    if args.command == "quote":
        amount = Lamports.from_sol(args.amount).value if args.side == "buy" else int(args.amount)
        quote = await trader.quote(mint, side=args.side, amount=amount, slippage_bps=args.slippage_bps)
        return quote.to_dict()

    await client.initialize()
    payer = settings.keypair()
    tip = Lamports.from_sol(args.tip_sol).value

    if args.command == "buy":
        create_ata = CreateAta.seeded(args.ata_seed) if args.create_ata == "seeded" else CreateAta(mode=args.create_ata)
        signatures = await trader.buy(
            payer,
            mint,
            Lamports.from_sol(args.sol).value,
            args.slippage_bps,
            tip=tip,
            create_ata=create_ata,
        )
    else:
        signatures = await trader.sell(
            payer,
            mint,
            _token_amount(args.amount),
            args.slippage_bps,
            close_mint_ata=args.close_ata,
            tip=tip,
        )
    return {"signatures": [str(signature) for signature in signatures]}


async def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = AppSettings.from_env()
    logger = setup_logger(settings.log_level)
    if not settings.rpc_url:
        raise SystemExit("RPC_URL is required.")

    client = TradingClient(
        TradingConfig(
            rpc_url=settings.rpc_url,
            swqos=settings.swqos,
            swqos_timeout_seconds=settings.swqos_timeout_seconds,
            ledger_timeout_seconds=settings.ledger_timeout_seconds,
            transaction_version=settings.transaction_version,
        ),
        logger=logger,
    )

    try:
        result = await run_command(args, client=client, settings=settings)
    except Exception as error:
        logger.exception(
            "Command failed",
            extra={"event": "command_failed", "command": args.command, "error": str(error)},
        )
        return 1
    finally:
        await client.close()
        log_event(logger, level="info", event="shutdown_completed", message="Shutdown completed")

    print(json.dumps(result, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
