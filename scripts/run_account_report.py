"""Print Shrimpy accounts, balances, portfolios or an exchange ticker as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence, TextIO

from shrimpy_client import (
    ClientConfig,
    LoggingEventSink,
    ShrimpyError,
    ShrimpyHTTPClient,
    configure_logging,
    load_config,
)
from shrimpy_client.transport import Transport


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query the Shrimpy account-management API.")
    parser.add_argument("--config", default=None, help="YAML config; defaults to SHRIMPY_* environment variables.")
    parser.add_argument("--debug", action="store_true", help="Emit debug events.")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("accounts", help="List exchange accounts (default).")
    balance = sub.add_parser("balance", help="Show one account balance.")
    balance.add_argument("account_id", type=int)
    portfolios = sub.add_parser("portfolios", help="List portfolios of one account.")
    portfolios.add_argument("account_id", type=int)
    ticker = sub.add_parser("ticker", help="Show prices on one exchange.")
    ticker.add_argument("exchange")
    return parser


def _run(client: ShrimpyHTTPClient, args: argparse.Namespace) -> Any:
    command = args.command or "accounts"
    if command == "balance":
        balance = client.get_balance(args.account_id)
        return {
            "retrievedAt": balance.retrieved_at.isoformat() if balance.retrieved_at is not None else None,
            "totalUsd": balance.total_usd(),
            "balances": balance.to_frame().drop(columns=["retrieved_at"]).to_dict(orient="records"),
        }
    if command == "portfolios":
        return [
            {"id": p.id, "name": p.name, "active": p.active, "rebalancePeriod": p.rebalance_period}
            for p in client.get_portfolios(args.account_id)
        ]
    if command == "ticker":
        frame = client.get_ticker(args.exchange).to_frame()
        return frame[["name", "price_usd", "price_btc"]].reset_index().to_dict(orient="records")
    return [account.to_dict() for account in client.get_accounts()]


def main(
    argv: Sequence[str] | None = None,
    transport: Transport | None = None,
    out: TextIO | None = None,
) -> int:
    args = _build_parser().parse_args(argv)
    logger = configure_logging(level=logging.DEBUG if args.debug else logging.INFO)
    out = out or sys.stdout
    try:
        config = load_config(args.config) if args.config else ClientConfig.from_env()
        client = ShrimpyHTTPClient.from_config(config, transport=transport, events=LoggingEventSink(logger))
        result = _run(client, args)
    except ShrimpyError as exc:
        logger.error("request failed: %s", exc, extra={"fields": {"error_type": type(exc).__name__}})
        return 1
    out.write(json.dumps(result, default=str, indent=2) + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
