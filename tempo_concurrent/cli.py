"""Command line interface for concurrent Tempo payments."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import ConfigurationError, TempoConfig, load_config
from .coordinator import BatchCoordinator
from .errors import TempoError
from .payroll import parse_payroll_csv, payroll_to_payments
from .rpc_client import RPCError, RPCTransportError
from .tools import call_tool

logger = logging.getLogger(__name__)


SIGNING_NOTE = (
    "Transactions are sent with eth_sendTransaction and signed by the node. "
    "--rpc-url must point at a node that holds the signing key for --wallet; "
    "the public testnet endpoint does not sign, so payments sent through it are rejected."
)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tempo concurrent payments CLI")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="Override the Tempo RPC endpoint (must hold the wallet key to send payments)",
    )
    parser.add_argument("--wallet", default=None, help="Override the sending wallet address")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    send_parser = subparsers.add_parser(
        "send-payments",
        help="send payments in parallel on consecutive nonce keys",
        description=SIGNING_NOTE,
    )
    source = send_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--payments-json",
        type=Path,
        help="JSON file holding a list of {token, to, amount, memo} objects",
    )
    source.add_argument(
        "--payroll-csv",
        type=Path,
        help="Payroll CSV with employee_id,name,wallet_address,amount columns",
    )
    send_parser.add_argument(
        "--token",
        default=None,
        help="Token alias or address for payroll payments (default: configured default token)",
    )
    send_parser.add_argument("--period", default=None, help="Payroll period used in memos, e.g. DEC2024")
    send_parser.add_argument(
        "--start-key",
        type=int,
        default=1,
        help="First nonce key to use (default: 1, leaving key 0 for sequential transactions)",
    )
    send_parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Return once transactions are submitted instead of waiting for inclusion",
    )

    nonce_parser = subparsers.add_parser("nonce", help="show the nonce for one nonce key")
    nonce_parser.add_argument("--key", type=int, required=True, help="Nonce key (0-255)")
    nonce_parser.add_argument("--address", default=None, help="Account to query (default: wallet)")

    active_parser = subparsers.add_parser(
        "active-keys", help="list nonce keys that have carried at least one transaction"
    )
    active_parser.add_argument("--address", default=None, help="Account to query (default: wallet)")
    return parser


def _load_payments_json(path: Path) -> list[Any]:
    try:
        payments = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise CLIError(f"could not read payments from {path}: {exc}") from exc
    if not isinstance(payments, list):
        raise CLIError(f"{path} must contain a JSON list of payments")
    return payments


def _load_payroll(path: Path, token: str, period: str | None) -> list[Any]:
    try:
        parsed = parse_payroll_csv(path)
    except OSError as exc:
        raise CLIError(f"could not read payroll from {path}: {exc}") from exc
    if not parsed.ok:
        lines = [f"row {e.row} {e.field}: {e.message} ({e.value})" for e in parsed.errors]
        raise CLIError("invalid payroll file:\n  " + "\n  ".join(lines))
    return payroll_to_payments(parsed.employees, token, period)


def _tool_call(args: argparse.Namespace, config: TempoConfig) -> tuple[str, dict[str, Any]]:
    if args.command == "send-payments":
        if args.payments_json is not None:
            payments = _load_payments_json(args.payments_json)
        else:
            payments = _load_payroll(args.payroll_csv, args.token or config.tokens.default, args.period)
        return "send_concurrent_payments", {
            "payments": payments,
            "startNonceKey": args.start_key,
            "waitForConfirmation": not args.no_wait,
        }
    if args.command == "nonce":
        arguments: dict[str, Any] = {"nonceKey": args.key}
        if args.address:
            arguments["address"] = args.address
        return "get_nonce_for_key", arguments
    if args.command == "active-keys":
        return "list_active_nonce_keys", {"address": args.address} if args.address else {}
    raise CLIError(f"Unknown command: {args.command}")  # pragma: no cover - argparse enforces choices


def run(args: argparse.Namespace) -> dict[str, Any]:
    overrides = {
        key: value
        for key, value in (("rpc_url", args.rpc_url), ("wallet_address", args.wallet))
        if value
    }
    config = load_config(config_path=args.config, overrides=overrides)
    name, arguments = _tool_call(args, config)
    coordinator = BatchCoordinator.from_config(config)
    return asyncio.run(call_tool(name, coordinator, config, arguments))


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        output = run(args)
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
        return
    except (CLIError, ConfigurationError, TempoError, RPCError, RPCTransportError) as exc:
        parser.exit(1, f"error: {exc}\n")
    print(json.dumps(output, indent=2))
    if "error" in output:
        parser.exit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
