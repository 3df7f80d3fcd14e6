"""CLI and main logic."""

import argparse
import json
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from tqdm import tqdm

from liquid_staking.constants import MIN_DEPOSIT_LAMPORTS
from liquid_staking.console import print_operation_result, print_pool_summary, print_rebalance_advice
from liquid_staking.engine import StakingPoolEngine
from liquid_staking.errors import InvalidAmount, StakingPoolError
from liquid_staking.formatters import as_int, format_sol, parse_sol_amount
from liquid_staking.models import OperationResult
from liquid_staking.store import clear_state, default_state_path, load_engine, save_engine


def _amount(value: Any) -> int:
    return value if isinstance(value, int) else parse_sol_amount(str(value))


def accrue_rewards(engine: StakingPoolEngine, validator_index: int, amount: int) -> str:
    """Simulate validator rewards by crediting the validator's newest stake record."""
    engine.registry.get(validator_index)
    records = engine.records_for(validator_index)
    if not records:
        raise InvalidAmount(f"Validator {validator_index} has no stake records to accrue rewards on")
    target = max(records, key=lambda r: r.created_slot)
    engine.values.fund(target.address, amount)
    return target.address


def _harvest(engine: StakingPoolEngine, op: dict[str, Any]) -> OperationResult:
    reader = None
    rpc_url = op.get("rpc_url")
    if rpc_url:
        from liquid_staking.onchain import Web3StakeReader, connect  # pylint: disable=import-outside-toplevel

        reader = Web3StakeReader(connect(rpc_url))
    return engine.harvest_rewards(op["caller"], as_int(op["validator"]), balance_reader=reader)


def _fund(engine: StakingPoolEngine, op: dict[str, Any]) -> None:
    engine.values.fund(op["account"], _amount(op["amount"]))


def _accrue(engine: StakingPoolEngine, op: dict[str, Any]) -> None:
    accrue_rewards(engine, as_int(op["validator"]), _amount(op["amount"]))


def _advance(engine: StakingPoolEngine, op: dict[str, Any]) -> None:
    engine.clock.advance(as_int(op.get("slots", 1)))


# Every operation the CLI and `replay` understand, keyed by name.
OPERATIONS: dict[str, Callable[[StakingPoolEngine, dict[str, Any]], OperationResult | None]] = {
    "init": lambda e, op: e.initialize_pool(
        op["authority"], min_deposit=_amount(op.get("min_deposit", MIN_DEPOSIT_LAMPORTS))
    ),
    "add-validator": lambda e, op: e.add_validator(op["caller"], op["vote_target"], as_int(op["allocation"])),
    "deposit": lambda e, op: e.deposit_sol(op["user"], _amount(op["amount"])),
    "withdraw": lambda e, op: e.withdraw_sol(op["user"], _amount(op["amount"]), instant=not op.get("delayed", False)),
    "stake": lambda e, op: e.stake_to_validator(
        op["caller"],
        as_int(op["validator"]),
        _amount(op["amount"]),
        slot=as_int(op["slot"]) if op.get("slot") is not None else None,
    ),
    "update-rewards": lambda e, op: e.update_rewards(op["caller"], _amount(op["amount"])),
    "harvest": _harvest,
    "rebalance": lambda e, op: e.rebalance_pool(),
    "withdraw-fees": lambda e, op: e.withdraw_protocol_fees(op["caller"], _amount(op["amount"])),
    "fund": _fund,
    "accrue": _accrue,
    "advance": _advance,
}


def run_operation(engine: StakingPoolEngine, op: dict[str, Any]) -> OperationResult | None:
    """Apply one operation dict ({"op": name, ...args}); each applied operation advances the clock one slot."""
    name = op.get("op")
    handler = OPERATIONS.get(name)
    if handler is None:
        raise ValueError(f"Unknown operation: {name!r}")
    result = handler(engine, op)
    if name != "advance":
        engine.clock.advance(1)
    return result


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Liquid staking pool accounting: deposits, delegation, rewards, fees.")
    p.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Path of the pool state file. Default: $LIQUID_STAKING_STATE_DIR or the XDG state directory.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log every ledger mutation to stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("init", help="Initialize the pool (once).")
    s.add_argument("--authority", required=True)
    s.add_argument("--min-deposit", default=None, help="Minimum deposit in lamports (or e.g. 0.001sol).")

    s = sub.add_parser("fund", help="Credit an account with base asset (local ledger only).")
    s.add_argument("account")
    s.add_argument("amount", help="Lamports, or SOL with a `sol` suffix (e.g. 1.5sol).")

    s = sub.add_parser("add-validator", help="Register a validator slot (authority only).")
    s.add_argument("--caller", required=True)
    s.add_argument("vote_target")
    s.add_argument("allocation", help="Target share of delegated capital, 0-100.")

    s = sub.add_parser("deposit", help="Deposit base asset for receipt tokens.")
    s.add_argument("--user", required=True)
    s.add_argument("amount")

    s = sub.add_parser("withdraw", help="Burn receipt tokens for base asset.")
    s.add_argument("--user", required=True)
    s.add_argument("amount", help="Receipt units to burn.")
    s.add_argument("--delayed", action="store_true", help="Request the delayed path (not available yet).")

    s = sub.add_parser("stake", help="Delegate reserve to a validator (authority only).")
    s.add_argument("--caller", required=True)
    s.add_argument("validator", help="Validator registry index.")
    s.add_argument("amount")
    s.add_argument("--slot", default=None, help="Slot hint for the stake record. Default: current clock slot.")

    s = sub.add_parser("accrue", help="Simulate rewards on a validator's newest stake record (local ledger only).")
    s.add_argument("validator")
    s.add_argument("amount")

    s = sub.add_parser("update-rewards", help="Book rewards observed off-line (authority only).")
    s.add_argument("--caller", required=True)
    s.add_argument("amount")

    s = sub.add_parser("harvest", help="Reconcile a validator against its live stake balance (authority only).")
    s.add_argument("--caller", required=True)
    s.add_argument("validator")
    s.add_argument(
        "--rpc-url",
        default=None,
        help="Read stake balances from this RPC endpoint instead of the local ledger.",
    )
    s.add_argument("--onchain", action="store_true", help="Use the RPC endpoint from the environment.")

    sub.add_parser("rebalance", help="Show how far the reserve is from its target ratio.")

    s = sub.add_parser("withdraw-fees", help="Release protocol fees to the authority (authority only).")
    s.add_argument("--caller", required=True)
    s.add_argument("amount")

    s = sub.add_parser("advance", help="Advance the local clock.")
    s.add_argument("slots", nargs="?", default="1")

    sub.add_parser("show", help="Print the pool, validators and stake records.")

    s = sub.add_parser("replay", help="Apply a JSON list of operations in order.")
    s.add_argument("file", type=Path)

    sub.add_parser("reset", help="Delete the persisted pool state.")
    return p.parse_args(argv)


def _op_from_args(args: argparse.Namespace) -> dict[str, Any]:
    op = {k: v for k, v in vars(args).items() if k not in ("command", "state", "verbose", "onchain") and v is not None}
    if args.command == "harvest" and args.onchain and not args.rpc_url:
        op["rpc_url"] = os.getenv("SOLANA_RPC_URL") or os.getenv("ETH_RPC_URL")
        if not op["rpc_url"]:
            raise ValueError("--onchain needs --rpc-url, SOLANA_RPC_URL or ETH_RPC_URL")
    op["op"] = args.command
    return op


def replay(engine: StakingPoolEngine, ops: list[dict[str, Any]], *, stop_on_error: bool = False) -> list[str]:
    """Apply `ops` in order. Failed operations are reported and skipped unless stop_on_error is set."""
    failures: list[str] = []
    with tqdm(ops, desc="🔁 Replaying operations", unit="op", file=sys.stderr) as pbar:
        for i, op in enumerate(pbar):
            name = op.get("op") if isinstance(op, dict) else None
            pbar.set_postfix(op=name)
            try:
                if not isinstance(op, dict):
                    raise ValueError(f"operation must be a JSON object, got {type(op).__name__}")
                run_operation(engine, op)
            except KeyError as ex:
                failures.append(f"#{i} {name}: missing field {ex}")
            except (StakingPoolError, ValueError, TypeError, ConnectionError) as ex:
                failures.append(f"#{i} {name}: {ex}")
            else:
                continue
            tqdm.write(f"⚠️  {failures[-1]}", file=sys.stderr)
            if stop_on_error:
                break
    return failures


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    state_path = args.state or default_state_path()

    if args.command == "reset":
        clear_state(state_path)
        return 0

    try:
        engine = load_engine(state_path)
    except (OSError, ValueError) as ex:
        print(f"Error: failed to load pool state from {state_path}: {ex}", file=sys.stderr)
        return 2

    if args.command == "show":
        try:
            snapshot = engine.snapshot()
        except StakingPoolError as ex:
            print(f"❌ {ex}", file=sys.stderr)
            return 1
        custody_balance = engine.values.balance_of(engine.custody)
        print_pool_summary(snapshot, custody_balance=custody_balance, epoch=engine.clock.epoch())
        return 0

    if args.command == "replay":
        try:
            ops = json.loads(args.file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as ex:
            print(f"Error: cannot read operations from {args.file}: {ex}", file=sys.stderr)
            return 2
        if not isinstance(ops, list):
            print(f"Error: {args.file} must contain a JSON list of operations", file=sys.stderr)
            return 2
        failures = replay(engine, ops)
        save_engine(engine, state_path)
        print(f"ℹ️ Applied {len(ops) - len(failures)}/{len(ops)} operations.", file=sys.stderr)
        return 1 if failures else 0

    try:
        op = _op_from_args(args)
    except ValueError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2

    before = engine.pool
    try:
        result = run_operation(engine, op)
    except StakingPoolError as ex:
        print(f"❌ {ex}", file=sys.stderr)
        return 1
    except (ValueError, ConnectionError) as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2
    save_engine(engine, state_path)

    if result is None:
        if args.command == "fund":
            print(f"✅ Funded {args.account} (balance {format_sol(engine.values.balance_of(args.account))})")
        else:
            print(f"✅ {args.command} applied")
        return 0
    if args.command == "rebalance":
        print_rebalance_advice(result.details["advice"], result.details["plan"])
        return 0
    print_operation_result(result, before=before)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
