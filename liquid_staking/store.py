"""Persistence of engine state between CLI invocations."""

import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from liquid_staking.constants import STATE_DIR_NAME, STATE_FILE_NAME, STATE_VERSION
from liquid_staking.engine import StakingPoolEngine
from liquid_staking.ledger import Delegation, InMemoryStaking, InMemoryTokenLedger, InMemoryValueLedger, ManualClock
from liquid_staking.models import StakeRecord, StakingPool, ValidatorInfo
from liquid_staking.registry import ValidatorRegistry


def get_state_dir() -> Path:
    """
    Get the state directory path.

    LIQUID_STAKING_STATE_DIR wins; otherwise XDG_STATE_HOME if available, otherwise ~/.local/state.
    """
    override = os.getenv("LIQUID_STAKING_STATE_DIR")
    if override:
        state_dir = Path(override)
    else:
        state_home = os.getenv("XDG_STATE_HOME")
        base = Path(state_home) if state_home else Path.home() / ".local" / "state"
        state_dir = base / STATE_DIR_NAME
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def default_state_path() -> Path:
    return get_state_dir() / STATE_FILE_NAME


def clear_state(path: Path | None = None) -> None:
    """Delete the persisted pool state."""
    state_file = path or default_state_path()
    if state_file.exists():
        state_file.unlink()
        print("✅ Pool state cleared successfully.", file=sys.stderr)
    else:
        print("ℹ️  State file does not exist (nothing to clear).", file=sys.stderr)


def engine_to_dict(engine: StakingPoolEngine) -> dict[str, Any]:
    """Serialise an engine backed by the in-memory collaborators."""
    if not isinstance(engine.values, InMemoryValueLedger) or not isinstance(engine.tokens, InMemoryTokenLedger):
        raise TypeError("only engines backed by in-memory ledgers can be persisted")
    if not isinstance(engine.staking, InMemoryStaking) or not isinstance(engine.clock, ManualClock):
        raise TypeError("only engines backed by in-memory staking and a manual clock can be persisted")
    return {
        "version": STATE_VERSION,
        "custody": engine.custody,
        "pool": asdict(engine.pool) if engine.pool is not None else None,
        "validators": [asdict(v) for v in engine.registry],
        "stake_records": [asdict(r) for r in engine.stake_records.values()],
        "values": engine.values.to_dict(),
        "tokens": engine.tokens.to_dict(),
        "delegations": engine.staking.to_dict(),
        "clock": {"current_slot": engine.clock.current_slot, "slots_per_epoch": engine.clock.slots_per_epoch},
    }


def engine_from_dict(data: dict[str, Any]) -> StakingPoolEngine:
    """Rebuild an engine from `engine_to_dict` output. Raises ValueError on a version mismatch."""
    version = data.get("version")
    if version != STATE_VERSION:
        raise ValueError(f"Unsupported state version: {version} (expected {STATE_VERSION})")

    values = InMemoryValueLedger(data.get("values"))
    delegations = {addr: Delegation(**d) for addr, d in (data.get("delegations") or {}).items()}
    records = [StakeRecord(**r) for r in data.get("stake_records", [])]
    pool_data = data.get("pool")
    return StakingPoolEngine(
        tokens=InMemoryTokenLedger(data.get("tokens")),
        values=values,
        staking=InMemoryStaking(values, delegations),
        clock=ManualClock(**data.get("clock", {})),
        pool=StakingPool(**pool_data) if pool_data is not None else None,
        registry=ValidatorRegistry(entries=tuple(ValidatorInfo(**v) for v in data.get("validators", []))),
        stake_records={r.address: r for r in records},
        custody=data.get("custody"),
    )


def load_engine(path: Path | None = None) -> StakingPoolEngine:
    """Load the persisted engine, or a fresh one if nothing has been saved yet."""
    state_file = path or default_state_path()
    if not state_file.exists():
        return StakingPoolEngine()
    with state_file.open("r", encoding="utf-8") as f:
        return engine_from_dict(json.load(f))


def save_engine(engine: StakingPoolEngine, path: Path | None = None) -> Path:
    """Write the engine state atomically (temp file + rename)."""
    state_file = path or default_state_path()
    state_file.parent.mkdir(parents=True, exist_ok=True)
    tmp = state_file.with_suffix(state_file.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(engine_to_dict(engine), f, ensure_ascii=False, indent=2, sort_keys=True)
    tmp.replace(state_file)
    return state_file
