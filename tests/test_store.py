import json

import pytest

from liquid_staking.constants import STATE_DIR_NAME
from liquid_staking.engine import StakingPoolEngine
from liquid_staking.ledger import InMemoryValueLedger
from liquid_staking.store import clear_state, engine_to_dict, get_state_dir, load_engine, save_engine


def _engine() -> StakingPoolEngine:
    engine = StakingPoolEngine()
    engine.initialize_pool("authority")
    engine.values.fund("alice", 5_000_000_000)
    engine.deposit_sol("alice", 3_000_000_000)
    engine.add_validator("authority", "vote-1", 100)
    engine.stake_to_validator("authority", 0, 2_000_000_000, slot=42)
    engine.update_rewards("authority", 100_000_000)
    return engine


def test_state_survives_a_round_trip(tmp_path):
    engine = _engine()
    path = save_engine(engine, tmp_path / "state.json")

    loaded = load_engine(path)

    assert loaded.snapshot() == engine.snapshot()
    assert loaded.custody == engine.custody
    assert loaded.values.balance_of("alice") == 2_000_000_000
    assert loaded.tokens.balance_of(engine.pool.receipt_mint, "alice") == 3_000_000_000
    assert loaded.staking.delegations == engine.staking.delegations
    assert loaded.clock.slot() == engine.clock.slot()
    # The loaded engine keeps working against its restored ledgers.
    loaded.withdraw_sol("alice", 100_000_000)


def test_missing_state_file_gives_a_fresh_engine(tmp_path):
    engine = load_engine(tmp_path / "nothing.json")
    assert engine.pool is None
    assert len(engine.registry) == 0


def test_uninitialized_engine_can_be_saved(tmp_path):
    path = save_engine(StakingPoolEngine(), tmp_path / "state.json")
    assert json.loads(path.read_text(encoding="utf-8"))["pool"] is None
    assert load_engine(path).pool is None


def test_version_mismatch_is_rejected(tmp_path):
    path = save_engine(_engine(), tmp_path / "state.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    data["version"] = "0"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported state version"):
        load_engine(path)


def test_only_in_memory_engines_are_persisted():
    class Values(InMemoryValueLedger):
        pass

    class Tokens:
        def balance_of(self, mint_id, owner):
            return 0

    engine = StakingPoolEngine(values=Values(), tokens=Tokens())
    with pytest.raises(TypeError):
        engine_to_dict(engine)


def test_state_dir_honours_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LIQUID_STAKING_STATE_DIR", str(tmp_path / "explicit"))
    assert get_state_dir() == tmp_path / "explicit"

    monkeypatch.delenv("LIQUID_STAKING_STATE_DIR")
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg"))
    assert get_state_dir() == tmp_path / "xdg" / STATE_DIR_NAME
    assert get_state_dir().is_dir()


def test_clear_state(tmp_path, capsys):
    path = save_engine(_engine(), tmp_path / "state.json")
    clear_state(path)
    assert not path.exists()
    assert "cleared" in capsys.readouterr().err

    clear_state(path)
    assert "nothing to clear" in capsys.readouterr().err
