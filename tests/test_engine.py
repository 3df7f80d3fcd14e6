import pytest

from liquid_staking.engine import StakingPoolEngine
from liquid_staking.errors import (
    DuplicateStakeRecord,
    InsufficientFunds,
    InsufficientLiquidity,
    InvalidValidatorIndex,
    NotInitialized,
    Unauthorized,
    ValidatorCapacityExceeded,
)
from liquid_staking.onchain import derive_stake_record_address

AUTH = "authority"
ALICE = "alice"


def _engine_with_stake() -> StakingPoolEngine:
    """Pool with 3 SOL deposited by alice and 2 SOL staked to validator #0 at slot 10."""
    engine = StakingPoolEngine()
    engine.initialize_pool(AUTH)
    engine.values.fund(ALICE, 5_000_000_000)
    engine.deposit_sol(ALICE, 3_000_000_000)
    engine.add_validator(AUTH, "vote-1", 100)
    engine.stake_to_validator(AUTH, 0, 2_000_000_000, slot=10)
    return engine


def test_operations_require_initialized_pool():
    engine = StakingPoolEngine()
    with pytest.raises(NotInitialized):
        engine.deposit_sol(ALICE, 1_000_000)
    with pytest.raises(NotInitialized):
        engine.snapshot()


def test_deposit_moves_value_and_mints_receipts():
    engine = StakingPoolEngine()
    engine.initialize_pool(AUTH)
    engine.values.fund(ALICE, 5_000_000_000)

    result = engine.deposit_sol(ALICE, 3_000_000_000)

    pool = result.snapshot.pool
    assert result.details["receipt_units"] == 3_000_000_000
    assert engine.values.balance_of(ALICE) == 2_000_000_000
    assert engine.values.balance_of(engine.custody) == 3_000_000_000
    assert engine.tokens.balance_of(pool.receipt_mint, ALICE) == 3_000_000_000
    assert engine.tokens.supply(pool.receipt_mint) == pool.receipt_supply


def test_failed_deposit_changes_nothing():
    engine = StakingPoolEngine()
    engine.initialize_pool(AUTH)
    engine.values.fund(ALICE, 1_000_000)
    before = engine.snapshot()

    with pytest.raises(InsufficientFunds):
        engine.deposit_sol(ALICE, 2_000_000)

    assert engine.snapshot() == before
    assert engine.values.balance_of(ALICE) == 1_000_000
    assert engine.tokens.balance_of(before.pool.receipt_mint, ALICE) == 0


def test_stake_creates_record_and_moves_custody():
    engine = _engine_with_stake()
    address = derive_stake_record_address(AUTH, 10)

    record = engine.stake_records[address]
    assert record.requested_amount == 2_000_000_000
    assert record.reconciled_amount == 0
    assert record.activation_epoch == engine.clock.epoch() + 1
    assert engine.values.balance_of(address) == 2_000_000_000
    assert engine.values.balance_of(engine.custody) == 1_000_000_000
    assert engine.staking.delegations[address].vote_target == "vote-1"
    assert engine.registry.get(0).total_delegated == 2_000_000_000


def test_stake_with_reused_slot_is_rejected_atomically():
    engine = _engine_with_stake()
    before = engine.snapshot()
    with pytest.raises(DuplicateStakeRecord):
        engine.stake_to_validator(AUTH, 0, 100_000_000, slot=10)
    assert engine.snapshot() == before
    assert engine.values.balance_of(engine.custody) == 1_000_000_000


def test_stake_checks_authority_before_validator_lookup():
    engine = _engine_with_stake()
    with pytest.raises(Unauthorized):
        engine.stake_to_validator("mallory", 7, 1)
    with pytest.raises(InvalidValidatorIndex):
        engine.stake_to_validator(AUTH, 7, 1)
    with pytest.raises(InsufficientLiquidity):
        engine.stake_to_validator(AUTH, 0, 1_000_000_001, slot=11)


def test_harvest_reconciles_live_stake_balance():
    engine = _engine_with_stake()
    address = derive_stake_record_address(AUTH, 10)
    engine.values.fund(address, 100_000_000)  # rewards land on the stake record

    result = engine.harvest_rewards(AUTH, 0)

    pool = result.snapshot.pool
    assert result.details["rewards_earned"] == 100_000_000
    assert result.details["protocol_fee"] == 10_000_000
    assert pool.protocol_fees_earned == 10_000_000
    assert pool.staked_balance == 2_090_000_000
    assert pool.exchange_rate == 1_030_000_000
    assert engine.registry.get(0).total_delegated == 2_100_000_000
    assert engine.stake_records[address].reconciled_amount == 2_100_000_000

    # Nothing new on the second pass.
    again = engine.harvest_rewards(AUTH, 0)
    assert again.details["rewards_earned"] == 0
    assert again.snapshot.pool == pool


def test_harvest_reports_loss_without_touching_state():
    engine = _engine_with_stake()
    address = derive_stake_record_address(AUTH, 10)
    engine.values.transfer(address, "elsewhere", 500_000_000)
    before = engine.snapshot()

    result = engine.harvest_rewards(AUTH, 0)

    assert result.details["shortfall"] == 500_000_000
    assert result.snapshot == before


def test_harvest_with_external_balance_reader():
    class Reader:
        def stake_balance(self, address):
            return 2_200_000_000

    engine = _engine_with_stake()
    result = engine.harvest_rewards(AUTH, 0, balance_reader=Reader())
    assert result.details["rewards_earned"] == 200_000_000


def test_withdraw_pays_user_from_custody():
    engine = _engine_with_stake()
    mint = engine.pool.receipt_mint

    result = engine.withdraw_sol(ALICE, 500_000_000)

    assert result.details["net"] == 498_500_000
    assert engine.values.balance_of(ALICE) == 2_000_000_000 + 498_500_000
    assert engine.tokens.balance_of(mint, ALICE) == 2_500_000_000
    assert engine.values.balance_of(engine.custody) == result.snapshot.pool.liquid_reserve


def test_withdraw_needs_receipts_held_by_caller():
    engine = _engine_with_stake()
    with pytest.raises(InsufficientFunds):
        engine.withdraw_sol("bob", 1_000_000)


def test_harvested_fees_are_paid_out_of_stake():
    engine = _engine_with_stake()
    address = derive_stake_record_address(AUTH, 10)
    engine.values.fund(address, 100_000_000)
    engine.harvest_rewards(AUTH, 0)
    assert engine.registry.get(0).fees_held == 10_000_000

    result = engine.withdraw_protocol_fees(AUTH, 10_000_000)

    pool = result.snapshot.pool
    assert result.details["from_stake"] == 10_000_000
    assert result.details["from_custody"] == 0
    assert pool.protocol_fees_earned == 0
    assert engine.values.balance_of(AUTH) == 10_000_000
    assert engine.values.balance_of(engine.custody) == pool.liquid_reserve
    assert engine.values.balance_of(address) == 2_090_000_000
    assert engine.registry.get(0).total_delegated == 2_090_000_000
    assert engine.registry.get(0).fees_held == 0
    assert engine.stake_records[address].reconciled_amount == 2_090_000_000

    # The whole reserve is still there for holders.
    payout = engine.withdraw_sol(ALICE, 970_000_000)
    assert payout.details["net"] == 996_102_700

    # Pulling the fee out of stake is not mistaken for a loss or a reward.
    again = engine.harvest_rewards(AUTH, 0)
    assert again.details["shortfall"] == 0
    assert again.details["rewards_earned"] == 0


def test_booked_fees_need_spare_custody():
    engine = _engine_with_stake()
    engine.update_rewards(AUTH, 100_000_000)
    before = engine.snapshot()

    # Nothing backs these fees, and the reserve belongs to holders.
    with pytest.raises(InsufficientFunds):
        engine.withdraw_protocol_fees(AUTH, 10_000_000)
    assert engine.snapshot() == before
    assert engine.values.balance_of(engine.custody) == before.pool.liquid_reserve

    engine.values.fund(engine.custody, 10_000_000)
    result = engine.withdraw_protocol_fees(AUTH, 10_000_000)

    assert result.details["from_custody"] == 10_000_000
    assert engine.values.balance_of(AUTH) == 10_000_000
    assert engine.values.balance_of(engine.custody) == result.snapshot.pool.liquid_reserve
    with pytest.raises(InsufficientFunds):
        engine.withdraw_protocol_fees(AUTH, 1)


def test_rebalance_is_advisory():
    engine = _engine_with_stake()
    engine.update_rewards(AUTH, 100_000_000)
    before = engine.snapshot()

    result = engine.rebalance_pool()

    advice = result.details["advice"]
    assert advice.direction == "stake"
    assert advice.target_liquid == 927_000_000
    assert advice.amount == 73_000_000
    assert result.details["plan"].allocations == ((0, 73_000_000),)
    assert engine.snapshot() == before


def test_eleventh_validator_is_rejected():
    engine = StakingPoolEngine()
    engine.initialize_pool(AUTH)
    for i in range(10):
        engine.add_validator(AUTH, f"vote-{i}", 10)
    with pytest.raises(ValidatorCapacityExceeded):
        engine.add_validator(AUTH, "vote-10", 10)
    assert engine.pool.validator_count == 10
