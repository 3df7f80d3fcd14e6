from dataclasses import replace

import pytest

from liquid_staking.models import StakingPool, ValidatorInfo
from liquid_staking.rebalance import plan_delegations, rebalance_pool
from liquid_staking.registry import ValidatorRegistry


def _pool(liquid: int, staked: int, ratio: int = 30) -> StakingPool:
    return StakingPool(
        authority="authority",
        receipt_mint="mint",
        liquid_reserve=liquid,
        staked_balance=staked,
        target_reserve_ratio=ratio,
    )


def _registry(*allocations: int) -> ValidatorRegistry:
    registry = ValidatorRegistry()
    for i, pct in enumerate(allocations):
        registry = registry.append(ValidatorInfo(index=i, vote_target=f"vote-{i}", allocation_percentage=pct))
    return registry


def test_excess_reserve_advises_staking():
    advice = rebalance_pool(_pool(1_000_000_000, 2_090_000_000))
    assert advice.direction == "stake"
    assert advice.total_backing == 3_090_000_000
    assert advice.target_liquid == 927_000_000
    assert advice.amount == 73_000_000
    assert advice.delta == 73_000_000
    assert advice.current_reserve_ratio == 32
    assert advice.target_reserve_ratio == 30


def test_thin_reserve_advises_unstaking():
    advice = rebalance_pool(_pool(500_000_000, 2_500_000_000))
    assert advice.direction == "unstake"
    assert advice.amount == 400_000_000
    assert advice.delta == -400_000_000
    assert advice.current_reserve_ratio == 16


@pytest.mark.parametrize(
    ("liquid", "staked"),
    [
        (0, 0),
        (300_000_000, 700_000_000),
    ],
)
def test_balanced_pool_holds(liquid, staked):
    advice = rebalance_pool(_pool(liquid, staked))
    assert advice.direction == "hold"
    assert advice.amount == 0


def test_empty_pool_reports_zero_ratio():
    advice = rebalance_pool(_pool(0, 0))
    assert advice.current_reserve_ratio == 0
    assert advice.total_backing == 0


def test_rebalance_does_not_touch_pool():
    pool = _pool(1_000_000_000, 2_090_000_000)
    before = replace(pool)
    rebalance_pool(pool)
    assert pool == before


def test_plan_splits_by_allocation():
    plan = plan_delegations(_registry(60, 40), 100)
    assert plan.allocations == ((0, 60), (1, 40))
    assert plan.undelegated == 0


def test_plan_gives_rounding_dust_to_first_validator():
    plan = plan_delegations(_registry(33, 33, 34), 10)
    assert plan.allocations == ((0, 4), (1, 3), (2, 3))
    assert plan.undelegated == 0


def test_plan_reports_unclaimed_amount():
    plan = plan_delegations(_registry(50), 100)
    assert plan.allocations == ((0, 50),)
    assert plan.undelegated == 50


def test_plan_skips_inactive_validators():
    registry = _registry(50, 50)
    registry = registry.replace(replace(registry.get(0), is_active=False))
    plan = plan_delegations(registry, 100)
    assert plan.allocations == ((1, 50),)
    assert plan.undelegated == 50


@pytest.mark.parametrize("amount", [0, -10])
def test_plan_with_nothing_to_delegate(amount):
    plan = plan_delegations(_registry(100), amount)
    assert plan.allocations == ()
    assert plan.undelegated == 0


def test_plan_without_validators_leaves_everything_undelegated():
    plan = plan_delegations(ValidatorRegistry(), 1_000)
    assert plan.allocations == ()
    assert plan.undelegated == 1_000
