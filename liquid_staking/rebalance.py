"""Rebalancer: advisory reserve/stake moves. Nothing in here mutates state."""

from liquid_staking.constants import PERCENT
from liquid_staking.models import DelegationPlan, RebalanceAdvice, StakingPool
from liquid_staking.registry import ValidatorRegistry


def rebalance_pool(pool: StakingPool) -> RebalanceAdvice:
    """
    Compare the liquid reserve with `target_reserve_ratio`% of total backing.

    An excess is a candidate for delegation (through stake_to_validator); a
    shortfall is a candidate for unstaking, which is only reported.
    """
    total = pool.liquid_reserve + pool.staked_balance
    target_liquid = total * pool.target_reserve_ratio // PERCENT
    current_ratio = pool.liquid_reserve * PERCENT // total if total > 0 else 0
    delta = pool.liquid_reserve - target_liquid

    if delta > 0:
        direction = "stake"
    elif delta < 0:
        direction = "unstake"
    else:
        direction = "hold"

    return RebalanceAdvice(
        direction=direction,
        amount=abs(delta),
        delta=delta,
        target_liquid=target_liquid,
        total_backing=total,
        current_reserve_ratio=current_ratio,
        target_reserve_ratio=pool.target_reserve_ratio,
    )


def plan_delegations(registry: ValidatorRegistry, amount: int) -> DelegationPlan:
    """
    Split `amount` across active validators by allocation percentage.

    Allocations are filled greedily in registry order; percentages need not sum
    to 100. Rounding dust goes to the first active validator with a non-zero
    allocation, and anything no validator claims is reported as undelegated.
    """
    active = [v for v in registry.active() if v.allocation_percentage > 0]
    if amount <= 0 or not active:
        return DelegationPlan(allocations=(), undelegated=max(amount, 0))

    remaining = amount
    shares: list[list[int]] = []
    for v in active:
        share = min(remaining, amount * v.allocation_percentage // PERCENT)
        shares.append([v.index, share])
        remaining -= share
        if remaining == 0:
            break

    claimed_pct = sum(v.allocation_percentage for v in active)
    if remaining > 0 and claimed_pct >= PERCENT:
        shares[0][1] += remaining
        remaining = 0

    allocations = tuple((index, share) for index, share in shares if share > 0)
    return DelegationPlan(allocations=allocations, undelegated=remaining)
