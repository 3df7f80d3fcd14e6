"""Invariant checks for pool, registry and stake-record state."""

from collections.abc import Iterable

from liquid_staking.constants import MAX_VALIDATORS, PERCENT, TOTAL_BASIS_POINTS, U64_MAX
from liquid_staking.models import StakeRecord, StakingPool
from liquid_staking.rate import compute_exchange_rate
from liquid_staking.registry import ValidatorRegistry


def validate_pool(pool: StakingPool, *, warn_only: bool = False) -> list[str]:
    """
    Validate pool ledger invariants.

    Returns list of validation issues. If warn_only=False, raises ValueError on the first one.
    """
    issues: list[str] = []

    def report(msg: str) -> None:
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    # 1. Every stored balance is an unsigned 64-bit value.
    u64_fields = {
        "total_deposited": pool.total_deposited,
        "receipt_supply": pool.receipt_supply,
        "liquid_reserve": pool.liquid_reserve,
        "staked_balance": pool.staked_balance,
        "exchange_rate": pool.exchange_rate,
        "protocol_fees_earned": pool.protocol_fees_earned,
    }
    for name, value in u64_fields.items():
        if value < 0 or value > U64_MAX:
            report(f"Pool: {name} out of range: {value}")

    # 2. Configuration bounds.
    if not 0 <= pool.target_reserve_ratio <= PERCENT:
        report(f"Pool: target_reserve_ratio {pool.target_reserve_ratio} outside 0-{PERCENT}")
    if not 0 <= pool.protocol_fee_bps <= TOTAL_BASIS_POINTS:
        report(f"Pool: protocol_fee_bps {pool.protocol_fee_bps} outside 0-{TOTAL_BASIS_POINTS}")
    if not 0 <= pool.validator_count <= MAX_VALIDATORS:
        report(f"Pool: validator_count {pool.validator_count} outside 0-{MAX_VALIDATORS}")

    # 3. The stored rate never overstates backing. Deposits leave it alone, so it
    # may trail the recomputed value by rounding dust, but never exceed it.
    if pool.receipt_supply > 0 and not issues:
        backed_rate = compute_exchange_rate(pool.liquid_reserve, pool.staked_balance, pool.receipt_supply)
        if pool.exchange_rate > backed_rate:
            report(
                f"Pool: exchange_rate {pool.exchange_rate} exceeds backing rate {backed_rate} "
                f"(liquid={pool.liquid_reserve}, staked={pool.staked_balance}, supply={pool.receipt_supply})"
            )

    return issues


def validate_registry(
    pool: StakingPool,
    registry: ValidatorRegistry,
    stake_records: Iterable[StakeRecord] = (),
    *,
    warn_only: bool = True,
) -> list[str]:
    """
    Validate the registry against the pool and the stake records.

    Returns list of warnings. By default, only warns (doesn't raise) since the
    staking side moves between harvests.
    """
    issues: list[str] = []

    def report(msg: str) -> None:
        issues.append(msg)
        if not warn_only:
            raise ValueError(msg)

    if len(registry) != pool.validator_count:
        report(f"validator_count {pool.validator_count} != registry size {len(registry)}")

    for position, v in enumerate(registry):
        if v.index != position:
            report(f"Validator at position {position} carries index {v.index}")
        if not 0 <= v.allocation_percentage <= PERCENT:
            report(f"Validator {v.index}: allocation {v.allocation_percentage}% outside 0-{PERCENT}")
        if v.fees_held > v.total_delegated:
            report(f"Validator {v.index}: fees_held {v.fees_held} exceeds total_delegated {v.total_delegated}")

    # Fees parked in stake are a subset of what the protocol has earned and not yet withdrawn.
    fees_held = registry.fees_held()
    if fees_held > pool.protocol_fees_earned:
        report(f"Validators hold {fees_held} in fees but protocol_fees_earned is {pool.protocol_fees_earned}")

    requested_by_validator: dict[int, int] = {}
    for r in stake_records:
        previous = requested_by_validator.get(r.validator_index, 0)
        requested_by_validator[r.validator_index] = previous + r.requested_amount
    for index, requested in requested_by_validator.items():
        if index >= len(registry):
            report(f"Stake records reference unknown validator {index}")
            continue
        if requested > registry.entries[index].total_delegated:
            report(
                f"Validator {index}: stake records request {requested} "
                f"but only {registry.entries[index].total_delegated} is delegated"
            )

    return issues
