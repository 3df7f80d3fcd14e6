"""Administrative operations: pool creation, validator slots, fee withdrawal."""

import logging
from dataclasses import replace

from liquid_staking.arithmetic import checked_add, checked_sub
from liquid_staking.constants import (
    DEFAULT_PROTOCOL_FEE_BPS,
    DEFAULT_TARGET_RESERVE_RATIO,
    INITIAL_EXCHANGE_RATE,
    MIN_DEPOSIT_LAMPORTS,
    PERCENT,
)
from liquid_staking.errors import (
    AlreadyInitialized,
    InsufficientFunds,
    InvalidAllocation,
    InvalidAmount,
    Unauthorized,
)
from liquid_staking.formatters import format_sol
from liquid_staking.models import StakingPool, ValidatorInfo
from liquid_staking.registry import ValidatorRegistry

logger = logging.getLogger(__name__)


def require_authority(pool: StakingPool, caller: str) -> None:
    """Plain identity comparison; there is no role hierarchy."""
    if caller != pool.authority:
        raise Unauthorized(f"Caller {caller} is not the pool authority")


def initialize_pool(
    authority: str,
    receipt_mint: str,
    *,
    existing: StakingPool | None = None,
    min_deposit: int = MIN_DEPOSIT_LAMPORTS,
) -> StakingPool:
    """Create the pool with its fixed starting configuration."""
    if existing is not None:
        raise AlreadyInitialized(f"Pool already initialized with authority {existing.authority}")
    pool = StakingPool(
        authority=authority,
        receipt_mint=receipt_mint,
        exchange_rate=INITIAL_EXCHANGE_RATE,
        protocol_fee_bps=DEFAULT_PROTOCOL_FEE_BPS,
        target_reserve_ratio=DEFAULT_TARGET_RESERVE_RATIO,
        min_deposit=min_deposit,
    )
    logger.info("Liquid staking pool initialized (authority=%s)", authority)
    logger.info("Target reserve ratio: %d%%", pool.target_reserve_ratio)
    return pool


def add_validator(
    pool: StakingPool,
    registry: ValidatorRegistry,
    caller: str,
    vote_target: str,
    allocation_percentage: int,
    *,
    epoch: int = 0,
) -> tuple[StakingPool, ValidatorRegistry, ValidatorInfo]:
    """Open the next registry slot for `vote_target`."""
    require_authority(pool, caller)
    if not 0 <= allocation_percentage <= PERCENT:
        raise InvalidAllocation(f"Allocation {allocation_percentage}% is outside 0-{PERCENT}")

    info = ValidatorInfo(
        index=pool.validator_count,
        vote_target=vote_target,
        allocation_percentage=allocation_percentage,
        last_update_epoch=epoch,
    )
    # Raises ValidatorCapacityExceeded once the registry is full.
    new_registry = registry.append(info)
    new_pool = replace(pool, validator_count=checked_add(pool.validator_count, 1))

    logger.info("Added validator %s at slot %d (allocation %d%%)", vote_target, info.index, allocation_percentage)
    return new_pool, new_registry, info


def withdraw_protocol_fees(pool: StakingPool, caller: str, amount: int) -> StakingPool:
    """Release `amount` of accrued protocol fees to the authority."""
    require_authority(pool, caller)
    if amount <= 0:
        raise InvalidAmount("Fee withdrawal amount must be > 0")
    if amount > pool.protocol_fees_earned:
        raise InsufficientFunds(
            f"Requested {amount} but only {pool.protocol_fees_earned} in protocol fees are available"
        )
    new_pool = replace(pool, protocol_fees_earned=checked_sub(pool.protocol_fees_earned, amount))
    logger.info("Withdrew %s protocol fees", format_sol(amount))
    return new_pool


def release_validator_fees(validator: ValidatorInfo, amount: int) -> ValidatorInfo:
    """Take `amount` of harvested fees out of the validator's delegated capital."""
    if amount > validator.fees_held:
        raise InsufficientFunds(f"Validator {validator.index} holds only {validator.fees_held} in harvested fees")
    return replace(
        validator,
        total_delegated=checked_sub(validator.total_delegated, amount),
        fees_held=checked_sub(validator.fees_held, amount),
    )
