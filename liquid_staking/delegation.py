"""Delegation manager: moves reserve into a validator's stake."""

import logging
from dataclasses import replace

from liquid_staking.admin import require_authority
from liquid_staking.arithmetic import checked_add, checked_sub
from liquid_staking.errors import InsufficientLiquidity, InvalidAmount, ValidatorInactive
from liquid_staking.formatters import format_sol
from liquid_staking.models import StakeRecord, StakingPool, ValidatorInfo

logger = logging.getLogger(__name__)


def stake_to_validator(
    pool: StakingPool,
    validator: ValidatorInfo,
    amount: int,
    caller: str,
    *,
    epoch: int = 0,
) -> tuple[StakingPool, ValidatorInfo]:
    """
    Delegate `amount` from the liquid reserve to `validator`.

    Accounting is optimistic: the amount counts as staked immediately even
    though the staking side only activates it at the next epoch boundary.
    Nothing here is rolled back if activation is late.
    """
    require_authority(pool, caller)
    if amount <= 0:
        raise InvalidAmount("Stake amount must be > 0")
    if amount > pool.liquid_reserve:
        raise InsufficientLiquidity(
            f"Cannot stake {format_sol(amount)}; liquid reserve is {format_sol(pool.liquid_reserve)}"
        )
    if not validator.is_active:
        raise ValidatorInactive(f"Validator {validator.index} ({validator.vote_target}) is not active")

    new_pool = replace(
        pool,
        liquid_reserve=checked_sub(pool.liquid_reserve, amount),
        staked_balance=checked_add(pool.staked_balance, amount),
    )
    new_validator = replace(
        validator,
        total_delegated=checked_add(validator.total_delegated, amount),
        last_update_epoch=epoch,
    )
    logger.info("Delegated %s to validator %d (%s)", format_sol(amount), validator.index, validator.vote_target)
    return new_pool, new_validator


def new_stake_record(
    address: str, validator: ValidatorInfo, amount: int, *, slot: int, activation_epoch: int
) -> StakeRecord:
    """Stake record for a fresh delegation: requested now, nothing reconciled yet."""
    return StakeRecord(
        address=address,
        validator_index=validator.index,
        vote_target=validator.vote_target,
        requested_amount=amount,
        reconciled_amount=0,
        created_slot=slot,
        activation_epoch=activation_epoch,
    )
