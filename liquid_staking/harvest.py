"""Reward harvester: recognises validator rewards and splits off the protocol fee."""

import logging
from dataclasses import replace

from liquid_staking.admin import require_authority
from liquid_staking.arithmetic import checked_add, checked_sub, mul_div
from liquid_staking.constants import TOTAL_BASIS_POINTS
from liquid_staking.errors import InvalidAmount
from liquid_staking.formatters import format_rate, format_sol
from liquid_staking.models import HarvestResult, RewardSplit, StakingPool, ValidatorInfo
from liquid_staking.rate import compute_exchange_rate

logger = logging.getLogger(__name__)


def split_rewards(rewards_earned: int, protocol_fee_bps: int) -> RewardSplit:
    """Protocol takes fee_bps / 10000 of the rewards (rounded down); holders get the rest."""
    protocol_fee = mul_div(rewards_earned, protocol_fee_bps, TOTAL_BASIS_POINTS)
    return RewardSplit(
        rewards_earned=rewards_earned,
        protocol_fee=protocol_fee,
        user_portion=checked_sub(rewards_earned, protocol_fee),
    )


def apply_rewards(pool: StakingPool, split: RewardSplit) -> StakingPool:
    """Book a reward split and recompute the rate; supply is untouched, so the rate rises."""
    staked_balance = checked_add(pool.staked_balance, split.user_portion)
    return replace(
        pool,
        staked_balance=staked_balance,
        protocol_fees_earned=checked_add(pool.protocol_fees_earned, split.protocol_fee),
        exchange_rate=compute_exchange_rate(pool.liquid_reserve, staked_balance, pool.receipt_supply),
    )


def update_rewards(pool: StakingPool, rewards_earned: int, caller: str) -> tuple[StakingPool, RewardSplit]:
    """Apply rewards observed and reported by the caller."""
    require_authority(pool, caller)
    if rewards_earned <= 0:
        raise InvalidAmount("Rewards must be > 0")

    split = split_rewards(rewards_earned, pool.protocol_fee_bps)
    new_pool = apply_rewards(pool, split)
    logger.info(
        "Rewards updated: %s total, %s to holders, %s protocol fee",
        format_sol(split.rewards_earned),
        format_sol(split.user_portion),
        format_sol(split.protocol_fee),
    )
    logger.info("New exchange rate: %s", format_rate(new_pool.exchange_rate))
    return new_pool, split


def harvest_rewards(
    pool: StakingPool,
    validator: ValidatorInfo,
    live_balance: int,
    caller: str,
    *,
    epoch: int = 0,
) -> tuple[StakingPool, ValidatorInfo, HarvestResult]:
    """
    Reconcile `validator` against the live balance of its stake.

    Anything above `total_delegated` is a reward. Both the fee and the holders'
    share stay attributed to the validator until the fee is withdrawn; the fee
    part is tracked in `fees_held` so it can be pulled back out later. A live
    balance below the bookkeeping is reported as a shortfall and left alone.
    """
    require_authority(pool, caller)
    delegated = validator.total_delegated

    if live_balance < delegated:
        shortfall = delegated - live_balance
        logger.warning(
            "Validator %d (%s) live balance %s is below delegated %s (shortfall %s); not applied",
            validator.index,
            validator.vote_target,
            format_sol(live_balance),
            format_sol(delegated),
            format_sol(shortfall),
        )
        result = HarvestResult(
            validator_index=validator.index,
            live_balance=live_balance,
            previously_delegated=delegated,
            split=None,
            shortfall=shortfall,
        )
        return pool, validator, result

    rewards_earned = live_balance - delegated
    if rewards_earned == 0:
        logger.info("No new rewards from validator %d yet", validator.index)
        result = HarvestResult(
            validator_index=validator.index, live_balance=live_balance, previously_delegated=delegated, split=None
        )
        return pool, validator, result

    split = split_rewards(rewards_earned, pool.protocol_fee_bps)
    new_pool = apply_rewards(pool, split)
    new_validator = replace(
        validator,
        total_delegated=checked_add(delegated, rewards_earned),
        fees_held=checked_add(validator.fees_held, split.protocol_fee),
        last_update_epoch=epoch,
    )
    logger.info("Found %s rewards from validator %d", format_sol(rewards_earned), validator.index)
    logger.info(
        "New exchange rate: %s; protocol earned %s", format_rate(new_pool.exchange_rate), format_sol(split.protocol_fee)
    )
    result = HarvestResult(
        validator_index=validator.index, live_balance=live_balance, previously_delegated=delegated, split=split
    )
    return new_pool, new_validator, result
