"""Deposit and withdrawal accounting."""

import logging
from dataclasses import replace

from liquid_staking.arithmetic import checked_add, checked_sub, mul_div
from liquid_staking.constants import INSTANT_WITHDRAW_DENOMINATOR, INSTANT_WITHDRAW_NUMERATOR
from liquid_staking.errors import (
    BelowMinimumDeposit,
    DelayedWithdrawalUnsupported,
    InsufficientFunds,
    InsufficientLiquidity,
    InvalidAmount,
)
from liquid_staking.formatters import format_receipt, format_sol
from liquid_staking.models import StakingPool, WithdrawalQuote
from liquid_staking.rate import compute_exchange_rate, to_base_units, to_receipt_units

logger = logging.getLogger(__name__)


def deposit_sol(pool: StakingPool, amount: int) -> tuple[StakingPool, int]:
    """
    Account for a deposit of `amount` base units.

    Returns the updated pool and the receipt units to mint. Receipts are priced
    at the rate in effect before the deposit and the stored rate is left as is,
    so deposits never move the rate.
    """
    if amount <= 0:
        raise InvalidAmount("Deposit amount must be > 0")
    if amount < pool.min_deposit:
        raise BelowMinimumDeposit(f"Minimum deposit is {format_sol(pool.min_deposit)}, got {format_sol(amount)}")

    receipt_units = to_receipt_units(amount, pool.exchange_rate)
    if receipt_units == 0:
        raise BelowMinimumDeposit(f"Deposit of {amount} would mint zero receipt units")

    new_pool = replace(
        pool,
        total_deposited=checked_add(pool.total_deposited, amount),
        receipt_supply=checked_add(pool.receipt_supply, receipt_units),
        liquid_reserve=checked_add(pool.liquid_reserve, amount),
    )
    logger.info("Depositing %s for %s", format_sol(amount), format_receipt(receipt_units))
    return new_pool, receipt_units


def quote_instant_withdrawal(pool: StakingPool, receipt_amount: int) -> WithdrawalQuote:
    """Gross and net base units for redeeming `receipt_amount` right now."""
    gross = to_base_units(receipt_amount, pool.exchange_rate)
    net = mul_div(gross, INSTANT_WITHDRAW_NUMERATOR, INSTANT_WITHDRAW_DENOMINATOR)
    return WithdrawalQuote(receipt_amount=receipt_amount, gross_base=gross, net_base=net)


def withdraw_sol(
    pool: StakingPool, receipt_amount: int, *, instant: bool = True
) -> tuple[StakingPool, WithdrawalQuote]:
    """
    Account for burning `receipt_amount` and paying out of the liquid reserve.

    Only the net amount leaves the reserve. The 0.3% fee stays behind as
    backing for the remaining receipts; it is not booked as a protocol fee.
    """
    if not instant:
        raise DelayedWithdrawalUnsupported()
    if receipt_amount <= 0:
        raise InvalidAmount("Withdrawal amount must be > 0")
    if receipt_amount > pool.receipt_supply:
        raise InsufficientFunds(f"Cannot burn {receipt_amount} receipt units; supply is {pool.receipt_supply}")

    quote = quote_instant_withdrawal(pool, receipt_amount)
    if quote.net_base > pool.liquid_reserve:
        raise InsufficientLiquidity(
            f"Instant withdrawal needs {format_sol(quote.net_base)} but the reserve holds "
            f"{format_sol(pool.liquid_reserve)}"
        )

    receipt_supply = checked_sub(pool.receipt_supply, receipt_amount)
    liquid_reserve = checked_sub(pool.liquid_reserve, quote.net_base)
    new_pool = replace(
        pool,
        receipt_supply=receipt_supply,
        liquid_reserve=liquid_reserve,
        exchange_rate=compute_exchange_rate(liquid_reserve, pool.staked_balance, receipt_supply),
    )
    logger.info(
        "Withdrawing %s for %s (fee retained: %s)",
        format_receipt(receipt_amount),
        format_sol(quote.net_base),
        format_sol(quote.fee_retained),
    )
    return new_pool, quote
