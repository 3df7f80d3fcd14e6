"""Exchange-rate engine: conversions between base units and receipt units."""

from liquid_staking.arithmetic import checked_add, mul_div
from liquid_staking.constants import INITIAL_EXCHANGE_RATE, RATE_SCALE


def to_receipt_units(base_units: int, rate: int) -> int:
    """Receipt units minted for ``base_units`` at ``rate`` (rounded down)."""
    return mul_div(base_units, RATE_SCALE, rate)


def to_base_units(receipt_units: int, rate: int) -> int:
    """Base units backing ``receipt_units`` at ``rate`` (rounded down)."""
    return mul_div(receipt_units, rate, RATE_SCALE)


def compute_exchange_rate(liquid_reserve: int, staked_balance: int, receipt_supply: int) -> int:
    """
    Recompute the rate from backing: (liquid + staked) * 1e9 / supply.

    Protocol fees are not part of the backing. With no receipts outstanding
    the rate is the fixed initial 1.0.
    """
    if receipt_supply == 0:
        return INITIAL_EXCHANGE_RATE
    backing = checked_add(liquid_reserve, staked_balance)
    return mul_div(backing, RATE_SCALE, receipt_supply)

