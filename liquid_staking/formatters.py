"""Formatting and conversion utilities."""

from decimal import Decimal, InvalidOperation

from liquid_staking.constants import LAMPORTS_PER_SOL, RATE_SCALE, TOTAL_BASIS_POINTS


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling the shapes that show up in JSON and CLI input."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip().replace("_", "")
        if v.startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def parse_sol_amount(value: str) -> int:
    """Parse a CLI amount: plain integers are lamports, a `sol` suffix means whole SOL."""
    v = value.strip().lower()
    if v.endswith("sol"):
        try:
            return int(Decimal(v[:-3].strip()) * LAMPORTS_PER_SOL)
        except InvalidOperation as ex:
            raise ValueError(f"invalid SOL amount: {value!r}") from ex
    return as_int(v)


def format_sol(lamports: int, *, decimals: int = 9, approx: bool = False) -> str:
    """Format lamports as SOL."""
    sol = Decimal(lamports) / LAMPORTS_PER_SOL
    s = f"{sol:.{decimals}f}".rstrip("0").rstrip(".")
    prefix = "~" if approx else ""
    return f"{prefix}{s} SOL"


def format_receipt(units: int, *, symbol: str = "fSOL", decimals: int = 9) -> str:
    """Format receipt-token units."""
    amount = Decimal(units) / LAMPORTS_PER_SOL
    s = f"{amount:.{decimals}f}".rstrip("0").rstrip(".")
    return f"{s} {symbol}"


def format_rate(rate: int) -> str:
    """Format a 1e9-scaled exchange rate, e.g. 1030000000 -> '1.030000000'."""
    return f"{Decimal(rate) / Decimal(RATE_SCALE):.9f}"


def format_bp(bp: int) -> str:
    """Format basis points as percentage."""
    return f"{(Decimal(bp) / Decimal(100)):.2f}%"


def format_pct(numer: int, denom: int) -> str:
    """Format a ratio as a percentage; n/a when the denominator is zero."""
    if denom == 0:
        return "n/a"
    return f"{Decimal(numer * TOTAL_BASIS_POINTS // denom) / Decimal(100):.2f}%"


def delta_indicator(prev_val: int, cur_val: int) -> str:
    """Returns emoji indicator for value change."""
    if cur_val > prev_val:
        return "📈"
    if cur_val < prev_val:
        return "📉"
    return "➡️"
