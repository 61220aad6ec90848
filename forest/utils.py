import time
from decimal import Decimal, InvalidOperation, localcontext

from forest.constants import WEI_PER_ETHER

ETHER_DECIMALS = 18


def unix_now() -> int:
    """Current wall-clock time in whole unix seconds."""
    return int(time.time())


def parse_ether(amount: str) -> int:
    """Convert a decimal ether string to wei.

    Raises ValueError for anything that is not a plain decimal number with
    at most 18 fractional digits.
    """
    text = amount.strip()
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid ether amount: {amount!r}") from exc
    if not value.is_finite() or "e" in text.lower():
        raise ValueError(f"Invalid ether amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 100
        wei = value * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"Too many decimals in ether amount: {amount!r}")
    return int(wei)


def format_ether(wei: int) -> str:
    """Render wei as an ether string without trailing zeros (1500000000000000000 -> "1.5")."""
    sign = "-" if wei < 0 else ""
    whole, fraction = divmod(abs(wei), WEI_PER_ETHER)
    if not fraction:
        return f"{sign}{whole}"
    digits = f"{fraction:0{ETHER_DECIMALS}d}".rstrip("0")
    return f"{sign}{whole}.{digits}"
