# /src/easy_amm/core/units.py
# Fixed-point conversion between human amounts and on-chain base units.
from decimal import Context, Decimal, ROUND_DOWN

# uint256 has 78 digits; leave room for the fractional part at max decimals
PRECISE_CONTEXT = Context(prec=160)
MAX_DECIMALS = 77

def to_decimal(value) -> Decimal:
    """Normalize int/str/float/Decimal into a Decimal. Floats go through str()."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)

def _check_decimals(decimals: int):
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}], got {decimals}")

def to_base_units(amount, decimals: int) -> int:
    """``amount * 10**decimals`` truncated to a whole base unit."""
    _check_decimals(decimals)
    value = to_decimal(amount)
    if value < 0:
        raise ValueError(f"amount must be non-negative, got {value}")
    scaled = value.scaleb(decimals, context=PRECISE_CONTEXT)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN, context=PRECISE_CONTEXT))

def from_base_units(amount: int, decimals: int) -> Decimal:
    _check_decimals(decimals)
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    return Decimal(int(amount)).scaleb(-decimals, context=PRECISE_CONTEXT)
