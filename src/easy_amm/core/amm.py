# /src/easy_amm/core/amm.py
# Constant product (x * y = k) pricing for Uniswap-V2-style pairs. All math runs
# on integer base units so results match the router contract exactly; decimals
# only appear in mid_price after the integer division.

from decimal import Decimal

from easy_amm.core.units import from_base_units

FEE_DENOMINATOR = 10000
DEFAULT_FEE_BPS = 25
# Fixed-point digits used for the integer mid-price division
PRICE_PRECISION = 18

class InsufficientLiquidity(Exception):
    """The pool reserves cannot satisfy the requested trade."""
    pass

def fee_multiplier(fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """Fee multiplier used by the swap formulas.

    For 25 bps (0.25%) this returns 9975, for 30 bps 9970.
    """
    if not 0 <= fee_bps < FEE_DENOMINATOR:
        raise ValueError(f"fee_bps must be in [0, {FEE_DENOMINATOR}), got {fee_bps}")
    return FEE_DENOMINATOR - fee_bps

DEFAULT_FEE = fee_multiplier(DEFAULT_FEE_BPS)

def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee: int = DEFAULT_FEE) -> int:
    """Output received for exactly ``amount_in``.

    Formula: amount_out = (in * fee * res_out) // (res_in * 10000 + in * fee)

    Raises:
        ValueError: ``amount_in`` is not positive.
        InsufficientLiquidity: either reserve is empty.
    """
    if amount_in <= 0:
        raise ValueError(f"amount_in must be positive, got {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"empty reserves: in={reserve_in} out={reserve_out}")

    amount_in_with_fee = amount_in * fee
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * FEE_DENOMINATOR + amount_in_with_fee
    return numerator // denominator

def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int, fee: int = DEFAULT_FEE) -> int:
    """Input required to receive exactly ``amount_out``.

    Formula: amount_in = (res_in * out * 10000) // ((res_out - out) * fee) + 1

    The trailing +1 keeps the quoted input from falling short after truncation.

    Raises:
        ValueError: ``amount_out`` is not positive.
        InsufficientLiquidity: either reserve is empty or ``amount_out`` would
            drain the output reserve.
    """
    if amount_out <= 0:
        raise ValueError(f"amount_out must be positive, got {amount_out}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(f"empty reserves: in={reserve_in} out={reserve_out}")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"amount_out {amount_out} >= reserve_out {reserve_out}")

    numerator = reserve_in * amount_out * FEE_DENOMINATOR
    denominator = (reserve_out - amount_out) * fee
    return numerator // denominator + 1

def mid_price(reserve_base: int, reserve_quote: int, base_decimals: int, quote_decimals: int) -> Decimal:
    """Quote tokens per one base token, adjusted for both tokens' decimals."""
    if reserve_base <= 0:
        raise InsufficientLiquidity("base reserve is empty")
    scaled = (reserve_quote * 10 ** (base_decimals + PRICE_PRECISION)) // (reserve_base * 10 ** quote_decimals)
    return from_base_units(scaled, PRICE_PRECISION)
