"""
Checked uint256 arithmetic.

Balances and rates are unsigned 256-bit quantities; any result outside that
range aborts the operation instead of wrapping.
"""
from lat_engine.errors import ArithmeticOverflow

UINT256_MAX = 2 ** 256 - 1


def require_uint256(value: int, name: str = "value") -> int:
    """Return value if it is an int in [0, 2**256 - 1]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticOverflow(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflow(f"{name} out of uint256 range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return require_uint256(a + b, "sum")


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"Subtraction underflow: {a} - {b}")
    return a - b


def checked_mul(a: int, b: int) -> int:
    return require_uint256(a * b, "product")


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with the intermediate product checked."""
    return checked_mul(a, b) // denominator
