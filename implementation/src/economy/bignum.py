"""Scientific-notation number type for idle-game quantities.

Values are stored as mantissa * 10^exponent with 1 <= |mantissa| < 10 (or an
exact zero), so balances can run far past the float range without losing their
order of magnitude. Precision is that of a float mantissa: anything more than
12 orders of magnitude smaller than the other operand of an addition vanishes.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Union

# Mantissas below this are treated as zero (cancellation residue).
ZERO_EPSILON = 1e-12

# Exponent gap beyond which the smaller addend is dropped.
MAX_ADD_EXPONENT_GAP = 12

# Above this exponent a float mantissa carries no fractional part.
_INTEGRAL_EXPONENT = 15

Number = Union["BigNumber", int, float]


class NumberFormat(Enum):
    STANDARD = "standard"
    SCIENTIFIC = "scientific"
    ENGINEERING = "engineering"


class BigNumber:
    """Normalized (mantissa, exponent) pair.

    Instances are immutable; every operation returns a new, normalized value.
    Construction from an unnormalized pair (e.g. read back from a save) is
    always safe: ``BigNumber(1234.0, 2)`` becomes ``1.234e5``.
    """

    __slots__ = ("_mantissa", "_exponent")

    def __init__(self, mantissa: float = 0.0, exponent: int = 0) -> None:
        mantissa = float(mantissa)
        exponent = int(exponent)
        if not math.isfinite(mantissa):
            raise ValueError(f"BigNumber mantissa must be finite, got {mantissa!r}")
        if abs(mantissa) < ZERO_EPSILON:
            mantissa, exponent = 0.0, 0
        else:
            shift = math.floor(math.log10(abs(mantissa)))
            mantissa /= 10.0 ** shift
            exponent += shift
            # log10 rounding can leave the mantissa one decade off.
            if abs(mantissa) >= 10.0:
                mantissa /= 10.0
                exponent += 1
            elif abs(mantissa) < 1.0:
                mantissa *= 10.0
                exponent -= 1
        self._mantissa = mantissa
        self._exponent = exponent

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def from_float(cls, value: float) -> "BigNumber":
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"cannot represent {value!r} as a BigNumber")
        if value == 0.0:
            return ZERO
        offset = 0
        if abs(value) < 1e-300:
            value *= 1e300
            offset = -300
        exponent = math.floor(math.log10(abs(value)))
        return cls(value / 10.0 ** exponent, exponent + offset)

    @classmethod
    def from_unnormalized(cls, mantissa: float, exponent: int) -> "BigNumber":
        """Rebuild from a persisted pair that may not be normalized."""
        return cls(mantissa, exponent)

    @classmethod
    def pow10(cls, power: float) -> "BigNumber":
        """Return 10^power for a (possibly fractional) float power."""
        if power == -math.inf:
            return ZERO
        if not math.isfinite(power):
            raise OverflowError(f"10^{power!r} is out of range")
        whole = math.floor(power)
        return cls(10.0 ** (power - whole), whole)

    @classmethod
    def coerce(cls, value: Number) -> "BigNumber":
        if isinstance(value, BigNumber):
            return value
        return cls.from_float(value)

    # ── Accessors ─────────────────────────────────────────────────

    @property
    def mantissa(self) -> float:
        return self._mantissa

    @property
    def exponent(self) -> int:
        return self._exponent

    @property
    def is_zero(self) -> bool:
        return self._mantissa == 0.0

    @property
    def sign(self) -> int:
        if self._mantissa > 0.0:
            return 1
        if self._mantissa < 0.0:
            return -1
        return 0

    # ── Arithmetic ────────────────────────────────────────────────

    def add(self, other: Number) -> "BigNumber":
        other = BigNumber.coerce(other)
        if self.is_zero:
            return other
        if other.is_zero:
            return self
        if self._exponent >= other._exponent:
            big, small = self, other
        else:
            big, small = other, self
        gap = big._exponent - small._exponent
        if gap > MAX_ADD_EXPONENT_GAP:
            return big
        mantissa = big._mantissa + small._mantissa * 10.0 ** -gap
        return BigNumber(mantissa, big._exponent)

    def subtract(self, other: Number) -> "BigNumber":
        return self.add(BigNumber.coerce(other).negate())

    def negate(self) -> "BigNumber":
        if self.is_zero:
            return self
        return BigNumber(-self._mantissa, self._exponent)

    def multiply(self, other: Number) -> "BigNumber":
        other = BigNumber.coerce(other)
        if self.is_zero or other.is_zero:
            return ZERO
        return BigNumber(self._mantissa * other._mantissa, self._exponent + other._exponent)

    def divide(self, other: Number) -> "BigNumber":
        other = BigNumber.coerce(other)
        if other.is_zero:
            raise ZeroDivisionError("BigNumber division by zero")
        if self.is_zero:
            return ZERO
        return BigNumber(self._mantissa / other._mantissa, self._exponent - other._exponent)

    def pow(self, power: float) -> "BigNumber":
        """Raise to a float power via log10.

        Negative bases are best-effort: the magnitude is computed from |x| and
        the sign is kept unless the power is an even integer. Within float
        range the power is taken directly so integral results stay exact.
        """
        if self.is_zero:
            return ZERO
        magnitude = abs(self.to_float())
        result = None
        if 0.0 < magnitude < math.inf:
            try:
                result = BigNumber.from_float(magnitude ** power)
            except OverflowError:
                result = None
        if result is None or result.is_zero:
            result = BigNumber.pow10(self.log10() * power)
        if self._mantissa < 0.0 and abs(math.fmod(power, 2.0)) > ZERO_EPSILON:
            return result.negate()
        return result

    def log10(self) -> float:
        """Base-10 logarithm of the magnitude; -inf for zero."""
        if self.is_zero:
            return -math.inf
        return math.log10(abs(self._mantissa)) + self._exponent

    def ln(self) -> float:
        return self.log10() * math.log(10.0)

    def floor(self) -> "BigNumber":
        if self.is_zero or self._exponent >= _INTEGRAL_EXPONENT:
            return self
        return BigNumber.from_float(math.floor(self.to_float()))

    def to_float(self) -> float:
        """Convert to a float; values past the float range become +/-inf."""
        if self.is_zero:
            return 0.0
        try:
            return self._mantissa * 10.0 ** self._exponent
        except OverflowError:
            return math.copysign(math.inf, self._mantissa)

    def compare(self, other: Number) -> int:
        """Return -1, 0 or 1.

        Within a sign, exponent decides first and mantissa second; for
        negative values the exponent order is reversed.
        """
        other = BigNumber.coerce(other)
        if self.sign != other.sign:
            return -1 if self.sign < other.sign else 1
        if self.sign == 0:
            return 0
        if self._exponent != other._exponent:
            order = -1 if self._exponent < other._exponent else 1
            return order if self.sign > 0 else -order
        if self._mantissa == other._mantissa:
            return 0
        return -1 if self._mantissa < other._mantissa else 1

    @staticmethod
    def max(left: "BigNumber", right: "BigNumber") -> "BigNumber":
        return left if left >= right else right

    def clamp_min(self, minimum: Number) -> "BigNumber":
        minimum = BigNumber.coerce(minimum)
        return minimum if self < minimum else self

    # ── Formatting ────────────────────────────────────────────────

    def to_short_string(self, digits: int = 3, fmt: NumberFormat = NumberFormat.SCIENTIFIC) -> str:
        if self.is_zero:
            return "0"
        digits = max(1, digits)
        log10 = self.log10()
        if fmt is NumberFormat.STANDARD and abs(log10) < 6:
            return f"{round(self.to_float(), digits):,.{digits}f}"
        if fmt is NumberFormat.ENGINEERING:
            eng_exponent = math.floor(log10 / 3.0) * 3
            eng_mantissa = self._mantissa * 10.0 ** (self._exponent - eng_exponent)
            return f"{eng_mantissa:.{digits - 1}f}e{eng_exponent}"
        return f"{self._mantissa:.{digits - 1}f}e{self._exponent}"

    # ── Python protocol ───────────────────────────────────────────

    def __add__(self, other: Number) -> "BigNumber":
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other: Number) -> "BigNumber":
        return self.subtract(other)

    def __rsub__(self, other: Number) -> "BigNumber":
        return BigNumber.coerce(other).subtract(self)

    def __mul__(self, other: Number) -> "BigNumber":
        return self.multiply(other)

    __rmul__ = __mul__

    def __truediv__(self, other: Number) -> "BigNumber":
        return self.divide(other)

    def __rtruediv__(self, other: Number) -> "BigNumber":
        return BigNumber.coerce(other).divide(self)

    def __pow__(self, power: float) -> "BigNumber":
        return self.pow(power)

    def __neg__(self) -> "BigNumber":
        return self.negate()

    def __abs__(self) -> "BigNumber":
        return self.negate() if self._mantissa < 0.0 else self

    def __float__(self) -> float:
        return self.to_float()

    def __bool__(self) -> bool:
        return not self.is_zero

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (BigNumber, int, float)):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: Number) -> bool:
        return self.compare(other) < 0

    def __le__(self, other: Number) -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: Number) -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: Number) -> bool:
        return self.compare(other) >= 0

    def __hash__(self) -> int:
        return hash((self._mantissa, self._exponent))

    def __repr__(self) -> str:
        return f"BigNumber({self._mantissa!r}, {self._exponent})"

    def __str__(self) -> str:
        if self.is_zero:
            return "0"
        return f"{self._mantissa:.4g}e{self._exponent}"


ZERO = BigNumber(0.0, 0)
ONE = BigNumber(1.0, 0)
