""" Fixed-precision money.

Amounts are kept as a whole number of ten-thousandths, so every value has
exactly four fractional digits and arithmetic is exact.

"""
import functools
from decimal import Decimal, InvalidOperation


class EngineError(Exception):

    """Event could not be applied, ledger state left unchanged."""


class AmountOverflow(EngineError):

    """Addition result is outside of the representable range."""


class AmountUnderflow(EngineError):

    """Subtraction result is outside of the representable range."""


class AmountParseError(ValueError):

    """Text is not a valid four digit precision amount."""


@functools.total_ordering
class Amount:

    """Signed money value with four fractional digits."""

    PRECISION = 4
    SCALE = 10 ** PRECISION
    MAX_UNITS = 2 ** 96 - 1
    MIN_UNITS = -MAX_UNITS
    MAX_ADJUSTED = len(str(MAX_UNITS)) - 1 - PRECISION

    __slots__ = ('_units',)

    def __init__(self, units=0):
        if not self.MIN_UNITS <= units <= self.MAX_UNITS:
            raise AmountOverflow(f'{units} ten-thousandths out of range')
        self._units = units

    @classmethod
    def zero(cls):
        """Get zero amount."""
        return cls(0)

    @classmethod
    def parse(cls, text):
        """Parse amount from text such as '1.5' or '.0001'."""
        try:
            value = Decimal(str(text).strip())
        except InvalidOperation:
            raise AmountParseError(f'Not a number: {text!r}') from None
        if not value.is_finite():
            raise AmountParseError(f'Not a finite number: {text!r}')

        sign, digits, exponent = value.as_tuple()
        if exponent < -cls.PRECISION:
            raise AmountParseError(f'More than {cls.PRECISION} fractional digits: {text!r}')
        if not value:
            return cls.zero()
        # Bound the exponent before scaling.
        if value.adjusted() > cls.MAX_ADJUSTED:
            raise AmountParseError(f'Out of range: {text!r}')

        units = int(''.join(map(str, digits))) * 10 ** (exponent + cls.PRECISION)
        if sign:
            units = -units
        if not cls.MIN_UNITS <= units <= cls.MAX_UNITS:
            raise AmountParseError(f'Out of range: {text!r}')
        return cls(units)

    @property
    def units(self):
        """Get value as a number of ten-thousandths."""
        return self._units

    def checked_add(self, other):
        """Add amounts, raise AmountOverflow when result is out of range."""
        units = self._units + other.units
        if not self.MIN_UNITS <= units <= self.MAX_UNITS:
            raise AmountOverflow(f'{self} + {other} is out of range')
        return Amount(units)

    def checked_sub(self, other):
        """Subtract amounts, raise AmountUnderflow when result is out of range."""
        units = self._units - other.units
        if not self.MIN_UNITS <= units <= self.MAX_UNITS:
            raise AmountUnderflow(f'{self} - {other} is out of range')
        return Amount(units)

    def is_negative(self):
        """Check whether amount is below zero."""
        return self._units < 0

    def __eq__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        return self._units == other.units

    def __lt__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        return self._units < other.units

    def __hash__(self):
        return hash(self._units)

    def __str__(self):
        whole, fraction = divmod(abs(self._units), self.SCALE)
        sign = '-' if self._units < 0 else ''
        return f'{sign}{whole}.{fraction:0{self.PRECISION}d}'

    def __repr__(self):
        return f"Amount('{self}')"


Amount.MAX = Amount(Amount.MAX_UNITS)
Amount.MIN = Amount(Amount.MIN_UNITS)
