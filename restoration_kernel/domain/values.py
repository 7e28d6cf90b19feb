"""
Values -- Immutable, self-validating money value objects.

Responsibility:
    Provides Currency and Money.  Money stores an integer count of minor
    units (cents for USD) together with its ISO 4217 currency; the two are
    never separated.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by models, services, and DTOs.  Only outward dependency is
    restoration_kernel.domain.currency (CurrencyRegistry).

Invariants enforced:
    - Amounts are ``int`` minor units.  Floats, Decimals and bools are
      rejected at construction; conversion from a major-unit Decimal goes
      through ``Money.from_major`` which rounds ROUND_HALF_UP once, before
      anything is persisted.
    - Currency codes are validated against the ISO 4217 registry.
    - Arithmetic and comparison refuse to mix currencies.

Failure modes:
    - InvalidMoneyError for non-integer amounts or non-numeric major amounts.
    - InvalidCurrencyError for unknown codes.
    - CurrencyMismatchError when operands differ in currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from restoration_kernel.domain.currency import CurrencyRegistry
from restoration_kernel.exceptions import CurrencyMismatchError, InvalidMoneyError


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Guarantees:
        - Immutable and hashable.
        - ``code`` is uppercase and a registered ISO 4217 code.
    """

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CurrencyRegistry.validate(self.code))

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount in integer minor units.

    Contract:
        Pairs an ``int`` count of minor units with its Currency.  This is the
        only representation of money that crosses the kernel boundary.

    Guarantees:
        - Immutable and hashable.
        - ``minor_units`` is always an ``int`` (never float, never Decimal).
        - Arithmetic never mixes currencies silently.

    Non-goals:
        - No currency conversion.
        - No display formatting beyond ``__str__``.
    """

    minor_units: int
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise InvalidMoneyError(
                self.minor_units, "amount must be an integer number of minor units"
            )
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(
                f"currency must be Currency or str, got {type(self.currency)}"
            )

    @classmethod
    def of(cls, minor_units: int, currency: str | Currency) -> Money:
        """Factory: ``Money.of(500000, "USD")`` is $5,000.00."""
        return cls(minor_units=minor_units, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(minor_units=0, currency=currency)

    @classmethod
    def from_major(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Convert a major-unit amount to Money, rounding half-up to minor units.

        Preconditions:
            - amount is a Decimal, numeric string, or int.  Floats are refused.

        Postconditions:
            - ``minor_units == round_half_up(amount * 10**decimal_places)``.

        Raises:
            InvalidMoneyError: amount is a float or not numeric.
        """
        if isinstance(amount, (float, bool)):
            raise InvalidMoneyError(amount, "floats are not accepted for money")
        cur = currency if isinstance(currency, Currency) else Currency(currency)
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except (InvalidOperation, ValueError) as e:
            raise InvalidMoneyError(amount, "not a decimal number") from e
        if not value.is_finite():
            raise InvalidMoneyError(amount, "not a finite number")
        scaled = (value * (Decimal(10) ** cur.decimal_places)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return cls(minor_units=int(scaled), currency=cur)

    @classmethod
    def sum(cls, amounts: Iterable[Money], currency: str | Currency) -> Money:
        """Sum Money values; an empty iterable yields zero in ``currency``."""
        total = cls.zero(currency)
        for amount in amounts:
            total = total + amount
        return total

    def to_major(self) -> Decimal:
        """Exact major-unit Decimal (e.g. 500000 USD -> Decimal('5000.00'))."""
        places = self.currency.decimal_places
        return Decimal(self.minor_units).scaleb(-places).quantize(
            Decimal(1).scaleb(-places)
        )

    @property
    def is_zero(self) -> bool:
        return self.minor_units == 0

    @property
    def is_positive(self) -> bool:
        return self.minor_units > 0

    @property
    def is_negative(self) -> bool:
        return self.minor_units < 0

    def _require_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                expected=self.currency.code, actual=other.currency.code
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.minor_units + other.minor_units, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.minor_units - other.minor_units, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.minor_units, self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units < other.minor_units

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units <= other.minor_units

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units > other.minor_units

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units >= other.minor_units

    def __str__(self) -> str:
        return f"{self.to_major()} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.minor_units!r}, {self.currency!r})"
