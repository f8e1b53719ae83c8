"""Value object monétaire : montant à virgule fixe et devise."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from compta_banque.models import CENT, CurrencyMismatchError

DEFAULT_CURRENCY = "EUR"


def to_decimal(value: object) -> Decimal:
    """Convertit une valeur brute (int, float, str, Decimal) en Decimal fini.

    Les floats passent par ``str()`` pour ne pas hériter de leur
    représentation binaire.

    Raises:
        ValueError: valeur non numérique, NaN ou infinie.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Montant invalide : {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Montant invalide : {value!r}") from e
    else:
        raise ValueError(f"Montant invalide : {value!r}")
    if not result.is_finite():
        raise ValueError(f"Montant invalide : {value!r}")
    return result


@dataclass(frozen=True)
class Money:
    """Montant immuable, arrondi à 2 décimales à la construction.

    Les opérations entre devises différentes lèvent ``CurrencyMismatchError``.

    Examples:
        >>> Money("10.005").amount
        Decimal('10.01')
        >>> Money(1).add(Money("2.5")).amount
        Decimal('3.50')
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount).quantize(CENT, rounding=ROUND_HALF_UP)
        if amount.is_zero():
            amount = abs(amount)
        currency = str(self.currency).strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValueError(f"Code devise invalide : {self.currency!r}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", currency)

    # --- Arithmétique ---

    def add(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: int | float | Decimal) -> Money:
        return Money(self.amount * to_decimal(factor), self.currency)

    def abs(self) -> Money:
        return Money(abs(self.amount), self.currency)

    # --- Comparaisons ---

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def greater_than(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount > other.amount

    def less_than(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    # --- Conversions ---

    def to_cents(self) -> int:
        return int(self.amount * 100)

    @classmethod
    def from_cents(cls, cents: int, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(Decimal(cents) / 100, currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(Decimal("0"), currency)

    @classmethod
    def sum(cls, amounts: Iterable[Money], currency: str = DEFAULT_CURRENCY) -> Money:
        total = cls.zero(currency)
        for amount in amounts:
            total = total.add(amount)
        return total

    def format(self) -> str:
        """Formate à la française : ``1 234,56 €`` (symbole pour l'euro uniquement)."""
        sign = "-" if self.amount < 0 else ""
        integer, _, decimals = f"{abs(self.amount):.2f}".partition(".")
        groups = []
        while integer:
            groups.insert(0, integer[-3:])
            integer = integer[:-3]
        symbol = "€" if self.currency == "EUR" else self.currency
        return f"{sign}{' '.join(groups)},{decimals} {symbol}"

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Opération impossible entre devises différentes : {self.currency} vs {other.currency}"
            )

    def __str__(self) -> str:
        return self.format()
