"""Settlement request: the details of one user-initiated payment."""

from __future__ import annotations

import copy
import decimal
import enum
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from .errors import InvalidInput

NETWORK_FEE_RATE = Decimal("0.001")
_DISPLAY_QUANTUM = Decimal("0.001")
# uint256 has 78 decimal digits; nothing larger can be settled on-chain.
MAX_INTEGER_DIGITS = 78
_MONEY_PRECISION = MAX_INTEGER_DIGITS + 8


class Currency(str, enum.Enum):
    USDT = "USDT"
    USDC = "USDC"
    ETH = "ETH"
    BTC = "BTC"


def parse_decimal(value: str) -> Optional[Decimal]:
    """Parse a user-entered decimal string.  Returns None if not a finite number."""
    if value is None:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def in_range(value: Decimal) -> bool:
    """True when *value* has at most MAX_INTEGER_DIGITS integer digits."""
    return value.is_zero() or value.adjusted() < MAX_INTEGER_DIGITS


def _money_context() -> decimal.Context:
    return decimal.Context(prec=_MONEY_PRECISION, rounding=ROUND_HALF_UP)


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)


class SettlementRequest:
    """Mutable builder for a cross-border payment.

    ``network_fee()`` and ``total_amount()`` are computed on every call from
    the current field values, so they can never go stale after an edit.
    """

    def __init__(
        self,
        recipient_name: str = "",
        recipient_address: str = "",
        amount: str = "",
        currency: Currency | str = Currency.USDT,
        fee: str = "0",
        memo: str = "",
    ):
        self.recipient_name = recipient_name
        self.recipient_address = recipient_address
        self.amount = amount
        self.currency = currency
        self.fee = fee
        self.memo = memo

    @property
    def currency(self) -> Currency:
        return self._currency

    @currency.setter
    def currency(self, value: Currency | str) -> None:
        try:
            self._currency = Currency(value)
        except ValueError as e:
            valid = ", ".join(c.value for c in Currency)
            raise InvalidInput(f"Unknown currency '{value}'. Valid: {valid}") from e

    @property
    def fee(self) -> str:
        return self._fee

    @fee.setter
    def fee(self, value: Optional[str]) -> None:
        text = "0" if value is None or not str(value).strip() else str(value).strip()
        parsed = parse_decimal(text)
        if parsed is None or parsed < 0:
            raise InvalidInput(f"fee must be a non-negative decimal, got '{value}'")
        if not in_range(parsed):
            raise InvalidInput(f"fee exceeds {MAX_INTEGER_DIGITS} integer digits")
        self._fee = text

    def update(self, **fields) -> "SettlementRequest":
        """Set several fields at once.  Unknown field names raise InvalidInput."""
        allowed = {"recipient_name", "recipient_address", "amount", "currency", "fee", "memo"}
        unknown = set(fields) - allowed
        if unknown:
            raise InvalidInput(f"Unknown settlement fields: {sorted(unknown)}")
        for name, value in fields.items():
            setattr(self, name, value)
        return self

    def amount_decimal(self) -> Decimal:
        parsed = parse_decimal(self.amount)
        if parsed is None:
            raise InvalidInput(f"amount is not a number: '{self.amount}'")
        if not in_range(parsed):
            raise InvalidInput(f"amount exceeds {MAX_INTEGER_DIGITS} integer digits")
        return parsed

    def network_fee(self) -> Decimal:
        """Fee charged on top of the amount.

        A positive user-supplied fee is used as-is; otherwise the default
        network rate of 0.1% of the amount applies.
        """
        with decimal.localcontext(_money_context()):
            fee = Decimal(self.fee)
            if fee > 0:
                return _quantize(fee)
            return _quantize(self.amount_decimal() * NETWORK_FEE_RATE)

    def total_amount(self) -> Decimal:
        with decimal.localcontext(_money_context()):
            return _quantize(self.amount_decimal() + self.network_fee())

    def can_advance_from_details(self) -> bool:
        """Gate for EnterDetails -> Confirm: recipient set and amount positive."""
        if not self.recipient_address or not self.recipient_address.strip():
            return False
        amount = parse_decimal(self.amount)
        return amount is not None and amount > 0 and in_range(amount)

    def validate(self) -> None:
        """Raise InvalidInput naming the first failed check."""
        if not self.recipient_address or not self.recipient_address.strip():
            raise InvalidInput("recipient address is required")
        amount = parse_decimal(self.amount)
        if amount is None:
            raise InvalidInput(f"amount is not a number: '{self.amount}'")
        if amount <= 0:
            raise InvalidInput(f"amount must be positive, got '{self.amount}'")
        if not in_range(amount):
            raise InvalidInput(f"amount exceeds {MAX_INTEGER_DIGITS} integer digits")

    def copy(self) -> "SettlementRequest":
        return copy.copy(self)

    def __repr__(self) -> str:
        return (
            f"SettlementRequest(recipient_address={self.recipient_address!r}, "
            f"amount={self.amount!r}, currency={self.currency.value!r}, fee={self.fee!r})"
        )
