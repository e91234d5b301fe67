"""Debt input validation utilities."""
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

from app.models.base import to_decimal, to_decimal128


class DebtValidationError(ValueError):
    """Raised when debt input fails local constraints."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class DebtInput(NamedTuple):
    """Validated, normalized debt fields ready for the store."""
    debtor_name: str
    amount: Decimal
    description: str

    def as_fields(self) -> dict:
        return self._asdict()


def parse_amount(amount: Any) -> Decimal:
    """
    Parse an amount given as a number or numeric string.

    Rules:
    - booleans and empty values are rejected
    - the value must be a finite number, returned as an exact Decimal
    - the value must be strictly greater than zero
    - the value must fit a BSON Decimal128 exactly
    """
    if amount is None or isinstance(amount, bool):
        raise DebtValidationError("Amount is required", field="amount")

    if isinstance(amount, str):
        amount = amount.strip()
        if not amount:
            raise DebtValidationError("Amount is required", field="amount")

    try:
        value = to_decimal(amount)
        if not isinstance(value, Decimal):
            raise TypeError(amount)
    except (TypeError, ValueError, InvalidOperation):
        raise DebtValidationError("Amount must be a number", field="amount")

    if not value.is_finite():
        raise DebtValidationError("Amount must be a number", field="amount")

    if value <= 0:
        raise DebtValidationError("Amount must be greater than 0", field="amount")

    try:
        to_decimal128(value)
    except ArithmeticError:
        raise DebtValidationError("Amount has too many digits", field="amount")

    return value


def validate_debt_input(debtor_name: Any, amount: Any, description: Any = None) -> DebtInput:
    """Validate create/update input before anything touches the store."""
    name = debtor_name.strip() if isinstance(debtor_name, str) else ""
    if not name:
        raise DebtValidationError("Debtor name is required", field="debtor_name")

    if description is None:
        description = ""
    elif not isinstance(description, str):
        raise DebtValidationError("Description must be text", field="description")

    return DebtInput(
        debtor_name=name,
        amount=parse_amount(amount),
        description=description.strip(),
    )
