from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel

from app.models.base import Money


class DebtBase(BaseModel):
    # Loosely typed on purpose: the form sends amounts as text and
    # validate_debt_input owns the rules and the error messages.
    debtor_name: str = ""
    amount: Union[float, str, None] = None
    description: Optional[str] = ""


class DebtCreate(DebtBase):
    """Request body to add a debt."""
    pass


class DebtUpdate(DebtBase):
    """Request body to edit a debt's details."""
    pass


class DebtResponse(BaseModel):
    id: str
    debtor_name: str
    amount: Money
    description: str
    is_paid: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DebtStats(BaseModel):
    """Aggregates over the current debt list."""
    total: Money = Decimal(0)
    unpaid: Money = Decimal(0)
    paid: Money = Decimal(0)
    total_count: int = 0
    unpaid_count: int = 0
    paid_count: int = 0


class NotificationResponse(BaseModel):
    title: str
    description: str
    kind: str
    created_at: datetime

    model_config = {"from_attributes": True}
