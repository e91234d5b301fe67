"""
Debt model - one amount owed by a named debtor.

Design principles:
- Identity is issued by the store on insert
- Records awaiting that identity carry a "temp-" placeholder id
- created_at is immutable, updated_at moves on every mutation
"""

import uuid

from pydantic import BaseModel, Field, ConfigDict

from app.models.base import Money, ObjectIdStr, UtcDatetime, utcnow

TEMP_ID_PREFIX = "temp-"


def new_placeholder_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


class DebtRecord(BaseModel):
    """
    A debt as mirrored from the ``debts`` collection.

    Invariants:
    - amount > 0 for every record accepted by validation, kept as Decimal
    - updated_at >= created_at
    """
    model_config = ConfigDict(populate_by_name=True)

    id: ObjectIdStr = Field(validation_alias="_id", serialization_alias="id")
    debtor_name: str
    amount: Money
    description: str = ""
    is_paid: bool = False
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @property
    def is_placeholder(self) -> bool:
        """True while the record still waits for a store-issued id."""
        return self.id.startswith(TEMP_ID_PREFIX)
