"""
DebtRepository - network CRUD against the ``debts`` collection.

Every failure surfaces as DebtStoreError so callers only need one
except clause to run their rollback.
"""

import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from app.models.base import parse_object_id, to_decimal128, utcnow
from app.models.debt import DebtRecord

logger = logging.getLogger(__name__)


class DebtStoreError(Exception):
    """A store call failed (network, permission or server-side rejection)."""
    pass


class DebtNotFoundError(DebtStoreError):
    """No debt matched the requested id."""

    def __init__(self, debt_id: str):
        super().__init__(f"Debt {debt_id} not found")
        self.debt_id = debt_id


class DebtRepository:
    """Repository for debt records."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["debts"]

    async def select(self) -> List[DebtRecord]:
        """All debts, newest first."""
        try:
            docs = await self.collection.find({}).sort("created_at", DESCENDING).to_list(None)
        except PyMongoError as e:
            logger.error("Listing debts failed: %s", e)
            raise DebtStoreError("Could not load debts") from e
        return [DebtRecord(**doc) for doc in docs]

    async def get(self, debt_id: str) -> Optional[DebtRecord]:
        """Get a debt by id, or None."""
        oid = self._object_id(debt_id)
        try:
            doc = await self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise DebtStoreError("Could not load debt") from e
        if doc:
            return DebtRecord(**doc)
        return None

    async def insert(self, fields: dict) -> DebtRecord:
        """
        Insert a new debt and return it with its store-issued id.

        is_paid always starts False; timestamps are set here, never by callers.
        Amounts are stored as Decimal128 so sums stay exact.
        """
        now = utcnow()
        debt_dict = {
            "debtor_name": fields["debtor_name"],
            "amount": to_decimal128(fields["amount"]),
            "description": fields.get("description", ""),
            "is_paid": False,
            "created_at": now,
            "updated_at": now
        }

        try:
            result = await self.collection.insert_one(debt_dict)
        except PyMongoError as e:
            logger.error("Inserting debt failed: %s", e)
            raise DebtStoreError("Could not add debt") from e

        debt_dict["_id"] = result.inserted_id
        return DebtRecord(**debt_dict)

    async def update(self, debt_id: str, fields: dict) -> None:
        """Set ``fields`` on one debt. created_at can never be changed."""
        oid = self._object_id(debt_id)
        updates = {k: v for k, v in fields.items() if k not in ("_id", "id", "created_at")}
        if "amount" in updates:
            updates["amount"] = to_decimal128(updates["amount"])
        updates["updated_at"] = utcnow()

        try:
            result = await self.collection.update_one({"_id": oid}, {"$set": updates})
        except PyMongoError as e:
            logger.error("Updating debt %s failed: %s", debt_id, e)
            raise DebtStoreError("Could not update debt") from e

        if result.matched_count == 0:
            raise DebtNotFoundError(debt_id)

    async def delete(self, debt_id: str) -> None:
        """Delete one debt."""
        oid = self._object_id(debt_id)
        try:
            result = await self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.error("Deleting debt %s failed: %s", debt_id, e)
            raise DebtStoreError("Could not delete debt") from e

        if result.deleted_count == 0:
            raise DebtNotFoundError(debt_id)

    # ===== PRIVATE HELPERS =====

    def _object_id(self, debt_id: str):
        try:
            return parse_object_id(debt_id)
        except ValueError:
            # Placeholder ids and malformed ids never match a stored row
            raise DebtNotFoundError(debt_id) from None
