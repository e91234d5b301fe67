"""
DebtCollectionManager - the local mirror of the ``debts`` collection.

Every mutation is two-phase:
1. Apply the local delta synchronously, before the first await
2. Call the store; on failure undo the delta (purge the placeholder or
   refetch everything), notify, and re-raise

Nothing here serializes concurrent calls. The last write to the local list
wins and a failure's refetch may overwrite another pending optimistic edit.
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional, Protocol

from app.models.base import utcnow
from app.models.debt import DebtRecord, new_placeholder_id
from app.repositories.debt_repo import DebtNotFoundError
from app.schemas.debt import DebtStats
from app.services.notifications import NotificationSink, failure, success
from app.utils.debt_validation import validate_debt_input

logger = logging.getLogger(__name__)


class DebtStore(Protocol):
    async def select(self) -> List[DebtRecord]: ...

    async def insert(self, fields: dict) -> DebtRecord: ...

    async def update(self, debt_id: str, fields: dict) -> None: ...

    async def delete(self, debt_id: str) -> None: ...


class DebtCollectionManager:
    """Owns the debt list for one session; the only code allowed to mutate it."""

    def __init__(self, store: DebtStore, notifier: NotificationSink):
        self.store = store
        self.notifier = notifier
        self._records: List[DebtRecord] = []
        self.is_loading = False
        self.last_error: Optional[Exception] = None

    @property
    def records(self) -> List[DebtRecord]:
        """Snapshot of the list, newest first."""
        return list(self._records)

    def get(self, debt_id: str) -> Optional[DebtRecord]:
        index = self._index_of(debt_id)
        return self._records[index] if index is not None else None

    async def refresh(self) -> List[DebtRecord]:
        """
        Replace the local list with the store's contents.

        Failures are recorded in ``last_error`` and notified, not raised;
        the current list is kept as is.
        """
        self.is_loading = True
        try:
            records = await self.store.select()
        except Exception as e:
            logger.error("Refreshing debts failed: %s", e)
            self.last_error = e
            self.notifier.notify(failure("Could not load the debt list"))
        else:
            self._records = list(records)
            self.last_error = None
        finally:
            self.is_loading = False
        return self.records

    async def create(self, debtor_name: Any, amount: Any, description: Any = "") -> DebtRecord:
        """Add a debt, showing it immediately under a placeholder id."""
        data = validate_debt_input(debtor_name, amount, description)

        now = utcnow()
        placeholder = DebtRecord(
            id=new_placeholder_id(),
            is_paid=False,
            created_at=now,
            updated_at=now,
            **data.as_fields()
        )
        self._records.insert(0, placeholder)

        try:
            created = await self.store.insert(data.as_fields())
        except Exception as e:
            logger.warning("Adding debt for %s failed, dropping placeholder: %s", data.debtor_name, e)
            self._remove_local(placeholder.id)
            self.notifier.notify(failure("Could not add the debt"))
            raise

        if not self._replace_local(placeholder.id, created) and self._index_of(created.id) is None:
            # A refetch dropped the placeholder before the insert landed
            self._records.insert(0, created)

        self.notifier.notify(success("Added a new debt"))
        return created

    async def update(self, debt_id: str, debtor_name: Any, amount: Any, description: Any = "") -> Optional[DebtRecord]:
        """Edit a debt's details. The optimistic edit stands on success."""
        data = validate_debt_input(debtor_name, amount, description)

        current = self.get(debt_id)
        if current is not None:
            self._replace_local(
                debt_id,
                current.model_copy(update={**data.as_fields(), "updated_at": utcnow()})
            )

        try:
            await self.store.update(debt_id, data.as_fields())
        except Exception as e:
            await self._rollback(f"Updating debt {debt_id} failed", e)
            self.notifier.notify(failure("Could not update the debt"))
            raise

        self.notifier.notify(success("Updated the debt details"))
        return self.get(debt_id)

    async def toggle_paid(self, debt_id: str) -> DebtRecord:
        """
        Flip is_paid on one debt.

        The record as it was right before the flip is the single source for
        the new value and for the notification text.
        """
        before = self.get(debt_id)
        if before is None:
            raise DebtNotFoundError(debt_id)

        is_paid = not before.is_paid
        self._replace_local(
            debt_id,
            before.model_copy(update={"is_paid": is_paid, "updated_at": utcnow()})
        )

        try:
            await self.store.update(debt_id, {"is_paid": is_paid})
        except Exception as e:
            await self._rollback(f"Toggling debt {debt_id} failed", e)
            self.notifier.notify(failure("Could not update the payment status"))
            raise

        state = "paid" if is_paid else "unpaid"
        self.notifier.notify(success(f"Marked as {state} for {before.debtor_name}"))
        return self.get(debt_id) or before.model_copy(update={"is_paid": is_paid})

    async def remove(self, debt_id: str) -> None:
        """Delete a debt, hiding it immediately."""
        self._remove_local(debt_id)

        try:
            await self.store.delete(debt_id)
        except Exception as e:
            await self._rollback(f"Deleting debt {debt_id} failed", e)
            self.notifier.notify(failure("Could not delete the debt"))
            raise

        self.notifier.notify(success("Deleted the debt"))

    def stats(self) -> DebtStats:
        """Totals over the current list. paid is derived as total - unpaid."""
        total = sum((debt.amount for debt in self._records), Decimal(0))
        unpaid_debts = [debt for debt in self._records if not debt.is_paid]
        unpaid = sum((debt.amount for debt in unpaid_debts), Decimal(0))

        return DebtStats(
            total=total,
            unpaid=unpaid,
            paid=total - unpaid,
            total_count=len(self._records),
            unpaid_count=len(unpaid_debts),
            paid_count=len(self._records) - len(unpaid_debts)
        )

    # ===== PRIVATE HELPERS =====

    def _index_of(self, debt_id: str) -> Optional[int]:
        for i, debt in enumerate(self._records):
            if debt.id == debt_id:
                return i
        return None

    def _replace_local(self, debt_id: str, record: DebtRecord) -> bool:
        index = self._index_of(debt_id)
        if index is None:
            return False
        self._records[index] = record
        return True

    def _remove_local(self, debt_id: str) -> None:
        self._records = [debt for debt in self._records if debt.id != debt_id]

    async def _rollback(self, message: str, error: Exception) -> None:
        logger.warning("%s, resyncing from store: %s", message, error)
        await self.refresh()
