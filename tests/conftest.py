from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from app.repositories.debt_repo import DebtStoreError
from app.services.debt_manager import DebtCollectionManager
from app.services.notifications import NotificationBuffer
from tests.fakes import FakeDebtStore, make_debt


@pytest.fixture
def fake_store():
    return FakeDebtStore()


@pytest.fixture
def seeded_store():
    """Three debts: Binh (newest), Chi (paid), Dung (oldest)."""
    return FakeDebtStore([
        make_debt("Binh", 100.0, minutes_ago=1),
        make_debt("Chi", 300.0, is_paid=True, minutes_ago=2),
        make_debt("Dung", 50.0, description="coffee", minutes_ago=3),
    ])


@pytest.fixture
def notifications():
    return NotificationBuffer(maxlen=50)


@pytest.fixture
def manager(fake_store, notifications):
    return DebtCollectionManager(fake_store, notifications)


@pytest_asyncio.fixture
async def seeded_manager(seeded_store, notifications):
    manager = DebtCollectionManager(seeded_store, notifications)
    await manager.refresh()
    notifications.drain()
    seeded_store.calls.clear()
    return manager


@pytest.fixture
def store_error():
    return DebtStoreError("connection reset")


@pytest.fixture
def mock_db():
    """Mock MongoDB database with the collections the app touches"""
    db = MagicMock()
    collections = {}
    for name in ("users", "profiles", "debts"):
        collection = MagicMock()
        collection.find_one = AsyncMock()
        collection.insert_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.delete_one = AsyncMock()
        collections[name] = collection
        setattr(db, name, collection)
    db.__getitem__.side_effect = lambda name: collections[name]
    return db
