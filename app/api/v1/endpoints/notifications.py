from typing import List

from fastapi import APIRouter, Depends

from app.api.v1.endpoints.debts import get_debt_session
from app.schemas.debt import NotificationResponse
from app.services.sessions import DebtSession

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
async def drain_notifications(session: DebtSession = Depends(get_debt_session)):
    """Return and clear the caller's pending notifications"""
    return session.notifications.drain()
