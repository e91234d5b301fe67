from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.core.auth import get_current_user, require_admin
from app.models.user import CurrentUser
from app.schemas.debt import DebtCreate, DebtResponse, DebtStats, DebtUpdate
from app.services.sessions import DebtSession

router = APIRouter()


async def get_debt_session(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user)
) -> DebtSession:
    """The caller's debt session, loaded from the store on first use."""
    return await request.app.state.debt_sessions.get(current_user.id)


async def get_admin_debt_session(
    request: Request,
    current_user: CurrentUser = Depends(require_admin)
) -> DebtSession:
    return await request.app.state.debt_sessions.get(current_user.id)


@router.get("/", response_model=List[DebtResponse])
async def list_debts(session: DebtSession = Depends(get_debt_session)):
    """
    List debts, newest first, from the caller's session mirror.

    This never refetches. Clients call POST /debts/refresh when a view
    mounts to pick up changes made from other sessions.
    """
    return session.manager.records


@router.get("/stats", response_model=DebtStats)
async def get_stats(session: DebtSession = Depends(get_debt_session)):
    """Totals over the caller's current debt list"""
    return session.manager.stats()


@router.post("/refresh", response_model=List[DebtResponse])
async def refresh_debts(session: DebtSession = Depends(get_debt_session)):
    """Reload the debt list from the database"""
    records = await session.manager.refresh()
    if session.manager.last_error is not None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not load debts"
        )
    return records


@router.post("/", response_model=DebtResponse, status_code=status.HTTP_201_CREATED)
async def create_debt(
    debt_in: DebtCreate,
    session: DebtSession = Depends(get_admin_debt_session)
):
    """Add a debt (admin only)"""
    return await session.manager.create(debt_in.debtor_name, debt_in.amount, debt_in.description)


@router.put("/{debt_id}", response_model=DebtResponse)
async def update_debt(
    debt_id: str,
    debt_in: DebtUpdate,
    session: DebtSession = Depends(get_admin_debt_session)
):
    """Edit a debt's details (admin only)"""
    debt = await session.manager.update(debt_id, debt_in.debtor_name, debt_in.amount, debt_in.description)
    if debt is None:
        # Stored but not yet in this session's list
        await session.manager.refresh()
        debt = session.manager.get(debt_id)
    if debt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Debt not found")
    return debt


@router.post("/{debt_id}/toggle-paid", response_model=DebtResponse)
async def toggle_paid(
    debt_id: str,
    session: DebtSession = Depends(get_admin_debt_session)
):
    """Flip a debt between paid and unpaid (admin only)"""
    return await session.manager.toggle_paid(debt_id)


@router.delete("/{debt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_debt(
    debt_id: str,
    session: DebtSession = Depends(get_admin_debt_session)
):
    """Delete a debt (admin only)"""
    await session.manager.remove(debt_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
