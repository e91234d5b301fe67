from fastapi import APIRouter
from app.api.v1.endpoints import auth, debts, notifications

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(debts.router, prefix="/debts", tags=["debts"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
