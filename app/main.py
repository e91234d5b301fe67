from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.mongo import connect_to_mongo, disconnect_from_mongo, get_db
from app.api.v1.api import api_router
from app.repositories.debt_repo import DebtNotFoundError, DebtRepository, DebtStoreError
from app.services.sessions import DebtSessionRegistry
from app.utils.debt_validation import DebtValidationError

setup_logging(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    app.state.debt_sessions = DebtSessionRegistry(
        lambda: DebtRepository(get_db()),
        buffer_size=settings.NOTIFICATION_BUFFER_SIZE,
        idle_ttl=settings.DEBT_SESSION_IDLE_MINUTES * 60
    )
    yield
    await disconnect_from_mongo()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DebtValidationError)
async def debt_validation_error_handler(request: Request, exc: DebtValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "field": exc.field}
    )


@app.exception_handler(DebtNotFoundError)
async def debt_not_found_handler(request: Request, exc: DebtNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "Debt not found"}
    )


@app.exception_handler(DebtStoreError)
async def debt_store_error_handler(request: Request, exc: DebtStoreError):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)}
    )


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}

app.include_router(api_router, prefix=settings.API_V1_STR)
