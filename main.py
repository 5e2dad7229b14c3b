import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import AsyncSessionLocal, init_db
from logging_config import configure_logging
from api.applications import router as applications_router
from api.audit import router as audit_router
from api.notifications import router as notifications_router
from api.staff import router as staff_router
from api.statistics import router as statistics_router
from services.engine import build_engine
from services.errors import InvalidTransitionError, NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    app.state.engine = build_engine(AsyncSessionLocal)
    logger.info("%s started", settings.app_name)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Application lifecycle workflow for panchayat e-services",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(applications_router)
app.include_router(notifications_router)
app.include_router(audit_router)
app.include_router(statistics_router)
app.include_router(staff_router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "currentStatus": exc.current, "requestedStatus": exc.target},
    )


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})


@app.exception_handler(StorageError)
async def storage_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


@app.get("/health")
async def health():
    return {"status": "ok"}
