"""
Faltas de Professores — teacher absence tracker backend.
FastAPI entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from absence_tracker.core.config import settings
from absence_tracker.core.database import get_supabase
from absence_tracker.core.exceptions import (
    BulkGenerationError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteOperationError,
    ValidationError,
)
from absence_tracker.core.middleware import RequestLogMiddleware
from absence_tracker.routers import absences, analytics, auth, directory, exports, leaves
from absence_tracker.services.bulk import BulkAbsenceGenerator
from absence_tracker.services.cache import TTLCache
from absence_tracker.services.gateway import SupabaseGateway
from absence_tracker.services.repositories import LeaveRepository, SubstituteRepository, TeacherRepository
from absence_tracker.services.store import AbsenceStore
from absence_tracker.utils.response import error_response

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("absence_tracker")


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = await get_supabase()
    gateway = SupabaseGateway(client, settings.STORAGE_BUCKET)
    store = AbsenceStore(gateway)

    app.state.gateway = gateway
    app.state.store = store
    app.state.substitutes = SubstituteRepository(gateway, TTLCache(settings.SUBSTITUTE_CACHE_TTL))
    app.state.leaves = LeaveRepository(gateway)
    app.state.teachers = TeacherRepository(gateway)
    app.state.generator = BulkAbsenceGenerator(store)

    await store.load()
    if settings.SUBSCRIBE_CHANGES:
        await store.subscribe()
        await app.state.substitutes.watch()
    logger.info("%s started (auth mode: %s)", settings.APP_NAME, settings.AUTH_MODE)

    yield

    await app.state.substitutes.close()
    await store.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Registro e acompanhamento de faltas de professores",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware
app.add_middleware(RequestLogMiddleware)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content=error_response("Validation failed", exc.errors))


@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(status_code=401, content=error_response(str(exc)))


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=error_response(str(exc)))


@app.exception_handler(RemoteOperationError)
async def remote_error_handler(request: Request, exc: RemoteOperationError):
    logger.error("Remote operation failed: %s", exc)
    return JSONResponse(status_code=502, content=error_response(str(exc)))


@app.exception_handler(BulkGenerationError)
async def bulk_error_handler(request: Request, exc: BulkGenerationError):
    return JSONResponse(status_code=502, content=error_response(str(exc), exc.result.summary()))


# Include routers
app.include_router(auth.router)
app.include_router(absences.router)
app.include_router(leaves.router)
app.include_router(directory.router)
app.include_router(analytics.router)
app.include_router(exports.router)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
        "auth_mode": settings.AUTH_MODE,
    }


@app.get("/api/health")
async def health(request: Request):
    store = request.app.state.store
    return {
        "status": "degraded" if store.error else "healthy",
        "auth_mode": settings.AUTH_MODE,
        "absences": len(store.absences),
        "loading": store.loading,
    }
