"""
FastAPI application entry point.
Sets up the API with lifespan events for logging, database and Firebase.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from reelforge.config import settings
from reelforge.database import init_db
from reelforge.errors import ReelForgeError
from reelforge.api.router import api_router
from reelforge.auth.firebase import initialize_firebase
from reelforge.middleware.metrics_middleware import MetricsMiddleware
from reelforge.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging, create tables, initialize Firebase.
    """
    configure_logging('reelforge-api', settings.log_level)

    await init_db()

    # Local dev may run without Firebase; production must not
    if settings.firebase_project_id:
        try:
            initialize_firebase()
        except (ValueError, OSError) as e:
            if settings.environment == "production":
                raise
            logger.warning(f"Firebase initialization failed: {e}")

    yield


app = FastAPI(
    title="ReelForge API",
    description="Credit ledger and video generation job backend",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(MetricsMiddleware)

app.include_router(api_router, prefix="/api")


@app.exception_handler(ReelForgeError)
async def reelforge_error_handler(request: Request, exc: ReelForgeError):
    """Map domain errors to their HTTP status and JSON body."""
    if exc.status_code >= 500:
        logger.error(
            f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
            extra={"event": "request_failed", "code": exc.code},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "ReelForge API",
        "version": "0.1.0",
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
