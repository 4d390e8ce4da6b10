"""ChainProof API - Main FastAPI application."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from chainproof_api.errors import (
    AlreadyRevoked,
    ChainProofError,
    InputError,
    NotFoundError,
    Unauthenticated,
    ValidationError,
)
from chainproof_api.middleware.correlation import CorrelationIDMiddleware
from chainproof_api.routes import assets, certificates, keys, verify
from chainproof_api.settings import get_settings

settings = get_settings()

# Configure logging
JSON_LOG_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", "module": "%(name)s"}'
TEXT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logging.basicConfig(
    level=settings.log_level,
    format=JSON_LOG_FORMAT if settings.log_format == "json" else TEXT_LOG_FORMAT,
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InputError, status.HTTP_400_BAD_REQUEST),
    (Unauthenticated, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyRevoked, status.HTTP_409_CONFLICT),
]


def status_for(error: ChainProofError) -> int:
    """HTTP status for a domain error. Backend failures map to 502."""
    for error_class, code in ERROR_STATUS:
        if isinstance(error, error_class):
            return code
    return status.HTTP_502_BAD_GATEWAY


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting ChainProof API...")
    try:
        settings.validate_production_settings()

        from chainproof_api.ledger.signer import get_signer

        signer = get_signer()
        logger.info(f"Signer initialized: {signer.get_key_id()}")
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    yield
    logger.info("Shutting down ChainProof API...")


app = FastAPI(
    title="ChainProof API",
    description="Content protection: fingerprinting, storage, ledger anchoring and certificates",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

app.include_router(assets.router)
app.include_router(certificates.router)
app.include_router(verify.router)
app.include_router(keys.router)


@app.exception_handler(ChainProofError)
async def chainproof_error_handler(request: Request, exc: ChainProofError):
    code = status_for(exc)
    log = logger.warning if code < 500 else logger.error
    log(
        f"{type(exc).__name__}: {exc.message}",
        extra={"correlation_id": getattr(request.state, "correlation_id", None), "path": request.url.path},
    )
    return JSONResponse(status_code=code, content={"detail": exc.message, "error": type(exc).__name__})


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "chainproof-api",
        "version": "0.1.0",
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "ChainProof API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
