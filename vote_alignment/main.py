"""
Vote Alignment Sync Service

FastAPI service that measures how often each deputy votes with the
government's floor-leader orientation and stores the results in Supabase.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vote_alignment import __version__
from vote_alignment.lib.logging_config import configure_logging_from_env
from vote_alignment.middleware import CorrelationMiddleware
from vote_alignment.routes import alignments, health, sync

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging_from_env()
    logger.info("Starting Vote Alignment Sync Service...")
    yield
    logger.info("Shutting down Vote Alignment Sync Service...")


app = FastAPI(
    title="Vote Alignment Sync Service",
    description="Scores deputies' alignment with government voting orientation",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(CorrelationMiddleware)

app.include_router(health.router, tags=["health"])
app.include_router(sync.router, prefix="/sync", tags=["sync"])
app.include_router(alignments.router, prefix="/alignments", tags=["alignments"])


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": ...}."""
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Render request validation errors as {"error": ...}."""
    messages = [
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"error": "; ".join(messages)})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "vote-alignment-sync",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "sync_alignment": "POST /sync/alignment",
            "legislator_votes": "POST /sync/legislator-votes",
            "full_sync": "POST /sync/full",
            "full_sync_status": "GET /sync/status/{job_id}",
            "alignments": "GET /alignments?year=",
        },
    }
