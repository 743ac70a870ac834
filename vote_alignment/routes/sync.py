"""Sync endpoints: batch alignment sync, legislator vote history, full-pass jobs."""

import logging
from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel, Field

from vote_alignment.config import SyncConfig
from vote_alignment.lib.database import get_supabase
from vote_alignment.lib.exceptions import ConfigurationError, OrientationLoadError
from vote_alignment.services.alignment_sync import (
    JOB_STATUS,
    AlignmentSyncService,
    create_job,
    run_full_pass_job,
)
from vote_alignment.services.legislator_votes import DEFAULT_LIMIT, fetch_legislator_votes
from vote_alignment.services.vote_fetcher import VoteFetcher

logger = logging.getLogger(__name__)

router = APIRouter()


class AlignmentSyncRequest(BaseModel):
    """Request body for one sync batch."""
    year: Optional[int] = None  # None = current year
    batch_start: int = Field(0, ge=0)
    batch_size: Optional[int] = Field(None, ge=1, le=500)


class AlignmentSyncResponse(BaseModel):
    """Cursor returned after a sync batch."""
    done: bool
    processed: int
    total: int
    batch_deputies: int
    year: int
    next_batch_start: Optional[int] = None


class LegislatorVotesRequest(BaseModel):
    """Request body for a legislator's vote history."""
    legislator_id: Optional[int] = None
    year: Optional[int] = None
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=500)


class LegislatorVote(BaseModel):
    vote_event_id: str
    date: Optional[str] = None
    description: Optional[str] = None
    committee: Optional[str] = None
    legislator_vote: str
    government_orientation: str
    aligned: bool


class LegislatorVotesResponse(BaseModel):
    votes: List[LegislatorVote]
    total: int


class FullSyncRequest(BaseModel):
    """Request body for a background full pass."""
    year: Optional[int] = None
    batch_size: Optional[int] = Field(None, ge=1, le=500)


class FullSyncResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    year: Optional[int] = None
    progress: int = 0
    total: Optional[int] = None
    batches: int = 0
    message: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


def _require_supabase():
    supabase = get_supabase()
    if not supabase:
        raise HTTPException(status_code=503, detail="Supabase client not available")
    return supabase


def _load_config() -> SyncConfig:
    try:
        return SyncConfig.from_env()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/alignment", response_model=AlignmentSyncResponse)
async def sync_alignment(request: AlignmentSyncRequest):
    """
    Process one window of the year's vote events.

    Call again with next_batch_start until done is true.
    """
    year = request.year or datetime.now().year
    config = _load_config()
    supabase = _require_supabase()

    try:
        async with httpx.AsyncClient(timeout=config.http_timeout) as http_client:
            service = AlignmentSyncService(supabase, http_client, config)
            result = await service.run_batch(
                year, batch_start=request.batch_start, batch_size=request.batch_size
            )
    except OrientationLoadError as e:
        logger.error(f"Alignment sync for {year} failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch orientations")
    except Exception as e:
        logger.exception(f"Alignment sync for {year} failed")
        raise HTTPException(status_code=500, detail=str(e))

    return AlignmentSyncResponse(**result.to_response())


@router.post("/legislator-votes", response_model=LegislatorVotesResponse)
async def legislator_votes(request: Optional[LegislatorVotesRequest] = None):
    """How one legislator voted on vote events with a government orientation."""
    request = request or LegislatorVotesRequest()
    if not request.legislator_id:
        raise HTTPException(status_code=400, detail="legislator_id is required")

    year = request.year or datetime.now().year
    config = _load_config()
    supabase = _require_supabase()

    try:
        async with httpx.AsyncClient(timeout=config.http_timeout) as http_client:
            result = await fetch_legislator_votes(
                supabase,
                VoteFetcher(http_client, config),
                legislator_id=request.legislator_id,
                year=year,
                limit=request.limit,
            )
    except Exception as e:
        logger.exception(f"Vote history for legislator {request.legislator_id} failed")
        raise HTTPException(status_code=500, detail=str(e))

    return LegislatorVotesResponse(**result)


@router.post("/full", response_model=FullSyncResponse)
async def trigger_full_sync(
    request: FullSyncRequest,
    background_tasks: BackgroundTasks,
):
    """Run a whole pass for a year in the background."""
    year = request.year or datetime.now().year
    _require_supabase()

    job_id = create_job(year)
    background_tasks.add_task(
        run_full_pass_job,
        job_id=job_id,
        year=year,
        batch_size=request.batch_size,
    )

    return FullSyncResponse(
        job_id=job_id,
        status="started",
        message=f"Full alignment sync started for {year}",
    )


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str):
    """Get the status of a full-pass job."""
    if job_id not in JOB_STATUS:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    return JobStatusResponse(job_id=job_id, **JOB_STATUS[job_id].to_dict())
