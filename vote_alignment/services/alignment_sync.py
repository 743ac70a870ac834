"""
Alignment sync batch controller.

One call to AlignmentSyncService.run_batch() processes one window of a
year's vote-event universe and returns a cursor. The caller keeps calling with
next_batch_start until done; nothing but the persisted rows (and the
memoized orientation file) carries over between calls:

    Idle -> LoadingOrientations -> ProcessingBatch -> Done | Failed

run_full_pass() is such a caller, used by the background full-sync job and
the command-line script.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import httpx
from supabase import Client

from vote_alignment.config import SyncConfig
from vote_alignment.lib.database import (
    fetch_alignments,
    get_supabase,
    reset_alignments,
    upsert_alignments,
    upsert_vote_events,
)
from vote_alignment.lib.exceptions import ConfigurationError, OrientationLoadError
from vote_alignment.lib.logging_config import log_with_context, set_correlation_id, sync_window
from vote_alignment.lib.sync_result import BatchResult, JobStatus, SyncState
from vote_alignment.services.orientation_loader import OrientationLoader, persist_orientations
from vote_alignment.services.score_accumulator import ScoreAccumulator
from vote_alignment.services.vote_fetcher import VoteFetcher

logger = logging.getLogger(__name__)

# Background full-pass jobs by id
JOB_STATUS: Dict[str, JobStatus] = {}


class AlignmentSyncService:
    """Runs one resumable batch of the vote alignment sync."""

    def __init__(
        self,
        supabase_client: Client,
        http_client: httpx.AsyncClient,
        config: Optional[SyncConfig] = None,
    ):
        self.supabase = supabase_client
        self.config = config or SyncConfig()
        self.orientation_loader = OrientationLoader(http_client, self.config)
        self.vote_fetcher = VoteFetcher(http_client, self.config)

    def _transition(self, result: BatchResult, state: SyncState) -> None:
        logger.debug(f"Sync {result.year}@{result.batch_start}: {result.state.value} -> {state.value}")
        result.state = state

    async def run_batch(
        self,
        year: int,
        batch_start: int = 0,
        batch_size: Optional[int] = None,
    ) -> BatchResult:
        """Process vote events [batch_start, batch_start + batch_size) of the year.

        Args:
            year: Legislative year
            batch_start: Cursor into the sorted vote-event universe
            batch_size: Vote events to process (default from config)

        Returns:
            BatchResult; next_batch_start is None once the pass is done

        Raises:
            ValueError: Negative batch_start or non-positive batch_size
            OrientationLoadError: Bulk orientation file unusable (invocation failed)
        """
        if batch_size is None:
            batch_size = self.config.default_batch_size
        if batch_start < 0:
            raise ValueError("batch_start must be >= 0")
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        result = BatchResult(
            year=year,
            batch_start=batch_start,
            batch_size=batch_size,
            started_at=datetime.now(timezone.utc),
        )

        try:
            with sync_window(year, batch_start, batch_size):
                await self._run(result)
        except Exception as e:
            self._transition(result, SyncState.FAILED)
            result.add_error(f"Sync for {year} at {batch_start} failed: {e}")
            raise
        finally:
            result.completed_at = datetime.now(timezone.utc)

        log_with_context(
            logger,
            logging.INFO,
            f"Sync {year} window {batch_start}+{batch_size}: "
            f"{result.processed} processed, {result.events_skipped} skipped, "
            f"{result.alignments_written} legislators written"
            + (" (done)" if result.done else f", next at {result.next_batch_start}"),
            **result.to_dict(),
        )
        return result

    async def _run(self, result: BatchResult) -> None:
        year, batch_start, batch_size = result.year, result.batch_start, result.batch_size

        self._transition(result, SyncState.LOADING_ORIENTATIONS)
        first_batch = batch_start == 0
        orientations = await self.orientation_loader.load(year, refresh=first_batch)
        if first_batch:
            result.orientations_written = persist_orientations(
                self.supabase, orientations, self.config.upsert_chunk_size
            )
            if result.orientations_written < len(orientations.records):
                result.add_warning(
                    f"Cached {result.orientations_written}/{len(orientations.records)} orientation rows"
                )
            result.alignments_reset = reset_alignments(
                self.supabase, year, self.config.upsert_chunk_size
            )

        result.total = orientations.total
        if result.total == 0:
            result.add_warning(f"No vote events with government orientation for {year}")
            self._transition(result, SyncState.DONE)
            return

        self._transition(result, SyncState.PROCESSING_BATCH)
        window = orientations.vote_event_ids[batch_start:batch_start + batch_size]
        result.processed = len(window)

        if window:
            accumulator = ScoreAccumulator()
            if batch_start > 0:
                seeded = accumulator.seed(fetch_alignments(self.supabase, year))
                logger.info(f"Resuming {year} pass at {batch_start} with {seeded} legislators")

            result.vote_events_written = upsert_vote_events(
                self.supabase,
                orientations.vote_event_rows(window),
                self.config.upsert_chunk_size,
            )

            rosters = await self.vote_fetcher.fetch_rosters(window)
            result.events_fetched = rosters.fetched
            result.events_skipped = len(rosters.skipped)

            for vote_event_id, roster in rosters.rosters:
                accumulator.add_roster(roster, orientations.government_votes[vote_event_id])

            rows = accumulator.to_rows(year, touched_only=True)
            result.legislators_seen = len(rows)
            result.alignments_written = upsert_alignments(
                self.supabase, rows, self.config.upsert_chunk_size
            )
            if result.alignments_written < len(rows):
                result.add_warning(
                    f"Wrote {result.alignments_written}/{len(rows)} alignment rows"
                )

        if batch_start + batch_size >= result.total:
            self._transition(result, SyncState.DONE)


async def run_full_pass(
    service: AlignmentSyncService,
    year: int,
    batch_size: Optional[int] = None,
    on_batch: Optional[Callable[[BatchResult], None]] = None,
) -> List[BatchResult]:
    """Drive the batch controller over a whole year, one window per call.

    Args:
        service: Sync service to invoke
        year: Legislative year
        batch_size: Vote events per call
        on_batch: Called with each batch result (progress reporting)

    Returns:
        Every batch result, in order
    """
    results: List[BatchResult] = []
    cursor: Optional[int] = 0

    while cursor is not None:
        result = await service.run_batch(year, batch_start=cursor, batch_size=batch_size)
        results.append(result)
        if on_batch:
            on_batch(result)
        cursor = result.next_batch_start

    processed = sum(r.processed for r in results)
    logger.info(f"Full pass for {year} finished: {processed} vote events in {len(results)} batches")
    return results


def create_job(year: int) -> str:
    """Register a queued full-pass job and return its id."""
    job_id = str(uuid.uuid4())
    JOB_STATUS[job_id] = JobStatus(
        status="queued",
        year=year,
        started_at=datetime.now(timezone.utc).isoformat(),
    )
    return job_id


async def run_full_pass_job(
    job_id: str,
    year: int,
    batch_size: Optional[int] = None,
    config: Optional[SyncConfig] = None,
) -> None:
    """Background task: run a full pass and record progress in JOB_STATUS."""
    set_correlation_id(job_id)
    job = JOB_STATUS.setdefault(job_id, JobStatus(year=year))
    job.status = "running"
    job.message = f"Syncing {year}..."
    config = config or SyncConfig.from_env()

    def record_progress(result: BatchResult) -> None:
        job.batches += 1
        job.progress += result.processed
        job.total = result.total
        job.message = f"Processed {job.progress}/{result.total} vote events"

    try:
        supabase = get_supabase()
        if not supabase:
            raise ConfigurationError("Supabase client not available")

        async with httpx.AsyncClient(timeout=config.http_timeout) as http_client:
            service = AlignmentSyncService(supabase, http_client, config)
            await run_full_pass(service, year, batch_size, on_batch=record_progress)

        job.status = "completed"
        job.message = f"Completed: {job.progress} vote events in {job.batches} batches"
    except (OrientationLoadError, ConfigurationError) as e:
        job.status = "failed"
        job.message = f"Failed: {e}"
        logger.error(f"Full pass job {job_id} failed: {e}")
    except Exception as e:
        job.status = "failed"
        job.message = f"Failed: {e}"
        logger.exception(f"Full pass job {job_id} failed")
    finally:
        job.completed_at = datetime.now(timezone.utc).isoformat()
