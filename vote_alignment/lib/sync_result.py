"""
Result and status tracking for sync invocations.

BatchResult is what one invocation of the batch controller produces; its
to_response() is the cursor payload handed back to the caller. JobStatus
tracks a background full pass that drives the controller repeatedly.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Lifecycle of one batch controller invocation."""
    IDLE = "idle"
    LOADING_ORIENTATIONS = "loading_orientations"
    PROCESSING_BATCH = "processing_batch"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BatchResult:
    """
    Outcome of one sync invocation over a window of the vote-event universe.

    processed counts the vote events in the window (attempted, fetched or not);
    events_fetched / events_skipped split it by outcome.
    """
    year: int
    batch_start: int = 0
    batch_size: int = 0
    total: int = 0
    processed: int = 0
    events_fetched: int = 0
    events_skipped: int = 0
    legislators_seen: int = 0
    alignments_written: int = 0
    vote_events_written: int = 0
    orientations_written: int = 0
    alignments_reset: int = 0
    state: SyncState = SyncState.IDLE
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def done(self) -> bool:
        """The window reached the end of the universe (or there was none)."""
        return self.state == SyncState.DONE

    @property
    def next_batch_start(self) -> Optional[int]:
        """Cursor for the next invocation, None once the pass is done."""
        if self.state != SyncState.PROCESSING_BATCH:
            return None
        return self.batch_start + self.batch_size

    @property
    def duration_seconds(self) -> Optional[float]:
        """Invocation duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def add_error(self, error: str):
        """Add an error message."""
        self.errors.append(error)
        logger.error(f"Sync error: {error}")

    def add_warning(self, warning: str):
        """Add a warning message."""
        self.warnings.append(warning)
        logger.warning(f"Sync warning: {warning}")

    def to_response(self) -> Dict[str, Any]:
        """The cursor payload returned to the caller."""
        return {
            "done": self.done,
            "processed": self.processed,
            "total": self.total,
            "batch_deputies": self.alignments_written,
            "year": self.year,
            "next_batch_start": self.next_batch_start,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full statistics for logs and job status."""
        return {
            **self.to_response(),
            "batch_start": self.batch_start,
            "batch_size": self.batch_size,
            "state": self.state.value,
            "events_fetched": self.events_fetched,
            "events_skipped": self.events_skipped,
            "legislators_seen": self.legislators_seen,
            "vote_events_written": self.vote_events_written,
            "orientations_written": self.orientations_written,
            "alignments_reset": self.alignments_reset,
            "errors": self.errors,
            "warnings": self.warnings,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class JobStatus:
    """
    In-memory status of a background full-pass job.

    Used for progress polling while the pass runs.
    """
    status: str = "queued"  # queued, running, completed, failed
    year: Optional[int] = None
    progress: int = 0
    total: Optional[int] = None
    batches: int = 0
    message: str = "Job queued"
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status,
            "year": self.year,
            "progress": self.progress,
            "total": self.total,
            "batches": self.batches,
            "message": self.message,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }
