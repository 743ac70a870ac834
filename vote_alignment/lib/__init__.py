"""
Shared library utilities for the sync service.

- normalizer / classifier: pure vote and score logic
- http_client: bounded-retry requests for every upstream call
- database: Supabase persistence gateway (imported directly, it reads config)
- sync_result: batch results and job status
"""

from vote_alignment.lib.classifier import classify, compute_score, score_and_classify
from vote_alignment.lib.exceptions import (
    ConfigurationError,
    OrientationLoadError,
    PersistenceError,
    SourceError,
    VoteAlignmentError,
)
from vote_alignment.lib.http_client import calculate_backoff_delay, resilient_request
from vote_alignment.lib.normalizer import is_stance, normalize_vote
from vote_alignment.lib.sync_result import BatchResult, JobStatus, SyncState

__all__ = [
    # Votes and scores
    "classify",
    "compute_score",
    "is_stance",
    "normalize_vote",
    "score_and_classify",
    # HTTP
    "calculate_backoff_delay",
    "resilient_request",
    # Results
    "BatchResult",
    "JobStatus",
    "SyncState",
    # Errors
    "ConfigurationError",
    "OrientationLoadError",
    "PersistenceError",
    "SourceError",
    "VoteAlignmentError",
]
