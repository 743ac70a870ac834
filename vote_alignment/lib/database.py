"""
Supabase persistence gateway.

Writes are chunked upserts keyed by each table's natural key; a failed chunk
is logged and the remaining chunks are still attempted. Nothing here deletes
rows.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from supabase import Client, create_client

from vote_alignment.config import SupabaseConfig
from vote_alignment.lib.classifier import NO_DATA
from vote_alignment.lib.exceptions import PersistenceError

logger = logging.getLogger(__name__)

VOTE_EVENTS_TABLE = "vote_events"
ORIENTATIONS_TABLE = "orientations"
ALIGNMENTS_TABLE = "legislator_alignments"

VOTE_EVENTS_CONFLICT = "id"
ORIENTATIONS_CONFLICT = "vote_event_id,bloc_code"
ALIGNMENTS_CONFLICT = "legislator_id,year"

DEFAULT_CHUNK_SIZE = 200
READ_PAGE_SIZE = 1000


def get_supabase(config: Optional[SupabaseConfig] = None) -> Optional[Client]:
    """Get Supabase client, or None when credentials are not configured."""
    config = config or SupabaseConfig.from_env()
    if not config.is_configured:
        return None
    return create_client(config.url, config.service_role_key)


def _dedupe_by_key(rows: Iterable[Dict[str, Any]], key_columns: Sequence[str]) -> List[Dict[str, Any]]:
    """Keep the last row per conflict key, preserving first-seen order.

    Postgres rejects an upsert statement that touches the same row twice.
    """
    deduped: Dict[tuple, Dict[str, Any]] = {}
    for row in rows:
        deduped[tuple(row.get(col) for col in key_columns)] = row
    return list(deduped.values())


def upsert_chunked(
    supabase_client: Client,
    table: str,
    rows: List[Dict[str, Any]],
    on_conflict: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Upsert rows in fixed-size chunks.

    Args:
        supabase_client: Supabase client instance
        table: Target table
        rows: Rows to write
        on_conflict: Comma-separated conflict key columns
        chunk_size: Rows per statement

    Returns:
        Number of rows written successfully
    """
    if not rows:
        return 0

    rows = _dedupe_by_key(rows, on_conflict.split(","))
    written = 0

    for i in range(0, len(rows), chunk_size):
        chunk = rows[i:i + chunk_size]
        try:
            supabase_client.table(table).upsert(chunk, on_conflict=on_conflict).execute()
            written += len(chunk)
        except Exception as e:
            logger.error(
                f"Upsert into {table} failed for rows {i}-{i + len(chunk) - 1}: {e}"
            )

    logger.debug(f"Upserted {written}/{len(rows)} rows into {table}")
    return written


def upsert_vote_events(
    supabase_client: Client,
    vote_events: List[Dict[str, Any]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Upsert vote_events rows ({id, date, description, committee, year})."""
    return upsert_chunked(
        supabase_client, VOTE_EVENTS_TABLE, vote_events, VOTE_EVENTS_CONFLICT, chunk_size
    )


def upsert_orientations(
    supabase_client: Client,
    orientations: List[Dict[str, Any]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Upsert orientations rows ({vote_event_id, bloc_code, recommended_vote})."""
    return upsert_chunked(
        supabase_client, ORIENTATIONS_TABLE, orientations, ORIENTATIONS_CONFLICT, chunk_size
    )


def upsert_alignments(
    supabase_client: Client,
    alignments: List[Dict[str, Any]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Upsert legislator_alignments rows, stamping updated_at."""
    now = datetime.now(timezone.utc).isoformat()
    stamped = [{**row, "updated_at": now} for row in alignments]
    return upsert_chunked(
        supabase_client, ALIGNMENTS_TABLE, stamped, ALIGNMENTS_CONFLICT, chunk_size
    )


def _fetch_all(query_factory, page_size: int = READ_PAGE_SIZE) -> List[Dict[str, Any]]:
    """Page through a PostgREST query with range() until a short page."""
    rows: List[Dict[str, Any]] = []
    offset = 0
    while True:
        response = query_factory().range(offset, offset + page_size - 1).execute()
        page = response.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size


def fetch_alignments(supabase_client: Client, year: int) -> List[Dict[str, Any]]:
    """All persisted legislator_alignments rows for a year, best score first."""
    return _fetch_all(
        lambda: supabase_client.table(ALIGNMENTS_TABLE)
        .select("*")
        .eq("year", year)
        .order("score", desc=True)
        .order("legislator_id")
    )


def fetch_orientations(supabase_client: Client) -> List[Dict[str, Any]]:
    """Every cached orientation row, all blocs."""
    return _fetch_all(
        lambda: supabase_client.table(ORIENTATIONS_TABLE)
        .select("vote_event_id, bloc_code, recommended_vote")
        .order("vote_event_id")
        .order("bloc_code")
    )


def fetch_vote_events(supabase_client: Client, year: int) -> List[Dict[str, Any]]:
    """vote_events rows for a year, most recent first."""
    return _fetch_all(
        lambda: supabase_client.table(VOTE_EVENTS_TABLE)
        .select("id, date, description, committee, year")
        .eq("year", year)
        .order("date", desc=True)
        .order("id")
    )


def reset_alignments(
    supabase_client: Client,
    year: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Zero every persisted legislator_alignments row of a year.

    Run at the start of a pass so later batches, which seed from the
    persisted rows, start from zero instead of the previous pass's totals.
    Identity columns are kept.

    Returns:
        Number of rows reset

    Raises:
        PersistenceError: Some rows kept their previous totals
    """
    rows = fetch_alignments(supabase_client, year)
    if not rows:
        return 0

    zeroed = [
        {
            "legislator_id": row["legislator_id"],
            "year": year,
            "name": row.get("name") or "N/A",
            "party": row.get("party"),
            "state": row.get("state"),
            "photo_url": row.get("photo_url"),
            "relevant_count": 0,
            "aligned_count": 0,
            "score": 0.0,
            "classification": NO_DATA,
        }
        for row in rows
        if row.get("legislator_id") is not None
    ]
    logger.info(f"Resetting {len(zeroed)} alignment rows for {year}")
    written = upsert_alignments(supabase_client, zeroed, chunk_size)
    if written < len(zeroed):
        raise PersistenceError(
            f"Reset {written}/{len(zeroed)} alignment rows",
            table=ALIGNMENTS_TABLE,
            year=year,
        )
    return written
