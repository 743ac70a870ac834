"""
Single-legislator vote history.

Lists how one legislator voted on the year's vote events that carry a
government orientation, using the orientation and vote-event caches written
by the sync and live rosters from the open-data API.
"""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from vote_alignment.lib.database import fetch_orientations, fetch_vote_events
from vote_alignment.lib.normalizer import ABSENT, is_stance, normalize_vote
from vote_alignment.services.orientation_loader import is_government_bloc, is_guidance
from vote_alignment.services.score_accumulator import roster_legislator_id
from vote_alignment.services.vote_fetcher import VoteFetcher

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 60
NO_ORIENTATION = "N/A"


def government_votes_from_cache(orientation_rows: List[Dict[str, Any]]) -> Dict[str, str]:
    """vote_event_id -> government recommended vote, from cached orientation rows."""
    government_votes: Dict[str, str] = {}
    for row in orientation_rows:
        if not is_government_bloc(row.get("bloc_code")):
            continue
        orientation = row.get("recommended_vote")
        if is_guidance(orientation):
            government_votes[str(row["vote_event_id"])] = orientation.strip()
    return government_votes


def build_vote_entry(
    roster: List[Dict[str, Any]],
    legislator_id: int,
    vote_event: Dict[str, Any],
    government_vote: str,
) -> Optional[Dict[str, Any]]:
    """The legislator's entry for one vote event, or None if not on the roster."""
    record = next(
        (r for r in roster if isinstance(r, dict) and roster_legislator_id(r) == legislator_id),
        None,
    )
    if record is None:
        return None

    vote = normalize_vote(record.get("tipoVoto"))
    orientation = normalize_vote(government_vote)
    return {
        "vote_event_id": str(vote_event["id"]),
        "date": vote_event.get("date"),
        "description": vote_event.get("description"),
        "committee": vote_event.get("committee"),
        "legislator_vote": vote or ABSENT,
        "government_orientation": orientation or NO_ORIENTATION,
        "aligned": is_stance(vote) and vote == orientation,
    }


def sort_by_date_desc(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Most recent first (ISO-8601 dates), entries without a date last."""
    dated = sorted((e for e in entries if e.get("date")), key=lambda e: e["date"], reverse=True)
    undated = [e for e in entries if not e.get("date")]
    return dated + undated


async def fetch_legislator_votes(
    supabase_client: Client,
    vote_fetcher: VoteFetcher,
    legislator_id: int,
    year: int,
    limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    """Vote history of one legislator against the government's orientation.

    Considers the `limit` most recent cached vote events of the year that have
    a government orientation.

    Returns:
        {"votes": [...], "total": int}
    """
    government_votes = government_votes_from_cache(fetch_orientations(supabase_client))
    if not government_votes:
        logger.info("No cached government orientations, nothing to compare against")
        return {"votes": [], "total": 0}

    vote_events = sort_by_date_desc(
        [e for e in fetch_vote_events(supabase_client, year) if str(e.get("id")) in government_votes]
    )[:limit]
    events_by_id = {str(e["id"]): e for e in vote_events}

    logger.info(
        f"Fetching votes of legislator {legislator_id} on {len(vote_events)} vote events of {year}"
    )
    rosters = await vote_fetcher.fetch_rosters(list(events_by_id))

    votes: List[Dict[str, Any]] = []
    for vote_event_id, roster in rosters.rosters:
        entry = build_vote_entry(
            roster, legislator_id, events_by_id[vote_event_id], government_votes[vote_event_id]
        )
        if entry is not None:
            votes.append(entry)

    votes = sort_by_date_desc(votes)
    return {"votes": votes, "total": len(votes)}
