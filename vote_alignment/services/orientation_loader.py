"""
Government orientation loader.

Reads the Chamber's per-year bulk orientation file (every bloc's guidance for
every vote event) and extracts the government leadership's recommended vote
per vote event. The ids with guidance, sorted, form the batch universe.

Bulk file: {bulk_base}/votacoesOrientacoes/json/votacoesOrientacoes-{year}.json
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from supabase import Client

from vote_alignment.config import SyncConfig
from vote_alignment.lib.database import upsert_orientations
from vote_alignment.lib.exceptions import OrientationLoadError
from vote_alignment.lib.http_client import resilient_request
from vote_alignment.lib.normalizer import fold

logger = logging.getLogger(__name__)

# Folded spellings the government floor leadership is published under
GOVERNMENT_BLOC_ALIASES = frozenset({"governo", "gov.", "lider do governo", "lidgov"})

# Orientation meaning "released, no guidance"
RELEASED_ORIENTATION = "liberado"

# Loaded datasets by year, reused by later batches of a pass
_LOADED: Dict[int, "OrientationSet"] = {}


def is_government_bloc(bloc_code: Optional[str]) -> bool:
    """Case and diacritic-insensitive match against the government aliases."""
    return fold(bloc_code) in GOVERNMENT_BLOC_ALIASES


def is_guidance(orientation: Optional[str]) -> bool:
    """An orientation that actually recommends something."""
    trimmed = (orientation or "").strip()
    return bool(trimmed) and trimmed.lower() != RELEASED_ORIENTATION


@dataclass
class OrientationSet:
    """Everything the sync needs from one year's bulk orientation file."""
    year: int
    government_votes: Dict[str, str] = field(default_factory=dict)
    vote_event_ids: List[str] = field(default_factory=list)
    vote_events: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    records: List[Dict[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.vote_event_ids)

    def vote_event_rows(self, vote_event_ids: List[str]) -> List[Dict[str, Any]]:
        """vote_events rows for the given ids, in the given order."""
        return [self.vote_events[vid] for vid in vote_event_ids if vid in self.vote_events]


def parse_orientation_records(year: int, raw_records: List[Dict[str, Any]]) -> OrientationSet:
    """Build an OrientationSet from the bulk file's records.

    Records without a vote event id are ignored. Duplicate government entries
    for the same vote event resolve last-write-wins.
    """
    result = OrientationSet(year=year)

    for raw in raw_records:
        if not isinstance(raw, dict):
            continue
        vote_event_id = str(raw.get("idVotacao") or "").strip()
        if not vote_event_id:
            continue

        bloc_code = raw.get("siglaBancada") or ""
        orientation = raw.get("orientacao") or ""
        result.records.append({
            "vote_event_id": vote_event_id,
            "bloc_code": bloc_code,
            "recommended_vote": orientation,
        })

        if is_government_bloc(bloc_code) and is_guidance(orientation):
            result.government_votes[vote_event_id] = orientation.strip()
            result.vote_events[vote_event_id] = {
                "id": vote_event_id,
                "date": raw.get("dataHoraVotacao") or raw.get("data") or None,
                "description": raw.get("descricao") or None,
                "committee": raw.get("siglaOrgao") or None,
                "year": year,
            }

    result.vote_event_ids = sorted(result.government_votes)
    return result


class OrientationLoader:
    """Fetches and parses the bulk orientation file for a year."""

    def __init__(self, http_client: httpx.AsyncClient, config: Optional[SyncConfig] = None):
        self.http = http_client
        self.config = config or SyncConfig()

    def bulk_url(self, year: int) -> str:
        return (
            f"{self.config.bulk_base}/votacoesOrientacoes/json/"
            f"votacoesOrientacoes-{year}.json"
        )

    async def fetch(self, year: int) -> OrientationSet:
        """Download and parse the year's orientations.

        Raises:
            OrientationLoadError: fetch failed, body is not JSON, or the
                record container is not a list
        """
        url = self.bulk_url(year)
        try:
            response = await resilient_request("GET", url, client=self.http)
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise OrientationLoadError(
                "Failed to fetch orientations",
                year=year,
                status_code=e.response.status_code,
                url=url,
            ) from e
        except httpx.HTTPError as e:
            raise OrientationLoadError(
                f"Failed to fetch orientations: {e}", year=year, url=url
            ) from e
        except ValueError as e:
            raise OrientationLoadError(
                "Orientation dataset is not valid JSON", year=year, url=url
            ) from e

        records = payload.get("dados") if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise OrientationLoadError(
                "Orientation dataset has no record list", year=year, url=url
            )

        orientation_set = parse_orientation_records(year, records)
        logger.info(
            f"Loaded {len(orientation_set.records)} orientations for {year}: "
            f"{orientation_set.total} vote events with government guidance"
        )
        return orientation_set

    async def load(self, year: int, refresh: bool = False) -> OrientationSet:
        """Return the year's orientations, fetching when refreshing or not yet loaded."""
        if not refresh and year in _LOADED:
            logger.debug(f"Reusing loaded orientations for {year}")
            return _LOADED[year]

        orientation_set = await self.fetch(year)
        _LOADED[year] = orientation_set
        return orientation_set


def persist_orientations(
    supabase_client: Client,
    orientation_set: OrientationSet,
    chunk_size: int,
) -> int:
    """Upsert every raw orientation record (all blocs) into the cache table."""
    return upsert_orientations(supabase_client, orientation_set.records, chunk_size)


def clear_loaded_orientations() -> None:
    """Forget every memoized dataset. Primarily used for testing."""
    _LOADED.clear()
