"""
Batch vote fetcher.

Downloads vote-event rosters one at a time from {api_base}/votacoes/{id}/votos.
A rate-limited request (HTTP 429) is retried once after a fixed wait; every
other failure skips the event. Each attempt is followed by a fixed sleep so
the open-data API's rate limit is respected.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from vote_alignment.config import SyncConfig
from vote_alignment.lib.http_client import resilient_request

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


@dataclass
class RosterBatch:
    """Rosters fetched for a window, in window order, plus the skipped ids."""
    rosters: List[Tuple[str, List[Dict[str, Any]]]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def fetched(self) -> int:
        return len(self.rosters)


class VoteFetcher:
    """Sequential, rate-limited roster downloads."""

    def __init__(self, http_client: httpx.AsyncClient, config: Optional[SyncConfig] = None):
        self.http = http_client
        self.config = config or SyncConfig()

    def roster_url(self, vote_event_id: str) -> str:
        return f"{self.config.api_base}/votacoes/{vote_event_id}/votos"

    async def fetch_roster(self, vote_event_id: str) -> Optional[List[Dict[str, Any]]]:
        """Fetch one vote event's roster, or None when the event must be skipped."""
        url = self.roster_url(vote_event_id)
        try:
            response = await resilient_request(
                "GET",
                url,
                client=self.http,
                max_retries=1,
                base_delay=self.config.rate_limit_backoff,
                exponential=False,
                jitter=False,
                retry_on_status={RATE_LIMIT_STATUS},
                retry_on_exceptions=(),
                respect_retry_after=False,
            )
            payload = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == RATE_LIMIT_STATUS:
                logger.warning(f"Skipping vote event {vote_event_id}: still rate limited after retry")
            else:
                logger.warning(f"Skipping vote event {vote_event_id}: HTTP {status}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Skipping vote event {vote_event_id}: {type(e).__name__}: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Skipping vote event {vote_event_id}: invalid JSON ({e})")
            return None

        roster = payload.get("dados") if isinstance(payload, dict) else None
        if not isinstance(roster, list):
            logger.warning(f"Skipping vote event {vote_event_id}: roster payload has no vote list")
            return None
        return roster

    async def fetch_rosters(self, vote_event_ids: List[str]) -> RosterBatch:
        """Fetch rosters for a window sequentially; failures never abort the window."""
        batch = RosterBatch()
        total = len(vote_event_ids)

        for i, vote_event_id in enumerate(vote_event_ids):
            roster = await self.fetch_roster(vote_event_id)
            if roster is None:
                batch.skipped.append(vote_event_id)
            else:
                batch.rosters.append((vote_event_id, roster))
                logger.debug(
                    f"Vote event {i + 1}/{total} {vote_event_id}: {len(roster)} votes"
                )

            await asyncio.sleep(self.config.request_delay)

        if batch.skipped:
            logger.info(f"Fetched {batch.fetched}/{total} rosters, skipped {len(batch.skipped)}")
        return batch
