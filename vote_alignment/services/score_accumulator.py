"""
Per-legislator alignment tallies.

A pass over a year's vote events spans several invocations. Each invocation
after the first seeds its accumulator from the rows persisted so far, adds
the rosters of its own window, and writes the merged totals back.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from vote_alignment.lib.classifier import score_and_classify
from vote_alignment.lib.normalizer import is_stance, normalize_vote

logger = logging.getLogger(__name__)


def roster_legislator_id(record: Dict[str, Any]) -> Optional[int]:
    """The roster record's legislator id, or None when missing/unusable."""
    legislator = record.get("deputado_")
    if not isinstance(legislator, dict):
        return None
    raw_id = legislator.get("id")
    if raw_id is None or raw_id == "":
        return None
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        return None


@dataclass
class LegislatorTally:
    """Running counts and identity for one legislator."""
    legislator_id: int
    name: str = "N/A"
    party: Optional[str] = None
    state: Optional[str] = None
    photo_url: Optional[str] = None
    aligned: int = 0
    relevant: int = 0

    @classmethod
    def from_roster_record(cls, legislator_id: int, record: Dict[str, Any]) -> "LegislatorTally":
        legislator = record.get("deputado_") or {}
        return cls(
            legislator_id=legislator_id,
            name=legislator.get("nome") or "N/A",
            party=legislator.get("siglaPartido") or None,
            state=legislator.get("siglaUf") or None,
            photo_url=legislator.get("urlFoto") or None,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "LegislatorTally":
        """Rebuild a tally from a persisted legislator_alignments row."""
        return cls(
            legislator_id=int(row["legislator_id"]),
            name=row.get("name") or "N/A",
            party=row.get("party"),
            state=row.get("state"),
            photo_url=row.get("photo_url"),
            aligned=int(row.get("aligned_count") or 0),
            relevant=int(row.get("relevant_count") or 0),
        )

    def to_row(self, year: int) -> Dict[str, Any]:
        score, classification = score_and_classify(self.aligned, self.relevant)
        return {
            "legislator_id": self.legislator_id,
            "year": year,
            "name": self.name,
            "party": self.party,
            "state": self.state,
            "photo_url": self.photo_url,
            "relevant_count": self.relevant,
            "aligned_count": self.aligned,
            "score": score,
            "classification": classification,
        }


class ScoreAccumulator:
    """Merges roster observations into per-legislator tallies."""

    def __init__(self):
        self.tallies: Dict[int, LegislatorTally] = {}
        self.touched: Set[int] = set()

    def __len__(self) -> int:
        return len(self.tallies)

    def seed(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Copy previously persisted rows in verbatim; returns rows seeded."""
        seeded = 0
        for row in rows:
            try:
                tally = LegislatorTally.from_row(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring unusable persisted alignment row {row!r}: {e}")
                continue
            self.tallies[tally.legislator_id] = tally
            seeded += 1
        return seeded

    def add_roster(
        self,
        roster: Iterable[Dict[str, Any]],
        government_vote: Optional[str],
    ) -> int:
        """Count one vote event's roster against the government's orientation.

        A legislator listed twice in the same roster is counted once.

        Returns:
            Number of roster records counted
        """
        government_norm = normalize_vote(government_vote)
        seen: Set[int] = set()
        counted = 0

        for record in roster:
            if not isinstance(record, dict):
                continue
            legislator_id = roster_legislator_id(record)
            if legislator_id is None or legislator_id in seen:
                continue
            seen.add(legislator_id)

            tally = self.tallies.get(legislator_id)
            if tally is None:
                tally = LegislatorTally.from_roster_record(legislator_id, record)
                self.tallies[legislator_id] = tally
            self.touched.add(legislator_id)
            counted += 1

            vote = normalize_vote(record.get("tipoVoto"))
            if not is_stance(vote):
                continue
            tally.relevant += 1
            if vote == government_norm:
                tally.aligned += 1

        return counted

    def to_rows(self, year: int, touched_only: bool = False) -> List[Dict[str, Any]]:
        """legislator_alignments rows for every tally (or only those seen this batch)."""
        ids = sorted(self.touched if touched_only else self.tallies)
        return [self.tallies[legislator_id].to_row(year) for legislator_id in ids]
