"""
Vote string normalization.

The Chamber publishes votes and orientations as free text ("Sim", "Não",
"Abstenção", "Obstrução", "Art. 17", ...). Everything compared by the sync
goes through normalize_vote() first.
"""

import unicodedata
from typing import Callable, List, Optional, Tuple

YES = "Yes"
NO = "No"
ABSTENTION = "Abstention"
OBSTRUCTION = "Obstruction"
ABSENT = "Absent"
EMPTY = ""

# Normalized values that are not a stance and never count as relevant votes
NON_STANCE_VOTES = frozenset({ABSTENTION, OBSTRUCTION, ABSENT, EMPTY})


def fold(value: Optional[str]) -> str:
    """Trim, lowercase and strip diacritics: ' Não ' -> 'nao'."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _exact(*tokens: str) -> Callable[[str], bool]:
    return lambda folded: folded in tokens


def _contains(*tokens: str) -> Callable[[str], bool]:
    return lambda folded: any(token in folded for token in tokens)


# Ordered (predicate, canonical value) table, first match wins.
# Canonical values are listed among their own tokens so normalization is idempotent.
VOTE_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (_exact("sim", "yes"), YES),
    (_exact("nao", "no"), NO),
    (_contains("abstencao", "abstention"), ABSTENTION),
    (_contains("obstrucao", "obstruction"), OBSTRUCTION),
    (_contains("ausente", "ausencia", "absent"), ABSENT),
]


def normalize_vote(raw: Optional[str]) -> str:
    """Map a raw vote or orientation string onto the canonical vocabulary.

    Unknown values are returned trimmed but otherwise unchanged; None, empty
    and whitespace-only input become EMPTY.
    """
    if raw is None:
        return EMPTY
    trimmed = str(raw).strip()
    if not trimmed:
        return EMPTY

    folded = fold(trimmed)
    for predicate, canonical in VOTE_RULES:
        if predicate(folded):
            return canonical
    return trimmed


def is_stance(normalized_vote: str) -> bool:
    """True when a normalized vote counts towards the relevant total."""
    return normalized_vote not in NON_STANCE_VOTES
