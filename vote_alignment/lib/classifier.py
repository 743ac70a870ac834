"""Alignment score and classification."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Tuple

GOVERNMENT = "Government"
CENTRIST = "Centrist"
OPPOSITION = "Opposition"
NO_DATA = "NoData"

GOVERNMENT_THRESHOLD = 70.0
OPPOSITION_THRESHOLD = 35.0

SCORE_PRECISION = Decimal("0.01")


def compute_score(aligned: int, relevant: int) -> float:
    """Percentage of relevant votes that matched the government.

    Rounded to 2 decimals, halves away from zero: 1/32 is 3.13.
    """
    if relevant <= 0:
        return 0.0
    exact = Decimal(aligned * 100) / Decimal(relevant)
    return float(exact.quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP))


def classify(relevant: int, score: float) -> str:
    """Classify a legislator from relevant vote count and score.

    Both thresholds are inclusive: 70.00 is Government, 35.00 is Opposition.
    """
    if relevant <= 0:
        return NO_DATA
    if score >= GOVERNMENT_THRESHOLD:
        return GOVERNMENT
    if score <= OPPOSITION_THRESHOLD:
        return OPPOSITION
    return CENTRIST


def score_and_classify(aligned: int, relevant: int) -> Tuple[float, str]:
    """Return (score, classification); relevant == 0 forces score 0 and NoData."""
    score = compute_score(aligned, relevant)
    return score, classify(relevant, score)
