"""Protection score arithmetic."""

from typing import Optional

BASE_SCORE = 50
DISTRIBUTED_BONUS = 25
LEDGER_BONUS = 25


def protection_score(distributed_succeeded: bool, ledger_succeeded: bool) -> int:
    """50 for primary storage, +25 per optional stage that succeeded."""
    score = BASE_SCORE
    if distributed_succeeded:
        score += DISTRIBUTED_BONUS
    if ledger_succeeded:
        score += LEDGER_BONUS
    return score


def protection_level(score: Optional[int]) -> str:
    if not score:
        return "low"
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    return "low"
