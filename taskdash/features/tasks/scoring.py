"""
Priority scoring for tasks.

A task is scored only once it has all three ratings. Whether a score exists
also drives the unrated <-> rated flip: completing the ratings promotes an
unrated task, clearing one demotes a rated task. Parked and completed tasks
keep their status either way.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union

from taskdash.features.tasks.domain import TaskStatus

Rating = Optional[Union[int, float]]

# Weights add up to 1, so a task rated 10/10/10 scores 10
RATING_WEIGHTS: Dict[str, float] = {
    "impact": 0.5,
    "simplicity": 0.3,
    "energy": 0.2,
}

# Matches the precision of the score column
SCORE_DECIMALS = 2


@dataclass(frozen=True)
class ScoringResult:
    score: Optional[float]
    status: TaskStatus


def has_all_ratings(energy: Rating, simplicity: Rating, impact: Rating) -> bool:
    """True when all three ratings are present. Zero is a rating."""
    return energy is not None and simplicity is not None and impact is not None


def calculate_score(energy: Rating, simplicity: Rating, impact: Rating) -> Optional[float]:
    """Weighted score, or None if any rating is missing."""
    if not has_all_ratings(energy, simplicity, impact):
        return None

    raw = (
        impact * RATING_WEIGHTS["impact"]
        + simplicity * RATING_WEIGHTS["simplicity"]
        + energy * RATING_WEIGHTS["energy"]
    )
    return round(float(raw), SCORE_DECIMALS)


def score_task(
    energy: Rating,
    simplicity: Rating,
    impact: Rating,
    status: Union[TaskStatus, str],
) -> ScoringResult:
    """
    Recompute score and status from the current ratings.

    Args:
        energy, simplicity, impact: current ratings (None when not rated)
        status: current status

    Returns:
        ScoringResult with the new score and the (possibly changed) status.
        Running it again on its own output changes nothing.
    """
    status = TaskStatus(status)
    score = calculate_score(energy, simplicity, impact)

    if score is not None:
        if status == TaskStatus.UNRATED:
            status = TaskStatus.RATED
    elif status == TaskStatus.RATED:
        status = TaskStatus.UNRATED

    return ScoringResult(score=score, status=status)
