"""Which bucket-to-bucket moves are legal"""

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from taskdash.features.tasks.domain import RATING_FIELDS, TaskStatus


class Rule(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    REQUIRES_RATINGS = "requires_ratings"
    REQUIRES_NO_RATINGS = "requires_no_ratings"


class DenialReason(str, Enum):
    """Why a move was refused"""
    SAME_STATUS = "same_status"
    MISSING_RATINGS = "missing_ratings"
    RATINGS_ARE_STICKY = "ratings_are_sticky"
    NOT_ALLOWED = "not_allowed"


_U, _R, _P, _C = TaskStatus.UNRATED, TaskStatus.RATED, TaskStatus.PARKED, TaskStatus.COMPLETED

# (current, target) -> rule. A fully rated task never goes back to unrated,
# anything can be parked or completed, only fully rated tasks enter rated.
TRANSITION_RULES: Dict[Tuple[TaskStatus, TaskStatus], Rule] = {
    (_U, _R): Rule.REQUIRES_RATINGS,
    (_U, _P): Rule.ALLOWED,
    (_U, _C): Rule.ALLOWED,
    (_R, _U): Rule.DENIED,
    (_R, _P): Rule.ALLOWED,
    (_R, _C): Rule.ALLOWED,
    (_P, _U): Rule.REQUIRES_NO_RATINGS,
    (_P, _R): Rule.REQUIRES_RATINGS,
    (_P, _C): Rule.ALLOWED,
    (_C, _U): Rule.REQUIRES_NO_RATINGS,
    (_C, _R): Rule.ALLOWED,
    (_C, _P): Rule.ALLOWED,
}


def denial_reason(
    current: Union[TaskStatus, str],
    target: Union[TaskStatus, str],
    has_all_ratings: bool,
) -> Optional[DenialReason]:
    """Return None if the move is allowed, otherwise the reason it is not."""
    current, target = TaskStatus(current), TaskStatus(target)

    if current == target:
        return DenialReason.SAME_STATUS

    rule = TRANSITION_RULES.get((current, target), Rule.DENIED)

    if rule == Rule.ALLOWED:
        return None
    if rule == Rule.REQUIRES_RATINGS:
        return None if has_all_ratings else DenialReason.MISSING_RATINGS
    if rule == Rule.REQUIRES_NO_RATINGS:
        return None if not has_all_ratings else DenialReason.RATINGS_ARE_STICKY
    if target == TaskStatus.UNRATED:
        return DenialReason.RATINGS_ARE_STICKY
    return DenialReason.NOT_ALLOWED


def can_transition(
    current: Union[TaskStatus, str],
    target: Union[TaskStatus, str],
    has_all_ratings: bool,
) -> bool:
    return denial_reason(current, target, has_all_ratings) is None


def allowed_targets(current: Union[TaskStatus, str], has_all_ratings: bool) -> List[TaskStatus]:
    """Buckets a card may be dropped on, in dashboard order"""
    return [
        target for target in TaskStatus
        if can_transition(current, target, has_all_ratings)
    ]


def missing_ratings(energy, simplicity, impact) -> List[str]:
    """Names of the rating fields that are still empty"""
    values = dict(zip(RATING_FIELDS, (energy, simplicity, impact)))
    return [name for name in RATING_FIELDS if values[name] is None]
