"""
Vote weight arithmetic.

A vote counts +weight when UP and -weight when DOWN. The weight is taken from
the voter's role at the time the vote is cast or changed.
"""

from typing import Any, Iterable, Mapping, Union

from qup.constants import ROLE_WEIGHTS
from qup.enums import UserRole, VoteType


def calculate_vote_weight(role: Union[UserRole, str, None]) -> int:
    try:
        return ROLE_WEIGHTS.get(UserRole(role), 1)
    except ValueError:
        return 1


def signed_weight(vote_type: Union[VoteType, str], weight: int) -> int:
    return weight if VoteType(vote_type) is VoteType.UP else -weight


def _field(vote: Any, name: str) -> Any:
    if isinstance(vote, Mapping):
        return vote[name]
    return getattr(vote, name)


def calculate_total_votes(votes: Iterable[Any]) -> int:
    """Signed sum over votes given as mappings or objects with `type` and `weight`."""
    return sum(signed_weight(_field(v, "type"), _field(v, "weight")) for v in votes)


def can_vote(user_id: Any, existing_votes: Iterable[Any]) -> bool:
    """False when `user_id` already holds a vote among `existing_votes`."""
    return all(str(_field(v, "user_id")) != str(user_id) for v in existing_votes)
