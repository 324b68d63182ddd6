"""
Vote toggling for a (user, caption) pair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from gallery.db import DbClient

logger = logging.getLogger(__name__)

VALID_VOTE_VALUES = (1, -1)


class VoteAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    REMOVED = "removed"


@dataclass
class VoteOutcome:
    caption_id: str
    action: VoteAction
    my_vote: int


def toggle_vote(db: DbClient, user_id: str, caption_id: str, value: int) -> VoteOutcome:
    """
    Clicking the value already recorded removes the vote, clicking the other
    value overwrites it, and with no vote on record a new one is inserted.

    The lookup and the write are separate requests; a concurrent writer for
    the same pair is not detected. Backend failures propagate as BackendError.
    """
    if value not in VALID_VOTE_VALUES:
        raise ValueError(f"vote value must be 1 or -1, got {value!r}")

    existing = db.get_vote(user_id, caption_id)
    if existing and existing.vote_value == value:
        db.delete_vote(existing.id)
        outcome = VoteOutcome(caption_id, VoteAction.REMOVED, 0)
    elif existing:
        db.update_vote(existing.id, value)
        outcome = VoteOutcome(caption_id, VoteAction.UPDATED, value)
    else:
        db.insert_vote(user_id, caption_id, value)
        outcome = VoteOutcome(caption_id, VoteAction.INSERTED, value)

    logger.info(
        "Vote %s for caption %s by %s", outcome.action.value, caption_id, user_id
    )
    return outcome


def caption_score(db: DbClient, caption_id: str) -> int:
    return sum(v.vote_value for v in db.list_votes() if v.caption_id == caption_id)
