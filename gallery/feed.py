"""
Joins images, captions and votes into the gallery feed.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from gallery.db import CaptionRecord, DbClient, ImageRecord, VoteRecord

logger = logging.getLogger(__name__)

NO_TEXT = "No text"
NO_DATE = "No date"

# Postgres trims trailing zeros from fractional seconds.
_FRACTION = re.compile(r"\.(\d+)")


@dataclass
class ImageWithCaptions:
    image: ImageRecord
    captions: list[CaptionRecord] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.image.id


@dataclass
class Feed:
    images: list[ImageWithCaptions]
    scores: dict[str, int]
    my_votes: dict[str, int]

    def find(self, image_id: str) -> Optional[ImageWithCaptions]:
        for entry in self.images:
            if entry.id == image_id:
                return entry
        return None


def caption_text(caption: CaptionRecord) -> str:
    return caption.text or caption.caption_text or caption.content or NO_TEXT


def image_timestamp(image: ImageRecord) -> Optional[str]:
    return image.created_at or image.created_at_utc


def _normalize_timestamp(value: str) -> str:
    value = value.replace("Z", "+00:00")
    return _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1
    )


def format_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as M/D/YYYY, or "No date"."""
    if not value:
        return NO_DATE
    try:
        parsed = datetime.fromisoformat(_normalize_timestamp(value))
    except ValueError:
        return NO_DATE
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def build_feed(
    images: Iterable[ImageRecord], captions: Iterable[CaptionRecord]
) -> list[ImageWithCaptions]:
    """
    Attach each image's captions and order by caption count, most first.
    Images with equal counts keep the order the query returned them in.
    """
    captions = list(captions)
    combined = [
        ImageWithCaptions(
            image=image,
            captions=[c for c in captions if c.image_id == image.id],
        )
        for image in images
    ]
    combined.sort(key=lambda entry: len(entry.captions), reverse=True)
    return combined


def tally_votes(votes: Iterable[VoteRecord]) -> dict[str, int]:
    scores: dict[str, int] = defaultdict(int)
    for vote in votes:
        scores[vote.caption_id] += vote.vote_value
    return dict(scores)


def user_votes(votes: Iterable[VoteRecord], user_id: str) -> dict[str, int]:
    return {v.caption_id: v.vote_value for v in votes if v.profile_id == user_id}


def load_feed(db: DbClient, user_id: str, image_limit: int = 20) -> Feed:
    """Run the three table queries and join them."""
    logger.debug("Fetching images (limit=%s)", image_limit)
    images = db.list_images(limit=image_limit)
    logger.debug("Fetching captions")
    captions = db.list_captions()
    logger.debug("Fetching votes")
    votes = db.list_votes()

    feed = Feed(
        images=build_feed(images, captions),
        scores=tally_votes(votes),
        my_votes=user_votes(votes, user_id),
    )
    logger.info(
        "Loaded feed: %d images, %d captions, %d votes",
        len(images),
        len(captions),
        len(votes),
    )
    return feed
