"""
Shapes the joined feed for the API and the templates.
"""

from __future__ import annotations

from typing import AbstractSet

from gallery.feed import (
    Feed,
    ImageWithCaptions,
    caption_text,
    format_date,
    image_timestamp,
)
from gallery.schemas import CaptionOut, ImageOut


def image_out(
    entry: ImageWithCaptions, feed: Feed, liked: AbstractSet[str]
) -> ImageOut:
    return ImageOut(
        id=entry.image.id,
        url=entry.image.url,
        created_at=image_timestamp(entry.image),
        display_date=format_date(image_timestamp(entry.image)),
        caption_count=len(entry.captions),
        captions=[
            CaptionOut(
                id=caption.id,
                image_id=caption.image_id,
                text=caption_text(caption),
                profile_id=caption.profile_id,
                created_at=caption.created_at or caption.created_at_utc,
                score=feed.scores.get(caption.id, 0),
                my_vote=feed.my_votes.get(caption.id, 0),
                liked=caption.id in liked,
            )
            for caption in entry.captions
        ],
    )


def feed_out(feed: Feed, liked: AbstractSet[str]) -> list[ImageOut]:
    return [image_out(entry, feed, liked) for entry in feed.images]
