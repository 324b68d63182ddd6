"""
Sample content for running the app locally with in-memory backends.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DEMO_IMAGES = [
    (
        "https://picsum.photos/id/237/600/600",
        [
            "When the standup runs long",
            "Me waiting for CI to go green",
            "Who let the dogs out? Not me.",
        ],
    ),
    (
        "https://picsum.photos/id/1025/600/600",
        ["Monday mood", "Ship it"],
    ),
    ("https://picsum.photos/id/1062/600/600", []),
]


def seed_demo_content(db, auth, email: str, password: str) -> None:
    """Register a demo account and fill an in-memory store with images."""
    user = auth.register(email, password)
    for url, captions in DEMO_IMAGES:
        image = db.add_image(url)
        for text in captions:
            db.add_caption(image.id, text, profile_id=user.id)
    logger.info("Seeded demo content for %s", email)
