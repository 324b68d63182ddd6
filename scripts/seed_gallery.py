"""
Seeds images and captions into a SQL database for local development.

The input file is a JSON list of objects:
    [{"url": "https://...", "captions": ["first", "second"]}, ...]
"""

import argparse
import json
import logging
import sys

from gallery.config import get_settings
from gallery.db import PostgresDbClient

logger = logging.getLogger(__name__)


def seed(
    db: PostgresDbClient, entries: list[dict], profile_id: str | None
) -> tuple[int, int]:
    """Insert every image with its captions; returns (images, captions) added."""
    images = 0
    total = 0
    for entry in entries:
        url = entry.get("url")
        if not url:
            logger.warning("Skipping entry without url: %s", entry)
            continue
        image = db.add_image(url)
        images += 1
        for text in entry.get("captions", []):
            db.add_caption(image.id, text, profile_id=profile_id)
            total += 1
        print(f"Added image {image.id} with {len(entry.get('captions', []))} captions")
    return images, total


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed gallery images and captions.")
    parser.add_argument("input", help="Path to a JSON file with images and captions.")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL; defaults to DATABASE_URL from the environment.",
    )
    parser.add_argument(
        "--profile-id",
        default=None,
        help="Author id recorded on the seeded captions.",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        print("❌ No database URL. Pass --database-url or set DATABASE_URL.")
        return 1

    with open(args.input, "r", encoding="utf-8") as f:
        entries = json.load(f)

    db = PostgresDbClient(database_url)
    images, total = seed(db, entries, args.profile_id)
    print(f"✅ Seeded {images} images and {total} captions.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
