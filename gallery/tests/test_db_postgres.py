import unittest

from gallery.db import PostgresDbClient


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_images_and_captions(self):
        image = self.db.add_image("https://example.test/a.png")
        self.db.add_caption(image.id, "first", profile_id="u1")
        self.db.add_caption(image.id, "second", profile_id="u2")

        images = self.db.list_images(limit=20)
        self.assertEqual([i.id for i in images], [image.id])
        self.assertIsNotNone(images[0].created_at)

        captions = self.db.list_captions()
        self.assertEqual(sorted(c.content for c in captions), ["first", "second"])
        self.assertTrue(all(c.image_id == image.id for c in captions))

    def test_list_images_respects_limit(self):
        for i in range(3):
            self.db.add_image(f"https://example.test/{i}.png")
        self.assertEqual(len(self.db.list_images(limit=2)), 2)

    def test_vote_lifecycle(self):
        vote = self.db.insert_vote("u1", "c1", 1)
        fetched = self.db.get_vote("u1", "c1")
        self.assertEqual(fetched.id, vote.id)
        self.assertEqual(fetched.vote_value, 1)
        self.assertIsNone(self.db.get_vote("u2", "c1"))

        self.db.update_vote(vote.id, -1)
        self.assertEqual(self.db.get_vote("u1", "c1").vote_value, -1)

        self.db.delete_vote(vote.id)
        self.assertIsNone(self.db.get_vote("u1", "c1"))
        self.assertEqual(self.db.list_votes(), [])

    def test_update_and_delete_unknown_vote_are_noops(self):
        self.db.update_vote("missing", 1)
        self.db.delete_vote("missing")
        self.assertEqual(self.db.list_votes(), [])

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            PostgresDbClient("")


if __name__ == "__main__":
    unittest.main()
