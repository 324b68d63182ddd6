import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from gallery.db import PostgresDbClient
from scripts import seed_gallery


class SeedScriptTests(unittest.TestCase):
    def test_seed_inserts_images_and_captions(self):
        db = PostgresDbClient("sqlite+pysqlite:///:memory:")
        images, captions = seed_gallery.seed(
            db,
            [
                {"url": "https://example.test/a.png", "captions": ["one", "two"]},
                {"captions": ["skipped"]},
                {"url": "https://example.test/b.png"},
            ],
            profile_id="seed",
        )
        self.assertEqual(images, 2)
        self.assertEqual(captions, 2)
        self.assertEqual(len(db.list_images()), 2)
        self.assertTrue(all(c.profile_id == "seed" for c in db.list_captions()))

    def test_main_reads_json_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "seed.json")
            db_path = os.path.join(tmp, "gallery.db")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(
                    [
                        {"url": "https://example.test/a.png", "captions": ["x"]},
                        {"captions": ["no url"]},
                    ],
                    f,
                )
            out = io.StringIO()
            with redirect_stdout(out):
                code = seed_gallery.main(
                    [path, "--database-url", f"sqlite:///{db_path}"]
                )
            self.assertEqual(code, 0)
            self.assertIn("Seeded 1 images and 1 captions", out.getvalue())
            db = PostgresDbClient(f"sqlite:///{db_path}")
            self.assertEqual(len(db.list_captions()), 1)
            db.engine.dispose()


if __name__ == "__main__":
    unittest.main()
