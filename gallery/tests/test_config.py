import os
import unittest
from unittest.mock import patch

from gallery.config import Settings


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.api_prefix, "/api")
        self.assertEqual(settings.image_limit, 20)
        self.assertEqual(settings.caption_preview_count, 2)
        self.assertEqual(settings.vote_mode, "votes")
        self.assertIsNone(settings.supabase_url)

    def test_accepts_public_env_names(self):
        env = {
            "NEXT_PUBLIC_SUPABASE_URL": "https://project.example.co",
            "NEXT_PUBLIC_SUPABASE_ANON_KEY": "anon",
            "VOTE_MODE": "likes",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.supabase_url, "https://project.example.co")
        self.assertEqual(settings.supabase_anon_key, "anon")
        self.assertEqual(settings.vote_mode, "likes")

    def test_in_memory_toggle(self):
        with patch.dict(
            os.environ, {"GALLERY_USE_IN_MEMORY_BACKENDS": "true"}, clear=True
        ):
            settings = Settings(_env_file=None)
        self.assertTrue(settings.use_in_memory_backends)


if __name__ == "__main__":
    unittest.main()
