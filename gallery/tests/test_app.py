import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from gallery.app import create_app
from gallery.auth import InMemoryAuthClient
from gallery.db import InMemoryDbClient, RestDbClient
from gallery.demo import DEMO_IMAGES, seed_demo_content
from gallery.dependencies import get_auth_client, get_db_client, get_like_store
from gallery.errors import BackendError
from gallery.likes import LikeStore


class GalleryApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        self.db = InMemoryDbClient()
        self.auth = InMemoryAuthClient()
        self.likes = LikeStore()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_auth_client] = lambda: self.auth
        self.app.dependency_overrides[get_like_store] = lambda: self.likes
        self.client = TestClient(self.app)

        self.user = self.auth.register("ada@example.com", "secret")
        self.token = self.auth.sign_in_with_password(
            "ada@example.com", "secret"
        ).access_token
        self.headers = {"Authorization": f"Bearer {self.token}"}

        self.lonely = self.db.add_image("https://example.test/lonely.png")
        self.popular = self.db.add_image(
            "https://example.test/popular.png", created_at="2024-03-05T10:00:00Z"
        )
        self.caption = self.db.add_caption(self.popular.id, "first", profile_id="u2")
        self.db.add_caption(self.popular.id, "second", profile_id="u3")

    def test_healthz_is_public(self):
        response = self.client.get("/api/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_feed_requires_auth(self):
        response = self.client.get("/api/feed")
        self.assertEqual(response.status_code, 401)

        response = self.client.get(
            "/api/feed", headers={"Authorization": "Bearer unknown"}
        )
        self.assertEqual(response.status_code, 401)

    def test_login_and_me(self):
        response = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "secret"},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["user"]["email"], "ada@example.com")
        self.assertIn("session_token", response.cookies)

        me = self.client.get(
            "/api/me", headers={"Authorization": f"Bearer {payload['access_token']}"}
        )
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["id"], self.user.id)

    def test_login_with_bad_password(self):
        response = self.client.post(
            "/api/auth/login",
            json={"email": "ada@example.com", "password": "nope"},
        )
        self.assertEqual(response.status_code, 401)

    def test_logout_revokes_token(self):
        response = self.client.post("/api/auth/logout", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            self.client.get("/api/me", headers=self.headers).status_code, 401
        )

    def test_feed_orders_by_caption_count(self):
        response = self.client.get("/api/feed", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["vote_mode"], "votes")
        ids = [image["id"] for image in payload["images"]]
        self.assertEqual(ids, [self.popular.id, self.lonely.id])

        popular = payload["images"][0]
        self.assertEqual(popular["caption_count"], 2)
        self.assertEqual(popular["display_date"], "3/5/2024")
        self.assertEqual(popular["captions"][0]["text"], "first")
        self.assertEqual(popular["captions"][0]["score"], 0)

    def test_vote_toggle_round_trip(self):
        url = f"/api/captions/{self.caption.id}/vote"
        first = self.client.post(url, json={"value": 1}, headers=self.headers)
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["action"], "inserted")
        self.assertEqual(first.json()["score"], 1)

        flipped = self.client.post(url, json={"value": -1}, headers=self.headers)
        self.assertEqual(flipped.json()["action"], "updated")
        self.assertEqual(flipped.json()["my_vote"], -1)
        self.assertEqual(flipped.json()["score"], -1)

        removed = self.client.post(url, json={"value": -1}, headers=self.headers)
        self.assertEqual(removed.json()["action"], "removed")
        self.assertEqual(removed.json()["my_vote"], 0)
        self.assertEqual(removed.json()["score"], 0)
        self.assertEqual(self.db.votes, {})

    def test_vote_rejects_invalid_value(self):
        response = self.client.post(
            f"/api/captions/{self.caption.id}/vote",
            json={"value": 5},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_vote_reflected_in_feed(self):
        self.client.post(
            f"/api/captions/{self.caption.id}/vote",
            json={"value": 1},
            headers=self.headers,
        )
        feed = self.client.get("/api/feed", headers=self.headers).json()
        caption = feed["images"][0]["captions"][0]
        self.assertEqual(caption["my_vote"], 1)
        self.assertEqual(caption["score"], 1)

    def test_like_toggle(self):
        url = f"/api/captions/{self.caption.id}/like"
        self.assertTrue(self.client.post(url, headers=self.headers).json()["liked"])
        image = self.client.get(
            f"/api/images/{self.popular.id}", headers=self.headers
        ).json()
        self.assertTrue(image["captions"][0]["liked"])
        self.assertFalse(self.client.post(url, headers=self.headers).json()["liked"])

    def test_image_detail_not_found(self):
        response = self.client.get("/api/images/missing", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_backend_failure_is_bad_gateway(self):
        broken = MagicMock()
        broken.for_token.return_value = broken
        broken.list_images.side_effect = BackendError("database unavailable")
        self.app.dependency_overrides[get_db_client] = lambda: broken

        response = self.client.get("/api/feed", headers=self.headers)
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["detail"], "database unavailable")

    def test_auth_outage_is_bad_gateway(self):
        broken = MagicMock()
        broken.get_user.side_effect = BackendError("auth down")
        self.app.dependency_overrides[get_auth_client] = lambda: broken

        response = self.client.get("/api/feed", headers=self.headers)
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["detail"], "auth down")

    def test_malformed_vote_rows_are_bad_gateway(self):
        http = MagicMock()
        http.request.return_value = MagicMock(
            status_code=200, content=b"x", json=MagicMock(return_value=[{"id": "v"}])
        )
        rest = RestDbClient("https://project.example.co", "anon", session=http)
        self.app.dependency_overrides[get_db_client] = lambda: rest

        response = self.client.get("/api/feed", headers=self.headers)
        self.assertEqual(response.status_code, 502)


class DemoContentTests(unittest.TestCase):
    def test_seed_demo_content(self):
        db = InMemoryDbClient()
        auth = InMemoryAuthClient()
        seed_demo_content(db, auth, "demo@example.com", "demo")

        self.assertEqual(len(db.images), len(DEMO_IMAGES))
        self.assertEqual(
            len(db.captions), sum(len(captions) for _, captions in DEMO_IMAGES)
        )
        session = auth.sign_in_with_password("demo@example.com", "demo")
        self.assertEqual(session.user.email, "demo@example.com")


if __name__ == "__main__":
    unittest.main()
