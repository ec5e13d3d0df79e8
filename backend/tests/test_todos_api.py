import unittest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from factories import (
    FakeExtractor,
    add_subscription,
    add_user,
    auth_headers,
    make_session_factory,
    make_test_app,
    upstream_failure,
)
from remindly.models.todo import Todo
from remindly.models.user import User
from remindly.models.usage_event import UsageEvent
from remindly.services.usage_ledger import record_usage

EVENT = {
    "title": "Dentist",
    "description": "Bring the insurance card",
    "scheduled_time": datetime(2030, 1, 2, 9, 0, tzinfo=timezone.utc),
    "remind_time": datetime(2030, 1, 2, 8, 0, tzinfo=timezone.utc),
}


class ApiTestCase(unittest.TestCase):
    extractor_events = [EVENT]
    extractor_error = None

    def setUp(self):
        self.session_factory = make_session_factory()
        self.extractor = FakeExtractor(events=self.extractor_events, error=self.extractor_error)
        app, self.settings = make_test_app(self.session_factory, event_extractor=self.extractor)
        self.client = TestClient(app)
        self.db = self.session_factory()
        self.user = add_user(self.db, first_name="Ada", last_name="Lovelace", avatar="https://img.test/ada.png")
        self.headers = auth_headers(self.settings, self.user)

    def tearDown(self):
        self.db.close()

    def _fill_quota(self, n):
        at = datetime.now(timezone.utc) - timedelta(hours=1)
        for i in range(n):
            record_usage(self.db, self.user.id, f"old {i}", at=at)


class TestExtractEndpoint(ApiTestCase):
    def test_extract_creates_todos_and_records_usage(self):
        resp = self.client.post("/api/todos/extract", json={"text": "dentist on jan 2 at 9"}, headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual([t["title"] for t in body["todos"]], ["Dentist"])
        self.assertEqual(body["quota"]["quota"], 10)
        self.assertEqual(body["quota"]["used_count"], 1)
        self.assertEqual(self.db.query(Todo).count(), 1)
        event = self.db.query(UsageEvent).one()
        self.assertEqual(event.payload, "dentist on jan 2 at 9")

    def test_extract_is_denied_at_quota(self):
        self._fill_quota(10)
        resp = self.client.post("/api/todos/extract", json={"text": "anything"}, headers=self.headers)
        self.assertEqual(resp.status_code, 402)
        self.assertEqual(resp.json()["code"], "quota_exceeded")
        self.assertEqual(self.extractor.calls, [])
        self.assertEqual(self.db.query(UsageEvent).count(), 10)

    def test_last_allowed_extraction(self):
        self._fill_quota(9)
        resp = self.client.post("/api/todos/extract", json={"text": "one more"}, headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["quota"]["used_count"], 10)
        resp = self.client.post("/api/todos/extract", json={"text": "too many"}, headers=self.headers)
        self.assertEqual(resp.status_code, 402)

    def test_pro_subscription_raises_the_quota(self):
        add_subscription(self.db, self.user.id, start_time=datetime.now(timezone.utc) - timedelta(days=2))
        self._fill_quota(10)
        resp = self.client.post("/api/todos/extract", json={"text": "gym"}, headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["quota"]["quota"], 125)
        self.assertEqual(resp.json()["quota"]["subscription"]["plan"], "Pro Plan")

    def test_blank_text_is_rejected(self):
        resp = self.client.post("/api/todos/extract", json={"text": "   "}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "missing_text")

    def test_missing_text_is_rejected(self):
        resp = self.client.post("/api/todos/extract", json={}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "missing_text")

    def test_overlong_text_is_rejected(self):
        resp = self.client.post("/api/todos/extract", json={"text": "x" * 4001}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "text_too_long")
        self.assertEqual(self.extractor.calls, [])
        self.assertEqual(self.db.query(UsageEvent).count(), 0)

    def test_non_string_text_is_a_validation_error(self):
        resp = self.client.post("/api/todos/extract", json={"text": 42}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "invalid_request")
        self.assertIn("text", resp.json()["message"])

    def test_requires_auth(self):
        resp = self.client.post("/api/todos/extract", json={"text": "x"})
        self.assertEqual(resp.status_code, 401)


class TestExtractFailure(ApiTestCase):
    extractor_events = []
    extractor_error = upstream_failure()

    def test_failed_extraction_does_not_consume_quota(self):
        resp = self.client.post("/api/todos/extract", json={"text": "call mom"}, headers=self.headers)
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json(), {"code": "failed_to_get_completion", "message": "Please try again later."})
        self.assertEqual(self.db.query(UsageEvent).count(), 0)


class TestUpcomingAndProfile(ApiTestCase):
    def _todo(self, title, scheduled_time):
        self.db.add(Todo(user_id=self.user.id, title=title, scheduled_time=scheduled_time))
        self.db.commit()

    def test_upcoming_starts_at_beginning_of_day(self):
        self._todo("yesterday", datetime(2030, 1, 1, 23, 0, tzinfo=timezone.utc))
        self._todo("later today", datetime(2030, 1, 2, 18, 0, tzinfo=timezone.utc))
        self._todo("early today", datetime(2030, 1, 2, 6, 0, tzinfo=timezone.utc))
        resp = self.client.get(
            "/api/todos/upcoming",
            params={"current_time": "2030-01-02T12:00:00Z"},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([t["title"] for t in resp.json()], ["early today", "later today"])

    def test_upcoming_validates_current_time(self):
        resp = self.client.get("/api/todos/upcoming", headers=self.headers)
        self.assertEqual(resp.json()["code"], "missing_current_time")
        resp = self.client.get("/api/todos/upcoming", params={"current_time": "soon"}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "invalid_time")

    def test_profile_reports_quota(self):
        self._fill_quota(3)
        resp = self.client.get("/api/user/profile", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["first_name"], "Ada")
        self.assertEqual(body["avatar"], "https://img.test/ada.png")
        self.assertEqual(body["subscription"]["quota"], 10)
        self.assertEqual(body["subscription"]["used_count"], 3)
        self.assertIsNone(body["subscription"]["subscription"])

    def test_storage_failure_during_auth(self):
        User.__table__.drop(bind=self.db.get_bind())
        resp = self.client.get("/api/user/profile", headers=self.headers)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"code": "database_error", "message": "Please try again later."})

    def test_invalid_token(self):
        resp = self.client.get("/api/user/profile", headers={"Authorization": "Bearer nope"})
        self.assertEqual(resp.status_code, 401)


if __name__ == "__main__":
    unittest.main()
