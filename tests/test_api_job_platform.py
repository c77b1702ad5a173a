import unittest
from unittest import mock

import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.api.deps import adapter_registry, db_session
from tracker.api.main import app
from tracker.core.normalize import NormalizedListing
from tracker.db import crud
from tracker.db.models import Base
from tracker.platforms import default_registry

SEARCH_PAGE = {
    "elements": [
        {"id": "1001", "title": "React Developer", "company": {"name": "Acme"}, "workplaceType": "REMOTE"},
        {"id": "1002", "title": "Senior React Developer", "company": {"name": "Globex"}},
    ],
    "paging": {"total": 2},
}


def _response(payload, status=200):
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class JobPlatformApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        self.SessionLocal = sessionmaker(bind=engine)
        registry = default_registry()

        with self.SessionLocal() as session:
            self.user_id = crud.create_user(session, username="ada").id

        def override_db_session():
            with self.SessionLocal() as session:
                yield session

        app.dependency_overrides[db_session] = override_db_session
        app.dependency_overrides[adapter_registry] = lambda: registry
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def _save_linkedin_credentials(self):
        resp = self.client.post(
            "/job-platform/credentials",
            json={"userId": self.user_id, "platform": "linkedin", "credentials": {"accessToken": "tok"}},
        )
        self.assertEqual(resp.status_code, 200)
        return resp

    def test_platforms_listing(self):
        resp = self.client.get("/platforms")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            [
                {"platform": "indeed", "name": "Indeed", "supportsApply": False},
                {"platform": "linkedin", "name": "LinkedIn", "supportsApply": True},
            ],
        )

    def test_credentials_roundtrip_and_errors(self):
        resp = self._save_linkedin_credentials()
        self.assertEqual(resp.json(), {"message": "LinkedIn credentials saved successfully"})

        resp = self.client.post(
            "/job-platform/credentials",
            json={"userId": self.user_id, "platform": "monster", "credentials": {"k": "v"}},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Unsupported platform: monster")

        resp = self.client.post(
            "/job-platform/credentials",
            json={"userId": 999, "platform": "linkedin", "credentials": {"accessToken": "tok"}},
        )
        self.assertEqual(resp.status_code, 404)

        resp = self.client.post("/job-platform/credentials", json={"userId": self.user_id, "platform": "linkedin"})
        self.assertEqual(resp.status_code, 422)

    def test_search_saves_and_dedups(self):
        self._save_linkedin_credentials()
        params = {
            "userId": self.user_id,
            "platform": "linkedin",
            "keywords": "React,TypeScript",
            "excludeKeywords": "senior",
        }
        with mock.patch("tracker.platforms.base.requests.get", return_value=_response(SEARCH_PAGE)) as get:
            first = self.client.get("/job-platform/search", params=params)
            second = self.client.get("/job-platform/search", params=params)

        self.assertEqual(first.status_code, 200)
        body = first.json()
        self.assertEqual([j["externalId"] for j in body["jobs"]], ["1001"])
        self.assertEqual(body["jobs"][0]["isRemote"], True)
        self.assertEqual(body["jobs"][0]["source"], "linkedin")
        self.assertFalse(body["hasMore"])
        self.assertEqual(body["total"], 2)
        self.assertEqual(get.call_args[1]["params"]["keywords"], "React TypeScript")
        self.assertEqual(second.json()["jobs"][0]["id"], body["jobs"][0]["id"])

        listed = self.client.get("/job-listings", params={"userId": self.user_id}).json()
        self.assertEqual(len(listed), 1)

    def test_search_error_statuses(self):
        resp = self.client.get("/job-platform/search", params={"userId": self.user_id, "platform": "linkedin"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("No LinkedIn credentials found", resp.json()["detail"])

        self.client.post(
            "/job-platform/credentials",
            json={"userId": self.user_id, "platform": "linkedin", "credentials": {"accessToken": "tok", "expiresAt": 1}},
        )
        resp = self.client.get("/job-platform/search", params={"userId": self.user_id, "platform": "linkedin"})
        self.assertEqual(resp.status_code, 401)

        resp = self.client.get("/job-platform/search", params={"userId": self.user_id, "platform": "monster"})
        self.assertEqual(resp.status_code, 400)

    def test_job_details_not_found(self):
        self._save_linkedin_credentials()
        not_found = _response({}, 404)
        not_found.raise_for_status.side_effect = requests.HTTPError("404", response=not_found)
        with mock.patch("tracker.platforms.base.requests.get", return_value=not_found):
            resp = self.client.get(
                "/job-platform/job-details",
                params={"userId": self.user_id, "platform": "linkedin", "externalId": "nope"},
            )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Job not found on platform")

    def _seed_listing(self, source="linkedin", external_id="3001"):
        with self.SessionLocal() as session:
            row, _ = crud.get_or_create_listing(
                session,
                NormalizedListing(
                    user_id=self.user_id,
                    source=source,
                    external_id=external_id,
                    title="React Developer",
                    company="Acme",
                    url=f"https://example.test/{external_id}",
                ),
            )
            return row.id

    def test_apply_success(self):
        self._save_linkedin_credentials()
        job_id = self._seed_listing()
        with mock.patch("tracker.platforms.base.requests.post", return_value=_response({"id": "app-77"})):
            resp = self.client.post(
                "/job-platform/apply",
                json={"userId": self.user_id, "platform": "linkedin", "jobId": job_id, "resumeId": 3},
            )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["application"]["role"], "React Developer")
        self.assertEqual(body["application"]["externalApplicationId"], "app-77")

        listed = self.client.get("/job-listings", params={"userId": self.user_id}).json()
        self.assertTrue(listed[0]["applied"])

    def test_apply_failures(self):
        self.client.post(
            "/job-platform/credentials",
            json={"userId": self.user_id, "platform": "indeed", "credentials": {"publisherId": "p", "apiKey": "k"}},
        )
        job_id = self._seed_listing(source="indeed", external_id="k1")

        resp = self.client.post(
            "/job-platform/apply", json={"userId": self.user_id, "platform": "indeed", "jobId": job_id}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json(),
            {"success": False, "message": "Job application is not supported for Indeed", "reason": "apply_unsupported"},
        )

        resp = self.client.post(
            "/job-platform/apply", json={"userId": self.user_id, "platform": "indeed", "jobId": 9999}
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["reason"], "listing_not_found")

    def test_hide_listing(self):
        job_id = self._seed_listing()
        resp = self.client.post(f"/job-listings/{job_id}/hide")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["hidden"])
        self.assertEqual(self.client.get("/job-listings", params={"userId": self.user_id}).json(), [])
        self.assertEqual(self.client.post("/job-listings/9999/hide").status_code, 404)


if __name__ == "__main__":
    unittest.main()
