import time
import unittest
from unittest import mock

import requests
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from tracker.core.query import SearchQuery
from tracker.db import crud
from tracker.db.models import Base, JobListing
from tracker.errors import (
    InvalidCredentials,
    InvalidRequest,
    ListingNotFound,
    MissingCredentials,
    PersistenceFailed,
    UnknownUser,
    UnsupportedPlatform,
)
from tracker.platforms import default_registry
from tracker.services.search import fetch_platform_job, save_platform_credentials, search_platform_jobs

LINKEDIN_PAGE = {
    "elements": [
        {"id": "1001", "title": "React Developer", "company": {"name": "Acme"}, "workplaceType": "REMOTE"},
        {"id": "1002", "title": "Frontend Engineer", "company": {"name": "Globex"}},
    ],
    "paging": {"total": 40, "links": [{"rel": "next", "href": "/jobSearch?start=20"}]},
}


def _response(payload, status=200):
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class SearchOrchestratorTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(bind=engine)
        self.registry = default_registry()
        with self.Session() as session:
            user = crud.create_user(session, username="ada")
            self.user_id = user.id
            crud.set_credentials(
                session,
                user.id,
                "linkedin",
                {"accessToken": "tok", "expiresAt": (time.time() + 3600) * 1000},
            )
        self.query = SearchQuery(user_id=self.user_id, keywords=["React"], limit=20)

    def _search(self, session, platform="linkedin", query=None):
        with mock.patch("tracker.platforms.base.requests.get", return_value=_response(LINKEDIN_PAGE)):
            return search_platform_jobs(session, platform, query or self.query, registry=self.registry)

    def _count(self, session):
        return session.execute(select(func.count()).select_from(JobListing)).scalar_one()

    def test_repeated_search_does_not_duplicate(self):
        with self.Session() as session:
            first = self._search(session)
            self.assertEqual(len(first.jobs), 2)
            self.assertTrue(first.has_more)
            self.assertEqual(first.total, 40)
            self.assertEqual(self._count(session), 2)

            second = self._search(session)
            self.assertEqual([r.id for r in second.jobs], [r.id for r in first.jobs])
            self.assertEqual(self._count(session), 2)

    def test_rows_carry_source_and_details(self):
        with self.Session() as session:
            result = self._search(session, platform="LinkedIn")
            row = result.jobs[0]
            self.assertEqual(row.source, "linkedin")
            self.assertEqual(row.external_id, "1001")
            self.assertTrue(row.is_remote)
            self.assertIsNone(result.jobs[1].is_remote)
            self.assertEqual(row.details["company"], {"name": "Acme"})
            self.assertFalse(row.applied)
            self.assertIsNotNone(row.saved_at)

    def test_applied_flag_not_reset_by_later_search(self):
        with self.Session() as session:
            row = self._search(session).jobs[0]
            crud.mark_listing_applied(session, row.id)
            again = self._search(session).jobs[0]
            self.assertEqual(again.id, row.id)
            self.assertTrue(again.applied)

    def test_one_failing_item_does_not_abort_batch(self):
        real = crud.get_or_create_listing

        def flaky(session, job):
            if job.external_id == "1001":
                raise OperationalError("INSERT INTO job_listings", {}, Exception("disk I/O error"))
            return real(session, job)

        with self.Session() as session:
            with mock.patch("tracker.services.search.crud.get_or_create_listing", side_effect=flaky):
                with self.assertLogs("tracker.services.search", level="ERROR"):
                    result = self._search(session)
            self.assertEqual([r.external_id for r in result.jobs], ["1002"])
            self.assertEqual(result.total, 40)

    def test_upstream_failure_is_empty_page(self):
        with self.Session() as session:
            with mock.patch("tracker.platforms.base.requests.get", side_effect=requests.ConnectionError("down")):
                result = search_platform_jobs(session, "linkedin", self.query, registry=self.registry)
            self.assertEqual((result.jobs, result.has_more, result.total), ([], False, 0))

    def test_resolution_failures(self):
        with self.Session() as session:
            with self.assertRaises(UnsupportedPlatform):
                search_platform_jobs(session, "monster", self.query, registry=self.registry)
            with self.assertRaises(MissingCredentials) as ctx:
                search_platform_jobs(session, "indeed", self.query, registry=self.registry)
            self.assertIn("No Indeed credentials found", ctx.exception.message)
            with self.assertRaises(UnknownUser):
                search_platform_jobs(
                    session, "linkedin", SearchQuery(user_id=999), registry=self.registry
                )

            crud.set_credentials(session, self.user_id, "linkedin", {"accessToken": "tok", "expiresAt": 1000})
            with mock.patch("tracker.platforms.base.requests.get") as get:
                with self.assertRaises(InvalidCredentials) as ctx:
                    search_platform_jobs(session, "linkedin", self.query, registry=self.registry)
            get.assert_not_called()
            self.assertEqual(ctx.exception.status_code, 401)


class FetchDetailsTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(bind=engine)
        self.registry = default_registry()
        with self.Session() as session:
            self.user_id = crud.create_user(session, username="ada").id
            crud.set_credentials(session, self.user_id, "indeed", {"publisherId": "p", "apiKey": "k"})

    def test_fetches_then_serves_stored_row(self):
        payload = {"results": [{"jobkey": "abc", "jobtitle": "Data Engineer", "company": "Initech"}]}
        with self.Session() as session:
            with mock.patch("tracker.platforms.base.requests.get", return_value=_response(payload)) as get:
                row = fetch_platform_job(session, self.user_id, "indeed", "abc", registry=self.registry)
                again = fetch_platform_job(session, self.user_id, "indeed", "abc", registry=self.registry)
            self.assertEqual(get.call_count, 1)
            self.assertEqual(row.id, again.id)
            self.assertEqual(row.title, "Data Engineer")

    def test_save_failure_is_logged_and_reported(self):
        payload = {"results": [{"jobkey": "abc", "jobtitle": "Data Engineer"}]}
        boom = OperationalError("INSERT INTO job_listings", {}, Exception("disk I/O error"))
        with self.Session() as session:
            with mock.patch("tracker.platforms.base.requests.get", return_value=_response(payload)), \
                    mock.patch("tracker.services.search.crud.get_or_create_listing", side_effect=boom):
                with self.assertLogs("tracker.services.search", level="ERROR"):
                    with self.assertRaises(PersistenceFailed) as ctx:
                        fetch_platform_job(session, self.user_id, "indeed", "abc", registry=self.registry)
            self.assertEqual(ctx.exception.status_code, 500)
            self.assertEqual(ctx.exception.message, "Failed to save job listing")
            self.assertIsNone(crud.get_listing_by_external_id(session, self.user_id, "indeed", "abc"))

    def test_absent_on_platform(self):
        with self.Session() as session:
            with mock.patch("tracker.platforms.base.requests.get", return_value=_response({"results": []})):
                with self.assertRaises(ListingNotFound) as ctx:
                    fetch_platform_job(session, self.user_id, "indeed", "gone", registry=self.registry)
            self.assertEqual(ctx.exception.message, "Job not found on platform")

    def test_blank_external_id(self):
        with self.Session() as session:
            with self.assertRaises(InvalidRequest):
                fetch_platform_job(session, self.user_id, "indeed", "  ", registry=self.registry)


class SaveCredentialsTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine("sqlite:///:memory:", future=True)
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(bind=engine)
        self.registry = default_registry()
        with self.Session() as session:
            self.user_id = crud.create_user(session, username="ada").id

    def test_save_and_replace(self):
        with self.Session() as session:
            message = save_platform_credentials(
                session, self.user_id, "LinkedIn", {"accessToken": "tok"}, registry=self.registry
            )
            self.assertEqual(message, "LinkedIn credentials saved successfully")
            save_platform_credentials(session, self.user_id, "linkedin", {"accessToken": "tok2"}, registry=self.registry)
            self.assertEqual(crud.get_credentials(session, self.user_id, "linkedin"), {"accessToken": "tok2"})

    def test_rejections(self):
        with self.Session() as session:
            with self.assertRaises(InvalidRequest):
                save_platform_credentials(session, self.user_id, "linkedin", {}, registry=self.registry)
            with self.assertRaises(UnsupportedPlatform):
                save_platform_credentials(session, self.user_id, "monster", {"k": "v"}, registry=self.registry)
            with self.assertRaises(UnknownUser):
                save_platform_credentials(session, 404, "indeed", {"k": "v"}, registry=self.registry)


if __name__ == "__main__":
    unittest.main()
