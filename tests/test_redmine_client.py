"""
Unit tests for the Redmine client.

HTTP traffic is replaced by a mocked requests.Session.
"""

import os
import sys
import unittest
from unittest.mock import Mock, patch

import requests

# Adjust path to import dump_triage
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dump_triage.core.errors import AuthenticationFailed, ProjectNotFound, TrackerUnavailable
from dump_triage.tracker.login import AuthOutcome, login
from dump_triage.tracker.base import TrackerUser, TrackerProject
from dump_triage.tracker.redmine_client import RedmineSession, authenticate

URL = "https://redmine.example.com"


def response(status_code, payload=None):
    resp = Mock(status_code=status_code, url=URL, text="")
    resp.json.return_value = payload if payload is not None else {}
    return resp


CURRENT_USER = {"user": {"id": 3, "login": "jdoe", "firstname": "Jane", "lastname": "Doe"}}


class TestRedmineSession(unittest.TestCase):
    def setUp(self):
        self.http = Mock()
        self.session = RedmineSession(URL + "/", self.http, timeout=10)

    def test_current_user_is_cached(self):
        self.http.request.return_value = response(200, CURRENT_USER)

        self.assertEqual(self.session.current_user(), TrackerUser(id=3, name="Jane Doe"))
        self.session.current_user()

        self.http.request.assert_called_once_with("GET", URL + "/users/current.json", timeout=10)

    def test_rejected_credentials(self):
        self.http.request.return_value = response(401)
        with self.assertRaises(AuthenticationFailed):
            self.session.current_user()

    def test_non_redmine_server(self):
        self.http.request.return_value = response(200, {"error": "not redmine"})
        with self.assertRaises(TrackerUnavailable):
            self.session.current_user()

    def test_user_without_id(self):
        self.http.request.return_value = response(200, {"user": {"login": "jdoe"}})
        with self.assertRaises(TrackerUnavailable):
            self.session.current_user()

    def test_network_error(self):
        self.http.request.side_effect = requests.ConnectionError("connection refused")
        with self.assertRaises(TrackerUnavailable):
            self.session.current_user()

    def test_resolve_project_pages_through_memberships(self):
        self.http.request.side_effect = [
            response(200, {"project": {"id": 5, "identifier": "app", "name": "App"}}),
            response(200, {"memberships": [
                {"id": 1, "user": {"id": 10, "name": "Graphics Team"}},
                {"id": 2, "group": {"id": 20, "name": "Developers"}},
            ], "total_count": 3, "offset": 0, "limit": 100}),
            response(200, {"memberships": [
                {"id": 3, "user": {"id": 11, "name": "Triage Rotation"}},
            ], "total_count": 3, "offset": 2, "limit": 100}),
        ]

        project = self.session.resolve_project("app")

        self.assertEqual(project, TrackerProject(
            id=5, identifier="app", name="App",
            members=(TrackerUser(10, "Graphics Team"), TrackerUser(11, "Triage Rotation"))
        ))
        last_call = self.http.request.call_args_list[-1]
        self.assertEqual(last_call[1]["params"], {"limit": 100, "offset": 2})

    def test_unknown_project(self):
        self.http.request.return_value = response(404)
        with self.assertRaises(ProjectNotFound):
            self.session.resolve_project("nope")

    def test_project_without_members(self):
        self.http.request.side_effect = [
            response(200, {"project": {"id": 5, "identifier": "app"}}),
            response(200, {"memberships": [], "total_count": 0}),
        ]
        with self.assertRaises(ProjectNotFound):
            self.session.resolve_project("app")

    def test_create_issue(self):
        self.http.request.return_value = response(201, {"issue": {"id": 4242}})
        project = TrackerProject(id=5, identifier="app")

        issue_id = self.session.create_issue("Investigate a dump", "details",
                                             TrackerUser(10, "Graphics Team"), TrackerUser(3, "Jane Doe"),
                                             project)

        self.assertEqual(issue_id, 4242)
        args, kwargs = self.http.request.call_args
        self.assertEqual(args, ("POST", URL + "/issues.json"))
        self.assertEqual(kwargs["json"], {"issue": {
            "project_id": 5,
            "subject": "Investigate a dump",
            "description": "details",
            "assigned_to_id": 10,
        }})

    def test_create_unassigned_issue(self):
        self.http.request.return_value = response(201, {"issue": {"id": 1}})
        self.session.create_issue("s", "d", None, TrackerUser(3, "Jane Doe"), TrackerProject(id=5, identifier="app"))
        self.assertNotIn("assigned_to_id", self.http.request.call_args[1]["json"]["issue"])

    def test_create_issue_malformed_response(self):
        self.http.request.return_value = response(201, {"ok": True})
        with self.assertRaises(TrackerUnavailable):
            self.session.create_issue("s", "d", None, TrackerUser(3, "x"), TrackerProject(id=5, identifier="app"))

    def test_project_without_id(self):
        self.http.request.return_value = response(200, {"project": {"identifier": "app"}})
        with self.assertRaises(TrackerUnavailable):
            self.session.resolve_project("app")

    def test_create_issue_rejected(self):
        self.http.request.return_value = response(422, {"errors": ["Subject cannot be blank"]})
        with self.assertRaises(TrackerUnavailable) as ctx:
            self.session.create_issue("", "d", None, TrackerUser(3, "x"), TrackerProject(id=5, identifier="app"))
        self.assertIn("Subject cannot be blank", str(ctx.exception))


class TestAuthenticate(unittest.TestCase):
    @patch("dump_triage.tracker.redmine_client.requests.Session")
    def test_basic_auth(self, mock_session_cls):
        http = mock_session_cls.return_value
        http.request.return_value = response(200, CURRENT_USER)

        session = authenticate(URL, "jdoe", "secret")

        self.assertEqual(http.auth, ("jdoe", "secret"))
        self.assertEqual(session.current_user().id, 3)

    @patch("dump_triage.tracker.redmine_client.requests.Session")
    def test_api_key(self, mock_session_cls):
        http = mock_session_cls.return_value
        http.request.return_value = response(200, CURRENT_USER)

        authenticate(URL, api_key="abc123")

        http.headers.update.assert_any_call({'X-Redmine-API-Key': 'abc123'})

    @patch("dump_triage.tracker.redmine_client.requests.Session")
    def test_rejected_credentials_close_the_session(self, mock_session_cls):
        http = mock_session_cls.return_value
        http.request.return_value = response(401)

        with self.assertRaises(AuthenticationFailed):
            authenticate(URL, "jdoe", "wrong")
        http.close.assert_called_once()


class TestLoginAgainstRedmine(unittest.TestCase):
    @patch("dump_triage.tracker.redmine_client.requests.Session")
    def test_non_redmine_server_is_a_failed_attempt(self, mock_session_cls):
        http = mock_session_cls.return_value
        http.request.side_effect = [
            response(200, {"error": "not redmine"}),
            response(200, CURRENT_USER),
        ]
        prompt = Mock(return_value=("jdoe", "secret"))
        on_failure = Mock()

        session = login(URL, prompt, authenticate, on_failure=on_failure)

        self.assertEqual(session.current_user().id, 3)
        self.assertEqual(prompt.call_count, 2)
        self.assertEqual(on_failure.call_args[0][0].outcome, AuthOutcome.INVALID_CREDENTIALS)

    @patch("dump_triage.tracker.redmine_client.requests.Session")
    def test_non_redmine_server_gives_up(self, mock_session_cls):
        mock_session_cls.return_value.request.return_value = response(200, {"error": "not redmine"})
        with self.assertRaises(AuthenticationFailed):
            login(URL, Mock(return_value=("jdoe", "secret")), authenticate, max_attempts=2)

if __name__ == '__main__':
    unittest.main()
