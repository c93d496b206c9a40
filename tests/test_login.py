import os
import sys
import unittest
from unittest.mock import Mock

# Adjust path to import dump_triage
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dump_triage.core.errors import AuthenticationFailed, TrackerUnavailable
from dump_triage.tracker.login import AuthOutcome, login, try_authenticate


class FakeAuthenticator:
    """Accepts only jdoe/secret."""

    def __init__(self):
        self.calls = []
        self.session = Mock()

    def __call__(self, url, user, password):
        self.calls.append((user, password))
        if (user, password) != ("jdoe", "secret"):
            raise AuthenticationFailed("401")
        return self.session


class TestLogin(unittest.TestCase):
    def test_try_authenticate_returns_typed_result(self):
        auth = FakeAuthenticator()

        ok = try_authenticate(auth, "https://r", "jdoe", "secret")
        bad = try_authenticate(auth, "https://r", "jdoe", "nope")

        self.assertEqual(ok.outcome, AuthOutcome.SUCCESS)
        self.assertIs(ok.session, auth.session)
        self.assertEqual(bad.outcome, AuthOutcome.INVALID_CREDENTIALS)
        self.assertFalse(bad.ok)
        self.assertIsNone(bad.session)

    def test_retries_until_accepted(self):
        auth = FakeAuthenticator()
        prompt = Mock(side_effect=[("jdoe", "typo"), ("jdoe", "secret")])
        on_failure = Mock()

        session = login("https://r", prompt, auth, on_failure=on_failure)

        self.assertIs(session, auth.session)
        self.assertEqual(prompt.call_count, 2)
        on_failure.assert_called_once()
        self.assertEqual(on_failure.call_args[0][0].outcome, AuthOutcome.INVALID_CREDENTIALS)

    def test_gives_up_after_max_attempts(self):
        auth = FakeAuthenticator()
        prompt = Mock(return_value=("jdoe", "typo"))

        with self.assertRaises(AuthenticationFailed):
            login("https://r", prompt, auth, max_attempts=3)
        self.assertEqual(len(auth.calls), 3)

    def test_unreachable_tracker_counts_as_failed_attempt(self):
        auth = Mock(side_effect=[TrackerUnavailable("connection refused"), "session"])
        prompt = Mock(return_value=("jdoe", "secret"))

        self.assertEqual(login("https://r", prompt, auth), "session")

    def test_prompt_abort_propagates(self):
        prompt = Mock(side_effect=EOFError())
        with self.assertRaises(EOFError):
            login("https://r", prompt, FakeAuthenticator())


if __name__ == '__main__':
    unittest.main()
