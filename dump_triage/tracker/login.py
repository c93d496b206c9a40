"""
Credential retry loop.

Authentication attempts produce a typed `AuthResult`; the loop keeps asking
for credentials while the result is INVALID_CREDENTIALS.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from ..core.errors import AuthenticationFailed, TrackerUnavailable
from .base import TrackerSession

logger = logging.getLogger(__name__)

Authenticator = Callable[[str, str, str], TrackerSession]
CredentialPrompt = Callable[[], Tuple[str, str]]


class AuthOutcome(Enum):
    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"


@dataclass(frozen=True)
class AuthResult:
    outcome: AuthOutcome
    session: Optional[TrackerSession] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is AuthOutcome.SUCCESS


def try_authenticate(authenticator: Authenticator, url: str, user: str, password: str) -> AuthResult:
    """Single attempt; rejected credentials and unreachable servers are both failed attempts."""
    try:
        session = authenticator(url, user, password)
    except (AuthenticationFailed, TrackerUnavailable) as e:
        logger.debug(f"Authentication attempt for '{user}' failed: {e}")
        return AuthResult(AuthOutcome.INVALID_CREDENTIALS, detail=str(e))
    return AuthResult(AuthOutcome.SUCCESS, session=session)


def login(url: str, prompt: CredentialPrompt, authenticator: Authenticator,
          max_attempts: Optional[int] = None,
          on_failure: Optional[Callable[[AuthResult], None]] = None) -> TrackerSession:
    """
    Prompt until the tracker accepts the credentials.

    The prompt may raise EOFError or KeyboardInterrupt to abort; those
    propagate to the caller.

    Raises:
        AuthenticationFailed: `max_attempts` rejected attempts
    """
    attempts = 0
    while True:
        user, password = prompt()
        result = try_authenticate(authenticator, url, user, password)
        if result.ok:
            return result.session

        attempts += 1
        if on_failure:
            on_failure(result)
        if max_attempts is not None and attempts >= max_attempts:
            raise AuthenticationFailed(f"Giving up after {attempts} failed attempts: {result.detail}")
