"""
Issue tracker integration: Redmine client, login loop and ticket routing.
"""

from .base import TrackerSession, TrackerUser, TrackerProject
from .login import AuthOutcome, AuthResult, login, try_authenticate
from .redmine_client import RedmineSession, authenticate
from .router import TicketContext, TicketRouter, ISSUE_SUBJECT

__all__ = [
    "TrackerSession",
    "TrackerUser",
    "TrackerProject",
    "AuthOutcome",
    "AuthResult",
    "login",
    "try_authenticate",
    "RedmineSession",
    "authenticate",
    "TicketContext",
    "TicketRouter",
    "ISSUE_SUBJECT"
]
