"""
Issue tracker abstraction.

The router only depends on `TrackerSession`; concrete clients (Redmine)
implement it, tests substitute a fake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class TrackerUser:
    id: int
    name: str


@dataclass(frozen=True)
class TrackerProject:
    id: int
    identifier: str
    name: str = ""
    members: Tuple[TrackerUser, ...] = ()


class TrackerSession(ABC):
    """Authenticated connection to an issue tracker."""

    @abstractmethod
    def current_user(self) -> TrackerUser:
        """Identity of the authenticated account."""
        pass

    @abstractmethod
    def resolve_project(self, identifier: str) -> TrackerProject:
        """Look up a project and its members. Raises ProjectNotFound."""
        pass

    @abstractmethod
    def create_issue(self, subject: str, description: str, assignee: Optional[TrackerUser],
                     author: TrackerUser, project: TrackerProject) -> int:
        """Create an issue and return its id. Raises TrackerUnavailable."""
        pass

    def close(self):
        pass
