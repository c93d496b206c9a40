"""
Ticket routing: pick the assignee for a classified dump and file an issue.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..core.classifier import ClassificationResult
from ..core.errors import AssigneeUnresolved
from ..core.filters import Filter
from ..core.ownership import OwnershipTable
from .base import TrackerSession, TrackerUser, TrackerProject

logger = logging.getLogger(__name__)

ISSUE_SUBJECT = "Investigate a dump"


@dataclass(frozen=True)
class TicketContext:
    """Everything ticket creation needs, resolved once after login."""
    session: TrackerSession
    operator: TrackerUser
    project: TrackerProject

    @property
    def members(self) -> Tuple[TrackerUser, ...]:
        return self.project.members

    @classmethod
    def create(cls, session: TrackerSession, project_identifier: str) -> "TicketContext":
        """Raises ProjectNotFound if the project is unknown or has no members."""
        operator = session.current_user()
        project = session.resolve_project(project_identifier)
        logger.info(f"Tickets go to project {project.identifier} ({len(project.members)} members)")
        return cls(session=session, operator=operator, project=project)


def format_description(dump_path: str, result: ClassificationResult) -> str:
    lines = [
        f"Please investigate a dump located at {dump_path}.",
        "",
        "Here's the call stack for the last event:",
    ]
    lines.extend(result.format_stack())
    return "\n".join(lines)


class TicketRouter:
    """
    Files one issue per routed dump.

    The owner bound to the matched filter is preferred, then the default
    owner. If neither is a project member the issue is filed unassigned and
    `on_unresolved` is notified.
    """

    def __init__(self, context: TicketContext, ownership: OwnershipTable,
                 on_unresolved: Optional[Callable[[str, AssigneeUnresolved], None]] = None):
        self.context = context
        self.ownership = ownership
        self.on_unresolved = on_unresolved

    def _member_named(self, name: str) -> Optional[TrackerUser]:
        for member in self.context.members:
            if member is not None and member.name == name:
                return member
        return None

    def resolve_assignee(self, matched_filter: Optional[Filter]) -> Optional[TrackerUser]:
        """Project member to assign, or None when no candidate resolves."""
        owner = self.ownership.owner_for(matched_filter)
        default_owner = self.ownership.default_owner

        member = self._member_named(owner.name)
        if member is None and owner != default_owner:
            logger.warning(f"Owner '{owner}' is not a member of {self.context.project.identifier}, "
                           f"falling back to default owner '{default_owner}'")
            member = self._member_named(default_owner.name)
        return member

    def route(self, dump_path: str, result: ClassificationResult) -> int:
        """Create the issue for a dump and return its id."""
        assignee = self.resolve_assignee(result.filter)
        if assignee is None:
            owner = self.ownership.owner_for(result.filter)
            unresolved = AssigneeUnresolved(owner.name, self.ownership.default_owner.name)
            logger.warning(f"{dump_path}: {unresolved}; creating the issue unassigned")
            if self.on_unresolved:
                self.on_unresolved(dump_path, unresolved)

        issue_id = self.context.session.create_issue(
            subject=ISSUE_SUBJECT,
            description=format_description(dump_path, result),
            assignee=assignee,
            author=self.context.operator,
            project=self.context.project
        )
        logger.info(f"Created issue #{issue_id} for {dump_path} "
                    f"(assignee: {assignee.name if assignee else 'none'})")
        return issue_id
