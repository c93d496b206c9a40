"""
Error taxonomy for dump triage.

Only configuration and credential level errors abort a run; everything
raised while handling a single dump is recovered by the batch processor.
"""

from enum import IntEnum
from typing import Optional


class TriageError(Exception):
    """Base class for all triage errors."""


class ConfigurationInvalid(TriageError):
    """Malformed or missing required configuration."""


class AuthenticationFailed(TriageError):
    """The tracker rejected the supplied credentials."""


class ProjectNotFound(TriageError):
    """The tracker project does not exist or has no members."""


class DumpUnreadable(TriageError):
    """The dump reader could not produce a fault event or stack trace."""

    def __init__(self, dump_path: str, reason: str):
        super().__init__(f"{dump_path}: {reason}")
        self.dump_path = dump_path
        self.reason = reason


class AssigneeUnresolved(TriageError):
    """Neither the bound owner nor the default owner is a project member."""

    def __init__(self, owner_name: str, default_owner_name: Optional[str] = None):
        names = owner_name if not default_owner_name or default_owner_name == owner_name \
            else f"{owner_name} / {default_owner_name}"
        super().__init__(f"No project member named {names}")
        self.owner_name = owner_name
        self.default_owner_name = default_owner_name


class TrackerUnavailable(TriageError):
    """Issue tracker request failed (network or API fault)."""


class ExitStatus(IntEnum):
    """Process exit statuses exposed by the command line."""
    SUCCESS = 0
    CONFIGURATION_INVALID = 1
    CREDENTIALS_INVALID = 2
    PROJECT_INVALID = 3
