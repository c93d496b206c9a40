"""
Core triage logic: stack filters, ownership, classification and batch processing.
"""

from .stack import StackFrame, FaultEvent
from .filters import Filter, FilterField, MatchKind
from .ownership import Owner, OwnershipData, OwnershipTable
from .classifier import ClassificationResult, classify, classify_stack
from .dump_provider import (
    DumpReader, DumpSession, DumpReaderType,
    StackwalkDumpReader, MockDumpReader,
    create_dump_reader
)
from .batch_processing import BatchProcessor, BatchObserver, DumpOutcome, discover_dumps, run_batch
from .errors import (
    TriageError, ConfigurationInvalid, AuthenticationFailed, ProjectNotFound,
    DumpUnreadable, AssigneeUnresolved, TrackerUnavailable, ExitStatus
)

__all__ = [
    "StackFrame",
    "FaultEvent",
    "Filter",
    "FilterField",
    "MatchKind",
    "Owner",
    "OwnershipData",
    "OwnershipTable",
    "ClassificationResult",
    "classify",
    "classify_stack",
    "DumpReader",
    "DumpSession",
    "DumpReaderType",
    "StackwalkDumpReader",
    "MockDumpReader",
    "create_dump_reader",
    "BatchProcessor",
    "BatchObserver",
    "DumpOutcome",
    "discover_dumps",
    "run_batch",
    "TriageError",
    "ConfigurationInvalid",
    "AuthenticationFailed",
    "ProjectNotFound",
    "DumpUnreadable",
    "AssigneeUnresolved",
    "TrackerUnavailable",
    "ExitStatus"
]
