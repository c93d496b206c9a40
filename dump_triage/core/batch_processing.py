"""
Batch Processing for Dump Triage.

Runs every discovered dump through the reader, the classifier and
(optionally) the ticket router, one dump at a time. A failure while
handling one dump is recorded against that dump and the batch moves on.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional, Sequence

from .classifier import ClassificationResult, classify_stack
from .dump_provider import DumpReader
from .errors import AssigneeUnresolved, ConfigurationInvalid, ExitStatus
from .stack import FaultEvent
from ..utils.logging_utils import log_exception

logger = logging.getLogger(__name__)


@dataclass
class DumpOutcome:
    """Result of processing a single dump."""
    dump_path: str
    success: bool
    classification: Optional[ClassificationResult] = None
    owner: Optional[str] = None
    issue_id: Optional[int] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class BatchObserver:
    """
    Receives progress notifications from the batch processor.

    The base class ignores everything; reporters override what they need.
    """

    def dump_started(self, index: int, total: int, dump_path: str):
        pass

    def dump_classified(self, dump_path: str, event: FaultEvent,
                        result: ClassificationResult, owner: str):
        pass

    def dump_failed(self, dump_path: str, error: Exception):
        pass

    def ticket_created(self, dump_path: str, issue_id: int):
        pass

    def assignee_unresolved(self, dump_path: str, error: AssigneeUnresolved):
        pass

    def wait_for_confirmation(self):
        pass

    def batch_finished(self, report: Dict[str, Any]):
        pass


class BatchReportAggregator:
    """Collects per-dump outcomes into a summary report."""

    def __init__(self):
        self._results: List[DumpOutcome] = []
        self._start_time = datetime.now()
        self._errors: List[Dict] = []

    def add_outcome(self, outcome: DumpOutcome):
        self._results.append(outcome)
        if not outcome.success:
            self._errors.append({
                'dump': outcome.dump_path,
                'error': outcome.error,
                'timestamp': outcome.timestamp
            })

    @property
    def outcomes(self) -> List[DumpOutcome]:
        return list(self._results)

    def get_report(self) -> Dict[str, Any]:
        """Generate summary report."""
        end_time = datetime.now()
        duration = (end_time - self._start_time).total_seconds()

        results = []
        for r in self._results:
            classification = r.classification
            results.append({
                'dump': r.dump_path,
                'success': r.success,
                'matched_frame': str(classification.frame) if classification and classification.matched else None,
                'matched_filter': classification.filter.describe() if classification and classification.matched else None,
                'stack': [frame.to_dict() for frame in classification.stack] if classification else [],
                'owner': r.owner,
                'issue_id': r.issue_id,
                'error': r.error,
                'duration': round(r.duration_seconds, 3)
            })

        return {
            'batch_id': self._start_time.strftime('%Y%m%d_%H%M%S'),
            'summary': {
                'total_dumps': len(self._results),
                'successful': sum(1 for r in self._results if r.success),
                'failed': sum(1 for r in self._results if not r.success),
                'matched': sum(1 for r in self._results if r.classification and r.classification.matched),
                'tickets_created': sum(1 for r in self._results if r.issue_id is not None),
                'duration_seconds': round(duration, 2),
                'start_time': self._start_time.isoformat(),
                'end_time': end_time.isoformat()
            },
            'results': results,
            'errors': self._errors
        }

    def save_report(self, output_path: str):
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.get_report(), f, indent=2)

    def clear(self):
        self._results.clear()
        self._errors.clear()
        self._start_time = datetime.now()


def discover_dumps(configuration) -> List[str]:
    """
    List dump paths in processing order.

    A single dump file yields itself; a folder yields files matching the
    configured pattern in filesystem enumeration order.

    Raises:
        ConfigurationInvalid: the configured file or folder does not exist
    """
    if configuration.dump_file:
        if not os.path.isfile(configuration.dump_file):
            raise ConfigurationInvalid(f"Dump file not found: {configuration.dump_file}")
        return [configuration.dump_file]

    folder = Path(configuration.dumps_folder)
    if not folder.is_dir():
        raise ConfigurationInvalid(f"Dumps folder not found: {folder}")

    candidates = folder.rglob(configuration.dump_pattern) if configuration.recursive_search \
        else folder.glob(configuration.dump_pattern)
    return [str(p) for p in candidates if p.is_file()]


class BatchProcessor:
    """
    Processes dumps sequentially.

    Args:
        reader: Dump reader used to open each dump
        configuration: Run configuration
        observer: Progress observer (reporting)
        router: Ticket router; required when the configuration opens tickets
        pause_between_dumps: Wait for confirmation after each dump when no
            tickets are opened
    """

    def __init__(self, reader: DumpReader, configuration, observer: Optional[BatchObserver] = None,
                 router=None, pause_between_dumps: bool = False):
        if configuration.open_tickets and router is None:
            raise ConfigurationInvalid("Ticket creation is enabled but no ticket router was given")

        self.reader = reader
        self.configuration = configuration
        self.observer = observer or BatchObserver()
        self.router = router if configuration.open_tickets else None
        self.pause_between_dumps = pause_between_dumps
        self.aggregator = BatchReportAggregator()

    def analyze(self, dump_path: str):
        """
        Read the last fault event's stack and classify it.

        The reader session is closed before this returns, whatever happens.
        """
        with self.reader.open(dump_path) as session:
            event = session.last_fault_event()
            stack = session.stack_trace(event.thread_id)
            result = classify_stack(stack, self.configuration.filters)
        return event, result

    def process_dump(self, dump_path: str) -> DumpOutcome:
        """Analyze, report and route one dump. Errors propagate to the caller."""
        start_time = time.time()

        event, result = self.analyze(dump_path)
        owner = self.configuration.ownership.owner_for(result.filter)
        self.observer.dump_classified(dump_path, event, result, owner.name)

        outcome = DumpOutcome(
            dump_path=dump_path,
            success=True,
            classification=result,
            owner=owner.name
        )

        if self.router is not None:
            outcome.issue_id = self.router.route(dump_path, result)
            self.observer.ticket_created(dump_path, outcome.issue_id)

        outcome.duration_seconds = time.time() - start_time
        return outcome

    def run(self, inputs: Sequence[str]) -> Dict[str, Any]:
        """
        Process all dumps in order.

        Returns:
            Summary report (see BatchReportAggregator.get_report)
        """
        self.aggregator.clear()
        total = len(inputs)
        logger.info(f"Starting triage of {total} dumps")

        for i, dump_path in enumerate(inputs, 1):
            self.observer.dump_started(i, total, dump_path)
            start_time = time.time()

            try:
                outcome = self.process_dump(dump_path)
            except Exception as e:
                log_exception(logger, f"Error while analyzing {dump_path}", e)
                self.observer.dump_failed(dump_path, e)
                outcome = DumpOutcome(
                    dump_path=dump_path,
                    success=False,
                    error=str(e),
                    duration_seconds=time.time() - start_time
                )

            self.aggregator.add_outcome(outcome)

            if self.pause_between_dumps and not self.configuration.open_tickets:
                self.observer.wait_for_confirmation()

        report = self.aggregator.get_report()
        summary = report['summary']
        logger.info(f"Triage completed: {summary['successful']} successful, {summary['failed']} failed, "
                    f"{summary['tickets_created']} tickets created")
        self.observer.batch_finished(report)
        return report


def run_batch(inputs: Sequence[str], configuration, reader: DumpReader,
              observer: Optional[BatchObserver] = None, router=None,
              pause_between_dumps: bool = False,
              report_path: Optional[str] = None) -> ExitStatus:
    """
    Process a batch and return the process exit status.

    Individual dump failures do not change the status; only a configuration
    that cannot be run does.
    """
    try:
        processor = BatchProcessor(reader, configuration, observer, router, pause_between_dumps)
    except ConfigurationInvalid as e:
        logger.error(f"Invalid configuration: {e}")
        return ExitStatus.CONFIGURATION_INVALID

    processor.run(inputs)
    if report_path:
        try:
            processor.aggregator.save_report(report_path)
            logger.info(f"Report saved to {report_path}")
        except OSError as e:
            log_exception(logger, f"Failed to write report {report_path}", e)
    return ExitStatus.SUCCESS
