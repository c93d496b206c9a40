"""
Console reporting for triage runs.
"""

import sys
from typing import TextIO, Optional, Callable

from rich.console import Console
from rich.theme import Theme

from ..core.batch_processing import BatchObserver
from ..core.classifier import ClassificationResult
from ..core.errors import AssigneeUnresolved
from ..core.stack import FaultEvent

triage_theme = Theme(
    {
        "triage.progress": "cyan",
        "triage.match": "bold yellow",
        "triage.warning": "yellow",
        "triage.error": "bold red",
    }
)

MATCH_MARKER = "> "
PLAIN_MARKER = "  "


def make_console(stream: TextIO, color: Optional[bool] = None) -> Console:
    """Console on `stream`; colour follows the terminal unless forced."""
    return Console(
        file=stream,
        theme=triage_theme,
        force_terminal=color,
        color_system="standard" if color else "auto",
        no_color=True if color is False else None,
        highlight=False,
        emoji=False,
        soft_wrap=True,
    )


class ConsoleReporter(BatchObserver):
    """
    Prints progress and stack traces; the matched frame is prefixed with
    `>` and, on a terminal, highlighted.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None,
                 color: Optional[bool] = None, read_line: Optional[Callable[[], str]] = None):
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.console = make_console(self.out, color)
        self.err_console = make_console(self.err, color)
        self.read_line = read_line or sys.stdin.readline

    def _print(self, text: str, style: Optional[str] = None):
        # Frames and paths may contain [brackets]; never parse them as markup
        self.console.print(text, style=style, markup=False)

    def dump_started(self, index: int, total: int, dump_path: str):
        self._print(f"Analyzing {index}/{total}: {dump_path}", "triage.progress")

    def dump_classified(self, dump_path: str, event: FaultEvent,
                        result: ClassificationResult, owner: str):
        self._print(f"Last event: {event}")
        for index, frame in enumerate(result.stack):
            if result.is_matched_frame(index):
                self._print(MATCH_MARKER + str(frame), "triage.match")
            else:
                self._print(PLAIN_MARKER + str(frame))

        if result.matched:
            self._print(f"Matched {result.filter.describe()} -> owner: {owner}")
        else:
            self._print(f"No filter matched -> default owner: {owner}")

    def dump_failed(self, dump_path: str, error: Exception):
        self.err_console.print(f"Error while analyzing {dump_path}: {error}",
                               style="triage.error", markup=False)

    def ticket_created(self, dump_path: str, issue_id: int):
        self._print(f"Opened ticket #{issue_id}")

    def assignee_unresolved(self, dump_path: str, error: AssigneeUnresolved):
        self.err_console.print(f"Warning: {error}; the ticket is left unassigned",
                               style="triage.warning", markup=False)

    def wait_for_confirmation(self):
        self._print("Press <Enter> to continue...")
        self.out.flush()
        self.read_line()

    def batch_finished(self, report: dict):
        s = report['summary']
        self._print(f"Processed {s['total_dumps']} dumps: {s['successful']} analyzed, {s['failed']} failed, "
                    f"{s['matched']} matched a filter, {s['tickets_created']} tickets opened")
