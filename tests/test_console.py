import io
import os
import sys
import unittest
from unittest.mock import Mock

# Adjust path to import dump_triage
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dump_triage.core.classifier import classify_stack
from dump_triage.core.errors import AssigneeUnresolved, DumpUnreadable
from dump_triage.core.filters import Filter, FilterField, MatchKind
from dump_triage.core.stack import FaultEvent, StackFrame
from dump_triage.report.console import ConsoleReporter

RENDER = Filter(FilterField.MODULE, MatchKind.EXACT, "render.dll")

STACK = [
    StackFrame(module="ntdll.dll", function="NtWaitForSingleObject", offset=0x14),
    StackFrame(module="render.dll", function="Draw", source_file="draw.cpp", source_line=42),
    StackFrame(module="app.exe", function="main"),
]


class TestConsoleReporter(unittest.TestCase):
    def setUp(self):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.read_line = Mock(return_value="\n")
        self.reporter = ConsoleReporter(self.out, self.err, color=False, read_line=self.read_line)

    def test_matched_frame_is_marked(self):
        result = classify_stack(STACK, [RENDER])
        self.reporter.dump_classified("a.dmp", FaultEvent(thread_id=3, reason="EXCEPTION_ACCESS_VIOLATION_READ",
                                                          address=0x10), result, "Graphics Team")

        lines = self.out.getvalue().splitlines()
        self.assertEqual(lines, [
            "Last event: EXCEPTION_ACCESS_VIOLATION_READ at 0x10 (thread 3)",
            "  ntdll.dll!NtWaitForSingleObject+0x14",
            "> render.dll!Draw [draw.cpp @ 42]",
            "  app.exe!main",
            "Matched module:exact:render.dll -> owner: Graphics Team",
        ])

    def test_unmatched_stack_names_default_owner(self):
        result = classify_stack(STACK[2:], [RENDER])
        self.reporter.dump_classified("b.dmp", FaultEvent(thread_id=0), result, "Triage Rotation")

        output = self.out.getvalue()
        self.assertNotIn("> ", output)
        self.assertIn("No filter matched -> default owner: Triage Rotation", output)

    def test_errors_go_to_stderr(self):
        self.reporter.dump_failed("c.dmp", DumpUnreadable("c.dmp", "truncated"))
        self.reporter.assignee_unresolved("d.dmp", AssigneeUnresolved("Graphics Team", "Triage Rotation"))

        self.assertEqual(self.out.getvalue(), "")
        errors = self.err.getvalue().splitlines()
        self.assertEqual(errors[0], "Error while analyzing c.dmp: c.dmp: truncated")
        self.assertIn("No project member named Graphics Team / Triage Rotation", errors[1])

    def test_no_escape_codes_without_colour(self):
        self.reporter.dump_started(1, 2, "/dumps/[nightly]/a.dmp")
        self.assertEqual(self.out.getvalue(), "Analyzing 1/2: /dumps/[nightly]/a.dmp\n")

    def test_pause_waits_for_input(self):
        self.reporter.wait_for_confirmation()
        self.read_line.assert_called_once()
        self.assertIn("Press <Enter> to continue...", self.out.getvalue())

    def test_summary(self):
        self.reporter.batch_finished({'summary': {
            'total_dumps': 3, 'successful': 2, 'failed': 1, 'matched': 1, 'tickets_created': 0
        }})
        self.assertIn("Processed 3 dumps: 2 analyzed, 1 failed, 1 matched a filter, 0 tickets opened",
                      self.out.getvalue())


if __name__ == '__main__':
    unittest.main()
