"""
Dump Reader Abstraction Layer

Provides a uniform interface over crash dump backends:
- Breakpad minidump_stackwalk (machine readable output)
- In-memory mock (testing and offline replay)

A reader opens one dump at a time and hands back a session. Sessions are
context managers and must be closed before the next dump is opened.
"""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import DumpUnreadable
from .stack import FaultEvent, StackFrame

logger = logging.getLogger(__name__)


class DumpReaderType(Enum):
    """Supported dump reader backends."""
    STACKWALK = auto()
    MOCK = auto()  # For testing


class DumpSession(ABC):
    """An open dump. Released by `close()` or by leaving the `with` block."""

    def __init__(self, dump_path: str):
        self.dump_path = dump_path
        self.closed = False

    @abstractmethod
    def last_fault_event(self) -> FaultEvent:
        """Return the last fault event, or raise DumpUnreadable."""
        pass

    @abstractmethod
    def stack_trace(self, thread_id: int) -> List[StackFrame]:
        """Return the thread's frames, innermost first, or raise DumpUnreadable."""
        pass

    def close(self):
        self.closed = True

    def _check_open(self):
        if self.closed:
            raise DumpUnreadable(self.dump_path, "session already closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class DumpReader(ABC):
    """Abstract base class for dump readers"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    def is_available(self) -> bool:
        """Whether the backend can run on this machine."""
        return True

    @abstractmethod
    def open(self, dump_path: str) -> DumpSession:
        """Open a dump for reading. Raises DumpUnreadable."""
        pass


# =============================================================================
# BREAKPAD MINIDUMP_STACKWALK
# =============================================================================

class StackwalkSession(DumpSession):
    """Parsed `minidump_stackwalk -m` output for one dump."""

    def __init__(self, dump_path: str, crash: Optional[FaultEvent],
                 threads: Dict[int, List[StackFrame]]):
        super().__init__(dump_path)
        self._crash = crash
        self._threads = threads

    def last_fault_event(self) -> FaultEvent:
        self._check_open()
        if self._crash is None:
            raise DumpUnreadable(self.dump_path, "dump has no crash record")
        return self._crash

    def stack_trace(self, thread_id: int) -> List[StackFrame]:
        self._check_open()
        if thread_id not in self._threads:
            raise DumpUnreadable(self.dump_path, f"no stack for thread {thread_id}")
        return list(self._threads[thread_id])

    def close(self):
        self._threads = {}
        self._crash = None
        super().close()


def _parse_int(text: str, base: int = 10) -> Optional[int]:
    text = text.strip()
    if not text:
        return None
    try:
        return int(text, base)
    except ValueError:
        return None


def parse_stackwalk_output(output: str) -> Tuple[Optional[FaultEvent], Dict[int, List[StackFrame]]]:
    """
    Parse the pipe-delimited output of `minidump_stackwalk -m`.

    Relevant records:
        Crash|<reason>|<address>|<thread index>
        <thread>|<frame>|<module>|<function>|<source file>|<line>|<offset>
    """
    crash = None
    threads: Dict[int, List[StackFrame]] = {}

    for line in output.splitlines():
        fields = line.split("|")
        record = fields[0]

        if record.isdigit() and len(fields) >= 7:
            thread_id = int(record)
            module, function, source_file, source_line, offset = fields[2:7]
            threads.setdefault(thread_id, []).append(StackFrame(
                module=module,
                function=function,
                source_file=source_file or None,
                source_line=_parse_int(source_line),
                offset=_parse_int(offset, 16),
            ))

        elif record == "Crash" and len(fields) >= 4:
            reason, address, thread = fields[1:4]
            thread_id = _parse_int(thread)
            if reason != "No crash" and thread_id is not None:
                crash = FaultEvent(thread_id=thread_id, reason=reason, address=_parse_int(address, 16))

    return crash, threads


class StackwalkDumpReader(DumpReader):
    """Reads minidumps through Breakpad's `minidump_stackwalk` tool."""

    def __init__(self, executable: str = "minidump_stackwalk",
                 symbol_paths: Sequence[str] = (), timeout: int = 120):
        self.executable = executable
        self.symbol_paths = list(symbol_paths)
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "minidump_stackwalk"

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def open(self, dump_path: str) -> StackwalkSession:
        if not os.path.isfile(dump_path):
            raise DumpUnreadable(dump_path, "file not found")

        cmd = [self.executable, "-m", dump_path] + self.symbol_paths
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout
            )
        except FileNotFoundError:
            raise DumpUnreadable(dump_path, f"{self.executable} not found")
        except subprocess.TimeoutExpired:
            raise DumpUnreadable(dump_path, f"{self.name} timed out after {self.timeout}s")

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()[-1:] or [f"exit code {result.returncode}"]
            raise DumpUnreadable(dump_path, f"{self.name} failed: {detail[0]}")

        crash, threads = parse_stackwalk_output(result.stdout)
        return StackwalkSession(dump_path, crash, threads)


# =============================================================================
# MOCK
# =============================================================================

class MockDumpSession(DumpSession):

    def __init__(self, reader: "MockDumpReader", dump_path: str, event: FaultEvent,
                 threads: Dict[int, List[StackFrame]]):
        super().__init__(dump_path)
        self._reader = reader
        self._event = event
        self._threads = threads

    def last_fault_event(self) -> FaultEvent:
        self._check_open()
        return self._event

    def stack_trace(self, thread_id: int) -> List[StackFrame]:
        self._check_open()
        if thread_id not in self._threads:
            raise DumpUnreadable(self.dump_path, f"no stack for thread {thread_id}")
        return list(self._threads[thread_id])

    def close(self):
        if not self.closed:
            self._reader.open_sessions -= 1
            self._reader.closed_paths.append(self.dump_path)
        super().close()


class MockDumpReader(DumpReader):
    """In-memory dump reader. Unknown or failed paths raise DumpUnreadable."""

    def __init__(self):
        self._dumps: Dict[str, Tuple[FaultEvent, Dict[int, List[StackFrame]]]] = {}
        self._failures: Dict[str, str] = {}
        self.open_sessions = 0
        self.closed_paths: List[str] = []

    @property
    def name(self) -> str:
        return "mock"

    def add_dump(self, dump_path: str, frames: Sequence[StackFrame], thread_id: int = 0,
                 reason: str = "EXCEPTION_ACCESS_VIOLATION_READ"):
        """Register a dump whose faulting thread has the given frames."""
        self._dumps[dump_path] = (FaultEvent(thread_id=thread_id, reason=reason),
                                  {thread_id: list(frames)})

    def add_failure(self, dump_path: str, reason: str = "corrupt dump"):
        self._failures[dump_path] = reason

    def open(self, dump_path: str) -> MockDumpSession:
        if dump_path in self._failures:
            raise DumpUnreadable(dump_path, self._failures[dump_path])
        if dump_path not in self._dumps:
            raise DumpUnreadable(dump_path, "unknown dump")
        event, threads = self._dumps[dump_path]
        self.open_sessions += 1
        return MockDumpSession(self, dump_path, event, threads)


# =============================================================================
# READER FACTORY
# =============================================================================

def create_dump_reader(reader_type: DumpReaderType, **kwargs) -> DumpReader:
    """
    Create a dump reader of the specified type.

    Args:
        reader_type: Type of reader to create
        **kwargs: Reader-specific arguments

    Returns:
        Configured DumpReader instance
    """
    if reader_type == DumpReaderType.STACKWALK:
        return StackwalkDumpReader(**kwargs)

    elif reader_type == DumpReaderType.MOCK:
        return MockDumpReader()

    else:
        raise ValueError(f"Unsupported reader type: {reader_type}")
