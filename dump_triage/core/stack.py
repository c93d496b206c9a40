"""
Stack data produced by dump readers.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class StackFrame:
    """One entry in a call stack, innermost frame first."""
    module: str
    function: str = ""
    source_file: Optional[str] = None
    source_line: Optional[int] = None
    offset: Optional[int] = None

    def __str__(self) -> str:
        text = self.module or "<unknown>"
        if self.function:
            text += f"!{self.function}"
        if self.offset is not None:
            text += f"+0x{self.offset:x}"
        if self.source_file:
            location = self.source_file
            if self.source_line is not None:
                location += f" @ {self.source_line}"
            text += f" [{location}]"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "function": self.function,
            "source_file": self.source_file,
            "source_line": self.source_line,
            "offset": self.offset,
        }


@dataclass(frozen=True)
class FaultEvent:
    """Last fault event recorded in a dump."""
    thread_id: int
    reason: str = ""
    address: Optional[int] = None

    def __str__(self) -> str:
        text = self.reason or "fault"
        if self.address is not None:
            text += f" at 0x{self.address:x}"
        return f"{text} (thread {self.thread_id})"
