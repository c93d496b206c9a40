"""
First-match stack classification.

Frames are scanned from the fault point outwards; for each frame the
filters are tried in declared order. The first frame matching any filter
decides the result, and the earliest declared filter matching that frame
is selected. Frame order dominates filter order.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .filters import Filter
from .stack import StackFrame


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one stack. No match is a valid outcome."""
    stack: Tuple[StackFrame, ...]
    frame: Optional[StackFrame] = None
    filter: Optional[Filter] = None
    frame_index: Optional[int] = None

    @property
    def matched(self) -> bool:
        return self.frame_index is not None

    def is_matched_frame(self, index: int) -> bool:
        """True for the matched position; equal frames elsewhere do not count."""
        return self.frame_index is not None and index == self.frame_index

    def format_stack(self) -> List[str]:
        return [str(frame) for frame in self.stack]


def _first_match(stack: Sequence[StackFrame],
                 filters: Sequence[Filter]) -> Tuple[Optional[int], Optional[Filter]]:
    for index, frame in enumerate(stack):
        for candidate in filters:
            if candidate.matches(frame):
                return index, candidate
    return None, None


def classify(stack: Sequence[StackFrame],
             filters: Sequence[Filter]) -> Tuple[Optional[StackFrame], Optional[Filter]]:
    """Return (matched frame, matched filter), or (None, None)."""
    index, matched = _first_match(stack, filters)
    if index is None:
        return None, None
    return stack[index], matched


def classify_stack(stack: Sequence[StackFrame], filters: Sequence[Filter]) -> ClassificationResult:
    """Classify and keep the full stack and matched position for reporting."""
    frames = tuple(stack)
    index, matched = _first_match(frames, filters)
    if index is None:
        return ClassificationResult(stack=frames)
    return ClassificationResult(stack=frames, frame=frames[index], filter=matched, frame_index=index)
