"""
Stack frame filters.

A filter selects one field of a frame (module, function, or either) and
compares it against a value using one of a closed set of comparison kinds.
Filters are immutable and evaluating them never raises.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

from .errors import ConfigurationInvalid
from .stack import StackFrame


class FilterField(Enum):
    """Frame field a filter is evaluated against."""
    MODULE = "module"
    FUNCTION = "function"
    FRAME = "frame"  # module or function


class MatchKind(Enum):
    """Supported comparison rules."""
    EXACT = "exact"
    SUBSTRING = "substring"
    PATTERN = "pattern"  # regular expression, re.search semantics


@dataclass(frozen=True)
class Filter:
    """Matching rule evaluated against a single stack frame."""
    selector: FilterField
    kind: MatchKind
    value: str
    ignore_case: bool = False
    _regex: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.selector, FilterField) or not isinstance(self.kind, MatchKind):
            raise ConfigurationInvalid(f"Invalid filter selector: {self.selector!r}/{self.kind!r}")
        if not self.value:
            raise ConfigurationInvalid("Filter value must not be empty")

        if self.kind is MatchKind.PATTERN:
            flags = re.IGNORECASE if self.ignore_case else 0
            try:
                compiled = re.compile(self.value, flags)
            except re.error as e:
                raise ConfigurationInvalid(f"Invalid filter pattern {self.value!r}: {e}")
            object.__setattr__(self, "_regex", compiled)

    def matches(self, frame: StackFrame) -> bool:
        """Return True if the frame satisfies this filter."""
        if self.selector is FilterField.MODULE:
            return self._compare(frame.module)
        if self.selector is FilterField.FUNCTION:
            return self._compare(frame.function)
        return self._compare(frame.module) or self._compare(frame.function)

    def _compare(self, text: Optional[str]) -> bool:
        text = text or ""

        if self.kind is MatchKind.PATTERN:
            return self._regex.search(text) is not None

        value = self.value
        if self.ignore_case:
            text = text.casefold()
            value = value.casefold()

        if self.kind is MatchKind.EXACT:
            return text == value
        return value in text

    def describe(self) -> str:
        """Compact text form used in reports."""
        text = f"{self.selector.value}:{self.kind.value}:{self.value}"
        return text + " (ignore case)" if self.ignore_case else text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.selector.value,
            "kind": self.kind.value,
            "value": self.value,
            "ignore_case": self.ignore_case,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Filter":
        try:
            return cls(
                selector=FilterField(data.get("field", FilterField.MODULE.value)),
                kind=MatchKind(data.get("kind", MatchKind.EXACT.value)),
                value=data["value"],
                ignore_case=bool(data.get("ignore_case", False)),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ConfigurationInvalid(f"Invalid filter definition {data!r}: {e}")

    @classmethod
    def parse(cls, text: str, ignore_case: bool = False) -> "Filter":
        """
        Parse `FIELD:KIND:VALUE`, e.g. `module:exact:ntdll.dll`.

        The value is everything after the second colon so patterns may
        contain colons themselves.
        """
        parts = text.split(":", 2)
        if len(parts) != 3:
            raise ConfigurationInvalid(f"Filter must look like FIELD:KIND:VALUE, got {text!r}")
        field_name, kind_name, value = (p.strip() for p in parts)
        try:
            return cls(FilterField(field_name.lower()), MatchKind(kind_name.lower()), value, ignore_case)
        except ValueError as e:
            raise ConfigurationInvalid(f"Invalid filter {text!r}: {e}")
