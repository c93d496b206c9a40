"""
Ownership table: which owner is responsible for failures caught by a filter.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Iterable

from .errors import ConfigurationInvalid
from .filters import Filter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Owner:
    """A person or team, identified by tracker display name."""
    name: str

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ConfigurationInvalid("Owner name must not be empty")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class OwnershipData:
    """Binds exactly one filter to exactly one owner."""
    filter: Filter
    owner: Owner

    def to_dict(self) -> Dict[str, Any]:
        return {"filter": self.filter.to_dict(), "owner": self.owner.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OwnershipData":
        if not isinstance(data, dict) or "filter" not in data or "owner" not in data:
            raise ConfigurationInvalid(f"Ownership entry needs 'filter' and 'owner': {data!r}")
        return cls(filter=Filter.from_dict(data["filter"]), owner=Owner(str(data["owner"])))


class OwnershipTable:
    """
    Ordered ownership entries plus the default owner.

    Entry order is filter priority. If two entries reference an equal
    filter the first one wins; the duplicate is kept out of the filter list.
    """

    def __init__(self, entries: Iterable[OwnershipData], default_owner: Owner):
        if default_owner is None:
            raise ConfigurationInvalid("A default owner is required")
        self.default_owner = default_owner
        self._entries: List[OwnershipData] = []
        self._by_filter: Dict[Filter, OwnershipData] = {}

        for entry in entries:
            if entry.filter in self._by_filter:
                logger.warning(f"Duplicate filter {entry.filter.describe()} bound to {entry.owner}; "
                               f"keeping owner {self._by_filter[entry.filter].owner}")
                continue
            self._by_filter[entry.filter] = entry
            self._entries.append(entry)

    @property
    def entries(self) -> List[OwnershipData]:
        return list(self._entries)

    @property
    def filters(self) -> List[Filter]:
        """Filters in declared order."""
        return [e.filter for e in self._entries]

    def binding_for(self, filter: Optional[Filter]) -> Optional[OwnershipData]:
        if filter is None:
            return None
        return self._by_filter.get(filter)

    def owner_for(self, filter: Optional[Filter]) -> Owner:
        """Owner bound to the filter, or the default owner."""
        entry = self.binding_for(filter)
        return entry.owner if entry else self.default_owner

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, OwnershipTable):
            return NotImplemented
        return self._entries == other._entries and self.default_owner == other.default_owner
