from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional

from CCS_constants import GroupName, NAME_KEYS, SNAPSHOT_VERSION
from core import Note


# --- Leaf models ---

@dataclass
class AllocationGroup:
    stats: Dict[str, int] = field(default_factory=dict)
    sliders: Dict[str, int] = field(default_factory=dict)
    traits: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllocationGroup":
        return cls(
            stats={str(k): int(v) for k, v in (data.get("stats") or {}).items()},
            sliders={str(k): int(v) for k, v in (data.get("sliders") or {}).items()},
            traits={str(k): bool(v) for k, v in (data.get("traits") or {}).items()},
        )


# --- Root model ---

@dataclass
class SheetDocument:
    version: int = SNAPSHOT_VERSION
    identity: Dict[str, str] = field(default_factory=dict)
    notes: List[Note] = field(default_factory=list)
    portrait: Optional[str] = None
    groups: Dict[str, AllocationGroup] = field(default_factory=dict)

    @property
    def character_name(self) -> str:
        for key in NAME_KEYS:
            value = self.identity.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""

    def group(self, name: GroupName | str) -> AllocationGroup:
        key = name.value if isinstance(name, GroupName) else name
        return self.groups.setdefault(key, AllocationGroup())

    def note(self, title: str) -> Optional[Note]:
        for note in self.notes:
            if note.title == title:
                return note
        return None

    def copy(self) -> "SheetDocument":
        return copy.deepcopy(self)


class BlankMarker:
    """Stands in for a tab's document until the blank sheet is materialized."""

    def to_dict(self) -> Dict[str, Any]:
        return {"__blank": True, "version": SNAPSHOT_VERSION}

    def __repr__(self) -> str:
        return "BLANK"


BLANK = BlankMarker()


def is_blank_marker(data: Any) -> bool:
    if isinstance(data, BlankMarker):
        return True
    return isinstance(data, dict) and bool(data.get("__blank"))

