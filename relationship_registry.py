"""
Relationship Registry - other characters' sheets filed under a tab as
family, friends, love or hate.

Each kind keeps its own newest-first list and its own (nullable) selection.
Entries come only from importing sheet files and can afterwards only be
given a relation label (family) or removed.

Usage:
    registry = RelationshipRegistry()
    added = registry.import_entries(["aunt_may.json"], "family")
    registry.update_relation("family", added[0].id, "Aunt")
    data = registry.to_dict()
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from CCS_constants import RelationKind
from core import file_stem, new_id, now_ms
from snapshot_codec import character_name, parse_snapshot_text


logger = logging.getLogger(__name__)

FALLBACK_ENTRY_NAME = "Imported Sheet"


def _kind(kind: RelationKind | str) -> str:
    key = kind.value if isinstance(kind, RelationKind) else kind
    if key not in RelationKind._value2member_map_:
        raise ValueError(f"Unknown relationship kind: {kind}")
    return key


@dataclass
class RelationshipEntry:
    id: str
    name: str
    portrait: Optional[str] = None
    relation: Optional[str] = None  # "" for family entries, None otherwise
    source_file: Optional[str] = None
    added_at: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelationshipEntry":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise ValueError("Relationship entry needs a string id")
        portrait = data.get("portrait")
        relation = data.get("relation")
        source_file = data.get("sourceFile")
        added_at = data.get("addedAt")
        return cls(
            id=data["id"],
            name=str(data.get("name") or FALLBACK_ENTRY_NAME),
            portrait=portrait if isinstance(portrait, str) else None,
            relation=relation if isinstance(relation, str) else None,
            source_file=source_file if isinstance(source_file, str) else None,
            added_at=added_at if isinstance(added_at, int) and not isinstance(added_at, bool) else 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "portrait": self.portrait,
        }
        if self.relation is not None:
            result["relation"] = self.relation
        if self.source_file is not None:
            result["sourceFile"] = self.source_file
        result["addedAt"] = self.added_at
        return result


def entry_from_payload(filename: str, text: str, kind: RelationKind | str) -> Optional[RelationshipEntry]:
    """Build an entry from one sheet file's text, or None if it does not parse."""
    key = _kind(kind)
    data = parse_snapshot_text(text, filename)
    if data is None:
        return None
    name = character_name(data) or file_stem(filename) or FALLBACK_ENTRY_NAME
    portrait = data.get("portrait")
    return RelationshipEntry(
        id=new_id(),
        name=name,
        portrait=portrait if isinstance(portrait, str) else None,
        relation="" if key == RelationKind.FAMILY.value else None,
        source_file=filename,
        added_at=now_ms(),
    )


@dataclass
class RelationshipRegistry:
    entries: Dict[str, List[RelationshipEntry]] = field(
        default_factory=lambda: {k.value: [] for k in RelationKind}
    )
    selection: Dict[str, Optional[str]] = field(
        default_factory=lambda: {k.value: None for k in RelationKind}
    )
    max_entries: Optional[int] = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_entries(self, kind: RelationKind | str) -> List[RelationshipEntry]:
        return list(self.entries[_kind(kind)])

    def selected(self, kind: RelationKind | str) -> Optional[RelationshipEntry]:
        key = _kind(kind)
        return self.find(key, self.selection[key]) if self.selection[key] else None

    def find(self, kind: RelationKind | str, entry_id: Optional[str]) -> Optional[RelationshipEntry]:
        for entry in self.entries[_kind(kind)]:
            if entry.id == entry_id:
                return entry
        return None

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    def import_entries(self, paths: Iterable[str], kind: RelationKind | str) -> List[RelationshipEntry]:
        """Import sheet files from disk; unreadable files are skipped."""
        payloads: List[Tuple[str, str]] = []
        for path in paths:
            path = Path(path)
            try:
                payloads.append((path.name, path.read_text(encoding="utf-8")))
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping relationship file %s: %s", path, e)
        return self.import_payloads(payloads, kind)

    def import_payloads(self, payloads: Iterable[Tuple[str, str]], kind: RelationKind | str) -> List[RelationshipEntry]:
        """
        Import a batch of (filename, text) sheets as entries of one kind.

        The batch is prepended in its own order. When the kind has nothing
        selected, the first new entry becomes the selection.

        Returns:
            The entries that were added
        """
        key = _kind(kind)
        added: List[RelationshipEntry] = []
        for filename, text in payloads:
            entry = entry_from_payload(filename, text, key)
            if entry is None:
                logger.debug("Dropped relationship file %s", filename)
                continue
            added.append(entry)
        if not added:
            return added

        self.entries[key] = added + self.entries[key]
        if self.max_entries is not None and len(self.entries[key]) > self.max_entries:
            self.entries[key] = self.entries[key][:max(0, self.max_entries)]
            added = [e for e in added if e in self.entries[key]]
            if self.selection[key] and self.find(key, self.selection[key]) is None:
                self.selection[key] = None
        if not self.selection[key] and added:
            self.selection[key] = added[0].id
        return added

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def select(self, kind: RelationKind | str, entry_id: Optional[str]) -> bool:
        key = _kind(kind)
        if entry_id is not None and self.find(key, entry_id) is None:
            return False
        self.selection[key] = entry_id
        return True

    def update_relation(self, kind: RelationKind | str, entry_id: str, relation: str) -> bool:
        """Set the free-text relation label of a family entry."""
        key = _kind(kind)
        if key != RelationKind.FAMILY.value:
            return False
        entry = self.find(key, entry_id)
        if entry is None:
            return False
        entry.relation = relation or ""
        return True

    def remove(self, kind: RelationKind | str, entry_id: str) -> bool:
        key = _kind(kind)
        entry = self.find(key, entry_id)
        if entry is None:
            return False
        self.entries[key].remove(entry)
        if self.selection[key] == entry_id:
            self.selection[key] = None
        return True

    def confirm(self, kind: RelationKind | str) -> None:
        """Finish editing the selected entry of one kind."""
        self.selection[_kind(kind)] = None

    def reset(self) -> None:
        self.entries = {k.value: [] for k in RelationKind}
        self.selection = {k.value: None for k in RelationKind}

    def copy(self) -> "RelationshipRegistry":
        return copy.deepcopy(self)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def entries_to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {kind: [e.to_dict() for e in items] for kind, items in self.entries.items()}

    def selection_to_dict(self) -> Dict[str, Optional[str]]:
        return dict(self.selection)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relationships": self.entries_to_dict(),
            "relationshipSelection": self.selection_to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any, max_entries: Optional[int] = None) -> "RelationshipRegistry":
        """
        Rebuild a registry from ``{relationships, relationshipSelection}``.

        Anything malformed is normalised away: a kind whose list is not a
        list is empty, a selection that is not a string is None and entries
        without a string id are dropped.
        """
        data = data if isinstance(data, dict) else {}
        raw_entries = data.get("relationships")
        raw_entries = raw_entries if isinstance(raw_entries, dict) else {}
        raw_selection = data.get("relationshipSelection")
        raw_selection = raw_selection if isinstance(raw_selection, dict) else {}

        registry = cls(max_entries=max_entries)
        for kind in RelationKind:
            items = raw_entries.get(kind.value)
            if isinstance(items, list):
                for item in items:
                    try:
                        registry.entries[kind.value].append(RelationshipEntry.from_dict(item))
                    except ValueError:
                        logger.debug("Dropped malformed %s entry", kind.value)
            selected = raw_selection.get(kind.value)
            registry.selection[kind.value] = selected if isinstance(selected, str) else None
        return registry
