"""
Snapshot codec - turns sheet documents into versioned JSON-ready dicts and back.

Snapshots come in three shapes:
- full: version 2, every identity/notes/group key plus the portrait
- diffed: version 2 with only the keys that differ from the default sheet
- legacy: version 1, ``{"fields": [{"t": ..., "v": ...}, ...]}``

Decoding is forgiving: unknown keys are ignored and absent keys keep the
default value, except the portrait which is always either set or cleared.

Usage:
    codec = SnapshotCodec(default_form_schema())
    data = codec.to_snapshot(document)
    again = codec.from_snapshot(data)
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional

from CCS_constants import NAME_KEYS, SNAPSHOT_VERSION
from core import FormSchema, Note
from legacy_fields import apply_legacy_fields
from sheet_model import AllocationGroup, SheetDocument, is_blank_marker


logger = logging.getLogger(__name__)


def _as_int(value: Any) -> Optional[int]:
    """Integer value of a JSON scalar; None for anything unreadable or non-finite."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, float) or not math.isfinite(value):
        return None
    return int(value)


def character_name(data: Any) -> str:
    """Best-effort character name from a parsed sheet (empty for blank markers)."""
    if not isinstance(data, dict) or is_blank_marker(data):
        return ""
    identity = data.get("identity")
    if not isinstance(identity, dict):
        return ""
    for key in NAME_KEYS:
        raw = identity.get(key)
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
    return ""


def parse_snapshot_text(text: str, source: str = "<input>") -> Optional[Dict[str, Any]]:
    """Parse JSON text into a snapshot dict, or None if it is not one."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning("Could not parse sheet %s: %s", source, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Sheet %s is not a JSON object", source)
        return None
    return data


class SnapshotCodec:
    """
    Encodes and decodes sheet snapshots against one form schema.

    The default and blank documents are captured once, when the codec is
    built, and handed out as copies afterwards.
    """

    def __init__(self, schema: FormSchema):
        self.schema = schema
        self._default = self._build_default()
        self._blank = self._build_blank()

    # -------------------------------------------------------------------------
    # Canonical documents
    # -------------------------------------------------------------------------

    def _empty_groups(self) -> Dict[str, AllocationGroup]:
        groups = {}
        for name, group_def in self.schema.groups.items():
            groups[name] = AllocationGroup(
                stats={label: 0 for label in group_def.stat_labels},
                sliders={s.key: s.default for s in group_def.sliders},
                traits={label: False for label in group_def.traits},
            )
        return groups

    def _build_default(self) -> SheetDocument:
        return SheetDocument(
            identity={f.label: f.default for f in self.schema.identity},
            notes=[Note(title=title) for title in self.schema.note_titles],
            portrait=None,
            groups=self._empty_groups(),
        )

    def _build_blank(self) -> SheetDocument:
        return SheetDocument(
            identity={label: "" for label in self.schema.identity_labels},
            notes=[],
            portrait=None,
            groups=self._empty_groups(),
        )

    def default_document(self) -> SheetDocument:
        return self._default.copy()

    def blank_document(self) -> SheetDocument:
        return self._blank.copy()

    def default_snapshot(self) -> Dict[str, Any]:
        return self.to_snapshot(self._default)

    def blank_snapshot(self) -> Dict[str, Any]:
        return self.to_snapshot(self._blank)

    # -------------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------------

    def to_snapshot(self, document: SheetDocument) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "version": SNAPSHOT_VERSION,
            "identity": {label: document.identity.get(label, "") for label in self.schema.identity_labels},
            "notes": [n.to_dict() for n in document.notes],
        }
        for name, group_def in self.schema.groups.items():
            group = document.groups.get(name) or AllocationGroup()
            entry: Dict[str, Any] = {
                "stats": {label: group.stats.get(label, 0) for label in group_def.stat_labels},
            }
            if group_def.has_sliders_and_traits:
                entry["sliders"] = {s.key: group.sliders.get(s.key, s.default) for s in group_def.sliders}
                entry["traits"] = {label: bool(group.traits.get(label)) for label in group_def.traits}
            result[name] = entry
        result["portrait"] = document.portrait or None
        return result

    def to_diff_snapshot(self, document: SheetDocument) -> Dict[str, Any]:
        """Version-2 snapshot holding only what differs from the default sheet."""
        full = self.to_snapshot(document)
        default = self.default_snapshot()
        result: Dict[str, Any] = {"version": SNAPSHOT_VERSION}

        identity = {k: v for k, v in full["identity"].items() if default["identity"].get(k) != v}
        if identity:
            result["identity"] = identity
        if full["notes"] != default["notes"]:
            result["notes"] = full["notes"]

        for name in self.schema.groups:
            changed: Dict[str, Any] = {}
            for section, values in full[name].items():
                diff = {k: v for k, v in values.items() if default[name][section].get(k) != v}
                if diff:
                    changed[section] = diff
            if changed:
                result[name] = changed

        result["portrait"] = full["portrait"]
        return result

    # -------------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------------

    def from_snapshot(self, data: Any, base: Optional[SheetDocument] = None) -> SheetDocument:
        """
        Build a document from any accepted snapshot shape.

        Args:
            data: Parsed snapshot (version 2 full/diffed, legacy fields or
                  blank marker). Anything else yields the default sheet.
            base: Document that absent keys fall back to (default sheet if None)
        """
        if is_blank_marker(data):
            return self.blank_document()
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring snapshot of type %s; using defaults", type(data).__name__)
            return self.default_document()

        if isinstance(data.get("fields"), list):
            document = self.default_document()
            apply_legacy_fields(document, data["fields"], self.schema)
        else:
            document = base.copy() if base is not None else self.default_document()
            self._merge_identity(document, data.get("identity"))
            if "notes" in data:
                self._merge_notes(document, data.get("notes"))
            for name in self.schema.groups:
                self._merge_group(document, name, data.get(name))

        portrait = data.get("portrait")
        document.portrait = portrait if isinstance(portrait, str) and portrait else None
        document.version = SNAPSHOT_VERSION
        return document

    def _merge_identity(self, document: SheetDocument, identity: Any) -> None:
        if not isinstance(identity, dict):
            return
        for label in self.schema.identity_labels:
            if label in identity:
                value = identity[label]
                document.identity[label] = "" if value is None else str(value)

    def _merge_notes(self, document: SheetDocument, notes: Any) -> None:
        if not isinstance(notes, list):
            return
        merged: List[Note] = []
        seen = set()
        for raw in notes:
            if not isinstance(raw, dict):
                continue
            note = Note.from_dict(raw)
            if note.title not in self.schema.note_titles or note.title in seen:
                logger.debug("Dropping note %r", note.title)
                continue
            seen.add(note.title)
            merged.append(note)
        document.notes = merged

    def _merge_group(self, document: SheetDocument, name: str, data: Any) -> None:
        if not isinstance(data, dict):
            return
        group_def = self.schema.group(name)
        group = document.group(name)

        stats = data.get("stats")
        if isinstance(stats, dict):
            for stat in group_def.stats:
                value = _as_int(stats.get(stat.label)) if stat.label in stats else None
                if value is not None:
                    group.stats[stat.label] = max(0, min(stat.pips, value))

        sliders = data.get("sliders")
        if isinstance(sliders, dict):
            for slider in group_def.sliders:
                value = _as_int(sliders.get(slider.key)) if slider.key in sliders else None
                if value is not None:
                    group.sliders[slider.key] = slider.clamp(value)

        traits = data.get("traits")
        if isinstance(traits, dict):
            for label in group_def.traits:
                if label in traits:
                    group.traits[label] = bool(traits[label])
