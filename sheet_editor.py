"""
Sheet Editor - the live character sheet the presentation layer binds to.

The editor owns one in-memory SheetDocument and is the only way to change
it. Every interaction goes through the same rules:
1. Stat dots use progressive fill (core.dot_grid)
2. Increases that would overrun a group's points cap are refused
   (core.budget); the control simply does not change
3. Applied snapshots replace the whole sheet and are clamped to the caps

Listeners registered with ``subscribe`` see every change as a SheetEvent,
including the pip-by-pip unwinding done by ``reset_group``.

Usage:
    editor = SheetEditor.from_data_dir("data")
    editor.click_pip("body", "Strength", 4)
    editor.toggle_trait("mind", "Stubborn")
    editor.points_display("body")         # "16/20"
    snapshot = editor.snapshot()
    editor.apply_snapshot(snapshot)
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from core import (
    BudgetEnforcer,
    ControlStates,
    DotGrid,
    FormSchema,
    Note,
    default_form_schema,
    load_point_caps,
)
from legacy_fields import apply_legacy_fields
from sheet_model import SheetDocument
from snapshot_codec import SnapshotCodec


logger = logging.getLogger(__name__)


@dataclass
class SheetEvent:
    """A single change to the live sheet."""
    kind: str  # "pip", "trait", "slider", "identity", "note", "portrait", "apply"
    group: Optional[str] = None
    label: Optional[str] = None
    value: Any = None


Listener = Callable[[SheetEvent], None]


class SheetEditor:
    """
    Manages the live character sheet.

    Unknown groups and labels raise ValueError; a refused allocation returns
    False and leaves the sheet as it was.
    """

    def __init__(
        self,
        schema: Optional[FormSchema] = None,
        codec: Optional[SnapshotCodec] = None,
        enforcer: Optional[BudgetEnforcer] = None,
    ):
        self.schema = schema or default_form_schema()
        self.codec = codec or SnapshotCodec(self.schema)
        self.enforcer = enforcer or BudgetEnforcer.from_schema(self.schema)
        self.document: SheetDocument = self.codec.default_document()
        self._listeners: List[Listener] = []

    @classmethod
    def from_data_dir(cls, data_dir: str = "data") -> "SheetEditor":
        """Build an editor whose point caps come from ``<data_dir>/point_caps.json`` if present."""
        caps_file = Path(data_dir) / "point_caps.json"
        caps: Dict[str, int] = {}
        if caps_file.exists():
            try:
                caps = load_point_caps(str(caps_file))
            except (OSError, ValueError) as e:
                logger.warning("Could not load point caps from %s: %s", caps_file, e)
        return cls(schema=default_form_schema(caps))

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: SheetEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # -------------------------------------------------------------------------
    # Read out / apply
    # -------------------------------------------------------------------------

    def read(self) -> SheetDocument:
        """Independent copy of the live sheet."""
        return self.document.copy()

    def snapshot(self) -> Dict[str, Any]:
        return self.codec.to_snapshot(self.document)

    def apply(self, document: Optional[SheetDocument]) -> None:
        """
        Replace the whole live sheet.

        Args:
            document: Sheet to show; None resets to the default sheet.
                      Keys it lacks are cleared, not carried over.
        """
        target = document if document is not None else self.codec.default_document()
        # Re-encoding over the blank sheet drops unknown keys, clears anything the
        # target leaves out and pins every stat into its pip range.
        fresh = self.codec.from_snapshot(self.codec.to_snapshot(target), base=self.codec.blank_document())
        for name, group_def in self.schema.groups.items():
            self.enforcer.clamp(group_def, fresh.group(name))
        self.document = fresh
        self._emit(SheetEvent("apply"))

    def apply_snapshot(self, data: Any) -> None:
        """Apply any accepted snapshot shape (None resets to the default sheet)."""
        if data is None:
            self.apply(None)
            return
        self.apply(self.codec.from_snapshot(data))

    def apply_legacy_fields(self, fields: List[Any]) -> None:
        """Reset to the default sheet, then map a version-1 ``fields`` array onto it."""
        document = self.codec.default_document()
        apply_legacy_fields(document, fields, self.schema)
        self.apply(document)

    def reset_to_default(self) -> None:
        self.apply(None)

    def reset_to_blank(self) -> None:
        self.apply(self.codec.blank_document())

    def reset_group(self, group: str) -> None:
        """
        Clear the stats and traits of one group, leaving its sliders alone.

        Stats are unwound with toggle-off clicks so listeners see the same
        events a user clearing the group by hand would produce.
        """
        group_def = self.schema.group(group)
        state = self.document.group(group_def.name)
        for label in group_def.stat_labels:
            current = state.stats.get(label, 0)
            if current > 0:
                self.click_pip(group_def.name, label, current)
        for label in group_def.traits:
            if state.traits.get(label):
                self.set_trait(group_def.name, label, False)

    # -------------------------------------------------------------------------
    # Stats and traits
    # -------------------------------------------------------------------------

    def click_pip(self, group: str, label: str, k: int) -> bool:
        """
        Click pip ``k`` (1-based) of a stat.

        Returns:
            True if the stat changed, False if the points cap refused it
        """
        group_def = self.schema.group(group)
        stat = group_def.stat(label)
        state = self.document.group(group_def.name)
        grid = DotGrid(stat.label, stat.pips, state.stats.get(label, 0))
        desired = grid.peek(k)
        if not self.enforcer.allows_stat(group_def, state, label, desired):
            return False
        state.stats[label] = grid.click(k)
        self._emit(SheetEvent("pip", group_def.name, label, state.stats[label]))
        return True

    def set_stat(self, group: str, label: str, value: int) -> bool:
        """Set a stat by replaying the minimal pip clicks that reach ``value``."""
        group_def = self.schema.group(group)
        stat = group_def.stat(label)
        grid = DotGrid(stat.label, stat.pips, self.document.group(group_def.name).stats.get(label, 0))
        for k in grid.clicks_to(value):
            if not self.click_pip(group_def.name, label, k):
                return False
        return True

    def toggle_trait(self, group: str, label: str) -> bool:
        state = self.document.group(self.schema.group(group).name)
        return self.set_trait(group, label, not state.traits.get(label, False))

    def set_trait(self, group: str, label: str, checked: bool) -> bool:
        group_def = self.schema.group(group)
        group_def.require_trait(label)
        state = self.document.group(group_def.name)
        if not self.enforcer.allows_trait(group_def, state, label, checked):
            return False
        state.traits[label] = bool(checked)
        self._emit(SheetEvent("trait", group_def.name, label, state.traits[label]))
        return True

    def set_slider(self, group: str, key: str, value: int) -> int:
        """Move a slider; the value is clamped to the slider's range and returned."""
        group_def = self.schema.group(group)
        slider = group_def.slider(key)
        state = self.document.group(group_def.name)
        state.sliders[key] = slider.clamp(int(value))
        self._emit(SheetEvent("slider", group_def.name, key, state.sliders[key]))
        return state.sliders[key]

    # -------------------------------------------------------------------------
    # Identity, notes, portrait
    # -------------------------------------------------------------------------

    def set_identity(self, label: str, value: str) -> None:
        self.schema.require_identity(label)
        self.document.identity[label] = "" if value is None else str(value)
        self._emit(SheetEvent("identity", label=label, value=self.document.identity[label]))

    def add_note(self, title: str) -> bool:
        """Add an empty note; refused if a note with that title already exists."""
        self.schema.require_note_title(title)
        if self.document.note(title) is not None:
            return False
        self.document.notes.append(Note(title=title))
        self._emit(SheetEvent("note", label=title, value=""))
        return True

    def remove_note(self, title: str) -> bool:
        note = self.document.note(title)
        if note is None:
            return False
        self.document.notes.remove(note)
        self._emit(SheetEvent("note", label=title, value=None))
        return True

    def set_note_text(self, title: str, text: str) -> bool:
        note = self.document.note(title)
        if note is None:
            return False
        note.text = text or ""
        self._emit(SheetEvent("note", label=title, value=note.text))
        return True

    def set_portrait(self, data_uri: Optional[str]) -> None:
        self.document.portrait = data_uri or None
        self._emit(SheetEvent("portrait", value=self.document.portrait))

    def load_portrait_file(self, filepath: str) -> bool:
        """
        Embed an image file as the portrait (raw bytes as a data URI).

        Returns:
            True if successful, False otherwise
        """
        path = Path(filepath)
        try:
            raw = path.read_bytes()
        except OSError as e:
            logger.warning("Could not read portrait %s: %s", path, e)
            return False
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        self.set_portrait(f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}")
        return True

    # -------------------------------------------------------------------------
    # Budget outputs
    # -------------------------------------------------------------------------

    def points_used(self, group: str) -> int:
        group_def = self.schema.group(group)
        return self.enforcer.points_used(group_def, self.document.group(group_def.name))

    def points_remaining(self, group: str) -> int:
        group_def = self.schema.group(group)
        return self.enforcer.remaining(group_def, self.document.group(group_def.name))

    def points_display(self, group: str) -> str:
        group_def = self.schema.group(group)
        return self.enforcer.display(group_def, self.document.group(group_def.name))

    def control_states(self, group: str) -> ControlStates:
        group_def = self.schema.group(group)
        return self.enforcer.control_states(group_def, self.document.group(group_def.name))
