"""
Sheet Session - several character sheets open side by side as tabs.

Only one tab is live at a time: its document sits in the SheetEditor and
its relationships in ``session.registry``. Every other tab holds the
snapshot it was committed with. Switching tabs commits the live sheet
back into its tab and schedules the target tab to be materialized
(applied to the editor) later; a newer switch supersedes an older one, so
only the latest target is ever applied.

The whole tab set is written to a key/value store after every change.

Usage:
    session = SheetSession.open(JsonFileStore("sheets.json"))
    session.editor.set_identity("Name", "Aria")
    tab = session.create_tab()
    session.switch_tab(first_id)
    session.process_pending()
    session.export_to_file("character-sheet.json")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from CCS_constants import EXPORT_FILENAME, TABS_STORAGE_KEY
from core import file_stem, new_id
from relationship_registry import RelationshipRegistry
from sheet_editor import SheetEditor
from sheet_model import BLANK, is_blank_marker
from snapshot_codec import character_name, parse_snapshot_text
from storage import MemoryStore
from validation import SheetValidator


logger = logging.getLogger(__name__)

Scheduler = Callable[[Callable[[], None]], None]


def untitled_title(index: int, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%H:%M")
    return f"Untitled {index} · {stamp}"


class TabState(str, Enum):
    UNLOADED = "unloaded"    # restored or switched away from, not yet applied
    ACTIVE = "active"        # its document is the editor's live document
    COMMITTED = "committed"  # live document written back on leaving


@dataclass
class SheetTab:
    id: str
    title: str
    data: Optional[Dict[str, Any]] = None  # snapshot, blank marker or None (default sheet)
    registry: RelationshipRegistry = field(default_factory=RelationshipRegistry)
    state: TabState = TabState.UNLOADED

    @property
    def is_blank(self) -> bool:
        return is_blank_marker(self.data)

    @classmethod
    def from_dict(cls, data: Any, index: int) -> "SheetTab":
        """Restore a stored tab; anything malformed falls back to a fresh value."""
        if not isinstance(data, dict):
            return cls(id=new_id(), title=untitled_title(index))
        tab_id = data.get("id")
        title = data.get("title")
        snapshot = data.get("data")
        return cls(
            id=tab_id if isinstance(tab_id, str) else new_id(),
            title=title if isinstance(title, str) and title.strip() else untitled_title(index),
            data=snapshot if isinstance(snapshot, dict) else None,
            registry=RelationshipRegistry.from_dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "data": self.data,
            **self.registry.to_dict(),
        }


class SheetSession:
    """
    Owns the tab set and decides which tab the editor is showing.

    Unknown tab ids are a no-op (False/None), never an error.
    """

    def __init__(
        self,
        editor: Optional[SheetEditor] = None,
        store=None,
        scheduler: Optional[Scheduler] = None,
        max_relationships: Optional[int] = None,
    ):
        self.editor = editor or SheetEditor()
        self.codec = self.editor.codec
        self.validator = SheetValidator(self.editor.schema)
        self.store = store if store is not None else MemoryStore()
        self.scheduler = scheduler
        self.max_relationships = max_relationships
        self.tabs: List[SheetTab] = []
        self.active_id: Optional[str] = None
        self.registry = RelationshipRegistry(max_entries=max_relationships)
        self._pending: Optional[str] = None
        self._pending_token = 0

    @classmethod
    def open(cls, store=None, **kwargs) -> "SheetSession":
        """Create a session and restore whatever tab set the store holds."""
        session = cls(store=store, **kwargs)
        session.restore()
        return session

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_tab(self, tab_id: Optional[str]) -> Optional[SheetTab]:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        return None

    @property
    def active_tab(self) -> Optional[SheetTab]:
        return self.get_tab(self.active_id)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"activeId": self.active_id, "tabs": [t.to_dict() for t in self.tabs]}

    def _persist(self) -> bool:
        return self.store.set_item(TABS_STORAGE_KEY, json.dumps(self.to_dict()))

    def restore(self) -> None:
        """
        Load the tab set from the store and materialize the active tab.

        A missing or malformed blob gives a single fresh tab; an unknown
        active id falls back to the first tab.
        """
        tabs: List[SheetTab] = []
        active_id = None
        raw = self.store.get_item(TABS_STORAGE_KEY)
        if raw:
            try:
                blob = json.loads(raw)
            except ValueError as e:
                logger.warning("Stored tabs are not valid JSON; starting fresh: %s", e)
                blob = None
            if isinstance(blob, dict):
                raw_tabs = blob.get("tabs")
                if isinstance(raw_tabs, list):
                    tabs = [SheetTab.from_dict(item, i + 1) for i, item in enumerate(raw_tabs)]
                active_id = blob.get("activeId")
            elif blob is not None:
                logger.warning("Stored tabs are not a JSON object; starting fresh")

        if not tabs:
            tabs = [SheetTab(id=new_id(), title=untitled_title(1))]
        for tab in tabs:
            tab.registry.max_entries = self.max_relationships
        self.tabs = tabs
        if not isinstance(active_id, str) or self.get_tab(active_id) is None:
            active_id = tabs[0].id
        self.active_id = active_id
        self._pending = None
        self._materialize(active_id)

    # -------------------------------------------------------------------------
    # Commit / materialize
    # -------------------------------------------------------------------------

    def _commit_active(self) -> None:
        tab = self.active_tab
        if tab is None:
            return
        if self._pending is not None:
            # The editor still shows the previous tab's sheet
            return
        tab.data = self.editor.snapshot()
        tab.registry = self.registry.copy()
        name = self.editor.document.character_name
        if name:
            tab.title = name

    def _materialize(self, tab_id: str, retitle: bool = True) -> None:
        tab = self.get_tab(tab_id)
        if tab is None:
            return
        if tab.is_blank:
            tab.data = self.codec.blank_snapshot()
        self.editor.apply_snapshot(tab.data)
        self.registry = tab.registry.copy()
        tab.state = TabState.ACTIVE
        name = character_name(tab.data) if retitle else ""
        if name:
            tab.title = name
        self._persist()

    def _schedule(self, tab_id: str) -> None:
        self._pending = tab_id
        self._pending_token += 1
        token = self._pending_token
        if self.scheduler is not None:
            self.scheduler(lambda: self._run_pending(token))

    def _run_pending(self, token: int) -> None:
        if token == self._pending_token:
            self.process_pending()

    def process_pending(self) -> bool:
        """
        Materialize the tab a switch is waiting on.

        Returns:
            True if a tab was materialized, False if nothing was pending
        """
        tab_id = self._pending
        if tab_id is None:
            return False
        self._pending = None
        if tab_id != self.active_id:
            return False
        self._materialize(tab_id)
        return True

    # -------------------------------------------------------------------------
    # Tab operations
    # -------------------------------------------------------------------------

    def create_tab(self, blank: bool = False) -> SheetTab:
        """Open a new tab with the default sheet (or a blank one) and make it active."""
        self._commit_active()
        previous = self.active_tab
        if previous is not None:
            previous.state = TabState.COMMITTED
        self._pending = None
        tab = SheetTab(
            id=new_id(),
            title=untitled_title(len(self.tabs) + 1),
            data=BLANK.to_dict() if blank else self.codec.default_snapshot(),
            registry=RelationshipRegistry(max_entries=self.max_relationships),
        )
        self.tabs.append(tab)
        self.active_id = tab.id
        self._materialize(tab.id, retitle=False)
        return tab

    def switch_tab(self, tab_id: str) -> bool:
        if tab_id == self.active_id or self.get_tab(tab_id) is None:
            return False
        self._commit_active()
        previous = self.active_tab
        if previous is not None and previous.state == TabState.ACTIVE:
            previous.state = TabState.COMMITTED
        self.active_id = tab_id
        self._schedule(tab_id)
        self._persist()
        return True

    def close_tab(self, tab_id: str) -> bool:
        """Close a tab; the last remaining tab can never be closed."""
        tab = self.get_tab(tab_id)
        if tab is None or len(self.tabs) <= 1:
            return False
        index = self.tabs.index(tab)
        self.tabs.remove(tab)
        if tab_id == self.active_id:
            fallback = self.tabs[index - 1] if index > 0 else self.tabs[0]
            self.active_id = fallback.id
            self._schedule(fallback.id)
        self._persist()
        return True

    def import_tab_text(self, text: str, filename: str = "") -> Optional[SheetTab]:
        """
        Open an exported sheet as a new, immediately active tab.

        Returns:
            The new tab, or None if the text is not a sheet
        """
        data = parse_snapshot_text(text, filename or "<import>")
        if data is None:
            return None

        result = self.validator.validate_snapshot(data)
        for message in result.errors + result.warnings:
            logger.warning("Imported sheet %s: %s", filename or "<import>", message)

        title = character_name(data) or file_stem(filename) or f"Sheet {len(self.tabs) + 1}"
        document = self.codec.from_snapshot(data)
        registry = RelationshipRegistry.from_dict(data, max_entries=self.max_relationships)

        self._commit_active()
        previous = self.active_tab
        if previous is not None:
            previous.state = TabState.COMMITTED
        self._pending = None

        tab = SheetTab(
            id=new_id(),
            title=title,
            registry=registry,
        )
        self.editor.apply(document)
        tab.data = self.editor.snapshot()
        self.tabs.append(tab)
        self.active_id = tab.id
        self.registry = tab.registry.copy()
        tab.state = TabState.ACTIVE
        self._persist()
        return tab

    def import_tab(self, filepath: str) -> Optional[SheetTab]:
        path = Path(filepath)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read sheet %s: %s", path, e)
            return None
        return self.import_tab_text(text, path.name)

    # -------------------------------------------------------------------------
    # Save / export
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """Commit the live sheet into the active tab and persist the tab set."""
        self.process_pending()
        self._commit_active()
        return self._persist()

    def export_active(self) -> Dict[str, Any]:
        """Export payload: the live snapshot plus this tab's relationships."""
        self.process_pending()
        payload = self.editor.snapshot()
        payload.update(self.registry.to_dict())
        return payload

    def export_to_file(self, filepath: str = EXPORT_FILENAME) -> bool:
        """
        Write the export payload to a JSON file.

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(self.export_active(), f, indent=2)
            return True
        except OSError as e:
            logger.error("Error exporting sheet to %s: %s", filepath, e)
            return False

    def refresh_title(self) -> Optional[str]:
        """Give the active tab the live character name, if it has one."""
        tab = self.active_tab
        if tab is None:
            return None
        name = self.editor.document.character_name
        if name and name != tab.title:
            tab.title = name
            self._persist()
        return tab.title
