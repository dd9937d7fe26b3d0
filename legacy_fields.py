"""
Version-1 sheets: a flat ``fields`` array mapped positionally onto the form.

Old exports stored every interactive control of the sheet, in document
order, as ``{"t": ..., "v": ...}`` where ``t == "c"`` marks a checkbox and
anything else a value control. File inputs were never part of the list.

Document order of the controls:
    note texts -> identity inputs -> per group: every stat pip, then the
    sliders, then the traits (groups in body, skills, priorities, mind,
    social order)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from CCS_constants import LEGACY_SLIDER_MAX
from core import DotGrid, FormSchema
from sheet_model import SheetDocument


logger = logging.getLogger(__name__)

CHECK = "check"
TEXT = "text"
RANGE = "range"


@dataclass
class LegacyControl:
    kind: str      # "check", "text" or "range"
    section: str   # "note", "identity" or a group name
    label: str
    pip: Optional[int] = None  # 1-based pip index for stat dots

    def accepts(self, entry_type: Any) -> bool:
        return (entry_type == "c") == (self.kind == CHECK)


def legacy_controls(schema: FormSchema, document: SheetDocument) -> List[LegacyControl]:
    """Ordered list of interactive controls as a version-1 sheet laid them out."""
    controls = [LegacyControl(TEXT, "note", note.title) for note in document.notes]
    controls.extend(LegacyControl(TEXT, "identity", label) for label in schema.identity_labels)
    for group_def in schema.groups.values():
        for stat in group_def.stats:
            controls.extend(
                LegacyControl(CHECK, group_def.name, stat.label, pip=k)
                for k in range(1, stat.pips + 1)
            )
        controls.extend(LegacyControl(RANGE, group_def.name, key) for key in group_def.slider_keys)
        controls.extend(LegacyControl(CHECK, group_def.name, label) for label in group_def.traits)
    return controls


def _scale_legacy_slider(raw: Any, minimum: int, maximum: int) -> Optional[int]:
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(value):
        return None
    value = max(0.0, min(float(LEGACY_SLIDER_MAX), value))
    return round(minimum + value * (maximum - minimum) / LEGACY_SLIDER_MAX)


def apply_legacy_fields(document: SheetDocument, fields: List[Any], schema: FormSchema) -> int:
    """
    Write a version-1 ``fields`` array onto ``document`` in place.

    Extra entries are ignored, controls past the end of the array keep their
    current value, and an entry whose type does not fit its control (a
    checkbox value on a text input, say) leaves that control untouched.

    Returns:
        Number of entries that were applied.
    """
    controls = legacy_controls(schema, document)
    pip_states: Dict[tuple, List[bool]] = {}
    applied = 0

    for entry, control in zip(fields, controls):
        if not isinstance(entry, dict) or not control.accepts(entry.get("t")):
            continue
        value = entry.get("v")

        if control.section == "note":
            note = document.note(control.label)
            if note is not None:
                note.text = "" if value is None else str(value)
        elif control.section == "identity":
            document.identity[control.label] = "" if value is None else str(value)
        elif control.pip is not None:
            key = (control.section, control.label)
            if key not in pip_states:
                stat = schema.group(control.section).stat(control.label)
                grid = DotGrid(stat.label, stat.pips, document.group(control.section).stats.get(stat.label, 0))
                pip_states[key] = grid.filled()
            pip_states[key][control.pip - 1] = bool(value)
        elif control.kind == RANGE:
            slider = schema.group(control.section).slider(control.label)
            scaled = _scale_legacy_slider(value, slider.minimum, slider.maximum)
            if scaled is None:
                continue
            document.group(control.section).sliders[control.label] = scaled
        else:
            document.group(control.section).traits[control.label] = bool(value)
        applied += 1

    # A stat's value is the number of checked pips, as the old sheet counted it
    for (group_name, label), pips in pip_states.items():
        document.group(group_name).stats[label] = sum(1 for p in pips if p)

    if len(fields) > len(controls):
        logger.warning("Legacy sheet has %d fields for %d controls; extras ignored", len(fields), len(controls))
    return applied
