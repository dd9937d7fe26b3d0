"""
CCS Core - Form schema, dot grid and budget rules for the character sheet.

Usage:
    from core import FormSchema, default_form_schema, load_point_caps
    from core import DotGrid, BudgetEnforcer, Note
"""

from .common import Note, file_stem, new_id, now_ms
from .schema import (
    StatDef,
    SliderDef,
    GroupDef,
    IdentityFieldDef,
    FormSchema,
    default_form_schema,
    load_form_schema,
    load_point_caps,
)
from .dot_grid import DotGrid, next_value
from .budget import BudgetEnforcer, ControlStates

__all__ = [
    # Common
    "Note",
    "file_stem",
    "new_id",
    "now_ms",
    # Schema
    "StatDef",
    "SliderDef",
    "GroupDef",
    "IdentityFieldDef",
    "FormSchema",
    "default_form_schema",
    "load_form_schema",
    "load_point_caps",
    # Dot grid
    "DotGrid",
    "next_value",
    # Budget
    "BudgetEnforcer",
    "ControlStates",
]
