"""
Form schema - the closed set of fields a character sheet is made of.

The schema provides:
- Identity fields (label and built-in default text)
- Note titles a note may be filed under
- Allocation groups, each with its stat dots, bipolar sliders, boolean
  traits and points cap

The engine and the default/blank snapshot builders share one schema, so a
label is only ever valid if the schema names it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
import json
from pathlib import Path

from CCS_constants import (
    DEFAULT_POINT_CAPS,
    GROUP_TABLES,
    GroupName,
    IDENTITY_DEFAULTS,
    NoteTitle,
    SLIDER_DEFAULT,
    SLIDER_MAX,
    SLIDER_MIN,
    slider_key,
)


@dataclass
class StatDef:
    """An ordinal stat drawn as a row of pips."""
    label: str
    pips: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatDef":
        return cls(label=data.get("label", ""), pips=int(data.get("pips", 0)))

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "pips": self.pips}


@dataclass
class SliderDef:
    """A bipolar slider between two opposed labels."""
    left: str
    right: str
    minimum: int = SLIDER_MIN
    maximum: int = SLIDER_MAX
    default: int = SLIDER_DEFAULT

    @property
    def key(self) -> str:
        return slider_key(self.left, self.right)

    def clamp(self, value: int) -> int:
        return max(self.minimum, min(self.maximum, value))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SliderDef":
        return cls(
            left=data.get("left", ""),
            right=data.get("right", ""),
            minimum=int(data.get("min", SLIDER_MIN)),
            maximum=int(data.get("max", SLIDER_MAX)),
            default=int(data.get("default", SLIDER_DEFAULT)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "left": self.left,
            "right": self.right,
            "min": self.minimum,
            "max": self.maximum,
            "default": self.default,
        }


@dataclass
class GroupDef:
    """One allocation group: stats sharing a single points budget."""
    name: str
    cap: int = 0
    stats: List[StatDef] = field(default_factory=list)
    sliders: List[SliderDef] = field(default_factory=list)
    traits: List[str] = field(default_factory=list)
    budget_traits: bool = True

    @property
    def has_sliders_and_traits(self) -> bool:
        return bool(self.sliders) or bool(self.traits)

    @property
    def stat_labels(self) -> List[str]:
        return [s.label for s in self.stats]

    @property
    def slider_keys(self) -> List[str]:
        return [s.key for s in self.sliders]

    def stat(self, label: str) -> StatDef:
        for stat in self.stats:
            if stat.label == label:
                return stat
        raise ValueError(f"Unknown stat in {self.name}: {label}")

    def slider(self, key: str) -> SliderDef:
        for slider in self.sliders:
            if slider.key == key:
                return slider
        raise ValueError(f"Unknown slider in {self.name}: {key}")

    def require_trait(self, label: str) -> None:
        if label not in self.traits:
            raise ValueError(f"Unknown trait in {self.name}: {label}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupDef":
        name = data.get("name", "")
        budget_default = GroupName(name).budgets_traits if name in GroupName._value2member_map_ else True
        return cls(
            name=name,
            cap=int(data.get("cap", 0)),
            stats=[StatDef.from_dict(s) for s in data.get("stats", [])],
            sliders=[SliderDef.from_dict(s) for s in data.get("sliders", [])],
            traits=list(data.get("traits", [])),
            budget_traits=data.get("budget_traits", budget_default),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "cap": self.cap,
            "stats": [s.to_dict() for s in self.stats],
            "sliders": [s.to_dict() for s in self.sliders],
            "traits": list(self.traits),
            "budget_traits": self.budget_traits,
        }


@dataclass
class IdentityFieldDef:
    label: str
    default: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IdentityFieldDef":
        return cls(label=data.get("label", ""), default=data.get("default", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "default": self.default}


@dataclass
class FormSchema:
    """The whole sheet form: identity, notes and allocation groups."""
    identity: List[IdentityFieldDef] = field(default_factory=list)
    note_titles: List[str] = field(default_factory=list)
    groups: Dict[str, GroupDef] = field(default_factory=dict)

    @property
    def identity_labels(self) -> List[str]:
        return [f.label for f in self.identity]

    def group(self, name: str) -> GroupDef:
        key = name.value if isinstance(name, GroupName) else name
        if key not in self.groups:
            raise ValueError(f"Unknown group: {name}")
        return self.groups[key]

    def require_identity(self, label: str) -> None:
        if label not in self.identity_labels:
            raise ValueError(f"Unknown identity field: {label}")

    def require_note_title(self, title: str) -> None:
        if title not in self.note_titles:
            raise ValueError(f"Unknown note title: {title}")

    @property
    def caps(self) -> Dict[str, int]:
        return {name: g.cap for name, g in self.groups.items()}

    def with_caps(self, caps: Dict[str, int]) -> "FormSchema":
        """Return a copy of this schema with some group caps replaced."""
        schema = FormSchema.from_dict(self.to_dict())
        for name, cap in caps.items():
            key = name.value if isinstance(name, GroupName) else name
            if key in schema.groups:
                schema.groups[key].cap = max(0, int(cap))
        return schema

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormSchema":
        groups = [GroupDef.from_dict(g) for g in data.get("groups", [])]
        return cls(
            identity=[IdentityFieldDef.from_dict(f) for f in data.get("identity", [])],
            note_titles=list(data.get("note_titles", [])),
            groups={g.name: g for g in groups},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": [f.to_dict() for f in self.identity],
            "note_titles": list(self.note_titles),
            "groups": [g.to_dict() for g in self.groups.values()],
        }


def default_form_schema(caps: Optional[Dict[str, int]] = None) -> FormSchema:
    """Build the built-in sheet form, optionally overriding point caps."""
    groups: Dict[str, GroupDef] = {}
    for name, (stats, sliders, traits) in GROUP_TABLES.items():
        groups[name.value] = GroupDef(
            name=name.value,
            cap=DEFAULT_POINT_CAPS[name],
            stats=[StatDef(label=label, pips=pips) for label, pips in stats],
            sliders=[SliderDef(left=left, right=right) for left, right in sliders],
            traits=list(traits),
            budget_traits=name.budgets_traits,
        )
    schema = FormSchema(
        identity=[IdentityFieldDef(label=f.value, default=d) for f, d in IDENTITY_DEFAULTS.items()],
        note_titles=[t.value for t in NoteTitle],
        groups=groups,
    )
    if caps:
        schema = schema.with_caps(caps)
    return schema


def load_form_schema(filepath: str) -> FormSchema:
    """Load a form schema from a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Form schema {filepath} is not a JSON object")
    return FormSchema.from_dict(data)


def load_point_caps(filepath: str) -> Dict[str, int]:
    """Load a group -> cap table from a JSON file. Unknown groups are skipped."""
    path = Path(filepath)
    with path.open('r', encoding='utf-8') as f:
        data = json.load(f)
    return {
        name: int(cap)
        for name, cap in data.items()
        if name in GroupName._value2member_map_
    }
