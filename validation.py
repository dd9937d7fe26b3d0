"""
Validation for character sheet snapshots.

Checks a parsed snapshot (an exported or imported sheet) against the form
schema before it is applied. Applying never fails, since the codec ignores
unknown keys and clamps out-of-range values, so validation is what tells a
user their file was changed on the way in.

Usage:
    from validation import SheetValidator, ValidationResult

    validator = SheetValidator()
    result = validator.validate_snapshot(data)
    if not result.valid:
        print(result.errors)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional

from CCS_constants import LEGACY_VERSION, SNAPSHOT_VERSION
from core import BudgetEnforcer, FormSchema, GroupDef, default_form_schema
from sheet_model import AllocationGroup, is_blank_marker


@dataclass
class ValidationResult:
    """Result of a validation check."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str):
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult"):
        """Merge another result into this one."""
        if not other.valid:
            self.valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def __bool__(self) -> bool:
        return self.valid


# Top-level keys an export may carry besides the groups
KNOWN_TOP_LEVEL_KEYS = {
    "version", "identity", "notes", "portrait", "fields",
    "relationships", "relationshipSelection", "__blank",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SheetValidator:
    """
    Validates sheet snapshots against a form schema.

    Errors are things the codec would have to clamp or cannot read at all;
    warnings are things it silently drops.
    """

    def __init__(self, schema: Optional[FormSchema] = None):
        self.schema = schema or default_form_schema()
        self.enforcer = BudgetEnforcer.from_schema(self.schema)

    # =========================================================================
    # SECTIONS
    # =========================================================================

    def validate_version(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult(valid=True)
        version = data.get("version")
        if version is None:
            result.add_warning("Snapshot has no version; treating it as version 2")
        elif version not in (LEGACY_VERSION, SNAPSHOT_VERSION) or isinstance(version, bool):
            result.add_error(f"Unknown snapshot version: {version!r}")
        return result

    def validate_identity(self, identity: Any) -> ValidationResult:
        result = ValidationResult(valid=True)
        if identity is None:
            return result
        if not isinstance(identity, dict):
            result.add_error("identity must be an object")
            return result
        known = set(self.schema.identity_labels)
        for label, value in identity.items():
            if label not in known:
                result.add_warning(f"Unknown identity field: {label}")
            elif value is not None and not isinstance(value, str):
                result.add_warning(f"Identity field {label} is not text")
        return result

    def validate_notes(self, notes: Any) -> ValidationResult:
        result = ValidationResult(valid=True)
        if notes is None:
            return result
        if not isinstance(notes, list):
            result.add_error("notes must be a list")
            return result
        seen = set()
        for note in notes:
            if not isinstance(note, dict):
                result.add_warning("Ignoring a note that is not an object")
                continue
            title = note.get("title")
            if title not in self.schema.note_titles:
                result.add_warning(f"Unknown note title: {title!r}")
            elif title in seen:
                result.add_warning(f"Duplicate note title: {title}")
            seen.add(title)
        return result

    def validate_group(self, group_def: GroupDef, data: Any) -> ValidationResult:
        """Check stat ranges, slider ranges and the group's points cap."""
        result = ValidationResult(valid=True)
        if not isinstance(data, dict):
            result.add_error(f"{group_def.name} must be an object")
            return result
        for key in data:
            if key not in ("stats", "sliders", "traits"):
                result.add_warning(f"Unknown key in {group_def.name}: {key}")

        state = AllocationGroup()
        stats = data.get("stats") or {}
        if not isinstance(stats, dict):
            result.add_error(f"{group_def.name}.stats must be an object")
            stats = {}
        for label, value in stats.items():
            try:
                stat = group_def.stat(label)
            except ValueError:
                result.add_warning(f"Unknown stat in {group_def.name}: {label}")
                continue
            if not _is_int(value):
                result.add_error(f"{group_def.name}.{label} must be an integer, got {type(value).__name__}")
            elif value < 0 or value > stat.pips:
                result.add_error(f"{group_def.name}.{label} must be between 0 and {stat.pips} (got {value})")
            else:
                state.stats[label] = value

        sliders = data.get("sliders") or {}
        if not isinstance(sliders, dict):
            result.add_error(f"{group_def.name}.sliders must be an object")
            sliders = {}
        for key, value in sliders.items():
            try:
                slider = group_def.slider(key)
            except ValueError:
                result.add_warning(f"Unknown slider in {group_def.name}: {key}")
                continue
            if not _is_int(value) or not slider.minimum <= value <= slider.maximum:
                result.add_error(
                    f"{group_def.name}.{key} must be an integer between "
                    f"{slider.minimum} and {slider.maximum} (got {value!r})"
                )

        traits = data.get("traits") or {}
        if not isinstance(traits, dict):
            result.add_error(f"{group_def.name}.traits must be an object")
            traits = {}
        for label, value in traits.items():
            if label not in group_def.traits:
                result.add_warning(f"Unknown trait in {group_def.name}: {label}")
                continue
            state.traits[label] = bool(value)

        used = self.enforcer.points_used(group_def, state)
        cap = self.enforcer.cap(group_def)
        if used > cap:
            result.add_error(f"{group_def.name} uses {used} points, over its cap of {cap}")
        return result

    def validate_portrait(self, portrait: Any) -> ValidationResult:
        result = ValidationResult(valid=True)
        if portrait is None or portrait == "":
            return result
        if not isinstance(portrait, str) or not portrait.startswith("data:"):
            result.add_warning("Portrait is not a data URI and will be shown as-is")
        return result

    # =========================================================================
    # WHOLE SNAPSHOT
    # =========================================================================

    def validate_snapshot(self, data: Any) -> ValidationResult:
        """
        Validate a parsed snapshot of any accepted shape.

        Args:
            data: Version 2 (full or diffed), legacy ``fields`` or blank marker

        Returns:
            ValidationResult
        """
        result = ValidationResult(valid=True)
        if not isinstance(data, dict):
            result.add_error("Snapshot must be a JSON object")
            return result
        if is_blank_marker(data):
            return result

        result.merge(self.validate_version(data))

        if "fields" in data:
            if not isinstance(data["fields"], list):
                result.add_error("fields must be a list")
            elif data.get("version") not in (None, LEGACY_VERSION):
                result.add_warning("Snapshot has a fields list but is not version 1")
            result.merge(self.validate_portrait(data.get("portrait")))
            return result

        for key in data:
            if key not in KNOWN_TOP_LEVEL_KEYS and key not in self.schema.groups:
                result.add_warning(f"Unknown key: {key}")

        result.merge(self.validate_identity(data.get("identity")))
        result.merge(self.validate_notes(data.get("notes")))
        for name, group_def in self.schema.groups.items():
            if name in data:
                result.merge(self.validate_group(group_def, data[name]))
        result.merge(self.validate_portrait(data.get("portrait")))
        return result

