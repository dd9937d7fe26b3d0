"""
Budget enforcer - keeps every allocation group within its points cap.

Points used by a group are the sum of its stat dots plus, for groups that
budget traits (everything except mind and social), one point per checked
trait. Sliders never cost points.

Increases that would push a group past its cap are refused; decreases are
always allowed so a user can never get stuck over budget.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, TYPE_CHECKING

from .schema import FormSchema, GroupDef

if TYPE_CHECKING:
    from sheet_model import AllocationGroup


logger = logging.getLogger(__name__)


@dataclass
class ControlStates:
    """Enable/disable signals for one group's controls."""
    pips: Dict[str, List[bool]] = field(default_factory=dict)
    traits: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {"pips": dict(self.pips), "traits": dict(self.traits)}


@dataclass
class BudgetEnforcer:
    caps: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_schema(cls, schema: FormSchema) -> "BudgetEnforcer":
        return cls(caps=dict(schema.caps))

    def cap(self, group_def: GroupDef) -> int:
        return max(0, self.caps.get(group_def.name, group_def.cap))

    def points_used(self, group_def: GroupDef, group: "AllocationGroup") -> int:
        used = sum(group.stats.get(label, 0) for label in group_def.stat_labels)
        if group_def.budget_traits:
            used += sum(1 for label in group_def.traits if group.traits.get(label))
        return used

    def remaining(self, group_def: GroupDef, group: "AllocationGroup") -> int:
        return max(0, self.cap(group_def) - self.points_used(group_def, group))

    def display(self, group_def: GroupDef, group: "AllocationGroup") -> str:
        return f"{self.remaining(group_def, group)}/{self.cap(group_def)}"

    def allows_stat(self, group_def: GroupDef, group: "AllocationGroup", label: str, desired: int) -> bool:
        current = group.stats.get(label, 0)
        if desired <= current:
            return True
        other_points = self.points_used(group_def, group) - current
        return other_points + desired <= self.cap(group_def)

    def allows_trait(self, group_def: GroupDef, group: "AllocationGroup", label: str, checked: bool) -> bool:
        if not group_def.budget_traits or not checked or group.traits.get(label):
            return True
        return self.points_used(group_def, group) + 1 <= self.cap(group_def)

    def control_states(self, group_def: GroupDef, group: "AllocationGroup") -> ControlStates:
        states = ControlStates()
        for stat in group_def.stats:
            current = group.stats.get(stat.label, 0)
            states.pips[stat.label] = [
                k <= current or self.allows_stat(group_def, group, stat.label, k)
                for k in range(1, stat.pips + 1)
            ]
        for label in group_def.traits:
            states.traits[label] = self.allows_trait(group_def, group, label, True)
        return states

    def clamp(self, group_def: GroupDef, group: "AllocationGroup") -> int:
        """
        Bring an over-budget group back under its cap.

        Budgeted traits are unchecked last-to-first, then stats are lowered
        last-to-first one pip at a time. Returns the number of points removed.
        """
        cap = self.cap(group_def)
        excess = self.points_used(group_def, group) - cap
        if excess <= 0:
            return 0
        removed = 0
        if group_def.budget_traits:
            for label in reversed(group_def.traits):
                if removed >= excess:
                    break
                if group.traits.get(label):
                    group.traits[label] = False
                    removed += 1
        for label in reversed(group_def.stat_labels):
            while removed < excess and group.stats.get(label, 0) > 0:
                group.stats[label] -= 1
                removed += 1
        logger.warning("Group %s was %d point(s) over its cap of %d; clamped", group_def.name, excess, cap)
        return removed
