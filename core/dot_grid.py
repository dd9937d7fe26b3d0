"""
Dot grid - progressive-fill semantics for a single ordinal stat.

A stat with N pips holds a value v in [0, N]; pip i (1-based) is filled
iff i <= v. Clicking pip k sets the value to k, except that clicking the
last filled pip clears the whole stat.
"""

from dataclasses import dataclass
from typing import List


def next_value(current: int, k: int) -> int:
    """Value after clicking pip ``k`` on a stat currently at ``current``."""
    return 0 if current == k else k


@dataclass
class DotGrid:
    label: str
    pips: int
    value: int = 0

    def __post_init__(self):
        if self.pips < 0:
            raise ValueError(f"{self.label}: pip count cannot be negative")
        self.value = max(0, min(self.pips, self.value))

    def _check_pip(self, k: int) -> None:
        if not 1 <= k <= self.pips:
            raise ValueError(f"{self.label}: pip {k} outside 1..{self.pips}")

    def is_filled(self, i: int) -> bool:
        self._check_pip(i)
        return i <= self.value

    def filled(self) -> List[bool]:
        return [i <= self.value for i in range(1, self.pips + 1)]

    def peek(self, k: int) -> int:
        """Value a click on pip ``k`` would produce, without applying it."""
        self._check_pip(k)
        return next_value(self.value, k)

    def click(self, k: int) -> int:
        self.value = self.peek(k)
        return self.value

    def clicks_to(self, target: int) -> List[int]:
        """
        Minimal pip sequence that takes the current value to ``target``.

        Zero clicks if already there, a toggle-off click on the last filled
        pip to clear, otherwise a single click on the target pip.
        """
        if not 0 <= target <= self.pips:
            raise ValueError(f"{self.label}: value {target} outside 0..{self.pips}")
        if target == self.value:
            return []
        if target == 0:
            return [self.value]
        return [target]
