"""
Common dataclasses and helpers used across the sheet engine.
"""

import re
import time
import uuid
from pathlib import Path
from dataclasses import dataclass
from typing import Dict, Any


def new_id() -> str:
    """Opaque unique token for tabs and relationship entries."""
    return str(uuid.uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Note:
    """A free-text note filed under one of the form's note titles."""
    title: str
    text: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            title=str(data.get("title") or "Untitled"),
            text=str(data.get("text") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "text": self.text}


def file_stem(filename: str) -> str:
    """File name without its directory or last extension ("" for ".json")."""
    return re.sub(r"\.[^/.]+$", "", Path(filename).name)
