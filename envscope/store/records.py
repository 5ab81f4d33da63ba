"""Typed record helpers used by the store layer.

These dataclasses mirror DB rows but are intentionally lightweight. They help
us pass structured data around instead of raw sqlite tuples.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class StoredValue:
    path: str                 # canonical scope directory
    profile: str
    key: str
    value: str
    description: Optional[str] = None
    updated_at: Optional[str] = None

