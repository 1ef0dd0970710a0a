"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Role = Literal["user", "bot"]


@dataclass(slots=True)
class IngestionRecord:
    owner_id: str
    repository_key: str
    last_accessed: int
    indexed_at: int | None = None


@dataclass(slots=True)
class Message:
    role: Role
    text: str
    timestamp: int
