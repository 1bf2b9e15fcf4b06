from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    PHASE = "phase"
    RESEARCH_COMPLETE = "research_complete"
    ERROR = "error"
    SUPERSEDED = "superseded"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)
