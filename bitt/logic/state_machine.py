"""Recognition state handling."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bitt.common import RecognizedEvent


class Phase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"


class LabelPolicy(str, Enum):
    """What a high-confidence frame with a different label does to a pending candidate."""

    CONTINUE = "continue"
    RESTART = "restart"
    ABANDON = "abandon"


@dataclass
class EngineState:
    phase: Phase = Phase.IDLE
    pending_label: Optional[str] = None
    pending_since: Optional[float] = None
    settled: Optional[RecognizedEvent] = None

    def to_idle(self) -> None:
        self.phase = Phase.IDLE
        self.pending_label = None
        self.pending_since = None
        self.settled = None

    def to_pending(self, label: str, since: float) -> None:
        self.phase = Phase.PENDING
        self.pending_label = label
        self.pending_since = since
        self.settled = None

    def to_settled(self, event: RecognizedEvent) -> None:
        self.phase = Phase.SETTLED
        self.pending_label = None
        self.pending_since = None
        self.settled = event

    def copy(self) -> "EngineState":
        return EngineState(
            phase=self.phase,
            pending_label=self.pending_label,
            pending_since=self.pending_since,
            settled=self.settled,
        )
