"""Data types shared by the Smart Appliances modules."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any


@dataclass(frozen=True)
class PricePoint:
    """Price valid from starts_at until the next point (or one hour for the last)."""

    starts_at: datetime
    unit_price: float


@dataclass(frozen=True)
class PriceWindow:
    """A contiguous run window and its time-weighted average price."""

    start: datetime
    end: datetime
    avg_price: float

    @property
    def duration_minutes(self) -> int:
        """Length of the window in whole minutes."""
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class WashDryPlan:
    """Washer and dryer windows chosen together.

    combined is True when both runs sit in one contiguous block (dryer
    starting a transfer buffer after the wash ends), False when the dryer got
    its own cheapest window.
    """

    wash: PriceWindow
    dry: PriceWindow
    avg_price: float
    combined: bool


class Origin(Enum):
    """Who originated a state write."""

    SYSTEM = "system"
    OPERATOR = "operator"


@dataclass(frozen=True)
class StateChange:
    """A change event emitted by the state store."""

    key: str
    value: Any
    origin: Origin


class TimerPurpose(StrEnum):
    """Slots of the per-appliance timer table."""

    DETECTION = "detection"
    START = "start"
    END = "end"
    POST = "post"
    DRY = "dry"
    SCHEDULED = "scheduled"
    SUPPRESS = "suppress"
    PRESS = "press"


class DetectionPhase(StrEnum):
    """Operating phase inferred from the power draw."""

    IDLE = "idle"
    CONFIRMING = "confirming"
    RUNNING = "running"
    END_GRACE = "end_grace"
    POST_CONFIRM = "post_confirm"
