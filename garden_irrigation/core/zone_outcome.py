from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from garden_irrigation.core.enums import ZoneOutcomeKind
import garden_irrigation.utils.time_utils as time_utils


@dataclass(frozen=True)
class ZoneOutcome:
    """Result of one zone in a daily run. Consumed by the notifier and the CLI report."""
    kind: ZoneOutcomeKind
    zone_name: str
    zone_index: int                         # 1-based, for messages only
    final_moisture: int
    threshold_pct: int
    target_pct: int
    message: str
    effective_minutes: Optional[int] = None  # None when the zone was not watered
    error: Optional[str] = None

    @property
    def watered(self) -> bool:
        return self.effective_minutes is not None

    def to_dict(self) -> dict:
        """Convert the outcome into a JSON-serializable dict."""
        return {
            "kind": self.kind.value,
            "zone_name": self.zone_name,
            "zone_index": self.zone_index,
            "final_moisture": self.final_moisture,
            "threshold_pct": self.threshold_pct,
            "target_pct": self.target_pct,
            "effective_minutes": self.effective_minutes,
            "message": self.message,
            "error": self.error
        }


@dataclass
class RunResult:
    """Class to encapsulate the result of a daily run."""
    started_at: datetime
    suppressed: bool = False
    reason: Optional[str] = None
    cancelled: bool = False
    outcomes: list[ZoneOutcome] = field(default_factory=list)
    finished_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "started_at": time_utils.to_iso(self.started_at),
            "finished_at": time_utils.to_iso(self.finished_at),
            "suppressed": self.suppressed,
            "reason": self.reason,
            "cancelled": self.cancelled,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes]
        }
