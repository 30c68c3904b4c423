from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional, Tuple

MissionKind = Literal["boolean", "numeric"]
InputPolicy = Literal["same_day_only", "flexible"]


@dataclass(frozen=True)
class MissionDefinition:
    """One recurring daily task within a challenge."""

    mission_id: str
    title: str
    kind: MissionKind = "boolean"
    input_policy: InputPolicy = "flexible"
    position: int = 0

    def to_dict(self) -> dict:
        return {
            "missionId": self.mission_id,
            "title": self.title,
            "kind": self.kind,
            "inputPolicy": self.input_policy,
            "position": self.position,
        }


@dataclass
class MissionLog:
    """
    One completion record, credited to a calendar date in the reference timezone.

    is_late is computed by the log store at write time and never recomputed here.
    """

    mission_id: str
    user_id: str
    log_date: date
    value: dict = field(default_factory=dict)
    is_late: bool = False
    logged_at: Optional[datetime] = None
    challenge_id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, date]:
        return (self.user_id, self.mission_id, self.log_date)

    @property
    def count(self) -> int:
        """Numeric payload; absent or malformed counts read as 0."""
        value = self.value or {}
        if "count" in value:
            raw = value.get("count")
            if isinstance(raw, bool):
                return int(raw)
            if isinstance(raw, (int, float)):
                return max(0, int(raw))
            return 0
        return 1 if value.get("completed") else 0

    def to_dict(self) -> dict:
        return {
            "missionId": self.mission_id,
            "userId": self.user_id,
            "logDate": self.log_date.isoformat(),
            "value": dict(self.value or {}),
            "isLate": self.is_late,
            "loggedAt": self.logged_at.isoformat() if self.logged_at else None,
        }
