"""
Scoring domain model.

Weights describe how a challenge turns streaks, volume and on-time logging
into one number; ParticipantScore is the ephemeral per-participant result of a
ranking run and is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ScoringWeights:
    """
    Percentage split across consistency/volume/quality plus a flat streak bonus.

    consistency + volume (+ quality when enabled) is expected to equal 100.
    streak_bonus is points per current-streak day, not a percentage.
    """

    consistency: float = 50.0
    volume: float = 50.0
    quality: float = 0.0
    streak_bonus: float = 0.0
    quality_enabled: bool = False

    def percentage_total(self) -> float:
        return self.consistency + self.volume + (self.quality if self.quality_enabled else 0.0)

    def problems(self) -> List[str]:
        """Configuration problems; empty when the weights are usable as-is."""
        found = []
        for name in ("consistency", "volume", "quality", "streak_bonus"):
            if getattr(self, name) < 0:
                found.append(f"{name} weight must be >= 0")
        total = self.percentage_total()
        if abs(total - 100.0) > 1e-9:
            found.append(f"percentage weights must total 100 (got {total:g})")
        return found

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ScoringWeights":
        data = data or {}

        def pick(*names, default=0.0):
            for name in names:
                if data.get(name) is not None:
                    return data[name]
            return default

        return cls(
            consistency=float(pick("consistency")),
            volume=float(pick("volume")),
            quality=float(pick("quality")),
            streak_bonus=float(pick("streak_bonus", "streakBonus")),
            quality_enabled=bool(pick("quality_enabled", "qualityEnabled", "enable_quality", default=False)),
        )

    def to_dict(self) -> dict:
        return {
            "consistency": self.consistency,
            "volume": self.volume,
            "quality": self.quality,
            "streakBonus": self.streak_bonus,
            "qualityEnabled": self.quality_enabled,
        }


@dataclass
class ParticipantScore:
    """
    Score breakdown for one participant.

    Attributes:
        user_id: Participant identifier
        consistency_score: 0..100, streak-based
        volume_score: 0..100, completed vs possible
        quality_score: 0..100, on-time rate (0 when quality scoring is off)
        streak_bonus_score: Raw bonus points (current_streak x streak_bonus)
        total_score: Weighted sum, rounded; authoritative ranking number
        current_streak: Consecutive complete days ending at the latest eligible date
        max_streak: Longest run of complete days in the range
        total_completed: Number of logs
        completion_rate: Percent of possible logs, rounded
        late_submission_count: Logs flagged as backfilled
        daily_completion_rate: ISO date -> percent of missions logged that day
        numeric_totals: Numeric mission id -> summed count
    """

    user_id: str
    consistency_score: float = 0.0
    volume_score: float = 0.0
    quality_score: float = 0.0
    streak_bonus_score: float = 0.0
    total_score: int = 0
    current_streak: int = 0
    max_streak: int = 0
    total_completed: int = 0
    completion_rate: int = 0
    late_submission_count: int = 0
    daily_completion_rate: Dict[str, int] = field(default_factory=dict)
    numeric_totals: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize to dict for JSON response."""
        return {
            "userId": self.user_id,
            "consistencyScore": round(self.consistency_score, 2),
            "volumeScore": round(self.volume_score, 2),
            "qualityScore": round(self.quality_score, 2),
            "streakBonusScore": self.streak_bonus_score,
            "totalScore": self.total_score,
            "currentStreak": self.current_streak,
            "maxStreak": self.max_streak,
            "totalCompleted": self.total_completed,
            "completionRate": self.completion_rate,
            "lateSubmissionCount": self.late_submission_count,
            "dailyCompletionRate": dict(self.daily_completion_rate),
            "numericTotals": dict(self.numeric_totals),
        }


@dataclass
class ComponentContribution:
    score: float
    weight: float
    contribution: int


@dataclass
class ScoreBreakdown:
    """How much each component contributed to a participant's total."""

    user_id: str
    consistency: ComponentContribution
    volume: ComponentContribution
    quality: ComponentContribution
    streak_bonus_days: int
    streak_bonus_contribution: float

    def to_dict(self) -> dict:
        def component(part: ComponentContribution) -> dict:
            return {"score": round(part.score, 2), "weight": part.weight, "contribution": part.contribution}

        return {
            "userId": self.user_id,
            "consistency": component(self.consistency),
            "volume": component(self.volume),
            "quality": component(self.quality),
            "streakBonus": {
                "score": self.streak_bonus_days,
                "contribution": self.streak_bonus_contribution,
            },
        }


@dataclass
class RankingChange:
    previous: int
    current: int
    change: int  # positive = moved up

    def to_dict(self) -> dict:
        return {"previous": self.previous, "current": self.current, "change": self.change}
