from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from missionboard.models.mission import MissionDefinition
from missionboard.models.scoring import ScoringWeights


@dataclass
class Challenge:
    """Domain model for a group challenge with a fixed date range and prize pool."""

    challenge_id: str
    title: str
    start_date: date
    end_date: date
    weights: ScoringWeights
    entry_fee: int = 0
    prize_distribution: Dict[int, float] = field(default_factory=dict)  # rank -> percent
    max_participants: Optional[int] = None
    created_at: Optional[datetime] = None
    missions: List[MissionDefinition] = field(default_factory=list)
    participant_ids: List[str] = field(default_factory=list)

    @property
    def total_days(self) -> int:
        return max(0, (self.end_date - self.start_date).days + 1)

    def has_started(self, today: date) -> bool:
        return today >= self.start_date

    def to_dict(self) -> dict:
        return {
            "challengeId": self.challenge_id,
            "title": self.title,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "totalDays": self.total_days,
            "scoring": self.weights.to_dict(),
            "entryFee": self.entry_fee,
            "prizeDistribution": {str(rank): pct for rank, pct in sorted(self.prize_distribution.items())},
            "maxParticipants": self.max_participants,
            "missions": [mission.to_dict() for mission in self.missions],
            "participants": list(self.participant_ids),
        }


@dataclass
class Payout:
    user_id: str
    rank: int
    percentage: float
    amount: int

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "rank": self.rank,
            "percentage": self.percentage,
            "amount": self.amount,
        }
