from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Union
from uuid import uuid4

from missionboard.core.config import settings
from missionboard.core.errors import ConflictError, NotFoundError, ValidationError
from missionboard.core.logging import log_event
from missionboard.features.scoring.calendar import reference_today
from missionboard.models.challenge import Challenge
from missionboard.models.mission import InputPolicy, MissionDefinition, MissionKind
from missionboard.models.scoring import ScoringWeights

PrizeDistributionInput = Union[Sequence[float], Mapping[str, float], Mapping[int, float], None]

_RANK_KEY = re.compile(r"^(?:rank)?(\d+)$")


def normalize_prize_distribution(raw: PrizeDistributionInput) -> Dict[int, float]:
    """
    Accept [50, 30, 20], {"1": 50} or {"rank1": 50} and return {rank: percent}.
    """
    if not raw:
        return {}
    if isinstance(raw, Mapping):
        normalized: Dict[int, float] = {}
        for key, pct in raw.items():
            match = _RANK_KEY.match(str(key).strip().lower())
            if not match or int(match.group(1)) < 1:
                raise ValidationError(f"Invalid prize rank key: {key!r}")
            normalized[int(match.group(1))] = float(pct)
        return normalized
    return {index + 1: float(pct) for index, pct in enumerate(raw)}


class ChallengeService:
    """In-memory challenge, mission and participant registry."""

    def __init__(self):
        self._challenges: Dict[str, Challenge] = {}

    def create_challenge(
        self,
        *,
        title: str,
        start_date: date,
        end_date: date,
        weights: ScoringWeights,
        entry_fee: int = 0,
        prize_distribution: PrizeDistributionInput = None,
        max_participants: Optional[int] = None,
        challenge_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Challenge:
        """Register a challenge after validating its configuration."""
        problems: List[str] = []
        if not title or not title.strip():
            problems.append("title is required")
        if start_date > end_date:
            problems.append("start_date must not be after end_date")
        problems.extend(weights.problems())
        if entry_fee < 0:
            problems.append("entry_fee must be >= 0")
        if max_participants is not None and max_participants < 1:
            problems.append("max_participants must be >= 1")

        distribution = normalize_prize_distribution(prize_distribution)
        if any(pct < 0 for pct in distribution.values()):
            problems.append("prize percentages must be >= 0")
        if sum(distribution.values()) > 100.0 + 1e-9:
            problems.append("prize percentages must not exceed 100 in total")

        if problems:
            raise ValidationError("; ".join(problems))

        cid = challenge_id or uuid4().hex[:12]
        if cid in self._challenges:
            raise ConflictError(f"Challenge {cid} already exists")

        challenge = Challenge(
            challenge_id=cid,
            title=title.strip(),
            start_date=start_date,
            end_date=end_date,
            weights=weights,
            entry_fee=entry_fee,
            prize_distribution=distribution,
            max_participants=max_participants,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._challenges[cid] = challenge
        log_event("info", "challenge.created", challenge_id=cid, event_type="challenge.created")
        return challenge

    def get_challenge(self, challenge_id: str) -> Challenge:
        challenge = self._challenges.get(challenge_id)
        if not challenge:
            raise NotFoundError(f"Challenge {challenge_id} not found")
        return challenge

    def add_mission(
        self,
        *,
        challenge_id: str,
        title: str,
        kind: MissionKind = "boolean",
        input_policy: InputPolicy = "flexible",
        mission_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> MissionDefinition:
        """Append a mission. Missions are frozen once the challenge starts."""
        challenge = self.get_challenge(challenge_id)
        if challenge.has_started(today or reference_today()):
            raise ConflictError("Missions cannot change after the challenge has started")
        if not title or not title.strip():
            raise ValidationError("Mission title is required")
        if kind not in ("boolean", "numeric"):
            raise ValidationError(f"Unknown mission kind: {kind}")
        if input_policy not in ("same_day_only", "flexible"):
            raise ValidationError(f"Unknown input policy: {input_policy}")

        mid = mission_id or f"{challenge_id}-m{len(challenge.missions) + 1}"
        if any(existing.mission_id == mid for existing in challenge.missions):
            raise ConflictError(f"Mission {mid} already exists")

        mission = MissionDefinition(
            mission_id=mid,
            title=title.strip(),
            kind=kind,
            input_policy=input_policy,
            position=len(challenge.missions),
        )
        challenge.missions.append(mission)
        return mission

    def list_missions(self, challenge_id: str) -> List[MissionDefinition]:
        return list(self.get_challenge(challenge_id).missions)

    def get_mission(self, challenge_id: str, mission_id: str) -> MissionDefinition:
        for mission in self.get_challenge(challenge_id).missions:
            if mission.mission_id == mission_id:
                return mission
        raise NotFoundError(f"Mission {mission_id} not found")

    def join(self, *, challenge_id: str, user_id: str) -> Challenge:
        """Add a participant (not idempotent: a second join is a conflict)."""
        challenge = self.get_challenge(challenge_id)
        if not user_id:
            raise ValidationError("user_id is required")
        if user_id in challenge.participant_ids:
            raise ConflictError(f"{user_id} already joined this challenge")

        cap = challenge.max_participants or settings.MAX_PARTICIPANTS_DEFAULT
        if cap and len(challenge.participant_ids) >= cap:
            raise ConflictError("Challenge is full", code="challenge_full")

        challenge.participant_ids.append(user_id)
        log_event("info", "challenge.joined", challenge_id=challenge_id, user_id=user_id, event_type="challenge.joined")
        return challenge

    def list_participants(self, challenge_id: str) -> List[str]:
        return list(self.get_challenge(challenge_id).participant_ids)

    def is_participant(self, challenge_id: str, user_id: str) -> bool:
        return user_id in self.get_challenge(challenge_id).participant_ids

    def reset(self) -> None:
        self._challenges.clear()


# Singleton service
challenge_service = ChallengeService()
