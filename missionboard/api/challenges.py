from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Union

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from missionboard.features.challenges.service import challenge_service
from missionboard.features.missions.service import mission_log_service
from missionboard.models.scoring import ScoringWeights

router = APIRouter()


class ScoringWeightsIn(BaseModel):
    consistency: float = 50.0
    volume: float = 50.0
    quality: float = 0.0
    streak_bonus: float = Field(0.0, alias="streakBonus")
    quality_enabled: bool = Field(False, alias="qualityEnabled")

    model_config = ConfigDict(populate_by_name=True)

    def to_domain(self) -> ScoringWeights:
        return ScoringWeights.from_dict(self.model_dump(by_alias=True))


class CreateChallengeRequest(BaseModel):
    title: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    scoring: ScoringWeightsIn = Field(default_factory=ScoringWeightsIn)
    entry_fee: int = 0
    prize_distribution: Optional[Union[List[float], Dict[str, float]]] = None
    max_participants: Optional[int] = None


class AddMissionRequest(BaseModel):
    title: str = Field(..., min_length=1)
    kind: Literal["boolean", "numeric"] = "boolean"
    input_policy: Literal["same_day_only", "flexible"] = "flexible"
    mission_id: Optional[str] = None


class JoinRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class LogMissionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    mission_id: str = Field(..., min_length=1)
    log_date: Optional[date] = None
    value: Optional[dict] = None


@router.post("/v1/challenges", status_code=201)
def create_challenge(req: CreateChallengeRequest):
    challenge = challenge_service.create_challenge(
        title=req.title,
        start_date=req.start_date,
        end_date=req.end_date,
        weights=req.scoring.to_domain(),
        entry_fee=req.entry_fee,
        prize_distribution=req.prize_distribution,
        max_participants=req.max_participants,
    )
    return {"data": challenge.to_dict()}


@router.get("/v1/challenges/{challenge_id}")
def get_challenge(challenge_id: str):
    return {"data": challenge_service.get_challenge(challenge_id).to_dict()}


@router.post("/v1/challenges/{challenge_id}/missions", status_code=201)
def add_mission(challenge_id: str, req: AddMissionRequest):
    mission = challenge_service.add_mission(
        challenge_id=challenge_id,
        title=req.title,
        kind=req.kind,
        input_policy=req.input_policy,
        mission_id=req.mission_id,
    )
    return {"data": mission.to_dict()}


@router.post("/v1/challenges/{challenge_id}/participants", status_code=201)
def join_challenge(challenge_id: str, req: JoinRequest):
    challenge = challenge_service.join(challenge_id=challenge_id, user_id=req.user_id)
    return {"data": {"challengeId": challenge.challenge_id, "participants": list(challenge.participant_ids)}}


@router.post("/v1/challenges/{challenge_id}/logs")
def log_mission(challenge_id: str, req: LogMissionRequest):
    """
    Record (or replace) a mission completion for one day.

    The write is stamped with the server clock; lateness and the same-day
    policy are judged from that stamp, never from client input.
    """
    result = mission_log_service.log_mission(
        challenge_id=challenge_id,
        user_id=req.user_id,
        mission_id=req.mission_id,
        log_date=req.log_date,
        value=req.value,
    )
    return {"data": result.log.to_dict(), "created": result.created}
