"""
Ranking API Endpoints

GET /v1/challenges/{id}/rankings: leaderboard
GET /v1/challenges/{id}/rankings/changes: rank movement since yesterday
GET /v1/challenges/{id}/rankings/{user_id}/breakdown: score contributions
GET /v1/challenges/{id}/payouts: prize split by rank

Every endpoint takes an optional ?today= (a calendar date, or an ISO
timestamp converted to its reference-zone date) and ignores logs credited
after it.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from missionboard.core.errors import ValidationError
from missionboard.features.payouts.service import payout_service
from missionboard.features.scoring.calendar import parse_calendar_date
from missionboard.features.scoring.service import ranking_service

router = APIRouter(prefix="/v1/challenges", tags=["rankings"])


def as_of_date(
    today: Optional[str] = Query(None, description="Date to rank as of (YYYY-MM-DD or ISO timestamp)"),
) -> Optional[date]:
    if not today:
        return None
    try:
        return parse_calendar_date(today)
    except ValueError:
        raise ValidationError(f"today: {today!r} is not a date or timestamp", code="invalid_date")


@router.get("/{challenge_id}/rankings")
def get_rankings(challenge_id: str, today: Optional[date] = Depends(as_of_date)) -> dict:
    """
    Get the leaderboard, highest total first.

    Returns:
        {
            "data": [
                {
                    "rank": 1,
                    "userId": "alice",
                    "totalScore": 130,
                    "consistencyScore": 100.0,
                    "volumeScore": 100.0,
                    ...
                }
            ]
        }
    """
    rankings = ranking_service.rank_challenge(challenge_id, today=today)
    return {"data": [{"rank": index + 1, **score.to_dict()} for index, score in enumerate(rankings)]}


@router.get("/{challenge_id}/rankings/changes")
def get_ranking_changes(challenge_id: str, today: Optional[date] = Depends(as_of_date)) -> dict:
    changes = ranking_service.ranking_changes(challenge_id, today=today)
    return {"data": {user_id: change.to_dict() for user_id, change in changes.items()}}


@router.get("/{challenge_id}/rankings/{user_id}/breakdown")
def get_score_breakdown(challenge_id: str, user_id: str, today: Optional[date] = Depends(as_of_date)) -> dict:
    breakdown = ranking_service.score_breakdown(challenge_id, user_id, today=today)
    return {"data": breakdown.to_dict()}


@router.get("/{challenge_id}/payouts")
def get_payouts(challenge_id: str, today: Optional[date] = Depends(as_of_date)) -> dict:
    return {"data": payout_service.payouts_for_challenge(challenge_id, today=today)}
