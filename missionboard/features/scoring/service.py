"""
Ranking Service

Loads a challenge's missions, participants and logs from their services,
then ranks participants with the pure ScoringEngine.
"""

from __future__ import annotations

import time
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from missionboard.core.config import settings
from missionboard.core.errors import NotFoundError, ValidationError
from missionboard.core.logging import latency_bucket_ms, log_event
from missionboard.features.challenges.service import ChallengeService, challenge_service
from missionboard.features.missions.service import MissionLogService, mission_log_service
from missionboard.features.scoring.calendar import reference_today
from missionboard.features.scoring.engine import ScoringEngine
from missionboard.models.challenge import Challenge
from missionboard.models.mission import MissionLog
from missionboard.models.scoring import ParticipantScore, RankingChange, ScoreBreakdown


class RankingService:
    """Ranks challenge participants; recomputed on every call, never cached."""

    def __init__(
        self,
        challenges: Optional[ChallengeService] = None,
        logs: Optional[MissionLogService] = None,
    ):
        self._challenges = challenges or challenge_service
        self._logs = logs or mission_log_service

    def get_challenge(self, challenge_id: str) -> Challenge:
        return self._challenges.get_challenge(challenge_id)

    def engine_for(self, challenge_id: str) -> Tuple[Challenge, ScoringEngine]:
        challenge = self.get_challenge(challenge_id)
        problems = challenge.weights.problems()
        if problems:
            if settings.SCORING_STRICT_WEIGHTS:
                raise ValidationError("; ".join(problems), code="invalid_scoring_weights")
            log_event(
                "warning",
                "scoring.weights_invalid",
                challenge_id=challenge_id,
                error_code="invalid_scoring_weights",
                extra={"problems": problems},
            )
        engine = ScoringEngine(
            missions=challenge.missions,
            weights=challenge.weights,
            start_date=challenge.start_date,
            end_date=challenge.end_date,
        )
        return challenge, engine

    def rank_challenge(self, challenge_id: str, today: Optional[date] = None) -> List[ParticipantScore]:
        """
        Current leaderboard for a challenge.

        Args:
            challenge_id: Challenge to rank
            today: Reference-zone date to rank as of (defaults to the real today).
                Logs credited after this date are left out.

        Returns:
            ParticipantScore list, highest total first
        """
        as_of = today or reference_today()
        challenge, engine = self.engine_for(challenge_id)
        return self._rank_as_of(challenge, engine, as_of)

    def ranking_changes(self, challenge_id: str, today: Optional[date] = None) -> Dict[str, RankingChange]:
        """Rank movement between yesterday's standings and today's."""
        current_day = today or reference_today()
        challenge, engine = self.engine_for(challenge_id)

        previous = self._rank_as_of(challenge, engine, current_day - timedelta(days=1))
        current = self._rank_as_of(challenge, engine, current_day)
        return ScoringEngine.calculate_ranking_changes(previous, current)

    def score_breakdown(self, challenge_id: str, user_id: str, today: Optional[date] = None) -> ScoreBreakdown:
        as_of = today or reference_today()
        challenge, engine = self.engine_for(challenge_id)
        if not self._challenges.is_participant(challenge_id, user_id):
            raise NotFoundError(f"{user_id} is not a participant of this challenge")
        logs = self._logs_through(self._logs.list_logs(challenge_id, [user_id]), as_of)
        score = engine.compute_participant_score(user_id, logs, today=as_of)
        return engine.get_score_breakdown(score)

    def _rank_as_of(self, challenge: Challenge, engine: ScoringEngine, as_of: date) -> List[ParticipantScore]:
        participant_ids = challenge.participant_ids
        logs = self._logs_through(self._logs.list_logs(challenge.challenge_id, participant_ids), as_of)

        start = time.perf_counter()
        rankings = engine.compute_rankings(logs, participant_ids, today=as_of)
        duration_ms = (time.perf_counter() - start) * 1000

        log_event(
            "info",
            "rankings.computed",
            challenge_id=challenge.challenge_id,
            event_type="rankings.computed",
            as_of=as_of,
            extra={
                "participants": len(participant_ids),
                "logs": len(logs),
                "duration_bucket": latency_bucket_ms(duration_ms),
            },
        )
        return rankings

    @staticmethod
    def _logs_through(logs: List[MissionLog], last_day: date) -> List[MissionLog]:
        return [log for log in logs if log.log_date <= last_day]


# Singleton service used by routes
ranking_service = RankingService()
