"""
Challenge Scoring Engine

Pure, deterministic computation of participant scores and rankings from
mission-completion logs. No external calls, no clock reads beyond a single
"today" snapshot per call, no side effects.

Scoring philosophy:
- Consistency (0..100): current streak weighted 70, best streak weighted 30
- Volume (0..100): completed logs vs everything that could have been logged
- Quality (0..100): on-time logging rate, only when the challenge enables it
- Streak bonus: flat points per current-streak day, added on top
- Total = percentage-weighted components + streak bonus, rounded half up

Any division by zero resolves to 0.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from missionboard.features.scoring.calendar import date_range, reference_today
from missionboard.models.mission import MissionDefinition, MissionLog
from missionboard.models.scoring import (
    ComponentContribution,
    ParticipantScore,
    RankingChange,
    ScoreBreakdown,
    ScoringWeights,
)


def round_half_up(value: float) -> int:
    """Round .5 away from the floor, never to even."""
    return int(math.floor(value + 0.5))


class ScoringEngine:
    """Ranks challenge participants from their mission logs."""

    # Consistency blend
    CURRENT_STREAK_WEIGHT = 70.0
    MAX_STREAK_WEIGHT = 30.0
    SCORE_CAP = 100.0

    def __init__(
        self,
        missions: Sequence[MissionDefinition],
        weights: ScoringWeights,
        start_date: date,
        end_date: date,
    ):
        self.missions = list(missions)
        self.weights = weights
        self.start_date = start_date
        self.end_date = end_date
        self._dates = date_range(start_date, end_date)
        self._mission_ids = {mission.mission_id for mission in self.missions}
        self._numeric_ids = [m.mission_id for m in self.missions if m.kind == "numeric"]

    @property
    def total_days(self) -> int:
        return len(self._dates)

    @property
    def total_possible(self) -> int:
        return self.total_days * len(self.missions)

    def compute_rankings(
        self,
        logs: Iterable[MissionLog],
        participant_ids: Sequence[str],
        today: Optional[date] = None,
    ) -> List[ParticipantScore]:
        """
        Score every participant and order them by total score, highest first.

        Args:
            logs: Mission logs; entries for other users are ignored
            participant_ids: Participants to rank, in tie-break order
            today: Current date in the reference timezone (read once if omitted)

        Returns:
            ParticipantScore list sorted descending by total_score. Ties keep
            the order of participant_ids.
        """
        snapshot_today = today or reference_today()
        wanted = set(participant_ids)

        logs_by_user: Dict[str, List[MissionLog]] = {user_id: [] for user_id in wanted}
        for log in self.resolve_duplicates(logs):
            if log.user_id in wanted:
                logs_by_user[log.user_id].append(log)

        scores = [
            self._score_participant(user_id, logs_by_user.get(user_id, []), snapshot_today)
            for user_id in participant_ids
        ]
        # sorted() is stable: equal totals stay in participant_ids order
        return sorted(scores, key=lambda score: score.total_score, reverse=True)

    def compute_participant_score(
        self,
        user_id: str,
        logs: Iterable[MissionLog],
        today: Optional[date] = None,
    ) -> ParticipantScore:
        """Score a single participant; logs for other users are ignored."""
        own_logs = [log for log in self.resolve_duplicates(logs) if log.user_id == user_id]
        return self._score_participant(user_id, own_logs, today or reference_today())

    def get_score_breakdown(self, score: ParticipantScore) -> ScoreBreakdown:
        """Per-component contributions to a participant's total under these weights."""
        weights = self.weights
        quality_contribution = (
            round_half_up(score.quality_score * weights.quality / 100) if weights.quality_enabled else 0
        )
        return ScoreBreakdown(
            user_id=score.user_id,
            consistency=ComponentContribution(
                score=score.consistency_score,
                weight=weights.consistency,
                contribution=round_half_up(score.consistency_score * weights.consistency / 100),
            ),
            volume=ComponentContribution(
                score=score.volume_score,
                weight=weights.volume,
                contribution=round_half_up(score.volume_score * weights.volume / 100),
            ),
            quality=ComponentContribution(
                score=score.quality_score,
                weight=weights.quality,
                contribution=quality_contribution,
            ),
            streak_bonus_days=score.current_streak,
            streak_bonus_contribution=score.streak_bonus_score,
        )

    @staticmethod
    def calculate_ranking_changes(
        previous: Sequence[ParticipantScore],
        current: Sequence[ParticipantScore],
    ) -> Dict[str, RankingChange]:
        """
        Rank movement between two ranking runs.

        Ranks are 1-based list positions. A participant missing from the
        previous run is treated as having held their current rank.
        """
        previous_ranks = {score.user_id: index + 1 for index, score in enumerate(previous)}
        changes: Dict[str, RankingChange] = {}
        for index, score in enumerate(current):
            current_rank = index + 1
            previous_rank = previous_ranks.get(score.user_id, current_rank)
            changes[score.user_id] = RankingChange(
                previous=previous_rank,
                current=current_rank,
                change=previous_rank - current_rank,
            )
        return changes

    @staticmethod
    def resolve_duplicates(logs: Iterable[MissionLog]) -> List[MissionLog]:
        """
        Keep one log per (participant, mission, date): latest logged_at wins.

        Unstamped logs lose to stamped ones; among equal stamps the later
        entry wins. First-seen order of keys is preserved.
        """
        kept: Dict[Tuple[str, str, date], MissionLog] = {}
        for log in logs:
            existing = kept.get(log.key)
            if existing is None or ScoringEngine._supersedes(log, existing):
                kept[log.key] = log
        return list(kept.values())

    # Internal helpers -------------------------------------------------
    def _score_participant(self, user_id: str, logs: List[MissionLog], today: date) -> ParticipantScore:
        logs_by_date = self._group_by_date(logs)

        total_completed = len(logs)
        late_submissions = sum(1 for log in logs if log.is_late)
        total_possible = self.total_possible
        completion_rate = (total_completed / total_possible) * 100 if total_possible > 0 else 0.0

        current_streak, max_streak = self._calculate_streaks(logs_by_date, today)

        consistency_score = self._score_consistency(current_streak, max_streak, self.total_days)
        volume_score = self._score_volume(total_completed, total_possible)
        quality_score = self._score_quality(total_completed, late_submissions)
        streak_bonus_score = current_streak * self.weights.streak_bonus

        total = (
            consistency_score * self.weights.consistency / 100
            + volume_score * self.weights.volume / 100
            + (quality_score * self.weights.quality / 100 if self.weights.quality_enabled else 0.0)
            + streak_bonus_score
        )

        return ParticipantScore(
            user_id=user_id,
            consistency_score=consistency_score,
            volume_score=volume_score,
            quality_score=quality_score,
            streak_bonus_score=streak_bonus_score,
            total_score=round_half_up(total),
            current_streak=current_streak,
            max_streak=max_streak,
            total_completed=total_completed,
            completion_rate=round_half_up(completion_rate),
            late_submission_count=late_submissions,
            daily_completion_rate=self._daily_completion_rates(logs_by_date),
            numeric_totals=self._numeric_totals(logs),
        )

    def _group_by_date(self, logs: Iterable[MissionLog]) -> Dict[date, Set[str]]:
        grouped: Dict[date, Set[str]] = {}
        for log in logs:
            grouped.setdefault(log.log_date, set()).add(log.mission_id)
        return grouped

    def _missions_logged(self, mission_ids: Optional[Set[str]]) -> int:
        if not mission_ids:
            return 0
        return len(mission_ids & self._mission_ids)

    def _is_complete_day(self, mission_ids: Optional[Set[str]]) -> bool:
        mission_count = len(self.missions)
        return mission_count > 0 and self._missions_logged(mission_ids) == mission_count

    def _calculate_streaks(self, logs_by_date: Dict[date, Set[str]], today: date) -> Tuple[int, int]:
        """
        current: consecutive complete days ending at the latest date <= today.
        max: longest run of complete days among dates <= today.
        """
        flags = [self._is_complete_day(logs_by_date.get(day)) for day in self._dates if day <= today]

        current_streak = 0
        for complete in reversed(flags):
            if not complete:
                break
            current_streak += 1

        max_streak = 0
        run = 0
        for complete in flags:
            run = run + 1 if complete else 0
            max_streak = max(max_streak, run)

        return current_streak, max_streak

    @staticmethod
    def _score_consistency(current_streak: int, max_streak: int, total_days: int) -> float:
        """Consistency score, 0..100. Recent momentum counts more than the best run."""
        if total_days <= 0:
            return 0.0
        current_part = (current_streak / total_days) * ScoringEngine.CURRENT_STREAK_WEIGHT
        max_part = (max_streak / total_days) * ScoringEngine.MAX_STREAK_WEIGHT
        return min(ScoringEngine.SCORE_CAP, (current_part + max_part) * 100)

    @staticmethod
    def _score_volume(completed: int, total_possible: int) -> float:
        """Volume score, 0..100: throughput relative to the maximum achievable."""
        if total_possible <= 0:
            return 0.0
        return min(ScoringEngine.SCORE_CAP, (completed / total_possible) * 100)

    def _score_quality(self, completed: int, late_submissions: int) -> float:
        """Quality score, 0..100: on-time logging rate. 0 when disabled."""
        if not self.weights.quality_enabled or completed <= 0:
            return 0.0
        on_time_rate = (completed - late_submissions) / completed
        return max(0.0, min(ScoringEngine.SCORE_CAP, on_time_rate * 100))

    def _daily_completion_rates(self, logs_by_date: Dict[date, Set[str]]) -> Dict[str, int]:
        mission_count = len(self.missions)
        rates: Dict[str, int] = {}
        for day in self._dates:
            if mission_count == 0:
                rates[day.isoformat()] = 0
                continue
            logged = self._missions_logged(logs_by_date.get(day))
            rates[day.isoformat()] = round_half_up(logged / mission_count * 100)
        return rates

    def _numeric_totals(self, logs: Iterable[MissionLog]) -> Dict[str, int]:
        totals = {mission_id: 0 for mission_id in self._numeric_ids}
        for log in logs:
            if log.mission_id in totals:
                totals[log.mission_id] += log.count
        return totals

    @staticmethod
    def _supersedes(candidate: MissionLog, existing: MissionLog) -> bool:
        if candidate.logged_at is None:
            return existing.logged_at is None
        if existing.logged_at is None:
            return True
        return _as_utc(candidate.logged_at) >= _as_utc(existing.logged_at)


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
