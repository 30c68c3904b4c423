from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from missionboard.core.errors import ValidationError
from missionboard.core.logging import log_event
from missionboard.features.challenges.service import ChallengeService, challenge_service
from missionboard.features.scoring.calendar import to_reference_date
from missionboard.models.mission import MissionDefinition, MissionLog

LogKey = Tuple[str, str, str, date]  # challenge, user, mission, date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LogWriteResult:
    log: MissionLog
    created: bool  # False when an existing log for the same day was replaced


class MissionLogService:
    """
    Mission log store.

    One log per (participant, mission, date); re-logging replaces the value.
    is_late is decided here, at write time, from the reference-zone date of
    the write versus the credited date.
    """

    def __init__(self, challenges: Optional[ChallengeService] = None):
        self._challenges = challenges or challenge_service
        self._logs: Dict[LogKey, MissionLog] = {}

    def log_mission(
        self,
        *,
        challenge_id: str,
        user_id: str,
        mission_id: str,
        log_date: Optional[date] = None,
        value: Optional[dict] = None,
        logged_at: Optional[datetime] = None,
    ) -> LogWriteResult:
        """
        logged_at is for trusted callers replaying past writes (imports, tests);
        HTTP writes leave it unset so the server clock decides lateness.
        """
        challenge = self._challenges.get_challenge(challenge_id)
        mission = self._challenges.get_mission(challenge_id, mission_id)
        if not self._challenges.is_participant(challenge_id, user_id):
            raise ValidationError(f"{user_id} is not a participant of this challenge", code="not_participant")

        written_at = logged_at or utc_now()
        written_on = to_reference_date(written_at)
        credited = log_date or written_on

        if credited < challenge.start_date or credited > challenge.end_date:
            raise ValidationError(
                f"{credited.isoformat()} is outside the challenge period", code="date_out_of_range"
            )
        if credited > written_on:
            raise ValidationError("Cannot log a mission for a future date", code="future_date")

        is_late = credited != written_on
        if is_late and mission.input_policy == "same_day_only":
            raise ValidationError(
                f"Mission {mission.title!r} can only be logged on the same day", code="same_day_only"
            )

        log = MissionLog(
            mission_id=mission_id,
            user_id=user_id,
            log_date=credited,
            value=self._normalize_value(mission, value),
            is_late=is_late,
            logged_at=written_at,
            challenge_id=challenge_id,
        )
        key = (challenge_id, user_id, mission_id, credited)
        created = key not in self._logs
        self._logs[key] = log

        log_event(
            "info",
            "mission.logged" if created else "mission.relogged",
            challenge_id=challenge_id,
            user_id=user_id,
            event_type="mission.logged",
            extra={"mission_id": mission_id, "log_date": credited.isoformat(), "is_late": is_late},
        )
        return LogWriteResult(log=log, created=created)

    def list_logs(self, challenge_id: str, user_ids: Optional[Iterable[str]] = None) -> List[MissionLog]:
        wanted = set(user_ids) if user_ids is not None else None
        return [
            log
            for (cid, user_id, _, _), log in self._logs.items()
            if cid == challenge_id and (wanted is None or user_id in wanted)
        ]

    def reset(self) -> None:
        self._logs.clear()

    @staticmethod
    def _normalize_value(mission: MissionDefinition, value: Optional[dict]) -> dict:
        value = dict(value or {})
        if mission.kind == "numeric":
            count = value.get("count")
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValidationError("Numeric missions need a non-negative integer count", code="invalid_count")
            return {"count": count}
        if value.get("completed", True) is not True:
            raise ValidationError("Boolean missions can only be logged as completed", code="invalid_value")
        return {"completed": True}


# Singleton service
mission_log_service = MissionLogService()
