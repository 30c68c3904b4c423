from datetime import date, datetime, timezone

import pytest

from missionboard.core.config import settings
from missionboard.core.errors import NotFoundError, ValidationError
from missionboard.features.challenges.service import challenge_service
from missionboard.features.missions.service import mission_log_service
from missionboard.features.scoring.service import ranking_service
from missionboard.models.scoring import ScoringWeights


def log_run(user_id, day):
    # 12:00 in Seoul on the same day, so never late
    mission_log_service.log_mission(
        challenge_id="ny24",
        user_id=user_id,
        mission_id="run",
        logged_at=datetime(2024, 1, day, 3, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def league(january_challenge):
    for user_id in ("alice", "bob"):
        challenge_service.join(challenge_id="ny24", user_id=user_id)
    log_run("alice", 1)
    log_run("bob", 1)
    log_run("bob", 2)
    return january_challenge


def test_rank_challenge_orders_by_total(league):
    rankings = ranking_service.rank_challenge("ny24", today=date(2024, 1, 2))

    assert [score.user_id for score in rankings] == ["bob", "alice"]
    assert rankings[0].current_streak == 2
    assert rankings[1].current_streak == 0
    assert rankings[1].max_streak == 1


def test_ranking_changes_since_yesterday(league):
    changes = ranking_service.ranking_changes("ny24", today=date(2024, 1, 2))

    # tied on Jan 1 (join order), bob pulls ahead on Jan 2
    assert changes["bob"].to_dict() == {"previous": 2, "current": 1, "change": 1}
    assert changes["alice"].to_dict() == {"previous": 1, "current": 2, "change": -1}


def test_score_breakdown_for_participant(league):
    breakdown = ranking_service.score_breakdown("ny24", "bob", today=date(2024, 1, 2))

    assert breakdown.consistency.contribution == 50
    assert breakdown.volume.contribution == 33
    assert breakdown.streak_bonus_days == 2
    assert breakdown.streak_bonus_contribution == 20


def test_score_breakdown_unknown_participant(league):
    with pytest.raises(NotFoundError):
        ranking_service.score_breakdown("ny24", "mallory", today=date(2024, 1, 2))


def test_invalid_stored_weights_permissive_by_default(league):
    league.weights = ScoringWeights(consistency=80, volume=80)

    rankings = ranking_service.rank_challenge("ny24", today=date(2024, 1, 2))

    assert len(rankings) == 2


def test_invalid_stored_weights_rejected_in_strict_mode(league, monkeypatch):
    monkeypatch.setattr(settings, "SCORING_STRICT_WEIGHTS", True)
    league.weights = ScoringWeights(consistency=80, volume=80)

    with pytest.raises(ValidationError) as exc:
        ranking_service.rank_challenge("ny24", today=date(2024, 1, 2))
    assert exc.value.code == "invalid_scoring_weights"


def test_unknown_challenge(league):
    with pytest.raises(NotFoundError):
        ranking_service.rank_challenge("nope")


def test_rank_challenge_ignores_logs_after_as_of_date(league):
    rankings = ranking_service.rank_challenge("ny24", today=date(2024, 1, 1))

    # bob's Jan 2 run is not counted yet, so join order breaks the tie
    assert [score.user_id for score in rankings] == ["alice", "bob"]
    assert rankings[0].total_score == rankings[1].total_score
    assert rankings[1].total_completed == 1


def test_current_rank_matches_leaderboard(league):
    for day in (date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)):
        rankings = ranking_service.rank_challenge("ny24", today=day)
        changes = ranking_service.ranking_changes("ny24", today=day)
        assert {user_id: change.current for user_id, change in changes.items()} == {
            score.user_id: index + 1 for index, score in enumerate(rankings)
        }
