# missionboard/conftest.py
import sys
from datetime import date
from pathlib import Path

import pytest

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(scope="function", autouse=True)
def reset_stores():
    """
    Clear the in-memory challenge and log stores before each test.

    Routes use module-level singletons, so every test starts from a clean slate.
    """
    from missionboard.features.challenges.service import challenge_service
    from missionboard.features.missions.service import mission_log_service

    challenge_service.reset()
    mission_log_service.reset()
    yield
    challenge_service.reset()
    mission_log_service.reset()


@pytest.fixture(scope="function", autouse=True)
def pin_scoring_timezone(monkeypatch):
    """Tests reason in Asia/Seoul regardless of any local .env."""
    from missionboard.core.config import settings

    monkeypatch.setattr(settings, "SCORING_TIMEZONE", "Asia/Seoul")
    monkeypatch.setattr(settings, "SCORING_STRICT_WEIGHTS", False)
    monkeypatch.setattr(settings, "MAX_PARTICIPANTS_DEFAULT", 0)
    yield


@pytest.fixture
def january_challenge():
    """Three-day challenge (2024-01-01..03) with one boolean mission, created before it starts."""
    from missionboard.features.challenges.service import challenge_service
    from missionboard.models.scoring import ScoringWeights

    challenge = challenge_service.create_challenge(
        title="New Year Sprint",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 3),
        weights=ScoringWeights(consistency=50, volume=50, quality=0, streak_bonus=10),
        entry_fee=10000,
        prize_distribution=[50, 30, 20],
        challenge_id="ny24",
    )
    challenge_service.add_mission(
        challenge_id="ny24",
        title="Morning run",
        mission_id="run",
        today=date(2023, 12, 31),
    )
    return challenge
