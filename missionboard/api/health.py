from datetime import datetime, timezone

from fastapi import APIRouter

from missionboard.core.config import settings
from missionboard.features.scoring.calendar import reference_today

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {
        "status": "ok",
        "timezone": settings.SCORING_TIMEZONE,
        "today": reference_today().isoformat(),
        "computed_at": datetime.now(timezone.utc).isoformat(),
    }
