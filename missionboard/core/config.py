import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Scoring
    SCORING_TIMEZONE: str = "Asia/Seoul"  # single reference zone for every calendar date
    SCORING_STRICT_WEIGHTS: bool = False  # refuse to rank challenges with invalid weights

    # Challenges
    MAX_PARTICIPANTS_DEFAULT: int = 0  # 0 = no cap unless the challenge sets one

    # HTTP
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration that the scoring path depends on.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("missionboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    try:
        ZoneInfo(cfg.SCORING_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"SCORING_TIMEZONE={cfg.SCORING_TIMEZONE!r} is not a known timezone")

    if cfg.MAX_PARTICIPANTS_DEFAULT < 0:
        problems.append("MAX_PARTICIPANTS_DEFAULT must be >= 0")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
