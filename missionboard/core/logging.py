"""
Structured logging for ranking and log-write events.

- JSON lines in production, one-line pretty logs in development.
- request_id and challenge_id are bound per request (see RequestIdMiddleware)
  and stamped onto every record emitted while handling it.
- log_event attaches the ranking context (challenge, participant, as-of date)
  so a leaderboard can be traced back to the exact day it was computed for.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import date, datetime, timezone
from typing import Dict, Optional

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
challenge_id_ctx_var: ContextVar[Optional[str]] = ContextVar("challenge_id", default=None)

# Extra keys copied into JSON output when present on a record
_STRUCTURED_KEYS = (
    "challenge_id",
    "user_id",
    "as_of",
    "event_type",
    "error_code",
    "participants",
    "logs",
    "duration_bucket",
    "status",
    "latency_bucket",
)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    """Fetch the current request_id from context (if any)."""
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def get_challenge_id() -> Optional[str]:
    return challenge_id_ctx_var.get()


def _format_timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace('+00:00', 'Z')


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    if latency_ms < 10:
        return "<10ms"
    if latency_ms < 100:
        return "10-100ms"
    if latency_ms < 500:
        return "100-500ms"
    if latency_ms < 1000:
        return "500-1000ms"
    return ">=1000ms"


class RequestContextFilter(logging.Filter):
    """Fill request_id and challenge_id from the request context when a record lacks them."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        if getattr(record, "challenge_id", None) is None:
            record.challenge_id = get_challenge_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _format_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        for key in _STRUCTURED_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    """`<ts> INFO [missionboard][rid=..][challenge=..][user=..][as_of=..] rankings.computed`"""

    _TAGS = (("request_id", "rid"), ("challenge_id", "challenge"), ("user_id", "user"), ("as_of", "as_of"))

    def format(self, record: logging.LogRecord) -> str:
        tags = "".join(
            f"[{label}={getattr(record, key)}]" for key, label in self._TAGS if getattr(record, key, None)
        )
        return f"{_format_timestamp(record)} {record.levelname} [missionboard]{tags} {record.getMessage()}"


def configure_logging(env: str = "development") -> None:
    """Configure structured logging based on environment."""
    logger = logging.getLogger("missionboard")
    logger.setLevel(logging.INFO)

    formatter: logging.Formatter
    if env.lower() == "production":
        formatter = JsonFormatter()
    else:
        formatter = PrettyFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # Reduce noise from uvicorn loggers but keep error output
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def _safe_truncate(value, limit: int = 500):
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    challenge_id: Optional[str] = None,
    user_id: Optional[str] = None,
    as_of: Optional[date] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
):
    """Emit one structured record; extra values are stringified and truncated."""

    logger = logging.getLogger("missionboard")
    if not logger.handlers:
        # Ensure logging configured in edge cases (tests)
        configure_logging(os.getenv("ENV", "development"))

    payload = {
        "request_id": request_id or get_request_id(),
        "challenge_id": challenge_id or get_challenge_id(),
        "user_id": user_id,
        "as_of": as_of.isoformat() if as_of else None,
    }
    if event_type:
        payload["event_type"] = event_type
    if error_code:
        payload["error_code"] = error_code
    if extra:
        for k, v in extra.items():
            payload[k] = _safe_truncate(v)

    log_fn = getattr(logger, level, logger.info)
    log_fn(msg, extra=payload)
