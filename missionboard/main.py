import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env before settings are read
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

from missionboard.api import challenges, health, rankings  # noqa: E402
from missionboard.core.config import settings, validate_config  # noqa: E402
from missionboard.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from missionboard.core.logging import configure_logging  # noqa: E402
from missionboard.core.middleware.request_id import RequestIdMiddleware  # noqa: E402

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("missionboard")
    logger.info("Starting MissionBoard backend...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("missionboard").info("Stopping MissionBoard backend...")


app = FastAPI(title="MissionBoard", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.root_router, tags=["health"])
app.include_router(challenges.router, tags=["challenges"])
app.include_router(rankings.router, tags=["rankings"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("missionboard.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)
