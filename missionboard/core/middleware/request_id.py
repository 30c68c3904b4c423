import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from missionboard.core.logging import challenge_id_ctx_var, latency_bucket_ms, log_event, request_id_ctx_var

_CHALLENGE_PATH = re.compile(r"^/v1/challenges/([^/]+)")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind request_id (and the challenge in the path, if any) for the duration
    of a request, echo the request id header and log completion.
    """

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid
        match = _CHALLENGE_PATH.match(request.url.path)
        challenge_id = match.group(1) if match else None

        rid_token = request_id_ctx_var.set(rid)
        cid_token = challenge_id_ctx_var.set(challenge_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[self.header_name] = rid
            log_event(
                "info",
                "request.complete",
                request_id=rid,
                challenge_id=challenge_id,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status": response.status_code,
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000),
                },
            )
            return response
        finally:
            challenge_id_ctx_var.reset(cid_token)
            request_id_ctx_var.reset(rid_token)
