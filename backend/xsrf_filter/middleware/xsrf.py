"""
XSRF middleware for FastAPI.
Rejects destructive requests (anything but GET/HEAD) that carry neither
the kbn-xsrf nor the kbn-version header, unless the path is whitelisted.
"""
import logging
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from xsrf_filter.security.xsrf import (
    Deny,
    RequestSignal,
    XsrfPolicy,
    decide,
    format_rejection,
    get_xsrf_policy,
)

logger = logging.getLogger(__name__)


class XsrfMiddleware(BaseHTTPMiddleware):
    """
    Request filter run before route dispatch.
    The policy is read once per request, so a reload never splits a decision.
    """

    def __init__(
        self,
        app: ASGIApp,
        policy_provider: Optional[Callable[[], XsrfPolicy]] = None,
    ):
        super().__init__(app)
        self.policy_provider = policy_provider or get_xsrf_policy

    async def dispatch(self, request: Request, call_next):
        policy = self.policy_provider()
        signal = RequestSignal.from_request_parts(
            request.method,
            request.url.path,
            request.headers.items(),
        )

        verdict = decide(policy, signal)
        if isinstance(verdict, Deny):
            logger.warning(
                "XSRF_REJECTED method=%s path=%s",
                signal.method,
                signal.path,
            )
            status_code, body = format_rejection(verdict)
            return JSONResponse(status_code=status_code, content=body)

        return await call_next(request)
