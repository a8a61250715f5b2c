"""
Request throttling for the tutor API.

Signed-in callers are limited per user so a shared NAT does not starve a
classroom; anonymous calls (login, register) fall back to the client address.
Each route group takes its limit from settings:

- ``RATE_LIMIT_AUTH`` / ``RATE_LIMIT_REGISTER``: sign-in and sign-up
- ``RATE_LIMIT_CHAT``: tutor questions, which each cost model calls
- ``RATE_LIMIT_UPLOAD``: PDF uploads and extraction
"""

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from pdf_tutor.core.config import settings
from pdf_tutor.core.security import verify_token

logger = logging.getLogger(__name__)


def rate_limit_key(request: Request) -> str:
    """``user:<id>`` for a valid bearer token or auth cookie, else ``ip:<address>``."""
    token = None
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        token = credentials
    else:
        token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)

    user_id = verify_token(token) if token else None
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=rate_limit_key, default_limits=[settings.RATE_LIMIT_DEFAULT])

# One counter per group, shared by every route in it
auth_limit = limiter.shared_limit(settings.RATE_LIMIT_AUTH, scope="auth")
register_limit = limiter.shared_limit(settings.RATE_LIMIT_REGISTER, scope="register")
chat_limit = limiter.shared_limit(settings.RATE_LIMIT_CHAT, scope="chat")
upload_limit = limiter.shared_limit(settings.RATE_LIMIT_UPLOAD, scope="upload")


def init_rate_limiter(app: FastAPI) -> None:
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
        logger.warning("Rate limit hit for %s on %s: %s", rate_limit_key(request), request.url.path, exc.detail)
        return JSONResponse(
            status_code=429,
            content={"detail": f"Too many requests: {exc.detail}"},
        )
