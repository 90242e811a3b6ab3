"""Security middleware for FastAPI - session resolution and bot filtering."""

import logging
import re

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionManager
from api.base import error_response, ErrorCodes

logger = logging.getLogger(__name__)

# Link-preview crawlers and scripted clients. Matched case-insensitively
# against the User-Agent header.
BOT_PATTERN = re.compile(
    r"bot|crawler|spider|scraper|slurp|baiduspider|facebookexternalhit|facebot"
    r"|ia_archiver|curl|wget|python|java/|go-http|httpie|postman|insomnia"
    r"|scrapy|phantom|headless|selenium|puppeteer|playwright|webdriver",
    re.IGNORECASE,
)


def is_bot(user_agent: str | None) -> bool:
    """Requests without a User-Agent count as bots."""
    if not user_agent or not user_agent.strip():
        return True
    return BOT_PATTERN.search(user_agent) is not None


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves the session and keeps bots off state-changing routes.

    For every request:
    1. Reads the session cookie and verifies it via SessionManager
    2. Stores the Session (or None) in request.state.session

    Route dependencies decide what an absent session means; this
    middleware never rejects for missing authentication.

    Unsafe methods on guarded paths are refused for bot user agents,
    so a crawler opening a shared magic link can't burn the code.
    """

    BOT_GUARDED_PATHS = [
        "/auth/redeem-code",
        "/auth/request-code",
        "/api/submissions",
    ]
    SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

    def __init__(self, app, session_manager: SessionManager, cookie_name: str = "dmrt_session"):
        super().__init__(app)
        self._session_manager = session_manager
        self._cookie_name = cookie_name

    def _is_bot_guarded(self, request: Request) -> bool:
        if request.method in self.SAFE_METHODS:
            return False
        path = request.url.path
        return any(path == p or path.startswith(p + "/") for p in self.BOT_GUARDED_PATHS)

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        if self._is_bot_guarded(request) and is_bot(request.headers.get("User-Agent")):
            logger.info(f"Blocked bot user agent on {request.url.path}")
            return JSONResponse(
                status_code=403,
                content=error_response(
                    ErrorCodes.FORBIDDEN,
                    "Access denied",
                ).model_dump(mode="json"),
            )

        request.state.session = self._session_manager.verify(
            request.cookies.get(self._cookie_name)
        )
        return await call_next(request)
