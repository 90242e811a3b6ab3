"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    UnauthenticatedError,
    ForbiddenError,
    EmailNotAuthorizedError,
    RateLimitedError,
    StoreError,
)
from auth.types import (
    Role,
    AuthCode,
    Session,
    Redemption,
    CodeRequest,
    RedeemRequest,
)
from auth.config import AuthConfig
from auth.codes import CodeIssuer, CodeValidator, generate_code
from auth.database import AuthCodeDatabase
from auth.guards import require_authenticated, require_role, check_resource_access
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import SessionManager
from auth.service import AuthService, DispatchResult, RedeemResult
from auth.security_middleware import AuthMiddleware
from auth.api import create_auth_router
