"""HTTP routes for authentication."""

import ipaddress

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.base import success_response, error_response, ErrorCodes
from auth.config import AuthConfig
from auth.dependencies import authenticated
from auth.exceptions import EmailNotAuthorizedError, RateLimitedError
from auth.service import AuthService
from auth.types import CodeRequest, RedeemRequest, Session
from clients.email_client import EmailGatewayError


def get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _rate_limited(e: RateLimitedError) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        headers={"Retry-After": str(e.retry_after_seconds)},
        content=error_response(
            ErrorCodes.RATE_LIMITED,
            f"Too many requests. Please wait {e.retry_after_seconds} seconds.",
        ).model_dump(mode="json"),
    )


def create_auth_router(auth_service: AuthService, config: AuthConfig) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/request-code")
    async def request_code(request: Request, body: CodeRequest):
        """Email a magic link to an allow-listed address.

        Returns:
            - 202: code issued and emailed
            - 403: email not allowed for the role
            - 429: rate limited
            - 502: code issued but the email could not be sent
        """
        try:
            auth_service.request_code(
                email=body.email,
                role=body.role,
                ip_address=get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except RateLimitedError as e:
            return _rate_limited(e)
        except EmailNotAuthorizedError:
            return JSONResponse(
                status_code=403,
                content=error_response(
                    ErrorCodes.EMAIL_NOT_AUTHORIZED,
                    "Email not authorized for this role",
                ).model_dump(mode="json"),
            )
        except EmailGatewayError:
            return JSONResponse(
                status_code=502,
                content=error_response(
                    ErrorCodes.NOTIFICATION_FAILED,
                    "Login code was issued but the email could not be sent",
                ).model_dump(mode="json"),
            )

        return JSONResponse(
            status_code=202,
            content=success_response({"sent": True}).model_dump(mode="json"),
        )

    @router.post("/redeem-code")
    async def redeem_code(request: Request, response: Response, body: RedeemRequest):
        """Exchange a one-time code for a session cookie.

        Unknown, expired, used and role-mismatched codes all get the same 401.
        """
        try:
            result = auth_service.redeem_code(
                code=body.code,
                expected_role=body.role,
                ip_address=get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except RateLimitedError as e:
            return _rate_limited(e)

        if not result.redemption.valid:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.INVALID_CODE,
                    "Invalid or expired code",
                ).model_dump(mode="json"),
            )

        response.set_cookie(
            key=config.session_cookie_name,
            value=result.credential,
            httponly=True,
            secure=config.cookie_secure,
            samesite="lax",
            max_age=auth_service.session_manager.max_age_seconds,
            path="/",
        )

        return success_response(result.redemption.model_dump(mode="json"))

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Clear the session cookie."""
        credential = request.cookies.get(config.session_cookie_name)
        if credential:
            auth_service.logout(credential, ip_address=get_client_ip(request))

        response.delete_cookie(key=config.session_cookie_name, path="/")

        return success_response({"message": "Logged out successfully"})

    @router.get("/me")
    async def get_current_session(session: Session = Depends(authenticated)):
        """Claims of the current session."""
        return success_response(session.model_dump(mode="json"))

    return router
