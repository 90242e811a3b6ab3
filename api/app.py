"""
Application wiring.

create_app assembles the FastAPI app from already-built services, which is
what tests use. create_app_from_vault resolves every secret from Vault and
is the production entry point:

    uvicorn api.app:create_app_from_vault --factory
"""

import logging

from fastapi import FastAPI

from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.submissions import create_submissions_router
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from core.services.submission_service import SubmissionService
from core.workflow import SubmissionWorkflow

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def create_app(
    config: AuthConfig,
    auth_service: AuthService,
    submissions: SubmissionService,
    workflow: SubmissionWorkflow,
) -> FastAPI:
    """Wire middleware, routes and error handlers around the services."""
    app = FastAPI(title=config.app_name)

    # Last added runs first: request IDs exist before auth runs.
    app.add_middleware(
        AuthMiddleware,
        session_manager=auth_service.session_manager,
        cookie_name=config.session_cookie_name,
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_auth_router(auth_service, config), prefix="/auth")
    app.include_router(create_submissions_router(submissions, workflow), prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def create_app_from_vault() -> FastAPI:
    """Production factory: config from the environment, secrets from Vault."""
    from auth.codes import CodeIssuer, CodeValidator
    from auth.database import AuthCodeDatabase
    from auth.rate_limiter import RateLimiter
    from auth.security_logger import SecurityLogger
    from auth.session import SessionManager
    from clients.email_client import EmailGatewayClient
    from clients.postgres_client import PostgresClient
    from clients.valkey_client import ValkeyClient
    from clients.vault_client import (
        get_database_url,
        get_email_config,
        get_session_secret,
        get_valkey_url,
    )

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    config = AuthConfig.from_env()
    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    security_logger = SecurityLogger(postgres)
    code_store = AuthCodeDatabase(postgres)

    auth_service = AuthService(
        config=config,
        issuer=CodeIssuer(code_store, config),
        validator=CodeValidator(code_store),
        session_manager=SessionManager(get_session_secret(), config),
        rate_limiter=RateLimiter(valkey, config),
        email_client=EmailGatewayClient(**get_email_config()),
        security_logger=security_logger,
    )
    submissions = SubmissionService(postgres)
    workflow = SubmissionWorkflow(
        submissions, auth_service, security_logger, app_name=config.app_name
    )

    app = create_app(config, auth_service, submissions, workflow)
    logger.info("Application started")
    return app
