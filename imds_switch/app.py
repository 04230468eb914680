import logging
import os
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import StsAssumeRoleProvider
from .config import get_config
from .config_file import load_registry
from .errors import AssumeRoleError, MalformedRequestError, UnknownRoleError
from .models import ActivateRequest, CredentialsDocument
from .role_set import RoleSet
from .state import ActiveRoleState
from .version import __version__

# Load environment variables
load_dotenv()

# Configure logging level from environment variable
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

# Configure structured logging
# Use human-friendly console output in development, JSON in production
use_json_logs = os.getenv("APP_ENV", os.getenv("ENVIRONMENT", "development")).lower() == "production"

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if use_json_logs else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Every response identifies itself the way the EC2 metadata service does
SERVER_HEADER = "EC2ws"
JSON_CONTENT_TYPE = "application/json; charset=UTF-8"

CREDENTIALS_PATH = "/latest/meta-data/iam/security-credentials"
TOKEN_PATH = "/latest/api/token"
TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
MAX_TOKEN_TTL_SECONDS = 21600


class MetadataJSONResponse(JSONResponse):
    """JSON response carrying the metadata service's content type and Server header."""

    media_type = JSON_CONTENT_TYPE

    def __init__(self, content: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None, **kwargs):
        headers = {"Server": SERVER_HEADER, **(headers or {})}
        super().__init__(content, status_code=status_code, headers=headers, **kwargs)


def error_response(message: str, status_code: int) -> MetadataJSONResponse:
    return MetadataJSONResponse({"error": message}, status_code=status_code)


def create_app() -> FastAPI:
    app = FastAPI(title="IMDS Switch", version=__version__)

    # Load the role registry and build the shared state (fail fast on bad configuration)
    try:
        config = get_config()
        registry = load_registry(config.config_path, profile=config.profile)

        provider = StsAssumeRoleProvider(
            region=config.aws_region or registry.credentials.region or "us-east-1",
            profile=config.aws_profile or registry.credentials.profile,
            timeout=config.sts_timeout,
            duration_seconds=config.session_duration,
        )

        role_set = RoleSet.from_registry(
            registry,
            provider,
            refresh_margin=timedelta(seconds=config.refresh_margin),
        )
        active_role = ActiveRoleState(role_set, config.default_role or registry.default_role)

        logger.info(
            "Application initialized",
            roles=role_set.roles(),
            active_role=active_role.get(),
            refresh_margin_seconds=config.refresh_margin,
        )

    except Exception as e:
        logger.error("Failed to initialize application", error=str(e), error_type=type(e).__name__)
        raise

    app.state.role_set = role_set
    app.state.active_role = active_role

    # ============================================================================
    # Health
    # ============================================================================

    @app.get("/health")
    async def health():
        """Application health status."""
        return MetadataJSONResponse(
            {
                "status": "healthy",
                "service": "imds-switch",
                "version": __version__,
                "active_role": active_role.get(),
                "roles": len(role_set),
            }
        )

    # ============================================================================
    # Control API - operator-facing role management
    # ============================================================================

    @app.get("/roles")
    async def roles_list(status_filter: Optional[str] = Query(None, alias="status")):
        """List configured roles, or only the active one with ?status=active."""
        if status_filter == "active":
            roles = [active_role.get()]
        else:
            roles = role_set.roles()
        return MetadataJSONResponse({"roles": roles})

    @app.get("/roles/{alias}")
    async def roles_show(alias: str):
        """Show a role's configuration."""
        try:
            role = role_set.role(alias)
        except UnknownRoleError as e:
            return error_response(str(e), status.HTTP_404_NOT_FOUND)

        return MetadataJSONResponse({"arn": role.arn, "session_name": role.session_name})

    async def _set_active_impl(request: Request):
        body = await request.body()
        try:
            activate = ActivateRequest.model_validate_json(body)
        except ValidationError as e:
            reason = "; ".join(err["msg"] for err in e.errors())
            raise MalformedRequestError(f"failed to parse body: {reason}") from e

        try:
            active_role.set(activate.alias)
        except UnknownRoleError as e:
            logger.warning("Rejected activation of unknown role", alias=activate.alias)
            return error_response(str(e), status.HTTP_400_BAD_REQUEST)

        return MetadataJSONResponse({"active_role": activate.alias})

    @app.post("/roles")
    async def roles_set_active(request: Request):
        """Set the role served as the instance profile role."""
        return await _set_active_impl(request)

    @app.post("/roles/active")
    async def roles_set_active_explicit(request: Request):
        """Set the role served as the instance profile role - explicit path."""
        return await _set_active_impl(request)

    # ============================================================================
    # Mocked instance metadata endpoints
    # ============================================================================

    @app.put(TOKEN_PATH)
    async def metadata_token(request: Request):
        """Issue an IMDSv2 session token. Tokens are accepted but not required on reads."""
        raw_ttl = request.headers.get(TOKEN_TTL_HEADER)
        try:
            ttl = int(raw_ttl) if raw_ttl is not None else 0
        except ValueError:
            ttl = 0
        if not 1 <= ttl <= MAX_TOKEN_TTL_SECONDS:
            return error_response(
                f"{TOKEN_TTL_HEADER} must be an integer between 1 and {MAX_TOKEN_TTL_SECONDS}",
                status.HTTP_400_BAD_REQUEST,
            )

        return PlainTextResponse(
            secrets.token_urlsafe(42),
            headers={"Server": SERVER_HEADER, TOKEN_TTL_HEADER: str(ttl)},
        )

    async def _active_role_name_impl():
        return PlainTextResponse(active_role.get(), headers={"Server": SERVER_HEADER})

    @app.get(CREDENTIALS_PATH)
    async def metadata_role_name():
        """Mock the security-credentials listing: the active role name."""
        return await _active_role_name_impl()

    @app.get(CREDENTIALS_PATH + "/")
    async def metadata_role_name_slash():
        """Mock the security-credentials listing - trailing slash path."""
        return await _active_role_name_impl()

    @app.get(CREDENTIALS_PATH + "/{alias}")
    def metadata_role_credentials(alias: str):
        """Mock the instance profile credentials document for a role.

        Declared sync so the blocking STS call runs in the threadpool.
        """
        try:
            role = role_set.role(alias)
        except UnknownRoleError as e:
            return error_response(str(e), status.HTTP_404_NOT_FOUND)

        try:
            credentials = role.credentials()
        except AssumeRoleError as e:
            logger.error("Credential fetch failed", alias=alias, role_arn=role.arn, error=str(e))
            return error_response(f"failed to assume role: {e}", status.HTTP_500_INTERNAL_SERVER_ERROR)

        document = CredentialsDocument.from_credentials(credentials)
        return Response(
            content=document.render(),
            media_type=JSON_CONTENT_TYPE,
            headers={"Server": SERVER_HEADER},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return error_response("Endpoint not found", exc.status_code)
        detail = exc.detail if hasattr(exc, "detail") else str(exc)
        return error_response(str(detail), exc.status_code)

    @app.exception_handler(MalformedRequestError)
    async def malformed_request_handler(request: Request, exc: MalformedRequestError):
        logger.warning("Rejected malformed request body", path=request.url.path, error=exc.message)
        return error_response(exc.message, status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Request validation failed", errors=exc.errors())
        return error_response("Invalid request", status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", error=str(exc), exc_info=True)
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(
        "imds_switch.app:create_app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=port,
        log_level=log_level.lower(),
        factory=True,
    )
