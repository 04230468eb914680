import os
from dataclasses import dataclass
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


def _float_env(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}. Must be a number") from None
    if value < minimum:
        raise ValueError(f"Invalid value for {name}: {raw!r}. Must be >= {minimum}")
    return value


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}. Must be an integer") from None
    if value < minimum:
        raise ValueError(f"Invalid value for {name}: {raw!r}. Must be >= {minimum}")
    return value


@dataclass
class Config:
    """Runtime configuration read from environment variables.

    The role registry itself (aliases, ARNs, default role) lives in a JSON
    file; see ``config_file.RegistryFile``. Environment variables choose that
    file and tune how the service talks to STS.

    Optional environment variables:
        - IMDS_SWITCH_CONFIG: Role registry path (default: XDG profile path)
        - IMDS_SWITCH_PROFILE: Registry profile name (default: default)
        - IMDS_SWITCH_DEFAULT_ROLE: Override the registry's default_role
        - AWS_REGION: STS region (default: registry credentials.region, then us-east-1)
        - AWS_PROFILE: boto3 profile for calling STS (default: registry credentials.profile)
        - IMDS_SWITCH_STS_TIMEOUT_SECONDS: STS connect/read timeout (default: 10)
        - IMDS_SWITCH_SESSION_DURATION_SECONDS: Requested credential lifetime (default: 3600)
        - IMDS_SWITCH_REFRESH_MARGIN_SECONDS: Refresh credentials this long before expiry (default: 0)
        - APP_ENV: Application environment; "production" enables JSON logs (default: development)
        - LOG_LEVEL: Logging level (default: INFO)
        - HOST / PORT: Bind address for `imds-switch serve` (default: 127.0.0.1:8080)
    """

    config_path: Optional[str] = None
    profile: str = "default"
    default_role: Optional[str] = None
    aws_region: Optional[str] = None
    aws_profile: Optional[str] = None
    sts_timeout: float = 10.0
    session_duration: int = 3600
    refresh_margin: float = 0.0
    app_env: str = ""
    log_level: str = ""
    host: str = ""
    port: int = 0

    def __post_init__(self):
        self.config_path = os.getenv("IMDS_SWITCH_CONFIG") or None
        self.profile = os.getenv("IMDS_SWITCH_PROFILE", "default")
        self.default_role = os.getenv("IMDS_SWITCH_DEFAULT_ROLE") or None

        self.aws_region = os.getenv("AWS_REGION") or None
        self.aws_profile = os.getenv("AWS_PROFILE") or None

        self.sts_timeout = _float_env("IMDS_SWITCH_STS_TIMEOUT_SECONDS", 10.0, minimum=0.1)
        # STS accepts 900..43200 seconds
        self.session_duration = _int_env("IMDS_SWITCH_SESSION_DURATION_SECONDS", 3600, minimum=900)
        self.refresh_margin = _float_env("IMDS_SWITCH_REFRESH_MARGIN_SECONDS", 0.0)

        self.app_env = os.getenv("APP_ENV", os.getenv("ENVIRONMENT", "development"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self.host = os.getenv("HOST", "127.0.0.1")
        self.port = _int_env("PORT", 8080, minimum=1)


def get_config() -> Config:
    """Get configuration instance from the current environment."""
    return Config()
