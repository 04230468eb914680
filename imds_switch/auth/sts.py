"""STS-backed assume-role provider."""

from typing import Optional

import boto3
import structlog
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import AssumeRoleError
from .role import Credentials

logger = structlog.get_logger(__name__)


class StsAssumeRoleProvider:
    """Assumes IAM roles through AWS STS.

    The STS client is created once and shared by all roles. It uses a single
    attempt and bounded connect/read timeouts, so a slow STS endpoint fails
    the request instead of hanging it.

    Attributes:
        region: AWS region for the STS client
        profile: Optional boto3 profile supplying the caller's credentials
        duration_seconds: Lifetime requested for each set of credentials
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        timeout: float = 10.0,
        duration_seconds: int = 3600,
    ):
        self.region = region
        self.profile = profile
        self.duration_seconds = duration_seconds

        session = boto3.Session(profile_name=profile or None, region_name=region)
        self._sts_client = session.client(
            "sts",
            config=BotocoreConfig(
                retries={"total_max_attempts": 1, "mode": "standard"},
                connect_timeout=timeout,
                read_timeout=timeout,
            ),
        )

        logger.info(
            "STS assume-role provider initialized",
            region=region,
            profile=profile or "default-credentials",
            timeout_seconds=timeout,
            duration_seconds=duration_seconds,
        )

    def assume_role(self, role_arn: str, session_name: str) -> Credentials:
        """Assume IAM role and return temporary credentials.

        Args:
            role_arn: ARN of IAM role to assume
            session_name: RoleSessionName recorded in CloudTrail

        Returns:
            Credentials with a timezone-aware expiration

        Raises:
            AssumeRoleError: If role assumption fails
        """
        logger.debug("Assuming IAM role", role_arn=role_arn, session_name=session_name)

        try:
            response = self._sts_client.assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name,
                DurationSeconds=self.duration_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to assume role",
                role_arn=role_arn,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise AssumeRoleError(role_arn, str(e)) from e

        credentials = response["Credentials"]

        logger.info(
            "Role assumed successfully",
            role_arn=role_arn,
            expires_at=credentials["Expiration"].isoformat(),
        )

        return Credentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials["Expiration"],
        )
