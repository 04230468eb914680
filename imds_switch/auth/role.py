"""Assumable IAM roles with per-role credential caching.

A ``Role`` pairs an immutable identity (ARN and session name) with a cache of
the temporary credentials last obtained for it. Credentials are fetched lazily
on first use and refreshed once they expire. Each role guards its cache with
its own lock, so polling one role never waits on another role's STS call.
"""

import socket
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

SESSION_NAME_PREFIX = "imds-switch"
MAX_SESSION_NAME_LENGTH = 64


@dataclass(frozen=True)
class Credentials:
    """Temporary AWS credentials returned by an assume-role call."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime

    def __post_init__(self):
        # Naive expirations are UTC
        if self.expiration.tzinfo is None:
            object.__setattr__(self, "expiration", self.expiration.replace(tzinfo=timezone.utc))


class AssumeRoleProvider(Protocol):
    """Anything that can exchange a role identity for temporary credentials."""

    def assume_role(self, role_arn: str, session_name: str) -> Credentials: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_name() -> str:
    """Generate a default session name for roles configured without one.

    Session names include the hostname for CloudTrail auditing.

    Returns:
        Session name in format: "imds-switch-{hostname}", at most 64 characters
    """
    try:
        hostname = socket.gethostname()
    except Exception:
        hostname = "unknown"

    # AWS allows [\w+=,.@-] in session names; hostnames only need '-' and '.'
    hostname = "".join(c if c.isalnum() or c in "-_." else "-" for c in hostname)
    return f"{SESSION_NAME_PREFIX}-{hostname}"[:MAX_SESSION_NAME_LENGTH]


@dataclass
class _CacheEntry:
    credentials: Credentials
    fetched_at: datetime


class Role:
    """An assumable identity with lazily fetched, cached credentials.

    Usage:
        role = Role(
            arn="arn:aws:iam::123456789012:role/Developer",
            session_name="imds-switch-laptop",
            provider=StsAssumeRoleProvider(region="us-east-1"),
        )
        creds = role.credentials()

    The lock is held across the upstream call, so concurrent callers that
    find the cache expired share a single fetch.
    """

    def __init__(
        self,
        arn: str,
        session_name: str,
        provider: AssumeRoleProvider,
        refresh_margin: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utc_now,
    ):
        self._arn = arn
        self._session_name = session_name
        self._provider = provider
        self._refresh_margin = refresh_margin
        self._clock = clock

        self._lock = threading.Lock()
        self._cache: Optional[_CacheEntry] = None

    @property
    def arn(self) -> str:
        return self._arn

    @property
    def session_name(self) -> str:
        return self._session_name

    @property
    def cached_credentials(self) -> Optional[Credentials]:
        """Currently cached credentials, without fetching or checking expiry."""
        with self._lock:
            return self._cache.credentials if self._cache else None

    def _is_fresh(self, entry: Optional[_CacheEntry], now: datetime) -> bool:
        if entry is None:
            return False
        return now < entry.credentials.expiration - self._refresh_margin

    def credentials(self) -> Credentials:
        """Return valid temporary credentials for this role.

        Returns cached credentials while they are unexpired, otherwise assumes
        the role again and replaces the cache.

        Raises:
            AssumeRoleError: If the upstream call fails. The cache is left as it was.
        """
        with self._lock:
            now = self._clock()
            if self._is_fresh(self._cache, now):
                logger.debug(
                    "Using cached credentials",
                    role_arn=self._arn,
                    expires_in_seconds=(self._cache.credentials.expiration - now).total_seconds(),
                    cached_for_seconds=(now - self._cache.fetched_at).total_seconds(),
                )
                return self._cache.credentials

            logger.debug(
                "Cached credentials missing or expired, assuming role",
                role_arn=self._arn,
                session_name=self._session_name,
                had_cache=self._cache is not None,
            )
            credentials = self._provider.assume_role(self._arn, self._session_name)
            self._cache = _CacheEntry(credentials=credentials, fetched_at=now)
            return credentials

    def __repr__(self) -> str:
        return f"Role(arn={self._arn!r}, session_name={self._session_name!r})"
