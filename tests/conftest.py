"""Pytest configuration and fixtures for test isolation."""

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from imds_switch.auth.role import Credentials
from imds_switch.errors import AssumeRoleError

DEV_ARN = "arn:aws:iam::111:role/dev"
PROD_ARN = "arn:aws:iam::222:role/prod"


class FakeClock:
    """Controllable replacement for the wall clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


class FakeAssumeRoleProvider:
    """Stub STS that records calls and issues predictable credentials."""

    def __init__(self, clock=None, lifetime: timedelta = timedelta(hours=1)):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.lifetime = lifetime
        self.calls = []
        self.error = None
        self.delay = None
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def assume_role(self, role_arn: str, session_name: str) -> Credentials:
        with self._lock:
            self.calls.append((role_arn, session_name))
            number = len(self.calls)

        if self.delay is not None:
            self.delay.wait(timeout=5)
        if self.error is not None:
            raise AssumeRoleError(role_arn, self.error)

        name = role_arn.rsplit("/", 1)[-1]
        return Credentials(
            access_key_id=f"ASIA{name.upper()}{number:04d}",
            secret_access_key=f"secret-{name}-{number}",
            session_token=f"token-{name}-{number}",
            expiration=self.clock() + self.lifetime,
        )


@pytest.fixture(scope="function", autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Automatically isolate each test from the host environment.

    Clears variables that would point the service at a developer's real
    registry or AWS profile, and sends the XDG lookup to an empty directory.
    """
    env_vars_to_clear = [
        "IMDS_SWITCH_CONFIG",
        "IMDS_SWITCH_PROFILE",
        "IMDS_SWITCH_DEFAULT_ROLE",
        "IMDS_SWITCH_STS_TIMEOUT_SECONDS",
        "IMDS_SWITCH_SESSION_DURATION_SECONDS",
        "IMDS_SWITCH_REFRESH_MARGIN_SECONDS",
        "IMDS_SWITCH_ENDPOINT",
        "AWS_PROFILE",
        "AWS_REGION",
        "APP_ENV",
        "ENVIRONMENT",
        "LOG_LEVEL",
        "HOST",
        "PORT",
        "BUILD_VERSION",
    ]

    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    yield


@pytest.fixture
def registry_data():
    """Registry with the dev/prod roles, dev active by default."""
    return {
        "credentials": {"region": "us-east-1"},
        "default_role": "dev",
        "roles": {
            "dev": {"arn": DEV_ARN, "session_name": "dev-session"},
            "prod": {"arn": PROD_ARN, "session_name": "prod-session"},
        },
    }


@pytest.fixture
def registry_path(tmp_path, registry_data):
    path = tmp_path / "roles.json"
    path.write_text(json.dumps(registry_data))
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider_factory(clock):
    """Build independent stub providers sharing the test clock."""

    def factory():
        return FakeAssumeRoleProvider(clock=clock)

    return factory


@pytest.fixture
def provider(provider_factory):
    return provider_factory()


@pytest.fixture
def realtime_provider():
    """Stub provider whose credentials expire relative to the real clock."""
    return FakeAssumeRoleProvider()
