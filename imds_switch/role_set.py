"""Immutable collection of named roles."""

from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Callable, Iterator, Mapping

import structlog

from .auth.role import AssumeRoleProvider, Role, generate_session_name, utc_now
from .config_schema import RegistryConfig
from .errors import UnknownRoleError

logger = structlog.get_logger(__name__)


class RoleSet:
    """Roles keyed by alias, in configuration order.

    Built once at startup and read-only afterwards, so lookups need no locking.
    """

    def __init__(self, roles: Mapping[str, Role]):
        self._roles = MappingProxyType(dict(roles))

    @classmethod
    def from_registry(
        cls,
        registry: RegistryConfig,
        provider: AssumeRoleProvider,
        refresh_margin: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utc_now,
    ) -> "RoleSet":
        """Build roles from a validated registry, sharing one provider."""
        default_session_name = generate_session_name()
        roles = {
            alias: Role(
                arn=role_config.arn,
                session_name=role_config.session_name or default_session_name,
                provider=provider,
                refresh_margin=refresh_margin,
                clock=clock,
            )
            for alias, role_config in registry.roles.items()
        }
        logger.info("Role set loaded", roles=list(roles))
        return cls(roles)

    def role(self, alias: str) -> Role:
        """Look up a role by alias.

        Raises:
            UnknownRoleError: If no role is configured under ``alias``
        """
        try:
            return self._roles[alias]
        except KeyError:
            raise UnknownRoleError(alias) from None

    def roles(self) -> list[str]:
        """All aliases, in configuration order."""
        return list(self._roles)

    def __contains__(self, alias: object) -> bool:
        return alias in self._roles

    def __iter__(self) -> Iterator[str]:
        return iter(self._roles)

    def __len__(self) -> int:
        return len(self._roles)
