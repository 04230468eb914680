"""The active role selection shared by all request handlers."""

import threading

import structlog

from .role_set import RoleSet

logger = structlog.get_logger(__name__)


class ActiveRoleState:
    """Alias of the role currently served as the instance profile role.

    This is the only mutable state shared between requests. ``set`` validates
    the alias before taking the lock, so a rejected switch never changes what
    ``get`` returns. The lock is never held while credentials are fetched.
    """

    def __init__(self, role_set: RoleSet, default_alias: str):
        """
        Args:
            role_set: Roles the active alias may be chosen from
            default_alias: Alias active at startup

        Raises:
            UnknownRoleError: If ``default_alias`` is not in ``role_set``
        """
        self._role_set = role_set
        self._lock = threading.Lock()

        role_set.role(default_alias)
        self._alias = default_alias

    def get(self) -> str:
        with self._lock:
            return self._alias

    def set(self, alias: str) -> None:
        """Make ``alias`` the active role.

        Raises:
            UnknownRoleError: If ``alias`` is not configured. The active role is unchanged.
        """
        self._role_set.role(alias)

        with self._lock:
            previous, self._alias = self._alias, alias

        logger.info("Active role changed", previous=previous, current=alias)
