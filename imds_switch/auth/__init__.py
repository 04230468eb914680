"""AWS role identities and credential acquisition.

This module provides cached, per-role temporary credentials backed by STS.
"""

from .role import AssumeRoleProvider, Credentials, Role, generate_session_name
from .sts import StsAssumeRoleProvider

__all__ = ["AssumeRoleProvider", "Credentials", "Role", "StsAssumeRoleProvider", "generate_session_name"]
