"""
Pydantic Role Registry Schema

Defines the data model for the role registry file:
- Named roles (alias -> ARN and optional session name)
- The default active role
- Optional caller credentials used to reach STS

Module: config_schema
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class RoleConfig(BaseModel):
    """A single assumable role"""

    arn: str = Field(..., description="IAM role ARN to assume")
    session_name: Optional[str] = Field(
        None, alias="sessionName", description="RoleSessionName (generated from hostname if omitted)"
    )

    class Config:
        populate_by_name = True  # Allow both camelCase and snake_case
        extra = "forbid"

    @field_validator("arn")
    @classmethod
    def validate_arn(cls, v: str) -> str:
        """Validate role ARN"""
        if not v.startswith("arn:"):
            raise ValueError(f"Invalid role ARN: {v}. Must start with 'arn:'")
        return v

    @field_validator("session_name")
    @classmethod
    def validate_session_name(cls, v: Optional[str]) -> Optional[str]:
        """Validate session name length (AWS limit is 2-64 characters)"""
        if v is None:
            return v
        if not 2 <= len(v) <= 64:
            raise ValueError(f"Invalid session name: {v}. Must be 2-64 characters long")
        return v


class CallerCredentials(BaseModel):
    """Credentials used to call STS"""

    profile: Optional[str] = Field(None, description="AWS profile to use")
    region: Optional[str] = Field(None, description="AWS region for STS")

    class Config:
        extra = "forbid"


class RegistryConfig(BaseModel):
    """
    Role Registry

    The set of roles an operator can switch between, in the order they
    are listed in the file.
    """

    credentials: CallerCredentials = Field(default_factory=CallerCredentials)
    default_role: str = Field(..., alias="defaultRole", description="Alias active at startup")
    roles: Dict[str, RoleConfig] = Field(..., description="Role aliases mapped to role definitions")

    class Config:
        populate_by_name = True
        extra = "forbid"

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, v: Dict[str, RoleConfig]) -> Dict[str, RoleConfig]:
        """Validate role aliases"""
        if not v:
            raise ValueError("At least one role must be configured")
        for alias in v:
            if not alias or not alias.strip():
                raise ValueError("Role aliases must be non-empty")
            if "/" in alias:
                raise ValueError(f"Invalid role alias: {alias}. Must not contain '/'")
        return v

    @model_validator(mode="after")
    def validate_default_role(self) -> "RegistryConfig":
        """Validate that the default role is configured"""
        if self.default_role not in self.roles:
            raise ValueError(
                f"default_role '{self.default_role}' is not a configured role "
                f"(configured: {', '.join(self.roles)})"
            )
        return self
