import json
from dataclasses import dataclass
from datetime import timezone

from dataclasses_json import LetterCase, dataclass_json
from pydantic import BaseModel, Field

from .auth.role import Credentials

# Placeholder the real metadata service reports; kept constant so responses
# match it byte for byte.
LAST_UPDATED = "2015-07-07T23:06:33Z"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
FIELD_ORDER = ("Code", "LastUpdated", "Type", "AccessKeyId", "SecretAccessKey", "Token", "Expiration")


class ActivateRequest(BaseModel):
    alias: str = Field(..., description="Alias of the role to activate")

    class Config:
        extra = "ignore"


@dataclass_json(letter_case=LetterCase.PASCAL)  # type: ignore[misc]
@dataclass
class CredentialsDocument:
    """Body served at iam/security-credentials/<role>."""

    access_key_id: str
    secret_access_key: str
    token: str
    expiration: str
    code: str = "Success"
    last_updated: str = LAST_UPDATED
    type: str = "AWS-HMAC"

    @classmethod
    def from_credentials(cls, credentials: Credentials) -> "CredentialsDocument":
        expiration = credentials.expiration.astimezone(timezone.utc)
        return cls(
            access_key_id=credentials.access_key_id,
            secret_access_key=credentials.secret_access_key,
            token=credentials.session_token,
            expiration=expiration.strftime(TIMESTAMP_FORMAT),
        )

    def render(self) -> str:
        """Pretty-printed JSON in the field order the real service uses."""
        data = self.to_dict()
        ordered = {key: data[key] for key in FIELD_ORDER}
        return json.dumps(ordered, indent=2)
