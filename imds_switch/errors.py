"""Exception types shared across the metadata service and control API."""


class ImdsSwitchError(Exception):
    """Base class for errors raised by imds-switch."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownRoleError(ImdsSwitchError):
    """Raised when an alias does not name a configured role."""

    def __init__(self, alias: str):
        super().__init__(f"unknown role: {alias}")
        self.alias = alias


class MalformedRequestError(ImdsSwitchError):
    """Raised when a control API request body cannot be decoded."""


class AssumeRoleError(ImdsSwitchError):
    """Raised when temporary credentials cannot be obtained for a role."""

    def __init__(self, role_arn: str, message: str):
        super().__init__(message)
        self.role_arn = role_arn


class ConfigFileError(ImdsSwitchError):
    """Raised when the role registry file cannot be loaded or validated."""

    def __init__(self, message: str, suggestion: str = ""):
        full_message = message
        if suggestion:
            full_message += f"\n\n{suggestion}"
        super().__init__(full_message)
        self.message = message
        self.suggestion = suggestion

    def format(self) -> str:
        """Format error for console output with suggestions."""
        output = f"Configuration error: {self.message}"
        if self.suggestion:
            output += f"\n   {self.suggestion}"
        return output
