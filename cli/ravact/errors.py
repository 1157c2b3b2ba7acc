from __future__ import annotations


class RavactError(Exception):
    """Base error shown to the user as a banner."""


class NotInstalledError(RavactError):
    """Service or its config file is missing."""


class ValidationError(RavactError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class CommandError(RavactError):
    def __init__(self, message: str, output: str = "", exit_code: int | None = None):
        super().__init__(message)
        self.output = output
        self.exit_code = exit_code


class NotImplementedFeature(RavactError):
    def __init__(self, feature: str = ""):
        super().__init__(f"{feature}: feature not implemented yet" if feature else "feature not implemented yet")
