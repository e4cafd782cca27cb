"""Exception hierarchy for fuzzy-picker.

Failures from external sources are contained by the search session and
turned into notices; these types mark where they came from.
"""


class PickerError(Exception):
    """Base exception for all fuzzy-picker errors.

    All domain-specific exceptions inherit from this base class,
    enabling consistent error handling across the application.
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} ({self.suggestion})"
        return self.message


class SourceError(PickerError):
    """A data source could not deliver candidates."""

    pass


class SourceUnavailableError(SourceError):
    """Source could not start (e.g. backing tool missing)."""

    pass


class FetchFailedError(SourceError):
    """A started fetch terminated with an error status."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message, suggestion)
        self.status = status


class ConfigError(PickerError):
    """Configuration is invalid or missing."""

    pass


class ConfigValidationError(ConfigError):
    """Configuration value failed validation."""

    pass
