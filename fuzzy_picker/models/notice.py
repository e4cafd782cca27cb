"""User-visible notices raised by sources and sessions."""

from dataclasses import dataclass
from enum import Enum


class NoticeSeverity(Enum):
    """Notice severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A single informational message for the result sink."""

    message: str
    severity: NoticeSeverity = NoticeSeverity.INFO

    @classmethod
    def info(cls, message: str) -> "Notice":
        return cls(message, NoticeSeverity.INFO)

    @classmethod
    def warning(cls, message: str) -> "Notice":
        return cls(message, NoticeSeverity.WARNING)

    @classmethod
    def error(cls, message: str) -> "Notice":
        return cls(message, NoticeSeverity.ERROR)
