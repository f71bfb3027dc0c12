"""Diagnostics raised while resolving the manifest against the source tree."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable

from ..errors import QuireError


class IssueSeverity(Enum):
    """Severity level for book issues."""

    ERROR = auto()
    WARNING = auto()


@dataclass(slots=True)
class BookIssue:
    """Represents a problem found in the manifest or a document."""

    message: str
    severity: IssueSeverity
    source_path: str
    line: int | None = None

    @property
    def location(self) -> str:
        if self.line is None:
            return self.source_path
        return f"{self.source_path}:{self.line}"


class BookValidationError(QuireError):
    """Raised when the manifest references missing, duplicate or invalid documents."""

    def __init__(self, issues: Iterable[BookIssue]) -> None:
        self.issues = [issue for issue in issues if issue.severity is IssueSeverity.ERROR]
        lines = [f"{issue.location}: {issue.message}" for issue in self.issues]
        noun = "error" if len(self.issues) == 1 else "errors"
        super().__init__(f"{len(self.issues)} manifest {noun}:\n" + "\n".join(lines))
