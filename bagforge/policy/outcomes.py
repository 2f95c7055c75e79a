"""
Outcomes of converting policy entries on restore.

Each conversion step either succeeds silently or reports a ConversionIssue.
Recoverable issues are logged and collected into the RestoreReport returned
to the caller; a fatal issue carries the error that aborts the restore.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from bagforge.core.exceptions import PackageError


class OutcomeKind(str, Enum):
    """Severity of a conversion issue."""

    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ConversionIssue:
    """A problem found while converting one field of one policy entry."""

    kind: OutcomeKind
    field: str
    message: str
    error: Optional[PackageError] = None

    @classmethod
    def recoverable(cls, field: str, message: str) -> "ConversionIssue":
        return cls(OutcomeKind.RECOVERABLE, field, message)

    @classmethod
    def fatal(cls, field: str, error: PackageError) -> "ConversionIssue":
        return cls(OutcomeKind.FATAL, field, str(error), error)

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL


@dataclass
class RestoreReport:
    """Result of a policy restore: records installed and issues tolerated."""

    restored: int = 0
    issues: List[ConversionIssue] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [issue.message for issue in self.issues if not issue.is_fatal]

    @property
    def ok(self) -> bool:
        return not self.issues
