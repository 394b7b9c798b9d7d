"""Custom exceptions for the timetable engine."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Conflict


class TimetableError(Exception):
    """Base exception for timetable generation errors."""

    pass


class ConfigurationError(TimetableError):
    """Configuration or input payload failed validation."""

    def __init__(self, message: str, key: str | None = None, source: str | None = None):
        self.key = key
        self.source = source
        location = ""
        if source:
            location += f" in {source}"
        if key:
            location += f" (key '{key}')"
        super().__init__(f"Invalid configuration{location}: {message}")


@dataclass(frozen=True)
class InfeasibilityIssue:
    """One reason why the input cannot be scheduled."""

    constraint: str
    message: str
    class_id: str | None = None
    subject_id: str | None = None
    variable_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "constraint": self.constraint,
            "message": self.message,
            "class_id": self.class_id,
            "subject_id": self.subject_id,
            "variable_id": self.variable_id,
        }

    def __str__(self) -> str:
        return f"[{self.constraint}] {self.message}"


class InfeasibleInputError(TimetableError):
    """Input data admits no schedule; raised before any search happens."""

    def __init__(self, issues: list[InfeasibilityIssue]):
        self.issues = list(issues)
        message = f"Input is infeasible ({len(self.issues)} issue(s))"
        if self.issues:
            message += ": " + "; ".join(str(issue) for issue in self.issues[:5])
            if len(self.issues) > 5:
                message += f"; ... and {len(self.issues) - 5} more"
        super().__init__(message)


class SearchBudgetExceeded(TimetableError):
    """Search stopped before every variable was assigned.

    The solver never raises this itself; it returns a partial SearchResult.
    Callers that prefer an exception use ``SearchResult.raise_for_status()``.
    """

    def __init__(self, status: str, unresolved: list[str], iteration_count: int):
        self.status = status
        self.unresolved = list(unresolved)
        self.iteration_count = iteration_count
        super().__init__(
            f"Search stopped ({status}) after {iteration_count} iterations "
            f"with {len(self.unresolved)} unresolved variable(s)"
        )


class PersistenceFailure(TimetableError):
    """Writing a timetable version failed; nothing was published."""

    def __init__(self, message: str, version_id: str | None = None):
        self.version_id = version_id
        prefix = f"Version '{version_id}': " if version_id else ""
        super().__init__(f"Persistence failed. {prefix}{message}")


class InternalConsistencyViolation(TimetableError):
    """A result claimed complete failed independent re-validation."""

    def __init__(
        self,
        conflicts: "list[Conflict]",
        missing: list[str] | None = None,
        duplicated: list[str] | None = None,
    ):
        self.conflicts = list(conflicts)
        self.missing = list(missing or [])
        self.duplicated = list(duplicated or [])
        super().__init__(
            "Solver produced an inconsistent complete solution: "
            f"{len(self.conflicts)} conflict(s), {len(self.missing)} missing, "
            f"{len(self.duplicated)} duplicated variable(s)"
        )
