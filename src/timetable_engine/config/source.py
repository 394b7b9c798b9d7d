"""Data source interface for scheduling input."""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Row = dict[str, Any]


@dataclass(frozen=True)
class Scope:
    """A school/term pair that one timetable is generated for."""

    school_id: str
    term_id: str

    def __str__(self) -> str:
        return f"{self.school_id}/{self.term_id}"


@runtime_checkable
class SchedulingDataSource(Protocol):
    """Read access to the scheduling entities of a scope.

    Every method returns raw rows (plain dictionaries); the gatherer
    normalizes them.
    """

    def list_teachers(self, scope: Scope) -> list[Row]: ...

    def list_classes(self, scope: Scope) -> list[Row]: ...

    def list_subjects(self, scope: Scope) -> list[Row]: ...

    def list_rooms(self, scope: Scope) -> list[Row]: ...

    def list_availability(self, scope: Scope) -> list[Row]: ...

    def list_teacher_capabilities(self, scope: Scope) -> list[Row]: ...

    def list_class_subject_requirements(self, scope: Scope) -> list[Row]: ...

    def list_fixed_assignments(self, scope: Scope) -> list[Row]: ...


@dataclass
class ScopeData:
    """Raw rows of one scope."""

    teachers: list[Row] = field(default_factory=list)
    classes: list[Row] = field(default_factory=list)
    subjects: list[Row] = field(default_factory=list)
    rooms: list[Row] = field(default_factory=list)
    availability: list[Row] = field(default_factory=list)
    teacher_capabilities: list[Row] = field(default_factory=list)
    class_subject_requirements: list[Row] = field(default_factory=list)
    fixed_assignments: list[Row] = field(default_factory=list)
    settings: Row = field(default_factory=dict)


class InMemorySource:
    """Data source backed by dictionaries, keyed by scope."""

    def __init__(self, data: dict[Scope, ScopeData] | None = None):
        self._data: dict[Scope, ScopeData] = dict(data or {})

    def add_scope(self, scope: Scope, data: ScopeData) -> None:
        self._data[scope] = data

    def _scope(self, scope: Scope) -> ScopeData:
        return self._data.get(scope, ScopeData())

    def list_teachers(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).teachers]

    def list_classes(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).classes]

    def list_subjects(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).subjects]

    def list_rooms(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).rooms]

    def list_availability(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).availability]

    def list_teacher_capabilities(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).teacher_capabilities]

    def list_class_subject_requirements(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).class_subject_requirements]

    def list_fixed_assignments(self, scope: Scope) -> list[Row]:
        return [dict(r) for r in self._scope(scope).fixed_assignments]

    def get_settings(self, scope: Scope) -> Row:
        """Per-scope setting overrides."""
        return dict(self._scope(scope).settings)
