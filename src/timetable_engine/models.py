"""Data models for the timetable engine."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

from .exceptions import SearchBudgetExceeded


class Weekday(str, Enum):
    """Calendar weekdays usable as working days."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class RoomType(str, Enum):
    """Kind of physical room."""

    CLASSROOM = "classroom"
    LAB = "lab"
    SPECIALIST = "specialist"
    HALL = "hall"
    OTHER = "other"


class EntityType(str, Enum):
    """Entity an availability exception applies to."""

    TEACHER = "teacher"
    ROOM = "room"
    CLASS = "class"


class ConflictType(str, Enum):
    """Kinds of double booking found by the conflict detector."""

    TEACHER_DOUBLE_BOOKED = "teacher_double_booked"
    ROOM_DOUBLE_BOOKED = "room_double_booked"
    CLASS_DOUBLE_BOOKED = "class_double_booked"


class SearchStatus(str, Enum):
    """How a search run ended."""

    COMPLETE = "complete"
    BUDGET_EXHAUSTED = "budget_exhausted"
    TIME_LIMIT = "time_limit"
    CANCELLED = "cancelled"
    SEARCH_EXHAUSTED = "search_exhausted"


@dataclass(frozen=True, order=True)
class TimeSlot:
    """A (day, period) coordinate in the weekly lattice.

    ``day_index`` is the position of the day in the configured working days,
    ``period`` is 1-based.
    """

    day_index: int
    period: int

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return {"day_index": self.day_index, "period": self.period}

    def __str__(self) -> str:
        return f"D{self.day_index}P{self.period}"


@dataclass(frozen=True)
class PeriodWindow:
    """An inclusive period range, on one day or on every day."""

    start_period: int
    end_period: int
    day_index: int | None = None

    def contains(self, slot: TimeSlot) -> bool:
        if self.day_index is not None and self.day_index != slot.day_index:
            return False
        return self.start_period <= slot.period <= self.end_period

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "day_index": self.day_index,
            "start_period": self.start_period,
            "end_period": self.end_period,
        }


@dataclass
class Teacher:
    """A teacher with capabilities, limits and preferences."""

    id: str
    name: str
    max_periods_per_day: int | None = None
    max_periods_per_week: int | None = None
    preferred_periods: frozenset[TimeSlot] = frozenset()
    unavailable_periods: frozenset[TimeSlot] = frozenset()
    # subject_id -> proficiency (1..5)
    capabilities: dict[str, int] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Teacher):
            return False
        return self.id == other.id

    def can_teach(self, subject_id: str) -> bool:
        return subject_id in self.capabilities

    def proficiency(self, subject_id: str) -> int:
        return self.capabilities.get(subject_id, 0)


@dataclass(frozen=True)
class TeacherCapability:
    """A teacher's ability to teach one subject."""

    teacher_id: str
    subject_id: str
    proficiency: int = 3


@dataclass(frozen=True)
class Subject:
    """A subject and its physical room requirements."""

    id: str
    name: str
    periods_per_week: int = 0
    duration_minutes: int = 40
    requires_lab: bool = False
    requires_specialist_room: bool = False


@dataclass(frozen=True)
class SubjectRequirement:
    """How often a class needs a subject each week."""

    class_id: str
    subject_id: str
    periods_per_week: int
    duration_minutes: int = 40
    requires_double_period: bool = False
    preferred_windows: tuple[PeriodWindow, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.class_id, self.subject_id)


@dataclass
class ClassGroup:
    """A class (cohort of students) and its weekly subject requirements."""

    id: str
    name: str
    grade_level: int | None = None
    student_count: int = 0
    requirements: tuple[SubjectRequirement, ...] = ()

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassGroup):
            return False
        return self.id == other.id


@dataclass
class Room:
    """A physical room for scheduling."""

    id: str
    name: str
    room_type: RoomType = RoomType.CLASSROOM
    capacity: int = 0
    is_lab: bool = False
    is_specialist: bool = False
    equipment: tuple[str, ...] = ()
    # Empty means the room is open in every slot
    availability: tuple[PeriodWindow, ...] = ()

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Room):
            return False
        return self.id == other.id

    @property
    def is_special(self) -> bool:
        return self.is_lab or self.is_specialist

    def is_open(self, slot: TimeSlot) -> bool:
        """Check the room's availability windows for a slot."""
        if not self.availability:
            return True
        return any(window.contains(slot) for window in self.availability)

    def satisfies(self, subject: Subject, student_count: int = 0) -> bool:
        """Check lab, specialist and capacity requirements for a subject."""
        if subject.requires_lab and not self.is_lab:
            return False
        if subject.requires_specialist_room and not self.is_specialist:
            return False
        if self.capacity > 0 and student_count > 0 and self.capacity < student_count:
            return False
        return True


@dataclass(frozen=True)
class AvailabilityException:
    """A time-bounded availability change for a teacher, room or class."""

    entity_type: EntityType
    entity_id: str
    day_index: int
    periods: frozenset[int]
    available: bool = False
    recurring: bool = True

    def slots(self) -> list[TimeSlot]:
        return [TimeSlot(self.day_index, period) for period in sorted(self.periods)]


@dataclass(frozen=True)
class FixedAssignment:
    """A pinned entry that the solver must keep as given."""

    class_id: str
    subject_id: str
    teacher_id: str
    room_id: str
    slot: TimeSlot


@dataclass(frozen=True)
class Variable:
    """One required weekly occurrence of a subject for a class."""

    class_id: str
    subject_id: str
    occurrence: int

    @property
    def id(self) -> str:
        return f"{self.class_id}_{self.subject_id}_{self.occurrence}"

    @property
    def requirement_key(self) -> tuple[str, str]:
        return (self.class_id, self.subject_id)


class Candidate(NamedTuple):
    """A domain entry: a (slot, teacher, room) triple."""

    slot: TimeSlot
    teacher_id: str
    room_id: str


@dataclass(frozen=True)
class Assignment:
    """A variable bound to a slot, teacher and room."""

    variable_id: str
    class_id: str
    subject_id: str
    slot: TimeSlot
    teacher_id: str
    room_id: str
    pinned: bool = False

    @classmethod
    def for_variable(
        cls, variable: Variable, candidate: Candidate, pinned: bool = False
    ) -> "Assignment":
        return cls(
            variable_id=variable.id,
            class_id=variable.class_id,
            subject_id=variable.subject_id,
            slot=candidate.slot,
            teacher_id=candidate.teacher_id,
            room_id=candidate.room_id,
            pinned=pinned,
        )

    @property
    def candidate(self) -> Candidate:
        return Candidate(self.slot, self.teacher_id, self.room_id)

    def moved_to(self, candidate: Candidate) -> "Assignment":
        """Return a copy placed at another candidate."""
        return replace(
            self,
            slot=candidate.slot,
            teacher_id=candidate.teacher_id,
            room_id=candidate.room_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert assignment to dictionary."""
        return {
            "variable_id": self.variable_id,
            "class_id": self.class_id,
            "subject_id": self.subject_id,
            "day_index": self.slot.day_index,
            "period": self.slot.period,
            "teacher_id": self.teacher_id,
            "room_id": self.room_id,
            "pinned": self.pinned,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Assignment":
        """Create from dictionary."""
        return cls(
            variable_id=data["variable_id"],
            class_id=data["class_id"],
            subject_id=data["subject_id"],
            slot=TimeSlot(int(data["day_index"]), int(data["period"])),
            teacher_id=data["teacher_id"],
            room_id=data["room_id"],
            pinned=bool(data.get("pinned", False)),
        )


@dataclass
class SearchResult:
    """Outcome of one solver run, complete or partial."""

    assignments: list[Assignment] = field(default_factory=list)
    unresolved_variables: list[str] = field(default_factory=list)
    iteration_count: int = 0
    backtrack_count: int = 0
    elapsed_ms: float = 0.0
    status: SearchStatus = SearchStatus.COMPLETE

    @property
    def is_complete(self) -> bool:
        return self.status == SearchStatus.COMPLETE and not self.unresolved_variables

    def raise_for_status(self) -> None:
        """Raise SearchBudgetExceeded if the search did not finish."""
        if not self.is_complete:
            raise SearchBudgetExceeded(
                self.status.value, self.unresolved_variables, self.iteration_count
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "assignments": [a.to_dict() for a in self.assignments],
            "unresolved_variables": self.unresolved_variables,
            "iteration_count": self.iteration_count,
            "backtrack_count": self.backtrack_count,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass(frozen=True)
class Conflict:
    """A double booking found in a set of assignments."""

    conflict_type: ConflictType
    slot: TimeSlot
    entity_id: str
    variable_ids: tuple[str, ...]
    description: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.conflict_type.value,
            "day_index": self.slot.day_index,
            "period": self.slot.period,
            "entity_id": self.entity_id,
            "variable_ids": list(self.variable_ids),
            "description": self.description,
        }


@dataclass
class TeacherWorkload:
    """Periods taught by one teacher."""

    teacher_id: str
    teacher_name: str
    total_periods: int = 0
    max_periods_per_week: int | None = None
    periods_by_day: dict[int, int] = field(default_factory=dict)

    @property
    def utilization(self) -> float | None:
        if not self.max_periods_per_week:
            return None
        return self.total_periods / self.max_periods_per_week

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "teacher_id": self.teacher_id,
            "teacher_name": self.teacher_name,
            "total_periods": self.total_periods,
            "max_periods_per_week": self.max_periods_per_week,
            "utilization": self.utilization,
            "periods_by_day": {str(k): v for k, v in sorted(self.periods_by_day.items())},
        }


@dataclass
class RoomUtilization:
    """Occupied versus open slots of one room."""

    room_id: str
    room_name: str
    used_periods: int = 0
    available_periods: int = 0
    room_type: str = "classroom"
    equipment: tuple[str, ...] = ()

    @property
    def utilization(self) -> float:
        if self.available_periods == 0:
            return 0.0
        return self.used_periods / self.available_periods

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "room_id": self.room_id,
            "room_name": self.room_name,
            "room_type": self.room_type,
            "equipment": list(self.equipment),
            "used_periods": self.used_periods,
            "available_periods": self.available_periods,
            "utilization": round(self.utilization, 4),
        }


@dataclass
class ScoreBreakdown:
    """Weighted score with per-goal components."""

    total: float = 0.0
    components: dict[str, float] = field(default_factory=dict)
    weights: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": round(self.total, 2),
            "components": {k: round(v, 2) for k, v in self.components.items()},
            "weights": self.weights,
        }


@dataclass(frozen=True)
class TimetableVersion:
    """Immutable snapshot of a generated timetable."""

    version_id: str
    school_id: str
    term_id: str
    name: str
    assignments: tuple[Assignment, ...]
    status: SearchStatus
    score: float
    conflict_count: int = 0
    goals: tuple[str, ...] = ()
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def metadata(self) -> dict[str, Any]:
        """Version header without the assignment list."""
        return {
            "school_id": self.school_id,
            "term_id": self.term_id,
            "name": self.name,
            "status": self.status.value,
            "score": round(self.score, 2),
            "conflict_count": self.conflict_count,
            "goals": list(self.goals),
            "created_at": self.created_at,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {"version_id": self.version_id}
        data.update(self.metadata())
        data["assignments"] = [a.to_dict() for a in self.assignments]
        return data


@dataclass
class GenerationReport:
    """Summary returned to the caller of a generation run."""

    version_id: str | None
    score: float
    conflicts: list[Conflict] = field(default_factory=list)
    teacher_workload: list[TeacherWorkload] = field(default_factory=list)
    room_utilization: list[RoomUtilization] = field(default_factory=list)
    iteration_count: int = 0
    elapsed_ms: float = 0.0
    status: SearchStatus = SearchStatus.COMPLETE
    unresolved_variables: list[str] = field(default_factory=list)
    backtrack_count: int = 0
    score_breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    optimization: dict[str, int] = field(default_factory=dict)
    generation_date: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def is_complete(self) -> bool:
        return self.status == SearchStatus.COMPLETE and not self.unresolved_variables

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version_id": self.version_id,
            "status": self.status.value,
            "score": round(self.score, 2),
            "score_breakdown": self.score_breakdown.to_dict(),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "teacher_workload": [w.to_dict() for w in self.teacher_workload],
            "room_utilization": [r.to_dict() for r in self.room_utilization],
            "unresolved_variables": self.unresolved_variables,
            "iteration_count": self.iteration_count,
            "backtrack_count": self.backtrack_count,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "optimization": self.optimization,
            "generation_date": self.generation_date,
        }
