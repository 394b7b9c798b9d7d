"""Normalization of raw source rows into model objects.

Rows come from CSV files, JSON files or a database as plain dictionaries.
Every row kind has an enumerated set of recognized fields; unknown fields are
reported (warning, or ConfigurationError in strict mode). Embedded blobs such
as preferred periods or room availability may be JSON strings or decoded
lists and are converted into explicit structures.
"""

import json
import logging
from typing import Any

from .config.settings import GenerationConfig
from .constants import DEFAULT_PROFICIENCY, MAX_PROFICIENCY, MIN_PROFICIENCY
from .exceptions import ConfigurationError
from .models import (
    AvailabilityException,
    ClassGroup,
    EntityType,
    FixedAssignment,
    PeriodWindow,
    Room,
    RoomType,
    Subject,
    SubjectRequirement,
    Teacher,
    TeacherCapability,
    TimeSlot,
)
from .utils import parse_bool, parse_optional_int, periods_overlapping, resolve_day

logger = logging.getLogger(__name__)

TEACHER_FIELDS = frozenset(
    {
        "id",
        "name",
        "first_name",
        "last_name",
        "email",
        "is_active",
        "max_periods_per_day",
        "max_periods_per_week",
        "preferred_periods",
        "unavailable_periods",
    }
)
CLASS_FIELDS = frozenset(
    {"id", "name", "grade_level", "section", "student_count", "is_active"}
)
SUBJECT_FIELDS = frozenset(
    {
        "id",
        "name",
        "code",
        "periods_per_week",
        "duration_minutes",
        "requires_lab",
        "requires_specialist_room",
        "is_active",
    }
)
ROOM_FIELDS = frozenset(
    {
        "id",
        "name",
        "room_type",
        "capacity",
        "is_lab",
        "is_specialist",
        "equipment",
        "availability",
        "is_active",
    }
)
CAPABILITY_FIELDS = frozenset({"teacher_id", "subject_id", "proficiency", "is_active"})
REQUIREMENT_FIELDS = frozenset(
    {
        "class_id",
        "subject_id",
        "periods_per_week",
        "duration_minutes",
        "requires_double_period",
        "preferred_days",
        "preferred_times",
        "is_active",
    }
)
AVAILABILITY_FIELDS = frozenset(
    {
        "entity_type",
        "entity_id",
        "day",
        "start_time",
        "end_time",
        "available",
        "recurring",
        "reason",
    }
)
FIXED_FIELDS = frozenset(
    {"class_id", "subject_id", "teacher_id", "room_id", "day", "period"}
)
SLOT_FIELDS = frozenset({"day", "period"})
WINDOW_FIELDS = frozenset({"day", "start_period", "end_period"})


def is_active(row: dict[str, Any]) -> bool:
    """Rows without an ``is_active`` flag count as active."""
    value = row.get("is_active")
    if value is None or value == "":
        return True
    return parse_bool(value)


class RowNormalizer:
    """Converts raw rows of one scope into model objects."""

    def __init__(self, config: GenerationConfig, strict: bool | None = None):
        self.config = config
        self.strict = config.strict_inputs if strict is None else strict

    # ------------------------------------------------------------------
    # Field helpers
    # ------------------------------------------------------------------

    def _check_keys(
        self, row: dict[str, Any], recognized: frozenset[str], kind: str
    ) -> None:
        unknown = sorted(k for k in row if k not in recognized)
        if not unknown:
            return
        label = row.get("id") or row.get("entity_id") or row.get("class_id") or "?"
        if self.strict:
            raise ConfigurationError(
                f"unknown field(s) {', '.join(unknown)}",
                key=unknown[0],
                source=f"{kind} {label}",
            )
        logger.warning(f"Ignoring unknown field(s) {', '.join(unknown)} in {kind} {label}")

    @staticmethod
    def _required(row: dict[str, Any], key: str, kind: str) -> str:
        value = row.get(key)
        if value is None or str(value).strip() == "":
            raise ConfigurationError(f"missing required field '{key}'", key=key, source=kind)
        return str(value).strip()

    @staticmethod
    def _int(row: dict[str, Any], key: str, kind: str, default: int | None = None) -> int | None:
        try:
            value = parse_optional_int(row.get(key))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"'{row.get(key)}' is not an integer", key=key, source=kind
            ) from e
        return default if value is None else value

    @staticmethod
    def _decode_blob(value: Any, key: str, kind: str) -> list[Any]:
        """Decode a blob given as a JSON string or an already decoded list."""
        if value is None or value == "":
            return []
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"malformed JSON: {e}", key=key, source=kind) from e
        if not isinstance(value, list):
            raise ConfigurationError("expected a list", key=key, source=kind)
        return value

    def _day(self, value: Any) -> int | None:
        day_index = resolve_day(value, self.config.working_days)
        if day_index is None and value not in (None, ""):
            logger.debug(f"Dropping entry on non-working day {value!r}")
        return day_index

    def _slots(self, value: Any, key: str, kind: str) -> frozenset[TimeSlot]:
        """Decode a list of ``{"day", "period"}`` objects into TimeSlots."""
        slots = set()
        for item in self._decode_blob(value, key, kind):
            if isinstance(item, (list, tuple)) and len(item) == 2:
                item = {"day": item[0], "period": item[1]}
            if not isinstance(item, dict):
                raise ConfigurationError(f"expected a slot object, got {item!r}", key=key, source=kind)
            self._check_keys(item, SLOT_FIELDS, f"{kind} {key}")
            day_index = self._day(item.get("day"))
            period = self._int(item, "period", kind)
            if day_index is None or period is None:
                continue
            if 1 <= period <= self.config.periods_per_day:
                slots.add(TimeSlot(day_index, period))
        return frozenset(slots)

    def _windows(self, value: Any, key: str, kind: str) -> tuple[PeriodWindow, ...]:
        """Decode a list of ``{"day", "start_period", "end_period"}`` objects."""
        windows = []
        for item in self._decode_blob(value, key, kind):
            if not isinstance(item, dict):
                raise ConfigurationError(
                    f"expected a window object, got {item!r}", key=key, source=kind
                )
            self._check_keys(item, WINDOW_FIELDS, f"{kind} {key}")
            day_value = item.get("day")
            day_index = None
            if day_value not in (None, ""):
                day_index = self._day(day_value)
                if day_index is None:
                    continue
            start = self._int(item, "start_period", kind, default=1)
            end = self._int(item, "end_period", kind, default=self.config.periods_per_day)
            if start > end:
                raise ConfigurationError(
                    f"start_period {start} is after end_period {end}", key=key, source=kind
                )
            windows.append(PeriodWindow(start, end, day_index))
        return tuple(windows)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def teacher(self, row: dict[str, Any]) -> Teacher:
        self._check_keys(row, TEACHER_FIELDS, "teacher")
        teacher_id = self._required(row, "id", "teacher")
        kind = f"teacher {teacher_id}"
        name = row.get("name") or " ".join(
            str(part) for part in (row.get("first_name"), row.get("last_name")) if part
        )
        return Teacher(
            id=teacher_id,
            name=str(name or teacher_id).strip(),
            max_periods_per_day=self._int(row, "max_periods_per_day", kind),
            max_periods_per_week=self._int(row, "max_periods_per_week", kind),
            preferred_periods=self._slots(row.get("preferred_periods"), "preferred_periods", kind),
            unavailable_periods=self._slots(
                row.get("unavailable_periods"), "unavailable_periods", kind
            ),
        )

    def class_group(self, row: dict[str, Any]) -> ClassGroup:
        self._check_keys(row, CLASS_FIELDS, "class")
        class_id = self._required(row, "id", "class")
        kind = f"class {class_id}"
        name = row.get("name") or class_id
        if row.get("section"):
            name = f"{name} {row['section']}"
        return ClassGroup(
            id=class_id,
            name=str(name).strip(),
            grade_level=self._int(row, "grade_level", kind),
            student_count=self._int(row, "student_count", kind, default=0),
        )

    def subject(self, row: dict[str, Any]) -> Subject:
        self._check_keys(row, SUBJECT_FIELDS, "subject")
        subject_id = self._required(row, "id", "subject")
        kind = f"subject {subject_id}"
        return Subject(
            id=subject_id,
            name=str(row.get("name") or row.get("code") or subject_id).strip(),
            periods_per_week=self._int(row, "periods_per_week", kind, default=0),
            duration_minutes=self._int(
                row, "duration_minutes", kind, default=self.config.period_duration_minutes
            ),
            requires_lab=parse_bool(row.get("requires_lab")),
            requires_specialist_room=parse_bool(row.get("requires_specialist_room")),
        )

    def room(self, row: dict[str, Any]) -> Room:
        self._check_keys(row, ROOM_FIELDS, "room")
        room_id = self._required(row, "id", "room")
        kind = f"room {room_id}"
        raw_type = str(row.get("room_type") or RoomType.CLASSROOM.value).strip().lower()
        try:
            room_type = RoomType(raw_type)
        except ValueError as e:
            raise ConfigurationError(
                f"unknown room type '{raw_type}'", key="room_type", source=kind
            ) from e

        equipment_value = row.get("equipment")
        if isinstance(equipment_value, str) and not equipment_value.lstrip().startswith("["):
            equipment = tuple(e.strip() for e in equipment_value.split(";") if e.strip())
        else:
            equipment = tuple(str(e) for e in self._decode_blob(equipment_value, "equipment", kind))

        return Room(
            id=room_id,
            name=str(row.get("name") or room_id).strip(),
            room_type=room_type,
            capacity=self._int(row, "capacity", kind, default=0),
            is_lab=room_type == RoomType.LAB or parse_bool(row.get("is_lab")),
            is_specialist=room_type == RoomType.SPECIALIST
            or parse_bool(row.get("is_specialist")),
            equipment=equipment,
            availability=self._windows(row.get("availability"), "availability", kind),
        )

    def capability(self, row: dict[str, Any]) -> TeacherCapability:
        self._check_keys(row, CAPABILITY_FIELDS, "teacher capability")
        teacher_id = self._required(row, "teacher_id", "teacher capability")
        subject_id = self._required(row, "subject_id", "teacher capability")
        kind = f"capability {teacher_id}/{subject_id}"
        proficiency = self._int(row, "proficiency", kind, default=DEFAULT_PROFICIENCY)
        if not MIN_PROFICIENCY <= proficiency <= MAX_PROFICIENCY:
            raise ConfigurationError(
                f"proficiency must be between {MIN_PROFICIENCY} and {MAX_PROFICIENCY}",
                key="proficiency",
                source=kind,
            )
        return TeacherCapability(teacher_id, subject_id, proficiency)

    def requirement(
        self, row: dict[str, Any], subject: Subject | None = None
    ) -> SubjectRequirement:
        """Normalize a class-subject row.

        Periods and duration fall back to the subject's values, then to the
        configured period length.
        """
        self._check_keys(row, REQUIREMENT_FIELDS, "class subject")
        class_id = self._required(row, "class_id", "class subject")
        subject_id = self._required(row, "subject_id", "class subject")
        kind = f"class subject {class_id}/{subject_id}"

        periods = self._int(row, "periods_per_week", kind)
        if periods is None:
            periods = subject.periods_per_week if subject else 0
        duration = self._int(row, "duration_minutes", kind)
        if duration is None:
            duration = subject.duration_minutes if subject else self.config.period_duration_minutes
        if periods < 0:
            raise ConfigurationError("must not be negative", key="periods_per_week", source=kind)

        windows = list(self._windows(row.get("preferred_times"), "preferred_times", kind))
        for day in self._decode_blob(row.get("preferred_days"), "preferred_days", kind):
            day_index = self._day(day)
            if day_index is not None:
                windows.append(PeriodWindow(1, self.config.periods_per_day, day_index))

        return SubjectRequirement(
            class_id=class_id,
            subject_id=subject_id,
            periods_per_week=periods,
            duration_minutes=duration,
            requires_double_period=parse_bool(row.get("requires_double_period")),
            preferred_windows=tuple(windows),
        )

    def availability(self, row: dict[str, Any]) -> AvailabilityException | None:
        """Normalize an availability exception; None when it falls on no working day."""
        self._check_keys(row, AVAILABILITY_FIELDS, "availability")
        raw_type = self._required(row, "entity_type", "availability").lower()
        try:
            entity_type = EntityType(raw_type)
        except ValueError as e:
            raise ConfigurationError(
                f"unknown entity type '{raw_type}'", key="entity_type", source="availability"
            ) from e
        entity_id = self._required(row, "entity_id", "availability")
        kind = f"availability {entity_type.value} {entity_id}"

        day_index = self._day(self._required(row, "day", kind))
        if day_index is None:
            return None
        try:
            periods = periods_overlapping(
                row.get("start_time") or None, row.get("end_time") or None, self.config
            )
        except ValueError as e:
            raise ConfigurationError(str(e), key="start_time", source=kind) from e

        recurring = row.get("recurring")
        return AvailabilityException(
            entity_type=entity_type,
            entity_id=entity_id,
            day_index=day_index,
            periods=periods,
            available=parse_bool(row.get("available")),
            recurring=True if recurring in (None, "") else parse_bool(recurring),
        )

    def fixed_assignment(self, row: dict[str, Any]) -> FixedAssignment | None:
        """Normalize a pinned entry; None when its day is not a working day."""
        self._check_keys(row, FIXED_FIELDS, "fixed assignment")
        kind = "fixed assignment"
        day_index = self._day(self._required(row, "day", kind))
        period = self._int(row, "period", kind)
        if period is None:
            raise ConfigurationError("missing required field 'period'", key="period", source=kind)
        if day_index is None:
            return None
        return FixedAssignment(
            class_id=self._required(row, "class_id", kind),
            subject_id=self._required(row, "subject_id", kind),
            teacher_id=self._required(row, "teacher_id", kind),
            room_id=self._required(row, "room_id", kind),
            slot=TimeSlot(day_index, period),
        )
