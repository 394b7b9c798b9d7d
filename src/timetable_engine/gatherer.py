"""Constraint gathering: load, normalize and validate the input of a scope."""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from functools import cached_property

from .config.settings import GenerationConfig
from .config.source import SchedulingDataSource, Scope
from .exceptions import ConfigurationError, InfeasibilityIssue, InfeasibleInputError
from .models import (
    AvailabilityException,
    ClassGroup,
    EntityType,
    FixedAssignment,
    Room,
    Subject,
    SubjectRequirement,
    Teacher,
    TimeSlot,
)
from .normalization import RowNormalizer, is_active
from .utils import build_time_slots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstraintSet:
    """Everything the solver needs to know about one scope.

    Built once per run by ConstraintGatherer and treated as read-only
    afterwards.
    """

    scope: Scope
    config: GenerationConfig
    time_slots: tuple[TimeSlot, ...]
    teachers: dict[str, Teacher]
    classes: dict[str, ClassGroup]
    subjects: dict[str, Subject]
    rooms: dict[str, Room]
    requirements: tuple[SubjectRequirement, ...]
    fixed_assignments: tuple[FixedAssignment, ...]
    exceptions: tuple[AvailabilityException, ...]
    teacher_blocked: dict[str, frozenset[TimeSlot]]
    room_blocked: dict[str, frozenset[TimeSlot]]
    class_blocked: dict[str, frozenset[TimeSlot]]
    # subject_id -> teacher ids, most proficient first
    capable_teacher_ids: dict[str, tuple[str, ...]]
    # (class_id, subject_id) -> room ids
    compliant_room_ids: dict[tuple[str, str], tuple[str, ...]]

    def capable_teachers(self, subject_id: str) -> tuple[str, ...]:
        return self.capable_teacher_ids.get(subject_id, ())

    def compliant_rooms(self, class_id: str, subject_id: str) -> tuple[str, ...]:
        return self.compliant_room_ids.get((class_id, subject_id), ())

    def is_teacher_available(self, teacher_id: str, slot: TimeSlot) -> bool:
        return slot not in self.teacher_blocked.get(teacher_id, frozenset())

    def is_room_available(self, room_id: str, slot: TimeSlot) -> bool:
        return slot not in self.room_blocked.get(room_id, frozenset())

    def is_class_available(self, class_id: str, slot: TimeSlot) -> bool:
        return slot not in self.class_blocked.get(class_id, frozenset())

    @cached_property
    def _requirements_by_key(self) -> dict[tuple[str, str], SubjectRequirement]:
        return {r.key: r for r in self.requirements}

    def requirement(self, class_id: str, subject_id: str) -> SubjectRequirement | None:
        return self._requirements_by_key.get((class_id, subject_id))

    def fixed_for(self, class_id: str, subject_id: str) -> list[FixedAssignment]:
        return [
            f
            for f in self.fixed_assignments
            if f.class_id == class_id and f.subject_id == subject_id
        ]

    @property
    def total_required_periods(self) -> int:
        return sum(r.periods_per_week for r in self.requirements)


class ConstraintGatherer:
    """Loads a scope from a data source and validates it before any search.

    Every structural infeasibility (missing teacher, missing room, bad pinned
    entry, over-subscribed class) is collected and raised together as one
    InfeasibleInputError.
    """

    def __init__(self, source: SchedulingDataSource, config: GenerationConfig | None = None):
        self.source = source
        self.config = config or GenerationConfig()

    def _scope_config(self, scope: Scope) -> GenerationConfig:
        get_settings = getattr(self.source, "get_settings", None)
        overrides = get_settings(scope) if get_settings else {}
        if not overrides:
            return self.config
        logger.info(f"Applying {len(overrides)} setting override(s) for scope {scope}")
        return self.config.merged(overrides, source=f"settings of {scope}")

    def gather(self, scope: Scope) -> ConstraintSet:
        """Gather and validate the constraints of a scope.

        Raises:
            InfeasibleInputError: If the input admits no schedule
            ConfigurationError: If a row is malformed
        """
        config = self._scope_config(scope)
        normalizer = RowNormalizer(config)
        issues: list[InfeasibilityIssue] = []

        subjects = self._index(
            normalizer.subject(r) for r in self.source.list_subjects(scope) if is_active(r)
        )
        teachers = self._index(
            normalizer.teacher(r) for r in self.source.list_teachers(scope) if is_active(r)
        )
        classes = self._index(
            normalizer.class_group(r) for r in self.source.list_classes(scope) if is_active(r)
        )
        rooms = self._index(
            normalizer.room(r) for r in self.source.list_rooms(scope) if is_active(r)
        )
        logger.info(
            f"Scope {scope}: {len(teachers)} teachers, {len(classes)} classes, "
            f"{len(subjects)} subjects, {len(rooms)} rooms"
        )

        for row in self.source.list_teacher_capabilities(scope):
            if not is_active(row):
                continue
            capability = normalizer.capability(row)
            teacher = teachers.get(capability.teacher_id)
            if teacher is None or capability.subject_id not in subjects:
                logger.debug(
                    f"Skipping capability {capability.teacher_id}/{capability.subject_id}: "
                    "unknown or inactive teacher or subject"
                )
                continue
            teacher.capabilities[capability.subject_id] = capability.proficiency

        requirements = self._gather_requirements(scope, normalizer, classes, subjects, issues)

        exceptions = tuple(
            exc
            for exc in (
                normalizer.availability(r) for r in self.source.list_availability(scope)
            )
            if exc is not None
        )
        time_slots = tuple(build_time_slots(config))
        teacher_blocked, room_blocked, class_blocked = self._blocked_tables(
            exceptions, teachers, rooms, classes, time_slots
        )

        capable_teacher_ids = {
            subject_id: tuple(
                t.id
                for t in sorted(
                    (t for t in teachers.values() if t.can_teach(subject_id)),
                    key=lambda t: (-t.proficiency(subject_id), t.id),
                )
            )
            for subject_id in subjects
        }
        compliant_room_ids = {
            r.key: tuple(
                room.id
                for room in rooms.values()
                if self._is_compliant(room, subjects[r.subject_id], classes[r.class_id], config)
            )
            for r in requirements
        }

        for requirement in requirements:
            if not capable_teacher_ids.get(requirement.subject_id):
                issues.append(
                    InfeasibilityIssue(
                        constraint="teacher_capability",
                        message=(
                            f"no active teacher can teach subject '{requirement.subject_id}' "
                            f"required by class '{requirement.class_id}'"
                        ),
                        class_id=requirement.class_id,
                        subject_id=requirement.subject_id,
                    )
                )
            if not compliant_room_ids.get(requirement.key):
                issues.append(
                    InfeasibilityIssue(
                        constraint="room_compliance",
                        message=(
                            f"no room satisfies subject '{requirement.subject_id}' "
                            f"for class '{requirement.class_id}'"
                        ),
                        class_id=requirement.class_id,
                        subject_id=requirement.subject_id,
                    )
                )

        self._check_class_load(requirements, classes, class_blocked, time_slots, issues)

        fixed = self._gather_fixed(
            scope,
            normalizer,
            teachers,
            classes,
            subjects,
            rooms,
            requirements,
            capable_teacher_ids,
            compliant_room_ids,
            (teacher_blocked, room_blocked, class_blocked),
            config,
            issues,
        )

        if issues:
            logger.warning(f"Scope {scope} is infeasible: {len(issues)} issue(s)")
            for issue in issues:
                logger.warning(f"  - {issue}")
            raise InfeasibleInputError(issues)

        return ConstraintSet(
            scope=scope,
            config=config,
            time_slots=time_slots,
            teachers=teachers,
            classes=classes,
            subjects=subjects,
            rooms=rooms,
            requirements=tuple(requirements),
            fixed_assignments=tuple(fixed),
            exceptions=exceptions,
            teacher_blocked=teacher_blocked,
            room_blocked=room_blocked,
            class_blocked=class_blocked,
            capable_teacher_ids=capable_teacher_ids,
            compliant_room_ids=compliant_room_ids,
        )

    @staticmethod
    def _index(items) -> dict:
        result = {}
        for item in items:
            if item.id in result:
                raise ConfigurationError(
                    f"duplicate id '{item.id}'", source=type(item).__name__.lower()
                )
            result[item.id] = item
        return result

    @staticmethod
    def _is_compliant(
        room: Room, subject: Subject, class_group: ClassGroup, config: GenerationConfig
    ) -> bool:
        if not room.satisfies(subject, class_group.student_count):
            return False
        if config.reserve_special_rooms and room.is_special:
            # Special rooms only host subjects that need them
            return subject.requires_lab or subject.requires_specialist_room
        return True

    def _gather_requirements(
        self,
        scope: Scope,
        normalizer: RowNormalizer,
        classes: dict[str, ClassGroup],
        subjects: dict[str, Subject],
        issues: list[InfeasibilityIssue],
    ) -> list[SubjectRequirement]:
        requirements: list[SubjectRequirement] = []
        seen: set[tuple[str, str]] = set()
        by_class: dict[str, list[SubjectRequirement]] = defaultdict(list)

        for row in self.source.list_class_subject_requirements(scope):
            if not is_active(row):
                continue
            subject = subjects.get(str(row.get("subject_id", "")).strip())
            requirement = normalizer.requirement(row, subject)

            if requirement.class_id not in classes:
                issues.append(
                    InfeasibilityIssue(
                        constraint="unknown_class",
                        message=f"requirement references unknown class '{requirement.class_id}'",
                        class_id=requirement.class_id,
                        subject_id=requirement.subject_id,
                    )
                )
                continue
            if subject is None:
                issues.append(
                    InfeasibilityIssue(
                        constraint="unknown_subject",
                        message=(
                            f"class '{requirement.class_id}' requires unknown subject "
                            f"'{requirement.subject_id}'"
                        ),
                        class_id=requirement.class_id,
                        subject_id=requirement.subject_id,
                    )
                )
                continue
            if requirement.key in seen:
                issues.append(
                    InfeasibilityIssue(
                        constraint="duplicate_requirement",
                        message=(
                            f"class '{requirement.class_id}' lists subject "
                            f"'{requirement.subject_id}' twice"
                        ),
                        class_id=requirement.class_id,
                        subject_id=requirement.subject_id,
                    )
                )
                continue
            seen.add(requirement.key)
            if requirement.periods_per_week == 0:
                logger.debug(f"Skipping {requirement.key}: no weekly periods")
                continue
            requirements.append(requirement)
            by_class[requirement.class_id].append(requirement)

        for class_id, class_group in classes.items():
            class_group.requirements = tuple(by_class.get(class_id, ()))
        return requirements

    def _blocked_tables(
        self,
        exceptions: tuple[AvailabilityException, ...],
        teachers: dict[str, Teacher],
        rooms: dict[str, Room],
        classes: dict[str, ClassGroup],
        time_slots: tuple[TimeSlot, ...],
    ) -> tuple[dict[str, frozenset[TimeSlot]], ...]:
        """Resolve availability into blocked-slot sets per entity.

        Unavailable exceptions block slots, available exceptions reopen them.
        One-off exceptions block like recurring ones since the weekly pattern
        has to hold in every week of the term.
        """
        blocked = {
            EntityType.TEACHER: {t.id: set(t.unavailable_periods) for t in teachers.values()},
            EntityType.ROOM: {
                r.id: {s for s in time_slots if not r.is_open(s)} for r in rooms.values()
            },
            EntityType.CLASS: {c.id: set() for c in classes.values()},
        }
        reopened: dict[EntityType, dict[str, set[TimeSlot]]] = {
            entity_type: defaultdict(set) for entity_type in EntityType
        }

        for exc in exceptions:
            table = blocked[exc.entity_type]
            if exc.entity_id not in table:
                logger.warning(
                    f"Availability exception for unknown {exc.entity_type.value} "
                    f"'{exc.entity_id}' ignored"
                )
                continue
            if not exc.recurring:
                logger.debug(
                    f"One-off exception for {exc.entity_type.value} {exc.entity_id} "
                    "applied to every week"
                )
            if exc.available:
                reopened[exc.entity_type][exc.entity_id].update(exc.slots())
            else:
                table[exc.entity_id].update(exc.slots())

        result = []
        for entity_type in (EntityType.TEACHER, EntityType.ROOM, EntityType.CLASS):
            result.append(
                {
                    entity_id: frozenset(slots - reopened[entity_type].get(entity_id, set()))
                    for entity_id, slots in blocked[entity_type].items()
                }
            )
        return tuple(result)

    @staticmethod
    def _check_class_load(
        requirements: list[SubjectRequirement],
        classes: dict[str, ClassGroup],
        class_blocked: dict[str, frozenset[TimeSlot]],
        time_slots: tuple[TimeSlot, ...],
        issues: list[InfeasibilityIssue],
    ) -> None:
        demand = Counter()
        for requirement in requirements:
            demand[requirement.class_id] += requirement.periods_per_week
        for class_id, periods in demand.items():
            open_slots = len(time_slots) - len(class_blocked.get(class_id, ()))
            if periods > open_slots:
                issues.append(
                    InfeasibilityIssue(
                        constraint="class_capacity",
                        message=(
                            f"class '{class_id}' needs {periods} periods but only "
                            f"{open_slots} slots are open"
                        ),
                        class_id=class_id,
                    )
                )

    def _gather_fixed(
        self,
        scope: Scope,
        normalizer: RowNormalizer,
        teachers: dict[str, Teacher],
        classes: dict[str, ClassGroup],
        subjects: dict[str, Subject],
        rooms: dict[str, Room],
        requirements: list[SubjectRequirement],
        capable_teacher_ids: dict[str, tuple[str, ...]],
        compliant_room_ids: dict[tuple[str, str], tuple[str, ...]],
        blocked: tuple[dict[str, frozenset[TimeSlot]], ...],
        config: GenerationConfig,
        issues: list[InfeasibilityIssue],
    ) -> list[FixedAssignment]:
        """Normalize and validate pinned entries."""
        teacher_blocked, room_blocked, class_blocked = blocked
        required = {r.key: r.periods_per_week for r in requirements}
        pinned_count: Counter = Counter()
        occupied: dict[tuple[str, str, TimeSlot], FixedAssignment] = {}
        fixed: list[FixedAssignment] = []

        for row in self.source.list_fixed_assignments(scope):
            pin = normalizer.fixed_assignment(row)
            if pin is None:
                issues.append(
                    InfeasibilityIssue(
                        constraint="pinned_slot",
                        message=f"pinned entry on non-working day '{row.get('day')}'",
                        class_id=row.get("class_id"),
                        subject_id=row.get("subject_id"),
                    )
                )
                continue

            def problem(constraint: str, message: str) -> None:
                issues.append(
                    InfeasibilityIssue(
                        constraint=constraint,
                        message=f"pinned {pin.class_id}/{pin.subject_id} at {pin.slot}: {message}",
                        class_id=pin.class_id,
                        subject_id=pin.subject_id,
                    )
                )

            unknown = [
                f"{kind} '{entity_id}'"
                for kind, entity_id, table in (
                    ("class", pin.class_id, classes),
                    ("subject", pin.subject_id, subjects),
                    ("teacher", pin.teacher_id, teachers),
                    ("room", pin.room_id, rooms),
                )
                if entity_id not in table
            ]
            if unknown:
                problem("pinned_reference", f"unknown {', '.join(unknown)}")
                continue
            if not 1 <= pin.slot.period <= config.periods_per_day:
                problem("pinned_slot", "period is outside the day")
                continue
            key = (pin.class_id, pin.subject_id)
            if key not in required:
                problem("pinned_requirement", "class does not require this subject")
                continue
            if pin.teacher_id not in capable_teacher_ids.get(pin.subject_id, ()):
                problem("teacher_capability", f"teacher '{pin.teacher_id}' cannot teach it")
            if pin.room_id not in compliant_room_ids.get(key, ()):
                problem("room_compliance", f"room '{pin.room_id}' is not compliant")
            if pin.slot in teacher_blocked.get(pin.teacher_id, frozenset()):
                problem("teacher_availability", f"teacher '{pin.teacher_id}' is unavailable")
            if pin.slot in room_blocked.get(pin.room_id, frozenset()):
                problem("room_availability", f"room '{pin.room_id}' is unavailable")
            if pin.slot in class_blocked.get(pin.class_id, frozenset()):
                problem("class_availability", "class is unavailable")

            for kind, entity_id in (
                ("class", pin.class_id),
                ("teacher", pin.teacher_id),
                ("room", pin.room_id),
            ):
                other = occupied.get((kind, entity_id, pin.slot))
                if other is not None:
                    problem(
                        f"pinned_{kind}_overlap",
                        f"{kind} '{entity_id}' is also pinned to "
                        f"{other.class_id}/{other.subject_id}",
                    )
                else:
                    occupied[(kind, entity_id, pin.slot)] = pin

            pinned_count[key] += 1
            if pinned_count[key] == required[key] + 1:
                problem(
                    "pinned_excess",
                    f"more pinned entries than the {required[key]} weekly periods",
                )
            fixed.append(pin)

        if fixed:
            logger.info(f"Scope {scope}: {len(fixed)} pinned entries")
        return fixed
