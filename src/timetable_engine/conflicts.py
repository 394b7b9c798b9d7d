"""Occupancy tracking and independent conflict detection."""

from collections import defaultdict
from collections.abc import Iterable

from .models import Assignment, Conflict, ConflictType, TimeSlot, Variable


class ConflictTracker:
    """Tracks which class, teacher and room occupy each time slot.

    The solver's consistency check and the optimizer both work against this
    index. It maintains:
    - class_schedule: slot -> {class_id: variable_id}
    - teacher_schedule: slot -> {teacher_id: variable_id}
    - room_schedule: slot -> {room_id: variable_id}
    - teacher_daily_load: (teacher_id, day_index) -> periods
    - teacher_weekly_load: teacher_id -> periods
    """

    def __init__(self) -> None:
        self.class_schedule: dict[TimeSlot, dict[str, str]] = defaultdict(dict)
        self.teacher_schedule: dict[TimeSlot, dict[str, str]] = defaultdict(dict)
        self.room_schedule: dict[TimeSlot, dict[str, str]] = defaultdict(dict)
        self.teacher_daily_load: dict[tuple[str, int], int] = defaultdict(int)
        self.teacher_weekly_load: dict[str, int] = defaultdict(int)
        self.assignments: dict[str, Assignment] = {}

    @classmethod
    def from_assignments(cls, assignments: Iterable[Assignment]) -> "ConflictTracker":
        tracker = cls()
        for assignment in assignments:
            tracker.reserve(assignment)
        return tracker

    def reserve(self, assignment: Assignment) -> None:
        """Mark the class, teacher and room of an assignment as busy.

        Raises:
            ValueError: If the variable is already reserved
        """
        if assignment.variable_id in self.assignments:
            raise ValueError(f"Variable '{assignment.variable_id}' is already reserved")
        slot = assignment.slot
        self.class_schedule[slot][assignment.class_id] = assignment.variable_id
        self.teacher_schedule[slot][assignment.teacher_id] = assignment.variable_id
        self.room_schedule[slot][assignment.room_id] = assignment.variable_id
        self.teacher_daily_load[(assignment.teacher_id, slot.day_index)] += 1
        self.teacher_weekly_load[assignment.teacher_id] += 1
        self.assignments[assignment.variable_id] = assignment

    def release(self, variable_id: str) -> Assignment:
        """Free the slot held by a variable and return its assignment.

        Raises:
            KeyError: If the variable is not reserved
        """
        assignment = self.assignments.pop(variable_id)
        slot = assignment.slot
        self._discard(self.class_schedule, slot, assignment.class_id, variable_id)
        self._discard(self.teacher_schedule, slot, assignment.teacher_id, variable_id)
        self._discard(self.room_schedule, slot, assignment.room_id, variable_id)
        self.teacher_daily_load[(assignment.teacher_id, slot.day_index)] -= 1
        self.teacher_weekly_load[assignment.teacher_id] -= 1
        return assignment

    @staticmethod
    def _discard(
        schedule: dict[TimeSlot, dict[str, str]], slot: TimeSlot, key: str, variable_id: str
    ) -> None:
        if schedule[slot].get(key) == variable_id:
            del schedule[slot][key]

    def is_class_free(self, class_id: str, slot: TimeSlot) -> bool:
        return class_id not in self.class_schedule.get(slot, {})

    def is_teacher_free(self, teacher_id: str, slot: TimeSlot) -> bool:
        return teacher_id not in self.teacher_schedule.get(slot, {})

    def is_room_free(self, room_id: str, slot: TimeSlot) -> bool:
        return room_id not in self.room_schedule.get(slot, {})

    def class_occupant(self, class_id: str, slot: TimeSlot) -> str | None:
        """Variable id holding a class at a slot, if any."""
        return self.class_schedule.get(slot, {}).get(class_id)

    def get_teacher_daily_load(self, teacher_id: str, day_index: int) -> int:
        return self.teacher_daily_load.get((teacher_id, day_index), 0)

    def get_teacher_weekly_load(self, teacher_id: str) -> int:
        return self.teacher_weekly_load.get(teacher_id, 0)

    def __len__(self) -> int:
        return len(self.assignments)


class ConflictDetector:
    """Re-derives double bookings from a list of assignments.

    Read-only and independent of the solver's bookkeeping, so it can audit
    any result, including ones loaded from storage. Running it twice on the
    same input gives the same output.
    """

    CHECKS = (
        (ConflictType.TEACHER_DOUBLE_BOOKED, "teacher_id", "Teacher"),
        (ConflictType.ROOM_DOUBLE_BOOKED, "room_id", "Room"),
        (ConflictType.CLASS_DOUBLE_BOOKED, "class_id", "Class"),
    )

    def detect(self, assignments: Iterable[Assignment]) -> list[Conflict]:
        """Find every (entity, slot) pair booked more than once.

        Returns:
            One Conflict per double-booked (entity, slot), ordered by slot
        """
        by_slot: dict[TimeSlot, list[Assignment]] = defaultdict(list)
        for assignment in assignments:
            by_slot[assignment.slot].append(assignment)

        conflicts = []
        for slot in sorted(by_slot):
            entries = by_slot[slot]
            for conflict_type, attribute, label in self.CHECKS:
                groups: dict[str, list[str]] = defaultdict(list)
                for assignment in entries:
                    groups[getattr(assignment, attribute)].append(assignment.variable_id)
                for entity_id in sorted(groups):
                    variable_ids = groups[entity_id]
                    if len(variable_ids) < 2:
                        continue
                    conflicts.append(
                        Conflict(
                            conflict_type=conflict_type,
                            slot=slot,
                            entity_id=entity_id,
                            variable_ids=tuple(sorted(variable_ids)),
                            description=(
                                f"{label} '{entity_id}' has {len(variable_ids)} "
                                f"bookings at day {slot.day_index} period {slot.period}"
                            ),
                        )
                    )
        return conflicts

    def find_coverage_gaps(
        self, variables: Iterable[Variable], assignments: Iterable[Assignment]
    ) -> tuple[list[str], list[str]]:
        """Compare assignments against the variables they should cover.

        Returns:
            (missing variable ids, variable ids assigned more than once)
        """
        counts: dict[str, int] = defaultdict(int)
        for assignment in assignments:
            counts[assignment.variable_id] += 1
        missing = [v.id for v in variables if counts.get(v.id, 0) == 0]
        duplicated = sorted(vid for vid, count in counts.items() if count > 1)
        return missing, duplicated
