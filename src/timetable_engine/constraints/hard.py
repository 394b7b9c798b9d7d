"""Hard constraint implementations.

Hard constraints are mandatory requirements that must never be violated.
The solver runs them as its consistency check before every tentative
assignment, and the optimizer runs the same check before every move.
"""

from collections import defaultdict
from typing import TYPE_CHECKING

from ..conflicts import ConflictTracker
from ..models import Candidate, TimeSlot, Variable
from .base import ConstraintBase

if TYPE_CHECKING:
    from ..gatherer import ConstraintSet


class HardConstraints(ConstraintBase):
    """
    Implementation of all hard constraints.

    Hard Constraints:
    - teacher_capability: the teacher can teach the subject
    - room_compliance: the room satisfies the subject's physical requirements
    - teacher_availability / room_availability / class_availability
    - class_overlap / teacher_overlap / room_overlap: nothing else is booked
      for the class, teacher or room in the slot
    - pinned_compatibility: pinned variables keep their pinned triple, free
      variables of the same class+subject stay off pinned slots
    - teacher_daily_load / teacher_weekly_load: per-teacher period limits
      (when enforce_teacher_load_limits is on)
    """

    def __init__(
        self,
        constraints: "ConstraintSet",
        pinned: dict[str, Candidate] | None = None,
    ):
        super().__init__(constraints)
        self.pinned = dict(pinned or {})
        self._pinned_slots: dict[tuple[str, str], set[TimeSlot]] = defaultdict(set)
        for fixed in constraints.fixed_assignments:
            self._pinned_slots[(fixed.class_id, fixed.subject_id)].add(fixed.slot)

    def evaluate(
        self, variable: Variable, candidate: Candidate, tracker: ConflictTracker
    ) -> list[str]:
        """Return the names of every hard constraint the placement violates."""
        return self.violations(variable, candidate, tracker)

    def violations(
        self, variable: Variable, candidate: Candidate, tracker: ConflictTracker
    ) -> list[str]:
        """Check a placement against the current partial assignment.

        Args:
            variable: Variable being placed (must not be reserved in tracker)
            candidate: Proposed (slot, teacher, room)
            tracker: Occupancy of every other assignment

        Returns:
            Violated constraint names; empty when the placement is consistent
        """
        cs = self.constraints
        slot, teacher_id, room_id = candidate
        violated = []

        if teacher_id not in cs.capable_teachers(variable.subject_id):
            violated.append("teacher_capability")
        if room_id not in cs.compliant_rooms(variable.class_id, variable.subject_id):
            violated.append("room_compliance")

        if not cs.is_teacher_available(teacher_id, slot):
            violated.append("teacher_availability")
        if not cs.is_room_available(room_id, slot):
            violated.append("room_availability")
        if not cs.is_class_available(variable.class_id, slot):
            violated.append("class_availability")

        if not tracker.is_class_free(variable.class_id, slot):
            violated.append("class_overlap")
        if not tracker.is_teacher_free(teacher_id, slot):
            violated.append("teacher_overlap")
        if not tracker.is_room_free(room_id, slot):
            violated.append("room_overlap")

        if not self._is_pinned_compatible(variable, candidate):
            violated.append("pinned_compatibility")

        if self.config.enforce_teacher_load_limits:
            violated.extend(self._load_violations(teacher_id, slot, tracker))

        return violated

    def is_consistent(
        self, variable: Variable, candidate: Candidate, tracker: ConflictTracker
    ) -> bool:
        return not self.violations(variable, candidate, tracker)

    def _is_pinned_compatible(self, variable: Variable, candidate: Candidate) -> bool:
        pinned = self.pinned.get(variable.id)
        if pinned is not None:
            return candidate == pinned
        return candidate.slot not in self._pinned_slots.get(variable.requirement_key, ())

    def _load_violations(
        self, teacher_id: str, slot: TimeSlot, tracker: ConflictTracker
    ) -> list[str]:
        teacher = self.constraints.teachers.get(teacher_id)
        if teacher is None:
            return []
        violated = []
        if (
            teacher.max_periods_per_day is not None
            and tracker.get_teacher_daily_load(teacher_id, slot.day_index)
            >= teacher.max_periods_per_day
        ):
            violated.append("teacher_daily_load")
        if (
            teacher.max_periods_per_week is not None
            and tracker.get_teacher_weekly_load(teacher_id) >= teacher.max_periods_per_week
        ):
            violated.append("teacher_weekly_load")
        return violated
