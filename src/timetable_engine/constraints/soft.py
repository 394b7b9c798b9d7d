"""Soft constraint implementations.

Soft constraints are preferences. They add to the score and order values
during search, but never exclude a placement.
"""

from ..constants import PREFERENCE_WEIGHTS
from ..models import Assignment, Candidate, Variable
from .base import ConstraintBase


class PreferenceConstraints(ConstraintBase):
    """
    Preference scoring for placements.

    Soft Constraints:
    - teacher_preferred_period: the teacher listed the slot as preferred
    - preferred_window: the slot lies in one of the class-subject's
      preferred day/period windows
    """

    def evaluate(self, variable: Variable, candidate: Candidate, *args) -> float | None:
        """Preference bonus in [0, 1], or None when nothing declares a preference."""
        return self.bonus(variable.class_id, variable.subject_id, candidate)

    def bonus(self, class_id: str, subject_id: str, candidate: Candidate) -> float | None:
        cs = self.constraints
        weighted = 0.0
        total_weight = 0.0

        teacher = cs.teachers.get(candidate.teacher_id)
        if teacher is not None and teacher.preferred_periods:
            weight = PREFERENCE_WEIGHTS["teacher_preferred_period"]
            total_weight += weight
            if candidate.slot in teacher.preferred_periods:
                weighted += weight

        requirement = cs.requirement(class_id, subject_id)
        if requirement is not None and requirement.preferred_windows:
            weight = PREFERENCE_WEIGHTS["preferred_window"]
            total_weight += weight
            if any(w.contains(candidate.slot) for w in requirement.preferred_windows):
                weighted += weight

        if total_weight == 0:
            return None
        return weighted / total_weight

    def assignment_bonus(self, assignment: Assignment) -> float | None:
        return self.bonus(assignment.class_id, assignment.subject_id, assignment.candidate)

    def adherence(self, assignments: list[Assignment]) -> tuple[float, int]:
        """Summed bonus and number of assignments that declare any preference."""
        total = 0.0
        declared = 0
        for assignment in assignments:
            value = self.assignment_bonus(assignment)
            if value is None:
                continue
            declared += 1
            total += value
        return total, declared
