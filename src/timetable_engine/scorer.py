"""Timetable scoring and workload analytics."""

import logging
from collections import Counter, defaultdict

from .config.weights import OptimizationGoal, normalize_goal_weights
from .constants import CONFLICT_PENALTY, LOAD_VARIANCE_PENALTY, UNRESOLVED_PENALTY
from .constraints.soft import PreferenceConstraints
from .gatherer import ConstraintSet
from .models import Assignment, Conflict, RoomUtilization, ScoreBreakdown, TeacherWorkload

logger = logging.getLogger(__name__)


class Scorer:
    """Computes a 0-100 quality score from normalized goal weights.

    Goal scores (each 0-100):
    - minimize_conflicts: 100 - 10 per conflict - 5 per unresolved variable
    - balance_teacher_load: 100 - 5 x variance of periods per active teacher
    - maximize_room_utilization: used room-slots over what the demand could fill
    - respect_preferences: share of preference-declaring placements that meet them

    Only the goals passed in (or configured) contribute; their weights are
    renormalized to sum to 1.
    """

    def __init__(
        self,
        constraints: ConstraintSet,
        goals: list[str] | dict[str, float] | None = None,
    ):
        self.constraints = constraints
        if goals is None:
            self.weights = dict(constraints.config.optimization_goals)
        else:
            self.weights = normalize_goal_weights(goals)
        self.preferences = PreferenceConstraints(constraints)

    def score(
        self,
        assignments: list[Assignment],
        conflicts: list[Conflict] | None = None,
        unresolved_count: int = 0,
    ) -> ScoreBreakdown:
        """Score an assignment list.

        Args:
            assignments: Placed assignments
            conflicts: Conflicts found by the detector
            unresolved_count: Variables the search could not place

        Returns:
            ScoreBreakdown with the weighted total and every component
        """
        components = {}
        for goal in self.weights:
            if goal == OptimizationGoal.MINIMIZE_CONFLICTS.value:
                components[goal] = self.conflict_score(len(conflicts or []), unresolved_count)
            elif goal == OptimizationGoal.BALANCE_TEACHER_LOAD.value:
                components[goal] = self.load_balance_score(assignments)
            elif goal == OptimizationGoal.MAXIMIZE_ROOM_UTILIZATION.value:
                components[goal] = self.room_utilization_score(assignments)
            elif goal == OptimizationGoal.RESPECT_PREFERENCES.value:
                components[goal] = self.preference_score(assignments)

        total = sum(self.weights[goal] * value for goal, value in components.items())
        total = max(0.0, min(100.0, total))
        logger.debug(f"Score {total:.2f}: {components}")
        return ScoreBreakdown(total=total, components=components, weights=dict(self.weights))

    @staticmethod
    def conflict_score(conflict_count: int, unresolved_count: int = 0) -> float:
        return max(
            0.0,
            100.0 - CONFLICT_PENALTY * conflict_count - UNRESOLVED_PENALTY * unresolved_count,
        )

    @staticmethod
    def load_balance_score(assignments: list[Assignment]) -> float:
        loads = Counter(a.teacher_id for a in assignments)
        if not loads:
            return 100.0
        values = list(loads.values())
        mean = sum(values) / len(values)
        variance = sum((v - mean) ** 2 for v in values) / len(values)
        return max(0.0, 100.0 - LOAD_VARIANCE_PENALTY * variance)

    def room_utilization_score(self, assignments: list[Assignment]) -> float:
        """Used room-slots relative to the most the demand could use."""
        capacity = sum(u.available_periods for u in self.room_utilization([]))
        achievable = min(capacity, self.constraints.total_required_periods)
        if achievable <= 0:
            return 100.0
        used = len({(a.room_id, a.slot) for a in assignments})
        return min(100.0, 100.0 * used / achievable)

    def preference_score(self, assignments: list[Assignment]) -> float:
        total, declared = self.preferences.adherence(assignments)
        if declared == 0:
            return 100.0
        return 100.0 * total / declared

    def teacher_workload(self, assignments: list[Assignment]) -> list[TeacherWorkload]:
        """Periods per teacher, per day and per week, for every teacher in scope."""
        by_teacher: dict[str, dict[int, int]] = defaultdict(lambda: defaultdict(int))
        for assignment in assignments:
            by_teacher[assignment.teacher_id][assignment.slot.day_index] += 1

        rows = []
        for teacher in sorted(self.constraints.teachers.values(), key=lambda t: t.id):
            days = by_teacher.get(teacher.id, {})
            rows.append(
                TeacherWorkload(
                    teacher_id=teacher.id,
                    teacher_name=teacher.name,
                    total_periods=sum(days.values()),
                    max_periods_per_week=teacher.max_periods_per_week,
                    periods_by_day=dict(days),
                )
            )
        return rows

    def room_utilization(self, assignments: list[Assignment]) -> list[RoomUtilization]:
        """Used versus open slots for every room in scope."""
        used = Counter(a.room_id for a in assignments)
        slot_count = len(self.constraints.time_slots)
        rows = []
        for room in sorted(self.constraints.rooms.values(), key=lambda r: r.id):
            blocked = len(self.constraints.room_blocked.get(room.id, ()))
            rows.append(
                RoomUtilization(
                    room_id=room.id,
                    room_name=room.name,
                    room_type=room.room_type.value,
                    equipment=room.equipment,
                    used_periods=used.get(room.id, 0),
                    available_periods=slot_count - blocked,
                )
            )
        return rows
