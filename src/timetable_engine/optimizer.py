"""Schedule optimization after search.

The optimizer runs non-backtracking passes over a solved (or partial)
assignment list:
- Teacher locality: keep a teacher in the same room for consecutive periods
- Double periods: move occurrences of double-period subjects next to each other
- Preferences: count placements inside declared preferences (score only)

Every move is validated with the same hard constraints the solver uses;
rejected moves leave the assignment untouched. Pinned assignments never move.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from .conflicts import ConflictTracker
from .constraints.hard import HardConstraints
from .constraints.soft import PreferenceConstraints
from .models import Assignment, Candidate, TimeSlot
from .solver.variables import CSPProblem

logger = logging.getLogger(__name__)


@dataclass
class OptimizerMetrics:
    """What the optimization passes changed."""

    passes: int = 0
    rooms_reused: int = 0
    doubles_grouped: int = 0
    swaps: int = 0
    moves_rejected: int = 0
    preference_declared: int = 0
    preferred_hits: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "passes": self.passes,
            "rooms_reused": self.rooms_reused,
            "doubles_grouped": self.doubles_grouped,
            "swaps": self.swaps,
            "moves_rejected": self.moves_rejected,
            "preference_declared": self.preference_declared,
            "preferred_hits": self.preferred_hits,
        }


@dataclass
class OptimizationResult:
    """Assignments after optimization and the metrics of the run."""

    assignments: list[Assignment] = field(default_factory=list)
    metrics: OptimizerMetrics = field(default_factory=OptimizerMetrics)


class ScheduleOptimizer:
    """Local improvement of an assignment list."""

    def __init__(self, problem: CSPProblem, max_passes: int | None = None):
        self.problem = problem
        self.constraints = problem.constraints
        self.max_passes = (
            max_passes if max_passes is not None else self.constraints.config.optimizer_max_passes
        )
        self.hard = HardConstraints(self.constraints, problem.pinned_candidates)
        self.preferences = PreferenceConstraints(self.constraints)

    def optimize(self, assignments: list[Assignment]) -> OptimizationResult:
        """Run all passes until nothing improves or the pass limit is hit."""
        tracker = ConflictTracker.from_assignments(assignments)
        metrics = OptimizerMetrics()

        for _ in range(self.max_passes):
            metrics.passes += 1
            changed = self._improve_teacher_locality(tracker, metrics)
            changed += self._group_double_periods(tracker, metrics)
            logger.debug(f"Optimizer pass {metrics.passes}: {changed} change(s)")
            if not changed:
                break

        declared_hits, declared = self._count_preferences(tracker)
        metrics.preference_declared = declared
        metrics.preferred_hits = declared_hits

        order = {a.variable_id: i for i, a in enumerate(assignments)}
        optimized = sorted(tracker.assignments.values(), key=lambda a: order[a.variable_id])
        logger.info(
            f"Optimizer: {metrics.rooms_reused} room reuse(s), "
            f"{metrics.doubles_grouped} double period(s) grouped, "
            f"{metrics.moves_rejected} move(s) rejected"
        )
        return OptimizationResult(assignments=optimized, metrics=metrics)

    # ------------------------------------------------------------------
    # Move primitives
    # ------------------------------------------------------------------

    def _try_move(self, tracker: ConflictTracker, variable_id: str, candidate: Candidate) -> bool:
        """Move a variable if the hard constraints allow it, else restore it."""
        original = tracker.release(variable_id)
        variable = self.problem.variable(variable_id)
        if self.hard.is_consistent(variable, candidate, tracker):
            tracker.reserve(original.moved_to(candidate))
            return True
        tracker.reserve(original)
        return False

    def _options_at(self, assignment: Assignment, slot: TimeSlot) -> list[Candidate]:
        """Candidates at a slot, current teacher and room first."""
        teachers = [assignment.teacher_id] + [
            t
            for t in self.constraints.capable_teachers(assignment.subject_id)
            if t != assignment.teacher_id
        ]
        rooms = [assignment.room_id] + [
            r
            for r in self.constraints.compliant_rooms(assignment.class_id, assignment.subject_id)
            if r != assignment.room_id
        ]
        return [Candidate(slot, t, r) for t in teachers for r in rooms]

    def _find_consistent(
        self, tracker: ConflictTracker, assignment: Assignment, slot: TimeSlot
    ) -> Candidate | None:
        variable = self.problem.variable(assignment.variable_id)
        for candidate in self._options_at(assignment, slot):
            if self.hard.is_consistent(variable, candidate, tracker):
                return candidate
        return None

    def _relocate(self, tracker: ConflictTracker, variable_id: str, slot: TimeSlot) -> bool:
        original = tracker.release(variable_id)
        candidate = self._find_consistent(tracker, original, slot)
        if candidate is None:
            tracker.reserve(original)
            return False
        tracker.reserve(original.moved_to(candidate))
        return True

    def _swap(
        self,
        tracker: ConflictTracker,
        first_id: str,
        second_id: str,
    ) -> bool:
        """Exchange the slots of two assignments, re-choosing rooms if needed."""
        first = tracker.release(first_id)
        second = tracker.release(second_id)

        first_target = self._find_consistent(tracker, first, second.slot)
        if first_target is not None:
            tracker.reserve(first.moved_to(first_target))
            second_target = self._find_consistent(tracker, second, first.slot)
            if second_target is not None:
                tracker.reserve(second.moved_to(second_target))
                return True
            tracker.release(first_id)

        tracker.reserve(first)
        tracker.reserve(second)
        return False

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _improve_teacher_locality(
        self, tracker: ConflictTracker, metrics: OptimizerMetrics
    ) -> int:
        """Reuse the previous period's room for a teacher's consecutive periods."""
        by_teacher_day: dict[tuple[str, int], list[str]] = defaultdict(list)
        for assignment in tracker.assignments.values():
            by_teacher_day[(assignment.teacher_id, assignment.slot.day_index)].append(
                assignment.variable_id
            )

        changed = 0
        for variable_ids in by_teacher_day.values():
            variable_ids.sort(key=lambda vid: tracker.assignments[vid].slot.period)
            for prev_id, cur_id in zip(variable_ids, variable_ids[1:]):
                prev = tracker.assignments[prev_id]
                cur = tracker.assignments[cur_id]
                if cur.pinned or cur.slot.period != prev.slot.period + 1:
                    continue
                if cur.room_id == prev.room_id:
                    continue
                if self._try_move(tracker, cur_id, Candidate(cur.slot, cur.teacher_id, prev.room_id)):
                    metrics.rooms_reused += 1
                    changed += 1
                else:
                    metrics.moves_rejected += 1
        return changed

    def _group_double_periods(self, tracker: ConflictTracker, metrics: OptimizerMetrics) -> int:
        """Pair up occurrences of subjects that are taught in double periods."""
        changed = 0
        for requirement in self.constraints.requirements:
            if not requirement.requires_double_period:
                continue
            variable_ids = [
                v.id
                for v in self.problem.variables
                if v.requirement_key == requirement.key and v.id in tracker.assignments
            ]
            unpaired = self._unpaired(tracker, variable_ids)
            # Pinned occurrences anchor, free ones move next to them
            unpaired.sort(key=lambda vid: not tracker.assignments[vid].pinned)
            while len(unpaired) >= 2:
                anchor_id = unpaired.pop(0)
                for mover_id in unpaired:
                    if tracker.assignments[mover_id].pinned:
                        continue
                    if self._place_adjacent(tracker, anchor_id, mover_id, metrics):
                        unpaired.remove(mover_id)
                        metrics.doubles_grouped += 1
                        changed += 1
                        break
                else:
                    metrics.moves_rejected += 1
        return changed

    @staticmethod
    def _unpaired(tracker: ConflictTracker, variable_ids: list[str]) -> list[str]:
        """Variables not already sitting in an adjacent same-day pair."""
        ordered = sorted(variable_ids, key=lambda vid: tracker.assignments[vid].slot)
        unpaired = []
        i = 0
        while i < len(ordered):
            current = tracker.assignments[ordered[i]].slot
            if i + 1 < len(ordered):
                following = tracker.assignments[ordered[i + 1]].slot
                if (
                    following.day_index == current.day_index
                    and following.period == current.period + 1
                ):
                    i += 2
                    continue
            unpaired.append(ordered[i])
            i += 1
        return unpaired

    def _place_adjacent(
        self,
        tracker: ConflictTracker,
        anchor_id: str,
        mover_id: str,
        metrics: OptimizerMetrics,
    ) -> bool:
        anchor = tracker.assignments[anchor_id]
        periods_per_day = self.constraints.config.periods_per_day
        for period in (anchor.slot.period + 1, anchor.slot.period - 1):
            if not 1 <= period <= periods_per_day:
                continue
            target = TimeSlot(anchor.slot.day_index, period)
            occupant_id = tracker.class_occupant(anchor.class_id, target)
            if occupant_id is None:
                if self._relocate(tracker, mover_id, target):
                    return True
                continue
            if occupant_id in (anchor_id, mover_id) or tracker.assignments[occupant_id].pinned:
                continue
            if self._swap(tracker, mover_id, occupant_id):
                metrics.swaps += 1
                return True
        return False

    def _count_preferences(self, tracker: ConflictTracker) -> tuple[int, int]:
        hits = 0
        declared = 0
        for assignment in tracker.assignments.values():
            bonus = self.preferences.assignment_bonus(assignment)
            if bonus is None:
                continue
            declared += 1
            if bonus >= 1.0:
                hits += 1
        return hits, declared
