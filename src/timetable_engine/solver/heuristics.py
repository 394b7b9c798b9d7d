"""Variable and value ordering heuristics (MRV, MCV, LCV)."""

from collections import Counter
from collections.abc import Iterable

from ..config.weights import HeuristicWeights
from ..conflicts import ConflictTracker
from ..constraints.soft import PreferenceConstraints
from ..models import Candidate, Variable
from .domains import DomainStore
from .variables import CSPProblem


class VariableOrdering:
    """Minimum-remaining-values selection, ties broken by most-constraining-variable.

    The MCV degree of a variable is the weighted count of relations it shares
    with other unassigned variables: same class, same subject, and each
    teacher that appears in both domains. Counters are kept incrementally as
    variables are assigned and unassigned.
    """

    def __init__(self, problem: CSPProblem, weights: HeuristicWeights):
        self.problem = problem
        self.weights = weights
        self._position = {v.id: i for i, v in enumerate(problem.variables)}
        self._class_count: Counter = Counter()
        self._subject_count: Counter = Counter()
        self._teacher_count: Counter = Counter()

    def track(self, variable_ids: Iterable[str]) -> None:
        """Register variables as unassigned."""
        for variable_id in variable_ids:
            self._adjust(variable_id, 1)

    def assigned(self, variable_id: str) -> None:
        self._adjust(variable_id, -1)

    def unassigned(self, variable_id: str) -> None:
        self._adjust(variable_id, 1)

    def _adjust(self, variable_id: str, delta: int) -> None:
        variable = self.problem.variable(variable_id)
        self._class_count[variable.class_id] += delta
        self._subject_count[variable.subject_id] += delta
        for teacher_id in self.problem.teacher_options.get(variable_id, ()):
            self._teacher_count[teacher_id] += delta

    def degree(self, variable_id: str) -> float:
        """Weighted number of constraints shared with other unassigned variables."""
        variable = self.problem.variable(variable_id)
        shared_teachers = sum(
            self._teacher_count[t] - 1
            for t in self.problem.teacher_options.get(variable_id, ())
        )
        return (
            self.weights.shared_class * (self._class_count[variable.class_id] - 1)
            + self.weights.shared_subject * (self._subject_count[variable.subject_id] - 1)
            + self.weights.shared_teacher * shared_teachers
        )

    def select(self, unassigned: Iterable[str], store: DomainStore) -> str | None:
        """Pick the next variable to assign, or None when nothing is left."""
        best_size = None
        ties: list[str] = []
        for variable_id in unassigned:
            size = store.size(variable_id)
            if best_size is None or size < best_size:
                best_size = size
                ties = [variable_id]
            elif size == best_size:
                ties.append(variable_id)

        if not ties:
            return None
        if len(ties) == 1:
            return ties[0]
        return min(ties, key=lambda vid: (-self.degree(vid), self._position[vid]))


class ValueOrdering:
    """Least-constraining-value ordering.

    A candidate's cost estimates how many entries it would remove from the
    domains of other variables, read from the store's per-slot demand
    counters instead of a full propagation. Ties favour days that hold fewer
    periods of the same class-subject (unless it is taught in double
    periods), then more proficient teachers, then preferred slots, then
    lattice order.
    """

    def __init__(self, problem: CSPProblem, preferences: PreferenceConstraints):
        self.problem = problem
        self.preferences = preferences

    def order(
        self,
        variable: Variable,
        store: DomainStore,
        tracker: ConflictTracker | None = None,
    ) -> list[Candidate]:
        teachers = self.problem.constraints.teachers
        same_day = self._sibling_days(variable, tracker)
        keyed = []
        for slot in store.slots(variable.id):
            own = store.at_slot(variable.id, slot)
            own_teacher = Counter(c.teacher_id for c in own)
            own_room = Counter(c.room_id for c in own)
            same_class = store.class_demand[(slot, variable.class_id)] - len(own)
            for candidate in own:
                _, teacher_id, room_id = candidate
                same_teacher = store.teacher_demand[(slot, teacher_id)] - own_teacher[teacher_id]
                same_room = store.room_demand[(slot, room_id)] - own_room[room_id]
                same_pair = store.pair_demand[(slot, teacher_id, room_id)] - 1
                removed = same_class + same_teacher + same_room - same_pair

                teacher = teachers.get(teacher_id)
                proficiency = teacher.proficiency(variable.subject_id) if teacher else 0
                bonus = self.preferences.bonus(variable.class_id, variable.subject_id, candidate)
                keyed.append(
                    (removed, same_day[slot.day_index], -proficiency, -(bonus or 0.0), candidate)
                )

        keyed.sort()
        return [entry[-1] for entry in keyed]

    def _sibling_days(self, variable: Variable, tracker: ConflictTracker | None) -> Counter:
        """Periods of the same class-subject already placed on each day."""
        days: Counter = Counter()
        if tracker is None:
            return days
        requirement = self.problem.constraints.requirement(variable.class_id, variable.subject_id)
        if requirement is not None and requirement.requires_double_period:
            return days
        for slot in self.problem.constraints.time_slots:
            occupant = tracker.class_occupant(variable.class_id, slot)
            if occupant is not None and tracker.assignments[occupant].subject_id == variable.subject_id:
                days[slot.day_index] += 1
        return days
