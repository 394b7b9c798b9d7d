"""Problem builder: variables and initial domains of the CSP."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from ..exceptions import InfeasibilityIssue, InfeasibleInputError
from ..gatherer import ConstraintSet
from ..models import Assignment, Candidate, TimeSlot, Variable
from .domains import DomainStore

logger = logging.getLogger(__name__)


@dataclass
class CSPProblem:
    """Variables, domains and pinned assignments of one generation run."""

    constraints: ConstraintSet
    variables: list[Variable]
    domains: DomainStore
    pinned: dict[str, Assignment] = field(default_factory=dict)
    # variable_id -> teachers appearing anywhere in its initial domain
    teacher_options: dict[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._by_id = {v.id: v for v in self.variables}

    def variable(self, variable_id: str) -> Variable:
        return self._by_id[variable_id]

    @property
    def free_variables(self) -> list[Variable]:
        return [v for v in self.variables if v.id not in self.pinned]

    @property
    def pinned_candidates(self) -> dict[str, Candidate]:
        return {vid: a.candidate for vid, a in self.pinned.items()}


class ProblemBuilder:
    """Builds the CSP from a ConstraintSet.

    One Variable per weekly occurrence of every requirement. The first k
    occurrences of a class-subject with k pinned entries are bound to those
    entries. A free variable's domain is every lattice slot x capable teacher
    x compliant room, minus slots blocked for the class, teacher or room and
    minus anything a pinned entry already occupies.
    """

    def build(self, constraints: ConstraintSet) -> CSPProblem:
        """Build variables and domains.

        Raises:
            InfeasibleInputError: If any variable starts with an empty domain
        """
        variables: list[Variable] = []
        pinned: dict[str, Assignment] = {}

        for requirement in constraints.requirements:
            pins = sorted(
                constraints.fixed_for(requirement.class_id, requirement.subject_id),
                key=lambda f: f.slot,
            )
            for occurrence in range(requirement.periods_per_week):
                variable = Variable(requirement.class_id, requirement.subject_id, occurrence)
                variables.append(variable)
                if occurrence < len(pins):
                    pin = pins[occurrence]
                    pinned[variable.id] = Assignment.for_variable(
                        variable,
                        Candidate(pin.slot, pin.teacher_id, pin.room_id),
                        pinned=True,
                    )

        class_taken: dict[str, set[TimeSlot]] = defaultdict(set)
        teacher_taken: set[tuple[str, TimeSlot]] = set()
        room_taken: set[tuple[str, TimeSlot]] = set()
        for assignment in pinned.values():
            class_taken[assignment.class_id].add(assignment.slot)
            teacher_taken.add((assignment.teacher_id, assignment.slot))
            room_taken.add((assignment.room_id, assignment.slot))

        domains: dict[str, list[Candidate]] = {}
        issues: list[InfeasibilityIssue] = []
        for variable in variables:
            if variable.id in pinned:
                domains[variable.id] = [pinned[variable.id].candidate]
                continue

            entries = self._initial_domain(
                constraints, variable, class_taken, teacher_taken, room_taken
            )
            if not entries:
                issues.append(
                    InfeasibilityIssue(
                        constraint="empty_domain",
                        message=(
                            f"occurrence {variable.occurrence + 1} of "
                            f"'{variable.subject_id}' for class '{variable.class_id}' "
                            "has no available slot, teacher and room combination"
                        ),
                        class_id=variable.class_id,
                        subject_id=variable.subject_id,
                        variable_id=variable.id,
                    )
                )
            domains[variable.id] = entries

        if issues:
            logger.warning(f"{len(issues)} variable(s) have empty domains")
            raise InfeasibleInputError(issues)

        teacher_options = {
            vid: frozenset(c.teacher_id for c in entries) for vid, entries in domains.items()
        }
        total = sum(len(entries) for entries in domains.values())
        logger.info(
            f"Built {len(variables)} variables ({len(pinned)} pinned) "
            f"with {total} domain entries"
        )
        return CSPProblem(
            constraints=constraints,
            variables=variables,
            domains=DomainStore(domains, class_of={v.id: v.class_id for v in variables}),
            pinned=pinned,
            teacher_options=teacher_options,
        )

    @staticmethod
    def _initial_domain(
        constraints: ConstraintSet,
        variable: Variable,
        class_taken: dict[str, set[TimeSlot]],
        teacher_taken: set[tuple[str, TimeSlot]],
        room_taken: set[tuple[str, TimeSlot]],
    ) -> list[Candidate]:
        teachers = constraints.capable_teachers(variable.subject_id)
        rooms = constraints.compliant_rooms(variable.class_id, variable.subject_id)
        taken = class_taken.get(variable.class_id, set())
        entries = []
        for slot in constraints.time_slots:
            if slot in taken or not constraints.is_class_available(variable.class_id, slot):
                continue
            open_rooms = [
                r
                for r in rooms
                if (r, slot) not in room_taken and constraints.is_room_available(r, slot)
            ]
            if not open_rooms:
                continue
            for teacher_id in teachers:
                if (teacher_id, slot) in teacher_taken:
                    continue
                if not constraints.is_teacher_available(teacher_id, slot):
                    continue
                entries.extend(Candidate(slot, teacher_id, r) for r in open_rooms)
        return entries
