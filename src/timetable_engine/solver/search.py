"""Backtracking search with forward propagation."""

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from ..conflicts import ConflictTracker
from ..constraints.hard import HardConstraints
from ..constraints.soft import PreferenceConstraints
from ..models import Assignment, Candidate, SearchResult, SearchStatus, Variable
from .domains import Trail, TrailFrame
from .heuristics import ValueOrdering, VariableOrdering
from .variables import CSPProblem

logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 1000


class CancellationToken(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass
class _Choice:
    """One level of the search stack."""

    variable: Variable
    candidates: list[Candidate]
    index: int = 0
    committed: Candidate | None = None


class BacktrackingSolver:
    """Chronological backtracking over (slot, teacher, room) candidates.

    Variables are chosen by MRV with MCV tie-breaking, values by LCV. Every
    tentative assignment is checked against the hard constraints, then
    propagated: conflicting entries are removed from the other unassigned
    domains and logged in a trail frame. Backtracking undoes the frame, which
    restores exactly the removed entries. The search stack is explicit, so
    depth is bounded by memory, not by the interpreter's recursion limit.

    Iteration budget, time budget and cancellation all end the search with
    the best partial assignment found; none of them raise.
    """

    def __init__(
        self,
        problem: CSPProblem,
        max_iterations: int | None = None,
        time_limit_seconds: float | None = None,
    ):
        config = problem.constraints.config
        self.problem = problem
        self.max_iterations = (
            max_iterations if max_iterations is not None else config.max_iterations
        )
        self.time_limit_seconds = (
            time_limit_seconds if time_limit_seconds is not None else config.time_limit_seconds
        )
        self.hard = HardConstraints(problem.constraints, problem.pinned_candidates)
        self.value_ordering = ValueOrdering(
            problem, PreferenceConstraints(problem.constraints)
        )
        self._reset()

    def _reset(self) -> None:
        """Fresh search state over a copy of the problem's initial domains."""
        self.store = self.problem.domains.copy()
        self.trail = Trail(self.store)
        self.tracker = ConflictTracker()
        self.variable_ordering = VariableOrdering(
            self.problem, self.problem.constraints.config.heuristic_weights
        )
        self.unassigned: set[str] = set()

    def solve(self, cancel: CancellationToken | None = None) -> SearchResult:
        """Run the search.

        Args:
            cancel: Optional token polled at every iteration

        Returns:
            SearchResult; complete, or the best partial assignment with the
            unresolved variables listed
        """
        self._reset()
        started = time.monotonic()
        deadline = started + self.time_limit_seconds if self.time_limit_seconds else None

        for assignment in self.problem.pinned.values():
            self.tracker.reserve(assignment)
        free = [v.id for v in self.problem.free_variables]
        self.unassigned = set(free)
        self.variable_ordering.track(free)

        logger.info(
            f"Searching {len(free)} variables ({len(self.problem.pinned)} pinned), "
            f"budget {self.max_iterations} iterations"
        )

        best: list[Assignment] = list(self.tracker.assignments.values())
        choices: list[_Choice] = []
        iterations = 0
        backtracks = 0
        descend = True
        status: SearchStatus

        while True:
            if cancel is not None and cancel.is_set():
                status = SearchStatus.CANCELLED
                break
            if iterations >= self.max_iterations:
                status = SearchStatus.BUDGET_EXHAUSTED
                break
            if deadline is not None and time.monotonic() >= deadline:
                status = SearchStatus.TIME_LIMIT
                break
            iterations += 1
            if iterations % PROGRESS_LOG_INTERVAL == 0:
                logger.debug(
                    f"Iteration {iterations}: {len(self.unassigned)} unassigned, "
                    f"{backtracks} backtracks"
                )

            if descend:
                variable_id = self.variable_ordering.select(self.unassigned, self.store)
                if variable_id is None:
                    status = SearchStatus.COMPLETE
                    break
                variable = self.problem.variable(variable_id)
                candidates = self.value_ordering.order(variable, self.store, self.tracker)
                choices.append(_Choice(variable, candidates))

            choice = choices[-1]
            if choice.committed is not None:
                self._undo(choice)
                backtracks += 1

            candidate = self._next_consistent(choice)
            if candidate is None:
                choices.pop()
                if not choices:
                    status = SearchStatus.SEARCH_EXHAUSTED
                    break
                descend = False
                continue

            frame = self._commit(choice, candidate)
            if frame.wiped_out is not None:
                descend = False
                continue

            descend = True
            if len(self.tracker) > len(best):
                best = list(self.tracker.assignments.values())

        if status == SearchStatus.COMPLETE:
            best = list(self.tracker.assignments.values())

        order = {v.id: i for i, v in enumerate(self.problem.variables)}
        best.sort(key=lambda a: order[a.variable_id])
        assigned = {a.variable_id for a in best}
        unresolved = [vid for vid in free if vid not in assigned]
        elapsed_ms = (time.monotonic() - started) * 1000

        if status == SearchStatus.COMPLETE:
            logger.info(
                f"Search complete in {iterations} iterations, "
                f"{backtracks} backtracks, {elapsed_ms:.0f} ms"
            )
        else:
            logger.warning(
                f"Search stopped ({status.value}) after {iterations} iterations: "
                f"{len(unresolved)} of {len(free)} variables unresolved"
            )

        return SearchResult(
            assignments=best,
            unresolved_variables=unresolved,
            iteration_count=iterations,
            backtrack_count=backtracks,
            elapsed_ms=elapsed_ms,
            status=status,
        )

    def _next_consistent(self, choice: _Choice) -> Candidate | None:
        """Advance to the next candidate that passes the consistency check."""
        variable = choice.variable
        while choice.index < len(choice.candidates):
            candidate = choice.candidates[choice.index]
            choice.index += 1
            if not self.store.contains(variable.id, candidate):
                continue
            if self.hard.is_consistent(variable, candidate, self.tracker):
                return candidate
        return None

    def _commit(self, choice: _Choice, candidate: Candidate) -> TrailFrame:
        """Tentatively assign a candidate and propagate it.

        The variable's own domain shrinks to the candidate; every other
        unassigned domain loses the entries that share the slot with the same
        class, teacher or room. All removals go into one trail frame.
        """
        variable = choice.variable
        slot, teacher_id, room_id = candidate
        frame = TrailFrame(variable.id, candidate)
        self.trail.push(frame)

        others = [c for c in self.store.iter_candidates(variable.id) if c != candidate]
        self.trail.record(frame, variable.id, others)

        self.unassigned.discard(variable.id)
        self.variable_ordering.assigned(variable.id)
        self.tracker.reserve(Assignment.for_variable(variable, candidate))
        choice.committed = candidate

        for other_id in self.unassigned:
            entries = self.store.at_slot(other_id, slot)
            if not entries:
                continue
            other = self.problem.variable(other_id)
            if other.class_id == variable.class_id:
                conflicting = list(entries)
            else:
                conflicting = [
                    e for e in entries if e.teacher_id == teacher_id or e.room_id == room_id
                ]
            if not conflicting:
                continue
            self.trail.record(frame, other_id, conflicting)
            if self.store.is_empty(other_id):
                frame.wiped_out = other_id
                break
        return frame

    def _undo(self, choice: _Choice) -> TrailFrame:
        """Retract the choice's tentative assignment and restore its removals."""
        frame = self.trail.undo()
        self.tracker.release(choice.variable.id)
        self.unassigned.add(choice.variable.id)
        self.variable_ordering.unassigned(choice.variable.id)
        choice.committed = None
        return frame
