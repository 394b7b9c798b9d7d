"""Timetable generation pipeline."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

from .config.settings import GenerationConfig
from .config.source import SchedulingDataSource, Scope
from .conflicts import ConflictDetector
from .exceptions import InternalConsistencyViolation, TimetableError
from .gatherer import ConstraintGatherer
from .models import GenerationReport, SearchResult, TimetableVersion
from .optimizer import ScheduleOptimizer
from .persistence import PersistenceWriter, persist_version
from .scorer import Scorer
from .solver.search import BacktrackingSolver, CancellationToken
from .solver.variables import CSPProblem, ProblemBuilder

logger = logging.getLogger(__name__)
consistency_logger = logging.getLogger("timetable_engine.consistency")


@dataclass
class GenerationOutcome:
    """Everything one run produced."""

    report: GenerationReport
    version: TimetableVersion | None
    config: GenerationConfig


class TimetableGenerator:
    """Runs gather -> build -> search -> optimize -> validate -> score -> persist.

    The generator holds no per-run state, so one instance can serve several
    scopes at once; every run builds its own constraint set, domains and
    occupancy tracker.
    """

    def __init__(
        self,
        source: SchedulingDataSource,
        writer: PersistenceWriter,
        config: GenerationConfig | None = None,
    ):
        self.source = source
        self.writer = writer
        self.config = config or GenerationConfig()

    def check(self, scope: Scope) -> CSPProblem:
        """Run only the fail-fast steps (gathering and domain building).

        Raises:
            InfeasibleInputError: If the input admits no schedule
        """
        constraints = ConstraintGatherer(self.source, self.config).gather(scope)
        return ProblemBuilder().build(constraints)

    def generate(self, scope: Scope, cancel: CancellationToken | None = None) -> GenerationReport:
        """Generate and persist a timetable for one scope."""
        return self.run(scope, cancel).report

    def run(self, scope: Scope, cancel: CancellationToken | None = None) -> GenerationOutcome:
        """Generate a timetable and return the report with the written version.

        Raises:
            InfeasibleInputError: If the input admits no schedule
            PersistenceFailure: If the version could not be written
            InternalConsistencyViolation: If a complete result fails re-validation
        """
        started = time.monotonic()
        logger.info(f"Generating timetable for {scope}")

        problem = self.check(scope)
        constraints = problem.constraints
        config = constraints.config

        result = BacktrackingSolver(problem).solve(cancel)
        optimized = ScheduleOptimizer(problem).optimize(result.assignments)
        assignments = optimized.assignments

        detector = ConflictDetector()
        conflicts = detector.detect(assignments)
        if result.is_complete:
            self._verify_complete(problem, result, detector, conflicts, assignments)

        scorer = Scorer(constraints)
        breakdown = scorer.score(assignments, conflicts, len(result.unresolved_variables))

        version = None
        if result.is_complete or config.persist_partial:
            created_at = datetime.now()
            name = f"Generated timetable {created_at.strftime('%Y-%m-%d')}"
            metadata = {
                "term_id": scope.term_id,
                "name": name,
                "status": result.status.value,
                "score": round(breakdown.total, 2),
                "conflict_count": len(conflicts),
                "unresolved_variables": list(result.unresolved_variables),
                "goals": list(breakdown.weights),
                "created_at": created_at.isoformat(),
                "config": config.to_dict(),
            }
            version_id = persist_version(self.writer, scope.school_id, metadata, assignments)
            version = TimetableVersion(
                version_id=version_id,
                school_id=scope.school_id,
                term_id=scope.term_id,
                name=name,
                assignments=tuple(assignments),
                status=result.status,
                score=breakdown.total,
                conflict_count=len(conflicts),
                goals=tuple(breakdown.weights),
                created_at=created_at.isoformat(),
            )
        else:
            logger.warning(f"Partial result for {scope} not persisted")

        elapsed_ms = (time.monotonic() - started) * 1000
        report = GenerationReport(
            version_id=version.version_id if version else None,
            score=breakdown.total,
            conflicts=conflicts,
            teacher_workload=scorer.teacher_workload(assignments),
            room_utilization=scorer.room_utilization(assignments),
            iteration_count=result.iteration_count,
            elapsed_ms=elapsed_ms,
            status=result.status,
            unresolved_variables=list(result.unresolved_variables),
            backtrack_count=result.backtrack_count,
            score_breakdown=breakdown,
            optimization=optimized.metrics.to_dict(),
        )
        logger.info(
            f"Finished {scope}: status {result.status.value}, score {breakdown.total:.1f}, "
            f"{len(assignments)} assignments, {elapsed_ms:.0f} ms"
        )
        return GenerationOutcome(report=report, version=version, config=config)

    @staticmethod
    def _verify_complete(
        problem: CSPProblem,
        result: SearchResult,
        detector: ConflictDetector,
        conflicts: list,
        assignments: list,
    ) -> None:
        missing, duplicated = detector.find_coverage_gaps(problem.variables, assignments)
        if not (conflicts or missing or duplicated):
            return
        consistency_logger.error(
            f"Complete result for {problem.constraints.scope} failed re-validation after "
            f"{result.iteration_count} iterations: {len(conflicts)} conflict(s), "
            f"missing {missing}, duplicated {duplicated}"
        )
        for conflict in conflicts:
            consistency_logger.error(f"  - {conflict.description}")
        raise InternalConsistencyViolation(conflicts, missing, duplicated)

    def generate_all(
        self,
        scopes: list[Scope],
        max_workers: int | None = None,
        cancel: CancellationToken | None = None,
    ) -> dict[Scope, GenerationReport | TimetableError]:
        """Generate several independent scopes concurrently.

        Returns:
            Report per scope, or the TimetableError that stopped that scope
        """
        results: dict[Scope, GenerationReport | TimetableError] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {scope: executor.submit(self.generate, scope, cancel) for scope in scopes}
            for scope, future in futures.items():
                try:
                    results[scope] = future.result()
                except TimetableError as e:
                    logger.error(f"Generation for {scope} failed: {e}")
                    results[scope] = e
        return results
