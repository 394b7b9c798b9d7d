"""Timetable Engine - weekly school timetable generation.

This package gathers teachers, classes, subjects, rooms and availability for
one school/term, solves the resulting constraint satisfaction problem with a
backtracking search, improves the result locally, scores it and commits it as
an immutable timetable version.

Example usage:
    from timetable_engine import (
        DirectorySource,
        JsonDirectoryWriter,
        Scope,
        TimetableGenerator,
    )

    generator = TimetableGenerator(
        DirectorySource("data"),
        JsonDirectoryWriter("output/versions"),
    )
    report = generator.generate(Scope("school-1", "2024-fall"))

    print(f"Status: {report.status.value}")
    print(f"Score: {report.score:.1f}")

    for workload in report.teacher_workload:
        print(f"{workload.teacher_name}: {workload.total_periods} periods")

    # Export to Excel
    from timetable_engine.exporters import ExcelExporter
    outcome = generator.run(Scope("school-1", "2024-fall"))
    ExcelExporter().export(outcome.version, outcome.report, outcome.config, "timetable.xlsx")
"""

from .config import (
    DirectorySource,
    GenerationConfig,
    HeuristicWeights,
    InMemorySource,
    OptimizationGoal,
    SchedulingDataSource,
    Scope,
    ScopeData,
)
from .conflicts import ConflictDetector, ConflictTracker
from .engine import GenerationOutcome, TimetableGenerator
from .exceptions import (
    ConfigurationError,
    InfeasibilityIssue,
    InfeasibleInputError,
    InternalConsistencyViolation,
    PersistenceFailure,
    SearchBudgetExceeded,
    TimetableError,
)
from .exporters import CSVExporter, ExcelExporter, JSONExporter, get_exporter
from .gatherer import ConstraintGatherer, ConstraintSet
from .models import (
    Assignment,
    Candidate,
    Conflict,
    GenerationReport,
    SearchResult,
    SearchStatus,
    TimeSlot,
    TimetableVersion,
    Variable,
)
from .optimizer import ScheduleOptimizer
from .persistence import InMemoryWriter, JsonDirectoryWriter, PersistenceWriter
from .scorer import Scorer
from .solver import BacktrackingSolver, ProblemBuilder

__version__ = "0.1.0"

__all__ = [
    # Main generator
    "TimetableGenerator",
    "GenerationOutcome",
    # Configuration and sources
    "GenerationConfig",
    "HeuristicWeights",
    "OptimizationGoal",
    "Scope",
    "ScopeData",
    "SchedulingDataSource",
    "InMemorySource",
    "DirectorySource",
    # Pipeline stages
    "ConstraintGatherer",
    "ConstraintSet",
    "ProblemBuilder",
    "BacktrackingSolver",
    "ScheduleOptimizer",
    "ConflictDetector",
    "ConflictTracker",
    "Scorer",
    # Models
    "TimeSlot",
    "Variable",
    "Candidate",
    "Assignment",
    "Conflict",
    "SearchResult",
    "SearchStatus",
    "GenerationReport",
    "TimetableVersion",
    # Persistence
    "PersistenceWriter",
    "InMemoryWriter",
    "JsonDirectoryWriter",
    # Exporters
    "JSONExporter",
    "CSVExporter",
    "ExcelExporter",
    "get_exporter",
    # Exceptions
    "TimetableError",
    "ConfigurationError",
    "InfeasibilityIssue",
    "InfeasibleInputError",
    "SearchBudgetExceeded",
    "PersistenceFailure",
    "InternalConsistencyViolation",
]
