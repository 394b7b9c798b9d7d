"""Test fixtures for timetable engine tests."""

import pytest

from timetable_engine.config import GenerationConfig, InMemorySource, Scope, ScopeData
from timetable_engine.gatherer import ConstraintGatherer
from timetable_engine.solver import ProblemBuilder

SCOPE = Scope("school-1", "term-1")


def _config(**overrides) -> GenerationConfig:
    values = {"break_periods": [], "time_limit_seconds": None}
    values.update(overrides)
    return GenerationConfig(**values)


@pytest.fixture
def scope():
    return SCOPE


@pytest.fixture
def make_config():
    """Factory for configs without breaks or wall-clock budget."""
    return _config


@pytest.fixture
def gather():
    """Gather a ConstraintSet from raw scope rows."""

    def _gather(data: ScopeData, config: GenerationConfig | None = None, scope: Scope = SCOPE):
        source = InMemorySource({scope: data})
        return ConstraintGatherer(source, config or _config()).gather(scope)

    return _gather


@pytest.fixture
def build_problem(gather):
    """Gather and build the CSP from raw scope rows."""

    def _build(data: ScopeData, config: GenerationConfig | None = None):
        return ProblemBuilder().build(gather(data, config))

    return _build


@pytest.fixture
def two_day_config():
    """Monday and Tuesday, two periods each."""
    return _config(working_days=["monday", "tuesday"], periods_per_day=2)


@pytest.fixture
def scenario_data():
    """One class needing one subject twice a week, one teacher, one room."""
    return ScopeData(
        teachers=[{"id": "t1", "name": "Anna Berg"}],
        classes=[{"id": "7a", "name": "7A", "student_count": 24}],
        subjects=[{"id": "math", "name": "Mathematics"}],
        rooms=[{"id": "r101", "name": "Room 101", "room_type": "classroom", "capacity": 30}],
        teacher_capabilities=[{"teacher_id": "t1", "subject_id": "math", "proficiency": 4}],
        class_subject_requirements=[
            {"class_id": "7a", "subject_id": "math", "periods_per_week": 2}
        ],
    )


@pytest.fixture
def one_day_two_periods_config():
    return _config(working_days=["monday"], periods_per_day=2)


@pytest.fixture
def unique_solution_data():
    """2 classes, 2 subjects, 2 teachers, 2 rooms, 2 slots; one feasible timetable.

    Art needs the lab and only t_art teaches it, so class 8b has art with
    t_art in the lab in both slots. That leaves class 8a with math, taught by
    t_math in room r1, in both slots.
    """
    return ScopeData(
        teachers=[
            {"id": "t_math", "name": "Math Teacher"},
            {"id": "t_art", "name": "Art Teacher"},
        ],
        classes=[
            {"id": "8a", "name": "8A", "student_count": 20},
            {"id": "8b", "name": "8B", "student_count": 20},
        ],
        subjects=[
            {"id": "math", "name": "Mathematics"},
            {"id": "art", "name": "Art", "requires_lab": "true"},
        ],
        rooms=[
            {"id": "r1", "name": "Room 1", "room_type": "classroom"},
            {"id": "lab", "name": "Lab", "room_type": "lab"},
        ],
        teacher_capabilities=[
            {"teacher_id": "t_math", "subject_id": "math", "proficiency": 5},
            # Decoy: t_art could teach math too, but is needed for art
            {"teacher_id": "t_art", "subject_id": "math", "proficiency": 2},
            {"teacher_id": "t_art", "subject_id": "art", "proficiency": 5},
        ],
        class_subject_requirements=[
            {"class_id": "8a", "subject_id": "math", "periods_per_week": 2},
            {"class_id": "8b", "subject_id": "art", "periods_per_week": 2},
        ],
    )


@pytest.fixture
def school_data():
    """A small school: three classes, four subjects, a lab, five days."""
    classes = ["5a", "5b", "6a"]
    requirements = []
    for class_id in classes:
        requirements += [
            {"class_id": class_id, "subject_id": "math", "periods_per_week": 4},
            {"class_id": class_id, "subject_id": "english", "periods_per_week": 3},
            {
                "class_id": class_id,
                "subject_id": "science",
                "periods_per_week": 2,
                "requires_double_period": "true",
            },
            {"class_id": class_id, "subject_id": "art", "periods_per_week": 1},
        ]
    return ScopeData(
        teachers=[
            {"id": "t_math", "name": "Maria Lind", "max_periods_per_day": 6},
            {"id": "t_eng", "name": "Erik Holm"},
            {"id": "t_sci", "name": "Sara Nyberg", "max_periods_per_week": 20},
            {"id": "t_art", "name": "Olof Ek"},
        ],
        classes=[{"id": c, "name": c.upper(), "student_count": 25} for c in classes],
        subjects=[
            {"id": "math", "name": "Mathematics"},
            {"id": "english", "name": "English"},
            {"id": "science", "name": "Science", "requires_lab": "true"},
            {"id": "art", "name": "Art"},
        ],
        rooms=[
            {"id": "r1", "name": "Room 1", "capacity": 30},
            {"id": "r2", "name": "Room 2", "capacity": 30},
            {"id": "r3", "name": "Room 3", "capacity": 30},
            {"id": "lab", "name": "Science Lab", "room_type": "lab", "capacity": 30},
        ],
        teacher_capabilities=[
            {"teacher_id": "t_math", "subject_id": "math", "proficiency": 5},
            {"teacher_id": "t_eng", "subject_id": "english", "proficiency": 5},
            {"teacher_id": "t_sci", "subject_id": "science", "proficiency": 5},
            {"teacher_id": "t_sci", "subject_id": "math", "proficiency": 3},
            {"teacher_id": "t_art", "subject_id": "art", "proficiency": 4},
            {"teacher_id": "t_art", "subject_id": "english", "proficiency": 3},
        ],
        class_subject_requirements=requirements,
    )


@pytest.fixture
def school_config():
    return _config(periods_per_day=6)
