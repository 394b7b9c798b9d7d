"""Tests for post-search optimization."""

import pytest

from timetable_engine.config import ScopeData
from timetable_engine.models import Assignment, Candidate, TimeSlot
from timetable_engine.optimizer import ScheduleOptimizer


def _with(data: ScopeData, **changes) -> ScopeData:
    return ScopeData(**dict(data.__dict__, **changes))


def _place(problem, variable_id, day, period, teacher_id="t1", room_id="r101"):
    pinned = problem.pinned.get(variable_id)
    if pinned is not None:
        return pinned
    return Assignment.for_variable(
        problem.variable(variable_id), Candidate(TimeSlot(day, period), teacher_id, room_id)
    )


@pytest.fixture
def double_period_data(scenario_data):
    requirement = dict(scenario_data.class_subject_requirements[0], requires_double_period="true")
    return _with(scenario_data, class_subject_requirements=[requirement])


@pytest.fixture
def two_room_data(scenario_data):
    return _with(
        scenario_data,
        teachers=scenario_data.teachers + [{"id": "t2", "name": "Bo Lund"}],
        classes=scenario_data.classes + [{"id": "7b", "name": "7B", "student_count": 20}],
        rooms=scenario_data.rooms + [{"id": "r102", "name": "Room 102", "capacity": 30}],
        teacher_capabilities=scenario_data.teacher_capabilities
        + [{"teacher_id": "t2", "subject_id": "math"}],
        class_subject_requirements=scenario_data.class_subject_requirements
        + [{"class_id": "7b", "subject_id": "math", "periods_per_week": 1}],
    )


class TestDoublePeriods:
    """Tests for double period grouping."""

    def test_occurrences_moved_together(self, build_problem, double_period_data, two_day_config):
        problem = build_problem(double_period_data, two_day_config)
        assignments = [_place(problem, "7a_math_0", 0, 1), _place(problem, "7a_math_1", 1, 2)]

        result = ScheduleOptimizer(problem).optimize(assignments)

        slots = sorted(a.slot for a in result.assignments)
        assert slots == [TimeSlot(0, 1), TimeSlot(0, 2)]
        assert result.metrics.doubles_grouped == 1
        assert result.metrics.passes == 2

    def test_existing_pair_left_alone(self, build_problem, double_period_data, two_day_config):
        problem = build_problem(double_period_data, two_day_config)
        assignments = [_place(problem, "7a_math_0", 1, 1), _place(problem, "7a_math_1", 1, 2)]

        result = ScheduleOptimizer(problem).optimize(assignments)

        assert result.assignments == assignments
        assert result.metrics.doubles_grouped == 0
        assert result.metrics.passes == 1

    def test_pinned_occurrence_anchors(self, build_problem, double_period_data, two_day_config):
        pin = {
            "class_id": "7a",
            "subject_id": "math",
            "teacher_id": "t1",
            "room_id": "r101",
            "day": "tuesday",
            "period": 2,
        }
        problem = build_problem(_with(double_period_data, fixed_assignments=[pin]), two_day_config)
        assignments = [_place(problem, "7a_math_0", 1, 2), _place(problem, "7a_math_1", 0, 1)]

        result = ScheduleOptimizer(problem).optimize(assignments)

        by_id = {a.variable_id: a for a in result.assignments}
        assert by_id["7a_math_0"] == problem.pinned["7a_math_0"]
        assert by_id["7a_math_1"].slot == TimeSlot(1, 1)


class TestTeacherLocality:
    """Tests for room reuse between consecutive periods."""

    def test_room_reused(self, build_problem, two_room_data, two_day_config):
        problem = build_problem(two_room_data, two_day_config)
        assignments = [
            _place(problem, "7a_math_0", 0, 1, room_id="r101"),
            _place(problem, "7a_math_1", 0, 2, room_id="r102"),
            _place(problem, "7b_math_0", 1, 1, teacher_id="t2", room_id="r102"),
        ]

        result = ScheduleOptimizer(problem).optimize(assignments)

        by_id = {a.variable_id: a for a in result.assignments}
        assert by_id["7a_math_1"].room_id == "r101"
        assert by_id["7a_math_1"].slot == TimeSlot(0, 2)
        assert result.metrics.rooms_reused == 1
        # input order is kept
        assert [a.variable_id for a in result.assignments] == [
            "7a_math_0",
            "7a_math_1",
            "7b_math_0",
        ]

    def test_occupied_room_rejected(self, build_problem, two_room_data, two_day_config):
        problem = build_problem(two_room_data, two_day_config)
        assignments = [
            _place(problem, "7a_math_0", 0, 1, room_id="r101"),
            _place(problem, "7a_math_1", 0, 2, room_id="r102"),
            _place(problem, "7b_math_0", 0, 2, teacher_id="t2", room_id="r101"),
        ]

        result = ScheduleOptimizer(problem).optimize(assignments)

        assert result.assignments == assignments
        assert result.metrics.rooms_reused == 0
        assert result.metrics.moves_rejected == 1

    def test_no_passes(self, build_problem, two_room_data, two_day_config):
        problem = build_problem(two_room_data, two_day_config)
        assignments = [
            _place(problem, "7a_math_0", 0, 1, room_id="r101"),
            _place(problem, "7a_math_1", 0, 2, room_id="r102"),
        ]

        result = ScheduleOptimizer(problem, max_passes=0).optimize(assignments)

        assert result.assignments == assignments
        assert result.metrics.passes == 0


class TestPreferenceCount:
    """Tests for the preference metrics."""

    def test_counts_hits(self, build_problem, scenario_data, two_day_config):
        teacher = dict(scenario_data.teachers[0], preferred_periods=[{"day": "monday", "period": 1}])
        problem = build_problem(_with(scenario_data, teachers=[teacher]), two_day_config)
        assignments = [_place(problem, "7a_math_0", 0, 1), _place(problem, "7a_math_1", 1, 1)]

        metrics = ScheduleOptimizer(problem).optimize(assignments).metrics

        assert metrics.preference_declared == 2
        assert metrics.preferred_hits == 1
        assert metrics.to_dict()["preferred_hits"] == 1
