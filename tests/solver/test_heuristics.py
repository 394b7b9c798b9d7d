"""Tests for variable and value ordering."""

from timetable_engine.config import ScopeData
from timetable_engine.conflicts import ConflictTracker
from timetable_engine.constraints import PreferenceConstraints
from timetable_engine.models import Assignment, Candidate, TimeSlot
from timetable_engine.solver import ValueOrdering, VariableOrdering


def _with(data: ScopeData, **changes) -> ScopeData:
    return ScopeData(**dict(data.__dict__, **changes))


def _variable_ordering(problem):
    ordering = VariableOrdering(problem, problem.constraints.config.heuristic_weights)
    ordering.track(v.id for v in problem.variables)
    return ordering


def _value_ordering(problem):
    return ValueOrdering(problem, PreferenceConstraints(problem.constraints))


class TestVariableOrdering:
    """Tests for MRV/MCV selection."""

    def test_smallest_domain_first(self, build_problem, unique_solution_data, one_day_two_periods_config):
        problem = build_problem(unique_solution_data, one_day_two_periods_config)
        ordering = _variable_ordering(problem)

        selected = ordering.select([v.id for v in problem.variables], problem.domains)

        assert selected == "8b_art_0"

    def test_nothing_left(self, build_problem, scenario_data):
        problem = build_problem(scenario_data)

        assert _variable_ordering(problem).select([], problem.domains) is None

    def test_ties_broken_by_degree(self, build_problem, scenario_data):
        data = _with(
            scenario_data,
            classes=scenario_data.classes + [{"id": "7b", "name": "7B", "student_count": 20}],
            class_subject_requirements=[
                {"class_id": "7a", "subject_id": "math", "periods_per_week": 1},
                {"class_id": "7b", "subject_id": "math", "periods_per_week": 2},
            ],
        )
        problem = build_problem(data)
        ordering = _variable_ordering(problem)
        ids = [v.id for v in problem.variables]

        # equal domains; 7b_math_0 also shares its class with 7b_math_1
        assert ordering.degree("7b_math_0") > ordering.degree("7a_math_0")
        assert ordering.select(ids, problem.domains) == "7b_math_0"

    def test_degree_follows_assignment(self, build_problem, unique_solution_data, one_day_two_periods_config):
        problem = build_problem(unique_solution_data, one_day_two_periods_config)
        ordering = _variable_ordering(problem)
        before = ordering.degree("8a_math_0")

        ordering.assigned("8a_math_1")
        assert ordering.degree("8a_math_0") < before

        ordering.unassigned("8a_math_1")
        assert ordering.degree("8a_math_0") == before


class TestValueOrdering:
    """Tests for LCV ordering."""

    def test_least_constraining_first(self, build_problem, unique_solution_data, one_day_two_periods_config):
        problem = build_problem(unique_solution_data, one_day_two_periods_config)
        variable = problem.variable("8a_math_0")

        ordered = _value_ordering(problem).order(variable, problem.domains)

        assert len(ordered) == problem.domains.size("8a_math_0")
        assert ordered[:2] == [
            Candidate(TimeSlot(0, 1), "t_math", "r1"),
            Candidate(TimeSlot(0, 2), "t_math", "r1"),
        ]
        # the more proficient teacher wins among equally constraining values
        assert ordered[2].teacher_id == "t_math"

    def test_spreads_across_days(self, build_problem, scenario_data, two_day_config):
        problem = build_problem(scenario_data, two_day_config)
        tracker = ConflictTracker()
        first = problem.variable("7a_math_0")
        tracker.reserve(Assignment.for_variable(first, Candidate(TimeSlot(0, 1), "t1", "r101")))

        ordered = _value_ordering(problem).order(problem.variable("7a_math_1"), problem.domains, tracker)

        assert [c.slot.day_index for c in ordered] == [1, 1, 0, 0]

    def test_double_periods_not_spread(self, build_problem, scenario_data, two_day_config):
        requirement = dict(scenario_data.class_subject_requirements[0], requires_double_period="true")
        problem = build_problem(
            _with(scenario_data, class_subject_requirements=[requirement]), two_day_config
        )
        tracker = ConflictTracker()
        first = problem.variable("7a_math_0")
        tracker.reserve(Assignment.for_variable(first, Candidate(TimeSlot(0, 1), "t1", "r101")))

        ordered = _value_ordering(problem).order(problem.variable("7a_math_1"), problem.domains, tracker)

        assert ordered[0].slot == TimeSlot(0, 1)

    def test_preferred_slot_breaks_ties(self, build_problem, scenario_data, two_day_config):
        teacher = dict(scenario_data.teachers[0], preferred_periods=[{"day": "tuesday", "period": 2}])
        problem = build_problem(_with(scenario_data, teachers=[teacher]), two_day_config)

        ordered = _value_ordering(problem).order(problem.variable("7a_math_0"), problem.domains)

        assert ordered[0].slot == TimeSlot(1, 2)
