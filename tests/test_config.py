"""Tests for generation settings and weight tables."""

import logging

import pytest

from timetable_engine.config import (
    BreakPeriod,
    GenerationConfig,
    HeuristicWeights,
    normalize_goal_weights,
)
from timetable_engine.exceptions import ConfigurationError


class TestGenerationConfig:
    """Tests for GenerationConfig."""

    def test_defaults(self):
        config = GenerationConfig()
        assert config.working_days == ["monday", "tuesday", "wednesday", "thursday", "friday"]
        assert config.periods_per_day == 8
        assert config.period_duration_minutes == 40
        assert config.school_start_time == "08:00"
        assert config.break_periods == [BreakPeriod(2, 20), BreakPeriod(5, 40)]
        assert config.max_iterations == 10000
        assert config.slot_count == 40

    def test_default_goals_are_normalized(self):
        goals = GenerationConfig().optimization_goals
        assert list(goals) == [
            "minimize_conflicts",
            "balance_teacher_load",
            "maximize_room_utilization",
        ]
        assert sum(goals.values()) == pytest.approx(1.0)
        assert goals["minimize_conflicts"] == pytest.approx(0.4 / 0.9)

    def test_weekday_names_are_normalized(self):
        config = GenerationConfig(working_days=["Monday", " TUESDAY "])
        assert config.working_days == ["monday", "tuesday"]

    @pytest.mark.parametrize("days", [[], ["funday"], ["monday", "monday"]])
    def test_invalid_working_days(self, days):
        with pytest.raises(ConfigurationError) as exc_info:
            GenerationConfig(working_days=days)
        assert exc_info.value.key == "working_days"

    @pytest.mark.parametrize(
        "field, value",
        [
            ("periods_per_day", 0),
            ("period_duration_minutes", 0),
            ("school_start_time", "8 o'clock"),
            ("max_iterations", 0),
            ("time_limit_seconds", -1.0),
            ("optimizer_max_passes", -1),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ConfigurationError) as exc_info:
            GenerationConfig(**{field: value})
        assert exc_info.value.key == field

    def test_no_time_limit(self):
        assert GenerationConfig(time_limit_seconds=None).time_limit_seconds is None

    def test_from_dict_accepts_camel_case(self):
        config = GenerationConfig.from_dict(
            {
                "workingDays": ["monday", "tuesday"],
                "periodsPerDay": 2,
                "schoolStartTime": "09:00",
                "breakPeriods": [{"afterPeriod": 1, "durationMinutes": 15}],
                "optimizationGoals": ["minimize_conflicts"],
                "maxIterations": 50,
            }
        )
        assert config.working_days == ["monday", "tuesday"]
        assert config.periods_per_day == 2
        assert config.school_start_time == "09:00"
        assert config.break_periods == [BreakPeriod(1, 15)]
        assert config.optimization_goals == {"minimize_conflicts": 1.0}
        assert config.max_iterations == 50

    def test_from_dict_warns_on_unknown_key(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = GenerationConfig.from_dict({"periodsPerDay": 6, "colour": "blue"})
        assert config.periods_per_day == 6
        assert "colour" in caplog.text
        record = next(r for r in caplog.records if "colour" in r.getMessage())
        assert record.getMessage() == "Ignoring unknown setting 'colour'"
        assert not record.args

    def test_from_dict_strict_rejects_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            GenerationConfig.from_dict({"colour": "blue"}, strict=True, source="settings.json")
        assert exc_info.value.key == "colour"
        assert "settings.json" in str(exc_info.value)

    def test_break_with_unknown_field(self):
        with pytest.raises(ConfigurationError):
            GenerationConfig.from_dict({"break_periods": [{"after_period": 2, "length": 10}]})

    def test_merged_returns_new_config(self):
        base = GenerationConfig()
        merged = base.merged({"periodsPerDay": 6, "max_iterations": 200})
        assert merged.periods_per_day == 6
        assert merged.max_iterations == 200
        assert base.periods_per_day == 8

    def test_to_dict_round_trip(self):
        config = GenerationConfig(
            working_days=["monday", "wednesday"],
            optimization_goals={"minimize_conflicts": 3, "respect_preferences": 1},
            reserve_special_rooms=True,
        )
        restored = GenerationConfig.from_dict(config.to_dict())
        assert restored == config


class TestGoalWeights:
    """Tests for normalize_goal_weights."""

    def test_list_uses_default_weights(self):
        weights = normalize_goal_weights(["minimize_conflicts", "respect_preferences"])
        assert weights["minimize_conflicts"] == pytest.approx(0.8)
        assert weights["respect_preferences"] == pytest.approx(0.2)

    def test_mapping_is_renormalized(self):
        weights = normalize_goal_weights({"minimize_conflicts": 2, "balance_teacher_load": 2})
        assert weights == {"minimize_conflicts": 0.5, "balance_teacher_load": 0.5}

    def test_unknown_goal(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_goal_weights(["minimize_cost"])
        assert "minimize_cost" in str(exc_info.value)

    @pytest.mark.parametrize(
        "goals",
        [
            [],
            {"minimize_conflicts": 0},
            {"minimize_conflicts": -1},
            {"minimize_conflicts": "heavy"},
            ["minimize_conflicts", "minimize_conflicts"],
        ],
    )
    def test_invalid_tables(self, goals):
        with pytest.raises(ConfigurationError):
            normalize_goal_weights(goals)

    def test_warns_when_conflicts_not_heaviest(self, caplog):
        with caplog.at_level(logging.WARNING):
            normalize_goal_weights({"minimize_conflicts": 1, "balance_teacher_load": 3})
        assert "not the heaviest" in caplog.text


class TestHeuristicWeights:
    """Tests for HeuristicWeights."""

    def test_config_normalizes(self):
        weights = GenerationConfig().heuristic_weights
        assert weights.shared_class == pytest.approx(0.4)
        assert weights.shared_teacher == pytest.approx(0.4)
        assert weights.shared_subject == pytest.approx(0.2)

    def test_from_dict(self):
        weights = HeuristicWeights.from_dict({"shared_class": 3, "shared_teacher": 1})
        total = weights.shared_class + weights.shared_teacher + weights.shared_subject
        assert total == pytest.approx(1.0)
        assert weights.shared_class > weights.shared_teacher

    def test_from_dict_rejects_unknown(self):
        with pytest.raises(ConfigurationError):
            HeuristicWeights.from_dict({"shared_room": 1})

    @pytest.mark.parametrize(
        "values",
        [
            {"shared_class": -1.0},
            {"shared_class": 0.0, "shared_teacher": 0.0, "shared_subject": 0.0},
        ],
    )
    def test_invalid(self, values):
        with pytest.raises(ConfigurationError):
            HeuristicWeights(**values)

    def test_config_accepts_mapping(self):
        config = GenerationConfig.from_dict({"heuristic_weights": {"shared_subject": 2}})
        assert config.heuristic_weights.shared_subject == pytest.approx(0.5)
