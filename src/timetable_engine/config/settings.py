"""Generation settings."""

import logging
from dataclasses import dataclass, field, fields
from typing import Any

from ..constants import (
    DEFAULT_BREAK_PERIODS,
    DEFAULT_OPTIMIZER_MAX_PASSES,
    DEFAULT_PERIOD_DURATION_MINUTES,
    DEFAULT_PERIODS_PER_DAY,
    DEFAULT_SCHOOL_START_TIME,
    DEFAULT_TIME_LIMIT_SECONDS,
    DEFAULT_WORKING_DAYS,
    MAX_ITERATIONS,
)
from ..exceptions import ConfigurationError
from ..models import Weekday
from ..utils import parse_clock
from .weights import HeuristicWeights, normalize_goal_weights

logger = logging.getLogger(__name__)

# camelCase spellings accepted in settings payloads
KEY_ALIASES = {
    "workingDays": "working_days",
    "periodsPerDay": "periods_per_day",
    "periodDurationMinutes": "period_duration_minutes",
    "schoolStartTime": "school_start_time",
    "breakPeriods": "break_periods",
    "optimizationGoals": "optimization_goals",
    "maxIterations": "max_iterations",
    "timeLimitSeconds": "time_limit_seconds",
}

BREAK_KEY_ALIASES = {
    "afterPeriod": "after_period",
    "durationMinutes": "duration_minutes",
}


@dataclass(frozen=True)
class BreakPeriod:
    """A break inserted after a period."""

    after_period: int
    duration_minutes: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BreakPeriod":
        """Create from dictionary (snake_case or camelCase keys)."""
        values = {BREAK_KEY_ALIASES.get(k, k): v for k, v in data.items()}
        unknown = set(values) - {"after_period", "duration_minutes"}
        if unknown:
            raise ConfigurationError(
                f"unknown break field(s): {', '.join(sorted(unknown))}",
                key="break_periods",
            )
        try:
            return cls(int(values["after_period"]), int(values["duration_minutes"]))
        except KeyError as e:
            raise ConfigurationError(
                f"break is missing {e.args[0]}", key="break_periods"
            ) from e

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary."""
        return {
            "after_period": self.after_period,
            "duration_minutes": self.duration_minutes,
        }


def _default_breaks() -> list[BreakPeriod]:
    return [BreakPeriod(after, minutes) for after, minutes in DEFAULT_BREAK_PERIODS]


@dataclass
class GenerationConfig:
    """Settings of one generation run.

    ``optimization_goals`` accepts a list of goal names or a name -> weight
    mapping; after construction it always holds normalized weights.
    ``time_limit_seconds`` of None disables the wall-clock budget.
    """

    working_days: list[str] = field(default_factory=lambda: list(DEFAULT_WORKING_DAYS))
    periods_per_day: int = DEFAULT_PERIODS_PER_DAY
    period_duration_minutes: int = DEFAULT_PERIOD_DURATION_MINUTES
    school_start_time: str = DEFAULT_SCHOOL_START_TIME
    break_periods: list[BreakPeriod] = field(default_factory=_default_breaks)
    optimization_goals: dict[str, float] | list[str] | None = None
    max_iterations: int = MAX_ITERATIONS
    time_limit_seconds: float | None = DEFAULT_TIME_LIMIT_SECONDS
    enforce_teacher_load_limits: bool = True
    reserve_special_rooms: bool = False
    optimizer_max_passes: int = DEFAULT_OPTIMIZER_MAX_PASSES
    persist_partial: bool = True
    strict_inputs: bool = False
    heuristic_weights: HeuristicWeights = field(default_factory=HeuristicWeights)

    def __post_init__(self) -> None:
        self.working_days = self._validate_days(self.working_days)

        if self.periods_per_day < 1:
            raise ConfigurationError("must be at least 1", key="periods_per_day")
        if self.period_duration_minutes < 1:
            raise ConfigurationError("must be at least 1", key="period_duration_minutes")
        try:
            parse_clock(self.school_start_time)
        except ValueError as e:
            raise ConfigurationError(str(e), key="school_start_time") from e

        self.break_periods = [
            b if isinstance(b, BreakPeriod) else BreakPeriod.from_dict(b)
            for b in self.break_periods
        ]
        for brk in self.break_periods:
            if not 1 <= brk.after_period < self.periods_per_day:
                logger.debug(f"Break after period {brk.after_period} has no effect")
            if brk.duration_minutes < 0:
                raise ConfigurationError(
                    "break duration must not be negative", key="break_periods"
                )

        self.optimization_goals = normalize_goal_weights(self.optimization_goals)

        if self.max_iterations < 1:
            raise ConfigurationError("must be at least 1", key="max_iterations")
        if self.time_limit_seconds is not None and self.time_limit_seconds <= 0:
            raise ConfigurationError("must be positive", key="time_limit_seconds")
        if self.optimizer_max_passes < 0:
            raise ConfigurationError("must not be negative", key="optimizer_max_passes")

        if isinstance(self.heuristic_weights, dict):
            self.heuristic_weights = HeuristicWeights.from_dict(self.heuristic_weights)
        self.heuristic_weights = self.heuristic_weights.normalized()

    @staticmethod
    def _validate_days(days: list[str]) -> list[str]:
        if not days:
            raise ConfigurationError("at least one working day is required", key="working_days")
        result = []
        for day in days:
            name = str(day).strip().lower()
            try:
                name = Weekday(name).value
            except ValueError as e:
                raise ConfigurationError(f"unknown weekday '{day}'", key="working_days") from e
            if name in result:
                raise ConfigurationError(f"'{name}' listed twice", key="working_days")
            result.append(name)
        return result

    @property
    def slot_count(self) -> int:
        return len(self.working_days) * self.periods_per_day

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        strict: bool = False,
        source: str | None = None,
    ) -> "GenerationConfig":
        """Create from a settings payload.

        Args:
            data: Settings mapping (snake_case or camelCase keys)
            strict: Reject unknown keys instead of warning about them
            source: Where the payload came from, for messages

        Raises:
            ConfigurationError: If a value is invalid, or a key is unknown in
                strict mode
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = KEY_ALIASES.get(key, key)
            if name not in known:
                if strict:
                    raise ConfigurationError("unknown setting", key=key, source=source)
                where = f" in {source}" if source else ""
                logger.warning(f"Ignoring unknown setting '{key}'{where}")
                continue
            values[name] = value

        if "break_periods" in values:
            values["break_periods"] = [
                BreakPeriod.from_dict(b) if isinstance(b, dict) else BreakPeriod(*b)
                for b in values["break_periods"]
            ]
        if isinstance(values.get("heuristic_weights"), dict):
            values["heuristic_weights"] = HeuristicWeights.from_dict(
                values["heuristic_weights"]
            )
        return cls(**values)

    def merged(self, overrides: dict[str, Any], source: str | None = None) -> "GenerationConfig":
        """Return a new config with overrides applied on top of this one."""
        data = self.to_dict()
        data.update(overrides)
        return GenerationConfig.from_dict(data, strict=self.strict_inputs, source=source)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "working_days": list(self.working_days),
            "periods_per_day": self.periods_per_day,
            "period_duration_minutes": self.period_duration_minutes,
            "school_start_time": self.school_start_time,
            "break_periods": [b.to_dict() for b in self.break_periods],
            "optimization_goals": dict(self.optimization_goals),
            "max_iterations": self.max_iterations,
            "time_limit_seconds": self.time_limit_seconds,
            "enforce_teacher_load_limits": self.enforce_teacher_load_limits,
            "reserve_special_rooms": self.reserve_special_rooms,
            "optimizer_max_passes": self.optimizer_max_passes,
            "persist_partial": self.persist_partial,
            "strict_inputs": self.strict_inputs,
            "heuristic_weights": self.heuristic_weights.to_dict(),
        }
