"""Named weight tables for optimization goals and search heuristics."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..constants import (
    DEFAULT_GOAL_WEIGHTS,
    DEFAULT_HEURISTIC_WEIGHTS,
    DEFAULT_OPTIMIZATION_GOALS,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class OptimizationGoal(str, Enum):
    """Goals the scorer can weigh."""

    MINIMIZE_CONFLICTS = "minimize_conflicts"
    BALANCE_TEACHER_LOAD = "balance_teacher_load"
    MAXIMIZE_ROOM_UTILIZATION = "maximize_room_utilization"
    RESPECT_PREFERENCES = "respect_preferences"


def normalize_goal_weights(
    goals: list[str] | dict[str, float] | None,
) -> dict[str, float]:
    """Validate optimization goals and renormalize their weights to sum to 1.

    Args:
        goals: Goal names (default weights are used) or a name -> weight
            mapping. None selects the default goal list.

    Returns:
        Mapping of goal name to normalized weight, in declaration order

    Raises:
        ConfigurationError: On unknown goals, negative weights or an all-zero table
    """
    if goals is None:
        goals = list(DEFAULT_OPTIMIZATION_GOALS)

    if isinstance(goals, dict):
        raw = {str(name): goals[name] for name in goals}
    else:
        raw = {}
        for name in goals:
            name = str(name)
            if name in raw:
                raise ConfigurationError(
                    f"goal '{name}' listed twice", key="optimization_goals"
                )
            raw[name] = DEFAULT_GOAL_WEIGHTS.get(name, 0.0)

    if not raw:
        raise ConfigurationError(
            "at least one optimization goal is required", key="optimization_goals"
        )

    known = {goal.value for goal in OptimizationGoal}
    weights: dict[str, float] = {}
    for name, value in raw.items():
        if name not in known:
            raise ConfigurationError(
                f"unknown goal '{name}' (expected one of {', '.join(sorted(known))})",
                key="optimization_goals",
            )
        try:
            weight = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"weight for '{name}' is not a number: {value!r}",
                key="optimization_goals",
            ) from e
        if weight < 0:
            raise ConfigurationError(
                f"weight for '{name}' must not be negative", key="optimization_goals"
            )
        weights[name] = weight

    total = sum(weights.values())
    if total <= 0:
        raise ConfigurationError(
            "goal weights must not all be zero", key="optimization_goals"
        )

    normalized = {name: weight / total for name, weight in weights.items()}

    conflicts_weight = normalized.get(OptimizationGoal.MINIMIZE_CONFLICTS.value)
    if conflicts_weight is not None and conflicts_weight < max(normalized.values()):
        logger.warning(
            f"Conflict weight {conflicts_weight:.2f} is not the heaviest goal; schedules with "
            "conflicts may outscore conflict-free ones"
        )

    return normalized


@dataclass(frozen=True)
class HeuristicWeights:
    """Weights of the most-constraining-variable degree.

    Each unassigned neighbour adds the weight of every relation it shares
    with the candidate variable (same class, a common candidate teacher,
    same subject).
    """

    shared_class: float = DEFAULT_HEURISTIC_WEIGHTS["shared_class"]
    shared_teacher: float = DEFAULT_HEURISTIC_WEIGHTS["shared_teacher"]
    shared_subject: float = DEFAULT_HEURISTIC_WEIGHTS["shared_subject"]

    def __post_init__(self) -> None:
        for name in ("shared_class", "shared_teacher", "shared_subject"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigurationError(
                    f"'{name}' must be a non-negative number", key="heuristic_weights"
                )
        if self.shared_class + self.shared_teacher + self.shared_subject <= 0:
            raise ConfigurationError(
                "heuristic weights must not all be zero", key="heuristic_weights"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HeuristicWeights":
        """Create from dictionary, rejecting unknown keys."""
        unknown = set(data) - {"shared_class", "shared_teacher", "shared_subject"}
        if unknown:
            raise ConfigurationError(
                f"unknown heuristic weight(s): {', '.join(sorted(unknown))}",
                key="heuristic_weights",
            )
        return cls(**{k: float(v) for k, v in data.items()}).normalized()

    def normalized(self) -> "HeuristicWeights":
        """Return a copy whose weights sum to 1."""
        total = self.shared_class + self.shared_teacher + self.shared_subject
        return HeuristicWeights(
            shared_class=self.shared_class / total,
            shared_teacher=self.shared_teacher / total,
            shared_subject=self.shared_subject / total,
        )

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "shared_class": self.shared_class,
            "shared_teacher": self.shared_teacher,
            "shared_subject": self.shared_subject,
        }
