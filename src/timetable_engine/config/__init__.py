"""Configuration and input sources for timetable generation."""

from .loader import DirectorySource
from .settings import BreakPeriod, GenerationConfig
from .source import InMemorySource, SchedulingDataSource, Scope, ScopeData
from .weights import HeuristicWeights, OptimizationGoal, normalize_goal_weights

__all__ = [
    "BreakPeriod",
    "DirectorySource",
    "GenerationConfig",
    "HeuristicWeights",
    "InMemorySource",
    "OptimizationGoal",
    "SchedulingDataSource",
    "Scope",
    "ScopeData",
    "normalize_goal_weights",
]
