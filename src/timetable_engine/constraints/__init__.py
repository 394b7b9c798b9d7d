"""Constraint implementations for the solver and optimizer."""

from .base import ConstraintBase
from .hard import HardConstraints
from .soft import PreferenceConstraints

__all__ = [
    "ConstraintBase",
    "HardConstraints",
    "PreferenceConstraints",
]
