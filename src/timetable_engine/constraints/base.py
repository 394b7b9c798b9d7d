"""Base class for constraint implementations."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..gatherer import ConstraintSet
    from ..models import Candidate, Variable


class ConstraintBase(ABC):
    """Abstract base class for constraint implementations."""

    def __init__(self, constraints: "ConstraintSet"):
        """
        Initialize constraint handler.

        Args:
            constraints: Gathered constraints of the scope being scheduled.
        """
        self.constraints = constraints
        self.config = constraints.config

    @abstractmethod
    def evaluate(self, variable: "Variable", candidate: "Candidate", *args: Any) -> Any:
        """
        Evaluate the constraints for one variable placed at one candidate.

        Args:
            variable: The variable being placed.
            candidate: The (slot, teacher, room) triple considered for it.
        """
        pass
