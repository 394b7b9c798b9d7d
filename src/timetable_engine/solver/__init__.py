"""CSP solver: problem building, domains, heuristics and search."""

from .domains import DomainStore, Trail, TrailFrame
from .heuristics import ValueOrdering, VariableOrdering
from .search import BacktrackingSolver, CancellationToken
from .variables import CSPProblem, ProblemBuilder

__all__ = [
    "BacktrackingSolver",
    "CSPProblem",
    "CancellationToken",
    "DomainStore",
    "ProblemBuilder",
    "Trail",
    "TrailFrame",
    "ValueOrdering",
    "VariableOrdering",
]
