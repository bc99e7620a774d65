"""Deterministic cloud architecture evaluation.

Turns a free-text architecture description into scores, risks, a cost
projection and a phased improvement roadmap, all traceable to fixed rule
tables.
"""

from .engine import Orchestrator, validate_rule_tables
from .exceptions import (
    CollaboratorFailure,
    EvaluatorError,
    InputError,
    InternalComputationError,
)
from .extractor import Extractor
from .schema import AnalysisResult, ArchitectureSummary, SimulationParams

__version__ = "1.0.0"

__all__ = [
    "AnalysisResult",
    "ArchitectureSummary",
    "CollaboratorFailure",
    "EvaluatorError",
    "Extractor",
    "InputError",
    "InternalComputationError",
    "Orchestrator",
    "SimulationParams",
    "validate_rule_tables",
]
