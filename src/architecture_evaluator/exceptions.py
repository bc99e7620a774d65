"""
Exceptions raised by the evaluation pipeline and its collaborators.
"""
from typing import Optional


class EvaluatorError(Exception):
    """Base exception for the architecture evaluator."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InputError(EvaluatorError):
    """Request input is missing or malformed."""
    status_code = 400


class InternalComputationError(EvaluatorError):
    """A rule or price table produced an inconsistent value.

    Signals a defect in the tables, never bad user input.
    """
    status_code = 500


class CollaboratorFailure(EvaluatorError):
    """The narrative collaborator failed; deterministic output is unaffected."""
    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(message)


class CollaboratorTimeout(CollaboratorFailure):
    """The narrative collaborator did not answer in time."""
    status_code = 504


class CollaboratorRateLimited(CollaboratorFailure):
    """The narrative collaborator rejected the call with a rate limit."""
    status_code = 429


class CollaboratorQuotaExceeded(CollaboratorFailure):
    """The narrative collaborator reports exhausted credits."""
    status_code = 402
