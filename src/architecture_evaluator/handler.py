"""Request handling for the evaluator.

Validates JSON request bodies, runs the orchestrator and maps outcomes to
status codes. No HTTP server is involved; any framework can wrap
:func:`handle_request`.

Requests:
    {"description": "..."}                                  -> analysis
    {"architecture_summary": {...}, "simulation": {...}}    -> simulation
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .engine import Orchestrator
from .exceptions import InputError, InternalComputationError
from .narrative import QUOTA_MESSAGE, RATE_LIMIT_MESSAGE
from .schema import AnalysisResult, ArchitectureSummary, NarrativeStatus, SimulationParams

logger = logging.getLogger(__name__)

# Status codes for a narrative outcome when the narrative is mandatory.
_REQUIRED_NARRATIVE_ERRORS = {
    NarrativeStatus.RATE_LIMITED: (429, RATE_LIMIT_MESSAGE),
    NarrativeStatus.QUOTA_EXCEEDED: (402, QUOTA_MESSAGE),
    NarrativeStatus.TIMEOUT: (504, "Narrative collaborator timed out."),
    NarrativeStatus.FAILED: (502, "Narrative collaborator failed."),
    NarrativeStatus.DISABLED: (503, "Narrative collaborator is not configured."),
}

# Non-fatal narrative outcomes surfaced alongside the full result.
_SURFACED_NARRATIVE_ERRORS = {
    NarrativeStatus.RATE_LIMITED: (429, RATE_LIMIT_MESSAGE),
    NarrativeStatus.QUOTA_EXCEEDED: (402, QUOTA_MESSAGE),
}


class AnalysisRequest(BaseModel):
    """Primary request: a free-text architecture description."""
    description: str = Field(..., description="Free-text architecture description")


class SimulationRequest(BaseModel):
    """What-if request over a previously extracted summary."""
    model_config = ConfigDict(extra="forbid")

    architecture_summary: ArchitectureSummary
    simulation: SimulationParams = Field(default_factory=SimulationParams)


@dataclass
class HandlerResponse:
    """Status code and JSON-serializable body."""
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.body, indent=indent)


def _error(status_code: int, message: str) -> HandlerResponse:
    return HandlerResponse(status_code=status_code, body={"error": message})


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "invalid value")


def parse_body(body: Union[str, bytes, dict]) -> dict[str, Any]:
    """Decode a request body into a JSON object.

    Raises:
        InputError: If the body is not valid UTF-8 JSON or not an object.
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            raise InputError("Request body must be UTF-8 encoded JSON")

    if isinstance(body, str):
        if not body.strip():
            raise InputError("Request body is empty")
        try:
            body = json.loads(body)
        except json.JSONDecodeError as e:
            raise InputError(f"Malformed JSON body: {e.msg} (line {e.lineno}, column {e.colno})")

    if not isinstance(body, dict):
        raise InputError("Request body must be a JSON object")
    return body


def is_simulation_request(data: dict[str, Any]) -> bool:
    return "architecture_summary" in data or "simulation" in data


def handle_request(
    body: Union[str, bytes, dict],
    orchestrator: Optional[Orchestrator] = None,
    narrative_required: bool = False,
) -> HandlerResponse:
    """Handle one analysis or simulation request.

    Args:
        body: Raw JSON text/bytes or an already decoded object.
        orchestrator: Pipeline to run, defaults to one built from config.
        narrative_required: Treat any narrative failure as a failed request.

    Returns:
        HandlerResponse with the AnalysisResult as body on success.
    """
    try:
        data = parse_body(body)
        if is_simulation_request(data):
            request = SimulationRequest.model_validate(data)
        else:
            if not isinstance(data.get("description"), str) or not data["description"].strip():
                raise InputError("Architecture description is required")
            request = AnalysisRequest.model_validate(data)
    except InputError as e:
        logger.info("Rejected request: %s", e.message)
        return _error(e.status_code, e.message)
    except ValidationError as e:
        message = f"Invalid request: {_format_validation_error(e)}"
        logger.info("Rejected request: %s", message)
        return _error(400, message)

    orchestrator = orchestrator or Orchestrator.from_config()

    try:
        if isinstance(request, SimulationRequest):
            result = orchestrator.simulate(request.architecture_summary, request.simulation)
        else:
            result = orchestrator.analyze(request.description)
    except InputError as e:
        return _error(e.status_code, e.message)
    except InternalComputationError as e:
        logger.error("Evaluation failed: %s", e.message)
        return _error(e.status_code, e.message)

    return _respond(result, narrative_required)


def _respond(result: AnalysisResult, narrative_required: bool) -> HandlerResponse:
    status = result.narrative_status

    if narrative_required and status != NarrativeStatus.OK:
        status_code, message = _REQUIRED_NARRATIVE_ERRORS[status]
        return _error(status_code, message)

    body = result.model_dump(mode="json")
    if status in _SURFACED_NARRATIVE_ERRORS:
        status_code, message = _SURFACED_NARRATIVE_ERRORS[status]
        body["error"] = message
        return HandlerResponse(status_code=status_code, body=body)

    return HandlerResponse(status_code=200, body=body)
