"""Tests for request handling and status code mapping."""

import json
from unittest.mock import MagicMock, patch

import pytest

from architecture_evaluator.engine import Orchestrator
from architecture_evaluator.exceptions import (
    CollaboratorQuotaExceeded,
    CollaboratorRateLimited,
    CollaboratorTimeout,
    InputError,
    InternalComputationError,
)
from architecture_evaluator.handler import (
    handle_request,
    is_simulation_request,
    parse_body,
)
from architecture_evaluator.narrative import QUOTA_MESSAGE, RATE_LIMIT_MESSAGE, NarrativeClient
from architecture_evaluator.schema import NarrativeResult


@pytest.fixture
def orchestrator():
    return Orchestrator()


def _with_narrator(**kwargs) -> Orchestrator:
    narrator = MagicMock(spec=NarrativeClient)
    for key, value in kwargs.items():
        setattr(narrator.generate, key, value)
    return Orchestrator(narrator=narrator)


class TestParseBody:

    def test_dict_passes_through(self):
        assert parse_body({"description": "x"}) == {"description": "x"}

    def test_bytes(self):
        assert parse_body(b'{"description": "x"}') == {"description": "x"}

    @pytest.mark.parametrize("body,message", [
        (b"\xff\xfe", "UTF-8"),
        ("", "empty"),
        ("   ", "empty"),
        ("{not json", "Malformed JSON"),
        ("[1, 2]", "JSON object"),
        ('"text"', "JSON object"),
    ])
    def test_rejects(self, body, message):
        with pytest.raises(InputError, match=message):
            parse_body(body)

    def test_simulation_detection(self):
        assert is_simulation_request({"architecture_summary": {}})
        assert is_simulation_request({"simulation": {}})
        assert not is_simulation_request({"description": "x"})


class TestAnalysisRequests:

    def test_success(self, orchestrator, reference_description):
        response = handle_request(json.dumps({"description": reference_description}), orchestrator)

        assert response.status_code == 200
        assert response.ok
        assert response.body["cost_analysis"]["total_current"] == 780
        assert response.body["narrative_status"] == "disabled"
        assert "error" not in response.body
        assert json.loads(response.to_json())["scores"] == response.body["scores"]

    @pytest.mark.parametrize("body", [
        {},
        {"description": ""},
        {"description": "   "},
        {"description": 42},
        {"description": None},
    ])
    def test_missing_description(self, orchestrator, body):
        response = handle_request(body, orchestrator)
        assert response.status_code == 400
        assert response.body == {"error": "Architecture description is required"}

    def test_malformed_json(self, orchestrator):
        response = handle_request("{oops", orchestrator)
        assert response.status_code == 400
        assert response.body["error"].startswith("Malformed JSON body")
        assert not response.ok

    def test_internal_error_is_500(self, reference_description):
        orchestrator = MagicMock(spec=Orchestrator)
        orchestrator.analyze.side_effect = InternalComputationError("Score rule table is inconsistent: test")
        response = handle_request({"description": reference_description}, orchestrator)
        assert response.status_code == 500
        assert "inconsistent" in response.body["error"]


class TestSimulationRequests:

    def test_identity_simulation(self, orchestrator, reference_summary):
        body = {"architecture_summary": reference_summary.model_dump(mode="json")}
        response = handle_request(body, orchestrator)

        assert response.status_code == 200
        assert response.body["architecture_summary"] == reference_summary.model_dump(mode="json")
        assert response.body["simulation"]["params"]["traffic_multiplier"] == 1.0
        assert response.body["extraction_confidence"] is None

    def test_cost_target(self, orchestrator, reference_summary):
        body = {
            "architecture_summary": reference_summary.model_dump(mode="json"),
            "simulation": {"cost_target": 100},
        }
        response = handle_request(body, orchestrator)
        assert response.body["simulation"]["cost_target_met"] is False

    def test_invalid_param(self, orchestrator, reference_summary):
        body = {
            "architecture_summary": reference_summary.model_dump(mode="json"),
            "simulation": {"traffic_multiplier": 0.1},
        }
        response = handle_request(body, orchestrator)
        assert response.status_code == 400
        assert response.body["error"].startswith("Invalid request: simulation.traffic_multiplier")

    def test_unknown_field(self, orchestrator, reference_summary):
        body = {
            "architecture_summary": reference_summary.model_dump(mode="json"),
            "surprise": True,
        }
        response = handle_request(body, orchestrator)
        assert response.status_code == 400
        assert "surprise" in response.body["error"]

    def test_simulation_without_summary(self, orchestrator):
        response = handle_request({"simulation": {"add_regions": 1}}, orchestrator)
        assert response.status_code == 400
        assert "architecture_summary" in response.body["error"]


class TestNarrativeOutcomes:

    def test_narrative_included(self, reference_description):
        orchestrator = _with_narrator(return_value=NarrativeResult(ai_explanation="Fine.", confidence_score=0.6))
        response = handle_request({"description": reference_description}, orchestrator)
        assert response.status_code == 200
        assert response.body["ai_explanation"] == "Fine."
        assert response.body["narrative_status"] == "ok"

    @pytest.mark.parametrize("error,status_code,message", [
        (CollaboratorRateLimited(RATE_LIMIT_MESSAGE, upstream_status=429), 429, RATE_LIMIT_MESSAGE),
        (CollaboratorQuotaExceeded(QUOTA_MESSAGE, upstream_status=402), 402, QUOTA_MESSAGE),
    ])
    def test_limits_surface_with_full_result(self, reference_description, error, status_code, message):
        orchestrator = _with_narrator(side_effect=error)
        response = handle_request({"description": reference_description}, orchestrator)

        assert response.status_code == status_code
        assert response.body["error"] == message
        assert response.body["scores"]["overall"] >= 0
        assert response.body["ai_explanation"] == ""

    def test_malformed_narrative_keeps_deterministic_result(self):
        client = NarrativeClient(endpoint="https://narrative.example.com", api_key="k", model="m")
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"choices": [{"message": {"content": {"ai_explanation": "x"}}}]}
        with patch("architecture_evaluator.narrative.requests.post", return_value=resp):
            response = handle_request(
                {"description": "3 EC2 instances behind an ALB"},
                orchestrator=Orchestrator(narrator=client),
            )

        assert response.status_code == 200
        assert response.body["narrative_status"] == "failed"
        assert response.body["ai_explanation"] == ""
        assert response.body["architecture_summary"]["compute_count"] == 3

    def test_timeout_degrades_silently(self, reference_description):
        orchestrator = _with_narrator(side_effect=CollaboratorTimeout("slow"))
        response = handle_request({"description": reference_description}, orchestrator)
        assert response.status_code == 200
        assert response.body["narrative_status"] == "timeout"

    @pytest.mark.parametrize("error,status_code", [
        (CollaboratorRateLimited(RATE_LIMIT_MESSAGE, upstream_status=429), 429),
        (CollaboratorQuotaExceeded(QUOTA_MESSAGE, upstream_status=402), 402),
        (CollaboratorTimeout("slow"), 504),
    ])
    def test_required_narrative_failures(self, reference_description, error, status_code):
        orchestrator = _with_narrator(side_effect=error)
        response = handle_request({"description": reference_description}, orchestrator, narrative_required=True)

        assert response.status_code == status_code
        assert set(response.body) == {"error"}

    def test_required_narrative_not_configured(self, orchestrator, reference_description):
        response = handle_request({"description": reference_description}, orchestrator, narrative_required=True)
        assert response.status_code == 503
        assert response.body == {"error": "Narrative collaborator is not configured."}
