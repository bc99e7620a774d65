"""Client for the optional narrative collaborator.

Sends the computed summary and scores to an OpenAI-compatible chat
completions endpoint and parses a short rationale back. The collaborator
never sees or changes deterministic output; every failure is raised as a
CollaboratorFailure subclass for the orchestrator to degrade on.
"""

import json
import logging
import os
import re
from typing import Optional

import requests
from pydantic import ValidationError

from .config import NarrativeConfig
from .exceptions import (
    CollaboratorFailure,
    CollaboratorQuotaExceeded,
    CollaboratorRateLimited,
    CollaboratorTimeout,
)
from .schema import ArchitectureSummary, NarrativeResult, Scores

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5.0

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_MESSAGE = "Narrative usage limit reached. Please add credits."

SYSTEM_PROMPT = """You explain cloud architecture assessments.
You receive an architecture summary and scores that were already computed by
a rule engine. Do not change or re-derive any score. Write a short rationale
(3 to 5 sentences) a technical lead can act on, and rate how confident you
are that the summary reflects a coherent architecture.

Respond with JSON only:
{"ai_explanation": "<text>", "confidence_score": <number between 0 and 1>}"""

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*")


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences the model may wrap around JSON."""
    return _FENCE_PATTERN.sub("", content).strip()


class NarrativeClient:
    """Calls the narrative endpoint with a bounded timeout."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model: str,
        timeout: float = 15.0,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: NarrativeConfig) -> Optional["NarrativeClient"]:
        """Build a client from configuration.

        Returns None when the narrative is disabled or the API key variable
        is unset.
        """
        if not config.enabled:
            return None
        api_key = os.environ.get(config.api_key_env)
        if not api_key:
            logger.warning(
                "Narrative enabled but %s is not set; continuing without narrative",
                config.api_key_env,
            )
            return None
        return cls(
            endpoint=config.endpoint,
            api_key=api_key,
            model=config.model,
            timeout=config.timeout_seconds,
        )

    def generate(self, summary: ArchitectureSummary, scores: Scores) -> NarrativeResult:
        """Request a narrative for an evaluated architecture.

        Raises:
            CollaboratorRateLimited: On HTTP 429.
            CollaboratorQuotaExceeded: On HTTP 402.
            CollaboratorTimeout: When the endpoint does not answer in time.
            CollaboratorFailure: On any other network, status or parse failure.
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._user_message(summary, scores)},
            ],
        }

        try:
            resp = requests.post(
                self.endpoint,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=(min(CONNECT_TIMEOUT, self.timeout), self.timeout),
            )
        except requests.Timeout:
            raise CollaboratorTimeout("Narrative request timed out.")
        except requests.ConnectionError:
            raise CollaboratorFailure("Could not connect to the narrative endpoint.")
        except requests.RequestException as exc:
            raise CollaboratorFailure(f"Network error: {exc}")

        if resp.status_code == 429:
            raise CollaboratorRateLimited(RATE_LIMIT_MESSAGE, upstream_status=429)
        if resp.status_code == 402:
            raise CollaboratorQuotaExceeded(QUOTA_MESSAGE, upstream_status=402)
        if resp.status_code != 200:
            logger.error("Narrative endpoint error: %d %s", resp.status_code, resp.text[:200])
            raise CollaboratorFailure(
                f"Narrative endpoint returned HTTP {resp.status_code}",
                upstream_status=resp.status_code,
            )

        return self._parse(resp)

    def _user_message(self, summary: ArchitectureSummary, scores: Scores) -> str:
        return json.dumps(
            {
                "architecture_summary": summary.model_dump(mode="json"),
                "scores": scores.model_dump(mode="json"),
            },
            indent=2,
        )

    def _parse(self, resp: requests.Response) -> NarrativeResult:
        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise CollaboratorFailure("No content in narrative response")
        if not content:
            raise CollaboratorFailure("No content in narrative response")
        if not isinstance(content, str):
            raise CollaboratorFailure(
                f"Narrative content must be text, got {type(content).__name__}"
            )

        try:
            data = json.loads(strip_code_fences(content))
            return NarrativeResult.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CollaboratorFailure(f"Narrative response is not valid JSON: {exc}")
