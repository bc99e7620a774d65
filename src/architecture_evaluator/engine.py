"""Orchestrator for the evaluation pipeline.

Sequences extraction, scoring, risk analysis, cost modeling and roadmap
planning into one AnalysisResult, then attaches the optional narrative.
Scoring, risk and cost stages are independent and may run in a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Optional

from .config import EvaluatorConfig, get_config
from .cost_modeler import CostModeler, validate_price_tables
from .exceptions import (
    CollaboratorFailure,
    CollaboratorQuotaExceeded,
    CollaboratorRateLimited,
    CollaboratorTimeout,
    InputError,
)
from .extractor import Extractor
from .narrative import NarrativeClient
from .risk_analyzer import RiskAnalyzer, validate_risk_rules
from .roadmap import RoadmapGenerator
from .schema import (
    AnalysisResult,
    ArchitectureSummary,
    CostAnalysis,
    NarrativeResult,
    NarrativeStatus,
    RiskAnalysis,
    Scores,
    SimulationOutcome,
    SimulationParams,
)
from .scorer import ScoringEngine, maturity_level, validate_score_rules
from .simulation import SimulationAdapter

logger = logging.getLogger(__name__)

_NARRATIVE_STATUS = [
    (CollaboratorRateLimited, NarrativeStatus.RATE_LIMITED),
    (CollaboratorQuotaExceeded, NarrativeStatus.QUOTA_EXCEEDED),
    (CollaboratorTimeout, NarrativeStatus.TIMEOUT),
    (CollaboratorFailure, NarrativeStatus.FAILED),
]


def validate_rule_tables() -> None:
    """Validate score, risk and price tables.

    Raises:
        InternalComputationError: On the first inconsistent table.
    """
    validate_score_rules()
    validate_risk_rules()
    validate_price_tables()


class Orchestrator:
    """Runs the evaluation pipeline for one request at a time.

    Holds no per-request state, so one instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        narrator: Optional[NarrativeClient] = None,
        config: Optional[EvaluatorConfig] = None,
    ):
        """Initialize the pipeline stages.

        Args:
            narrator: Narrative collaborator client, or None to skip it.
            config: Evaluator configuration, defaults to the global config.
        """
        self.config = config or get_config()
        self.narrator = narrator

        self.extractor = Extractor()
        self.scorer = ScoringEngine(weights=self.config.scoring_weights)
        self.risk_analyzer = RiskAnalyzer()
        self.cost_modeler = CostModeler()
        self.roadmap = RoadmapGenerator()
        self.adapter = SimulationAdapter()

        validate_rule_tables()

    @classmethod
    def from_config(cls, config: Optional[EvaluatorConfig] = None) -> "Orchestrator":
        """Build an orchestrator with the narrator configured in ``config``."""
        config = config or get_config()
        return cls(narrator=NarrativeClient.from_config(config.narrative), config=config)

    def analyze(self, description: str) -> AnalysisResult:
        """Evaluate a free-text architecture description.

        Raises:
            InputError: If the description is empty or whitespace.
        """
        if not description or not description.strip():
            raise InputError("Architecture description is required")

        extraction = self.extractor.extract_detailed(description)
        logger.info(
            "Extracted %d/%d fields (confidence %.2f)",
            len(extraction.recognized_fields),
            len(ArchitectureSummary.field_names()),
            extraction.confidence,
        )
        return self.evaluate(extraction.summary, extraction_confidence=extraction.confidence)

    def simulate(self, summary: ArchitectureSummary, params: SimulationParams) -> AnalysisResult:
        """Re-evaluate a summary under what-if parameters."""
        adjusted = self.adapter.simulate(summary, params)
        result = self.evaluate(adjusted)

        target_met = None
        if params.cost_target > 0:
            target_met = result.cost_analysis.total_optimized <= params.cost_target
        result.simulation = SimulationOutcome(params=params, cost_target_met=target_met)
        return result

    def evaluate(
        self,
        summary: ArchitectureSummary,
        extraction_confidence: Optional[float] = None,
    ) -> AnalysisResult:
        """Run scoring, risk, cost and roadmap stages on a summary."""
        scores, risk_analysis, cost_analysis = self._run_stages(summary)
        plan = self.roadmap.plan(scores, risk_analysis.risks)

        result = AnalysisResult(
            architecture_summary=summary,
            scores=scores,
            risk_analysis=risk_analysis,
            cost_analysis=cost_analysis,
            improvement_plan=plan,
            maturity_level=maturity_level(scores.overall, self.config.maturity_thresholds),
            extraction_confidence=extraction_confidence,
        )
        logger.info(
            "Evaluated architecture: overall=%d maturity=%s risk=%s cost=$%d/mo",
            scores.overall,
            result.maturity_level.value,
            risk_analysis.risk_level.value,
            cost_analysis.total_current,
        )

        narrative, status = self._narrate(summary, scores)
        result.ai_explanation = narrative.ai_explanation
        result.confidence_score = narrative.confidence_score
        result.narrative_status = status
        return result

    def _run_stages(self, summary: ArchitectureSummary) -> tuple[Scores, RiskAnalysis, CostAnalysis]:
        if not self.config.pipeline.parallel:
            return (
                self.scorer.score(summary),
                self.risk_analyzer.analyze(summary),
                self.cost_modeler.model(summary),
            )

        with ThreadPoolExecutor(max_workers=self.config.pipeline.max_workers) as pool:
            scores = pool.submit(self.scorer.score, summary)
            risks = pool.submit(self.risk_analyzer.analyze, summary)
            costs = pool.submit(self.cost_modeler.model, summary)
            return scores.result(), risks.result(), costs.result()

    def _narrate(self, summary: ArchitectureSummary, scores: Scores) -> tuple[NarrativeResult, NarrativeStatus]:
        """Call the narrative collaborator within its time budget.

        Any failure yields an empty narrative with confidence 0 and a status
        describing why.
        """
        if self.narrator is None:
            return NarrativeResult(), NarrativeStatus.DISABLED

        timeout = self.config.narrative.timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.narrator.generate, summary, scores)
        try:
            return future.result(timeout=timeout), NarrativeStatus.OK
        except FuturesTimeout:
            logger.warning("Narrative collaborator exceeded %.1fs; returning without narrative", timeout)
            return NarrativeResult(), NarrativeStatus.TIMEOUT
        except CollaboratorFailure as e:
            status = next(s for exc_type, s in _NARRATIVE_STATUS if isinstance(e, exc_type))
            logger.warning("Narrative collaborator failed (%s): %s", status.value, e.message)
            return NarrativeResult(), status
        except Exception:
            logger.exception("Narrative collaborator raised an unexpected error")
            return NarrativeResult(), NarrativeStatus.FAILED
        finally:
            # Never wait on a slow collaborator
            executor.shutdown(wait=False)
