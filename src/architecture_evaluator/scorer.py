"""Scorer - Phase 2 of the Evaluation Pipeline.

Scores an ArchitectureSummary on four categories from a fixed rule table.
Each category score is the clipped sum of signed rule deltas, and every
non-zero delta is cited in the category's explanation list.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from .config import MaturityThresholdsConfig, ScoringWeightsConfig, get_config
from .exceptions import InternalComputationError
from .schema import (
    ArchitectureSummary,
    CategoryScore,
    ComputeModel,
    DatabaseType,
    MaturityLevel,
    MonitoringLevel,
    ScalingType,
    ScoreCategory,
    Scores,
    ContainerOrchestration,
    CachingLayer,
    CdnType,
    LoadBalancerType,
)

logger = logging.getLogger(__name__)

CATEGORY_MAX = 100

# Demand one compute unit is assumed to serve when judging fleet size.
USERS_PER_COMPUTE_UNIT = 5_000


def _always(summary: ArchitectureSummary) -> bool:
    return True


@dataclass(frozen=True)
class ScoreRule:
    """A signed point delta for one category.

    When the rule applies, it contributes ``+points`` if satisfied and
    ``-penalty`` otherwise. An unsatisfied rule with a ``principle`` records
    that principle as violated; its ``remediation`` feeds the roadmap.
    """
    rule_id: str
    category: ScoreCategory
    points: int
    explanation: str
    satisfied: Callable[[ArchitectureSummary], bool]
    penalty: int = 0
    gap: Optional[str] = None
    principle: Optional[str] = None
    remediation: Optional[str] = None
    applies: Callable[[ArchitectureSummary], bool] = _always

    def delta(self, summary: ArchitectureSummary) -> int:
        """Signed contribution of this rule to its category."""
        if not self.applies(summary):
            return 0
        return self.points if self.satisfied(summary) else -self.penalty

    def is_violated(self, summary: ArchitectureSummary) -> bool:
        """Check if the rule applies and is not satisfied."""
        return self.applies(summary) and not self.satisfied(summary)

    @property
    def regained_points(self) -> int:
        """Points recovered by moving from violated to satisfied."""
        return self.points + self.penalty


# =============================================================================
# Predicates
# =============================================================================


def has_compute(s: ArchitectureSummary) -> bool:
    return s.compute_model != ComputeModel.NONE


def has_database(s: ArchitectureSummary) -> bool:
    return s.database_type != DatabaseType.NONE


def is_serverless(s: ArchitectureSummary) -> bool:
    return s.compute_model == ComputeModel.SERVERLESS or s.serverless_components > 0


def is_horizontally_scaled(s: ArchitectureSummary) -> bool:
    return (
        s.compute_count >= 2
        or is_serverless(s)
        or s.container_orchestration != ContainerOrchestration.NONE
    )


def is_elastic(s: ArchitectureSummary) -> bool:
    return s.scaling_type == ScalingType.AUTO or s.compute_model == ComputeModel.SERVERLESS


def is_database_redundant(s: ArchitectureSummary) -> bool:
    return s.database_multi_az or s.database_type.is_zone_redundant_by_default()


def is_right_sized(s: ArchitectureSummary) -> bool:
    """A fleet is right-sized when it scales itself or stays within 2x expected demand."""
    if s.compute_count == 0 or s.scaling_type == ScalingType.AUTO:
        return True
    expected_units = max(2, math.ceil(s.estimated_users / USERS_PER_COMPUTE_UNIT))
    return s.compute_count <= expected_units * 2


def _uses_instances(s: ArchitectureSummary) -> bool:
    return s.compute_model in (ComputeModel.VM, ComputeModel.CONTAINER)


def has_provisioned_compute(s: ArchitectureSummary) -> bool:
    return s.compute_model.is_provisioned()


# =============================================================================
# Rule Table
# =============================================================================

_CACHE_REMEDIATION = "Add a managed cache (e.g. Redis) in front of the database"

SCORE_RULES: tuple[ScoreRule, ...] = (
    # --- Scalability ---------------------------------------------------------
    ScoreRule(
        "SCL-01", ScoreCategory.SCALABILITY, 20, "Scaling policy configured",
        satisfied=lambda s: s.scaling_type != ScalingType.NONE or s.compute_model == ComputeModel.SERVERLESS,
        penalty=10, gap="No scaling policy; capacity is fixed",
        principle="Elastic capacity",
        remediation="Enable auto-scaling on the compute tier (target tracking on CPU or request count)",
        applies=has_compute,
    ),
    ScoreRule(
        "SCL-02", ScoreCategory.SCALABILITY, 5, "Scaling is automatic",
        satisfied=is_elastic,
        applies=has_compute,
    ),
    ScoreRule(
        "SCL-03", ScoreCategory.SCALABILITY, 20, "Load balancer distributes traffic",
        satisfied=lambda s: s.load_balancer != LoadBalancerType.NONE,
        penalty=5, gap="No load balancer in front of compute",
        principle="Traffic distribution",
        remediation="Place the compute tier behind a managed load balancer",
        applies=has_provisioned_compute,
    ),
    ScoreRule(
        "SCL-04", ScoreCategory.SCALABILITY, 15, "Compute scales horizontally",
        satisfied=is_horizontally_scaled,
        penalty=5, gap="Single compute unit limits horizontal scale",
        principle="Horizontal scaling",
        remediation="Make the application tier stateless and run multiple instances",
        applies=has_compute,
    ),
    ScoreRule(
        "SCL-05", ScoreCategory.SCALABILITY, 15, "Caching layer offloads reads",
        satisfied=lambda s: s.caching_layer != CachingLayer.NONE,
        penalty=5, gap="No caching layer; every read hits the origin",
        principle="Read caching",
        remediation=_CACHE_REMEDIATION,
    ),
    ScoreRule(
        "SCL-06", ScoreCategory.SCALABILITY, 10, "CDN serves static content at the edge",
        satisfied=lambda s: s.cdn != CdnType.NONE,
        principle="Edge delivery",
        remediation="Serve static assets through a CDN",
    ),
    ScoreRule(
        "SCL-07", ScoreCategory.SCALABILITY, 10, "Elastic runtime (orchestrated containers or serverless)",
        satisfied=lambda s: s.container_orchestration != ContainerOrchestration.NONE or is_serverless(s),
    ),
    ScoreRule(
        "SCL-08", ScoreCategory.SCALABILITY, 5, "Services decoupled behind an API layer",
        satisfied=lambda s: s.microservices or s.api_gateway,
    ),

    # --- Reliability ---------------------------------------------------------
    ScoreRule(
        "REL-01", ScoreCategory.RELIABILITY, 20, "Database fails over across availability zones",
        satisfied=is_database_redundant,
        penalty=15, gap="No database redundancy",
        principle="Database redundancy",
        remediation="Enable Multi-AZ deployment for the primary database",
        applies=has_database,
    ),
    ScoreRule(
        "REL-02", ScoreCategory.RELIABILITY, 20, "Backup strategy in place",
        satisfied=lambda s: s.backup_strategy,
        penalty=15, gap="No backup strategy",
        principle="Backup and recovery",
        remediation="Schedule automated backups with point-in-time recovery and test restores",
    ),
    ScoreRule(
        "REL-03", ScoreCategory.RELIABILITY, 15, "Redundant compute",
        satisfied=lambda s: is_horizontally_scaled(s) or s.scaling_type == ScalingType.AUTO,
        penalty=10, gap="Single compute instance is a single point of failure",
        principle="No single point of failure",
        remediation="Run at least two compute instances across availability zones",
        applies=has_compute,
    ),
    ScoreRule(
        "REL-04", ScoreCategory.RELIABILITY, 15, "Monitoring configured",
        satisfied=lambda s: s.monitoring != MonitoringLevel.NONE,
        penalty=10, gap="No monitoring or alerting",
        principle="Observability",
        remediation="Collect metrics and logs centrally and alert on error rates and saturation",
    ),
    ScoreRule(
        "REL-05", ScoreCategory.RELIABILITY, 5, "Advanced observability (APM, tracing)",
        satisfied=lambda s: s.monitoring == MonitoringLevel.ADVANCED,
    ),
    ScoreRule(
        "REL-06", ScoreCategory.RELIABILITY, 10, "Multi-region deployment",
        satisfied=lambda s: s.multi_region,
        principle="Regional fault isolation",
        remediation="Add a warm standby in a second region with replicated data",
    ),
    ScoreRule(
        "REL-07", ScoreCategory.RELIABILITY, 5, "Load balancer health checks",
        satisfied=lambda s: s.load_balancer != LoadBalancerType.NONE,
        applies=has_provisioned_compute,
    ),
    ScoreRule(
        "REL-08", ScoreCategory.RELIABILITY, 5, "Database read replicas",
        satisfied=lambda s: s.database_replicas >= 1 or s.database_type.is_zone_redundant_by_default(),
        applies=has_database,
    ),
    ScoreRule(
        "REL-09", ScoreCategory.RELIABILITY, 5, "Automated, repeatable deployments",
        satisfied=lambda s: s.ci_cd,
        principle="Repeatable deployments",
        remediation="Automate build and deployment with a CI/CD pipeline",
    ),

    # --- Security ------------------------------------------------------------
    ScoreRule(
        "SEC-01", ScoreCategory.SECURITY, 20, "Data encrypted at rest",
        satisfied=lambda s: s.encryption,
        penalty=15, gap="Data at rest is not encrypted",
        principle="Encryption at rest",
        remediation="Enable encryption at rest with KMS-managed keys for databases and storage",
    ),
    ScoreRule(
        "SEC-02", ScoreCategory.SECURITY, 15, "TLS protects data in transit",
        satisfied=lambda s: s.ssl_tls,
        penalty=10, gap="Traffic is not encrypted in transit",
        principle="Encryption in transit",
        remediation="Terminate TLS on every public endpoint and redirect HTTP to HTTPS",
    ),
    ScoreRule(
        "SEC-03", ScoreCategory.SECURITY, 15, "Workloads isolated in a VPC",
        satisfied=lambda s: s.vpc,
        penalty=10, gap="No network isolation",
        principle="Network isolation",
        remediation="Deploy all workloads inside a dedicated VPC",
    ),
    ScoreRule(
        "SEC-04", ScoreCategory.SECURITY, 15, "Private subnets for internal tiers",
        satisfied=lambda s: s.private_subnets,
        penalty=5, gap="Internal tiers are reachable from public subnets",
        principle="Private workloads",
        remediation="Move compute and databases into private subnets",
    ),
    ScoreRule(
        "SEC-05", ScoreCategory.SECURITY, 10, "WAF filters malicious traffic",
        satisfied=lambda s: s.waf,
        penalty=5, gap="No web application firewall",
        principle="Edge protection",
        remediation="Put a web application firewall in front of public endpoints",
    ),
    ScoreRule(
        "SEC-06", ScoreCategory.SECURITY, 15, "IAM roles and policies configured",
        satisfied=lambda s: s.iam_configured,
        penalty=10, gap="No identity and access management",
        principle="Least privilege",
        remediation="Grant access through least-privilege IAM roles instead of shared credentials",
    ),
    ScoreRule(
        "SEC-07", ScoreCategory.SECURITY, 10, "Security groups restrict traffic",
        satisfied=lambda s: s.security_groups,
        penalty=5, gap="No network access control",
        principle="Network access control",
        remediation="Restrict inbound traffic with security groups scoped to known sources",
    ),

    # --- Cost efficiency -----------------------------------------------------
    ScoreRule(
        "COST-01", ScoreCategory.COST_EFFICIENCY, 20, "Capacity tracks demand",
        satisfied=is_elastic,
        penalty=5, gap="Capacity provisioned for peak around the clock",
        principle="Pay for what you use",
        remediation="Scale capacity down outside peak hours instead of provisioning for peak",
        applies=has_compute,
    ),
    ScoreRule(
        "COST-02", ScoreCategory.COST_EFFICIENCY, 15, "Spot capacity for interruptible work",
        satisfied=lambda s: s.spot_instances,
        principle="Discounted capacity",
        remediation="Run stateless and batch workloads on spot instances",
        applies=_uses_instances,
    ),
    ScoreRule(
        "COST-03", ScoreCategory.COST_EFFICIENCY, 15, "Reserved capacity for the baseline",
        satisfied=lambda s: s.reserved_instances,
        principle="Commitment discounts",
        remediation="Cover steady-state baseline with reserved instances or savings plans",
        applies=lambda s: s.compute_model in (ComputeModel.VM, ComputeModel.CONTAINER, ComputeModel.PAAS)
        or s.database_type.is_provisioned(),
    ),
    ScoreRule(
        "COST-04", ScoreCategory.COST_EFFICIENCY, 15, "Serverless pay-per-use components",
        satisfied=is_serverless,
    ),
    ScoreRule(
        "COST-05", ScoreCategory.COST_EFFICIENCY, 10, "Cache reduces database capacity",
        satisfied=lambda s: s.caching_layer != CachingLayer.NONE,
        principle="Cache-first reads",
        remediation=_CACHE_REMEDIATION,
        applies=has_database,
    ),
    ScoreRule(
        "COST-06", ScoreCategory.COST_EFFICIENCY, 10, "CDN offloads origin egress",
        satisfied=lambda s: s.cdn != CdnType.NONE,
    ),
    ScoreRule(
        "COST-07", ScoreCategory.COST_EFFICIENCY, 15, "Compute sized to expected demand",
        satisfied=is_right_sized,
        penalty=10, gap="Static fleet is over-provisioned for expected demand",
        principle="Right-sizing",
        remediation="Right-size the compute fleet to measured utilization",
        applies=has_compute,
    ),
)


def rules_for(category: ScoreCategory, rules: tuple[ScoreRule, ...] = SCORE_RULES) -> list[ScoreRule]:
    """Rules of one category in table order."""
    return [r for r in rules if r.category == category]


def find_rule_by_principle(principle: str, rules: tuple[ScoreRule, ...] = SCORE_RULES) -> Optional[ScoreRule]:
    """Look up the rule that reports a violated principle."""
    return next((r for r in rules if r.principle == principle), None)


def find_rule(rule_id: str, rules: tuple[ScoreRule, ...] = SCORE_RULES) -> Optional[ScoreRule]:
    return next((r for r in rules if r.rule_id == rule_id), None)


def validate_score_rules(rules: tuple[ScoreRule, ...] = SCORE_RULES) -> None:
    """Check the score table for defects.

    Raises:
        InternalComputationError: On duplicate ids or principles, non-positive
            points, negative penalties or principles without remediation.
    """
    issues = []
    seen_ids: set[str] = set()
    seen_principles: set[str] = set()

    for rule in rules:
        if rule.rule_id in seen_ids:
            issues.append(f"duplicate rule id {rule.rule_id}")
        seen_ids.add(rule.rule_id)

        if rule.points <= 0:
            issues.append(f"{rule.rule_id}: points must be positive")
        if rule.penalty < 0:
            issues.append(f"{rule.rule_id}: penalty must not be negative")
        if rule.penalty and not rule.gap:
            issues.append(f"{rule.rule_id}: penalty without gap text")

        if rule.principle:
            if rule.principle in seen_principles:
                issues.append(f"duplicate principle {rule.principle!r}")
            seen_principles.add(rule.principle)
            if not rule.remediation:
                issues.append(f"{rule.rule_id}: principle without remediation")

    for category in ScoreCategory:
        total = sum(r.points for r in rules_for(category, rules))
        if total > CATEGORY_MAX:
            issues.append(f"{category.value}: points sum to {total}, above {CATEGORY_MAX}")

    if issues:
        for issue in issues:
            logger.error("Score rule table defect: %s", issue)
        raise InternalComputationError("Score rule table is inconsistent: " + "; ".join(issues))


def maturity_level(
    overall: int,
    thresholds: Optional[MaturityThresholdsConfig] = None,
) -> MaturityLevel:
    """Map an overall score onto a maturity level.

    Default thresholds: below 30 Prototype, below 55 Early Stage, below 80
    Production Ready, otherwise Enterprise Grade.
    """
    thresholds = thresholds or get_config().maturity_thresholds
    if overall < thresholds.prototype_below:
        return MaturityLevel.PROTOTYPE
    if overall < thresholds.early_stage_below:
        return MaturityLevel.EARLY_STAGE
    if overall < thresholds.production_ready_below:
        return MaturityLevel.PRODUCTION_READY
    return MaturityLevel.ENTERPRISE_GRADE


class ScoringEngine:
    """Scores architecture summaries against the rule table.

    Scoring principles:
    - Every point traces to exactly one rule
    - Rule order never changes a score
    - Category scores are clipped to [0, max]
    - The overall score is a fixed weighted sum of normalized categories
    """

    def __init__(
        self,
        rules: tuple[ScoreRule, ...] = SCORE_RULES,
        weights: Optional[ScoringWeightsConfig] = None,
    ):
        """Initialize with the rule table and configured weights."""
        self.rules = rules
        self.weights = weights or get_config().scoring_weights

    def score(self, summary: ArchitectureSummary) -> Scores:
        """Score all four categories and the weighted overall."""
        categories = {
            category: self.score_category(summary, category)
            for category in ScoreCategory
        }
        overall = self.overall(categories)

        logger.debug(
            "Scored summary: overall=%d scalability=%d reliability=%d security=%d cost_efficiency=%d",
            overall,
            categories[ScoreCategory.SCALABILITY].score,
            categories[ScoreCategory.RELIABILITY].score,
            categories[ScoreCategory.SECURITY].score,
            categories[ScoreCategory.COST_EFFICIENCY].score,
        )

        return Scores(
            overall=overall,
            scalability=categories[ScoreCategory.SCALABILITY],
            reliability=categories[ScoreCategory.RELIABILITY],
            security=categories[ScoreCategory.SECURITY],
            cost_efficiency=categories[ScoreCategory.COST_EFFICIENCY],
        )

    def score_category(self, summary: ArchitectureSummary, category: ScoreCategory) -> CategoryScore:
        """Score one category as the clipped sum of its rule deltas."""
        total = 0
        explanation = []
        violated = []

        for rule in rules_for(category, self.rules):
            delta = rule.delta(summary)
            total += delta
            if delta > 0:
                explanation.append(f"+{delta} {rule.explanation} ({rule.rule_id})")
            elif delta < 0:
                explanation.append(f"{delta} {rule.gap} ({rule.rule_id})")
            if rule.principle and rule.is_violated(summary):
                violated.append(rule.principle)

        return CategoryScore(
            score=min(max(total, 0), CATEGORY_MAX),
            max=CATEGORY_MAX,
            explanation=explanation,
            violated_principles=violated,
        )

    def overall(self, categories: dict[ScoreCategory, CategoryScore]) -> int:
        """Weighted overall score in [0, 100]."""
        weights = {
            ScoreCategory.SCALABILITY: self.weights.scalability,
            ScoreCategory.RELIABILITY: self.weights.reliability,
            ScoreCategory.SECURITY: self.weights.security,
            ScoreCategory.COST_EFFICIENCY: self.weights.cost_efficiency,
        }
        weighted = sum(weights[c] * categories[c].ratio for c in ScoreCategory)
        return min(max(round(weighted * 100), 0), 100)
