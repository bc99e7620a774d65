"""Risk Analyzer - Phase 3 of the Evaluation Pipeline.

Matches every rule in a fixed condition table against the summary. All
matching rules fire; risks are ranked by severity, then by table order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .exceptions import InternalComputationError
from .schema import (
    ArchitectureSummary,
    CachingLayer,
    ComputeModel,
    LoadBalancerType,
    MonitoringLevel,
    Risk,
    RiskAnalysis,
    RiskLevel,
    ScalingType,
    ScoreCategory,
    Severity,
)
from .scorer import SCORE_RULES, ScoreRule, find_rule, has_database, has_provisioned_compute

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskRule:
    """A condition that, when true, produces one risk.

    ``remediation`` is the roadmap action for the risk. ``addresses`` names
    the score rule whose points are regained by fixing it, if any.
    """
    rule_id: str
    severity: Severity
    category: ScoreCategory
    type: str
    component: str
    impact: str
    condition: Callable[[ArchitectureSummary], bool]
    remediation: str
    addresses: Optional[str] = None

    def to_risk(self) -> Risk:
        return Risk(
            type=self.type,
            component=self.component,
            impact=self.impact,
            severity=self.severity,
            category=self.category,
            rule_id=self.rule_id,
        )


RISK_RULES: tuple[RiskRule, ...] = (
    # Critical
    RiskRule(
        "RISK-SPOF", Severity.CRITICAL, ScoreCategory.RELIABILITY,
        "Single Point of Failure",
        "Compute (single instance)",
        "Any instance failure or maintenance event takes the whole application offline",
        condition=lambda s: has_provisioned_compute(s)
        and s.compute_count == 1
        and s.scaling_type == ScalingType.NONE,
        remediation="Run at least two compute instances across availability zones",
        addresses="REL-03",
    ),
    RiskRule(
        "RISK-ENCRYPTION", Severity.CRITICAL, ScoreCategory.SECURITY,
        "Unencrypted Data",
        "Data at rest (encryption disabled)",
        "Stored data is readable by anyone who obtains disks, snapshots or backups",
        condition=lambda s: not s.encryption,
        remediation="Enable encryption at rest with KMS-managed keys for databases and storage",
        addresses="SEC-01",
    ),
    # High
    RiskRule(
        "RISK-BACKUP", Severity.HIGH, ScoreCategory.RELIABILITY,
        "No Backup Strategy",
        "Data durability",
        "Data loss from corruption, deletion or ransomware is unrecoverable",
        condition=lambda s: not s.backup_strategy,
        remediation="Schedule automated backups with point-in-time recovery and test restores",
        addresses="REL-02",
    ),
    RiskRule(
        "RISK-DB-SINGLE-AZ", Severity.HIGH, ScoreCategory.RELIABILITY,
        "Database Single-AZ",
        "Database (single availability zone)",
        "A zone outage makes the database unavailable until manual recovery",
        condition=lambda s: has_database(s)
        and not s.database_multi_az
        and not s.database_type.is_zone_redundant_by_default(),
        remediation="Enable Multi-AZ deployment for the primary database",
        addresses="REL-01",
    ),
    RiskRule(
        "RISK-TLS", Severity.HIGH, ScoreCategory.SECURITY,
        "Unencrypted Traffic",
        "Network traffic (no TLS)",
        "Credentials and user data can be intercepted in transit",
        condition=lambda s: not s.ssl_tls,
        remediation="Terminate TLS on every public endpoint and redirect HTTP to HTTPS",
        addresses="SEC-02",
    ),
    RiskRule(
        "RISK-PUBLIC-NETWORK", Severity.HIGH, ScoreCategory.SECURITY,
        "Public Network Exposure",
        "Network (no VPC isolation)",
        "Every resource is directly reachable from the internet",
        condition=lambda s: not s.vpc,
        remediation="Deploy all workloads inside a dedicated VPC",
        addresses="SEC-03",
    ),
    RiskRule(
        "RISK-CAPACITY", Severity.HIGH, ScoreCategory.SCALABILITY,
        "Capacity Saturation",
        "Compute (fixed capacity)",
        "Traffic peaks at this user volume exhaust fixed capacity and cause outages",
        condition=lambda s: s.scaling_type == ScalingType.NONE and s.estimated_users >= 50_000,
        remediation="Enable auto-scaling on the compute tier (target tracking on CPU or request count)",
        addresses="SCL-01",
    ),
    # Medium
    RiskRule(
        "RISK-WAF", Severity.MEDIUM, ScoreCategory.SECURITY,
        "Unprotected Public Endpoint",
        "Edge (no web application firewall)",
        "Injection, bot and layer-7 flood attacks reach the application unfiltered",
        condition=lambda s: not s.waf and (s.load_balancer != LoadBalancerType.NONE or s.api_gateway),
        remediation="Put a web application firewall in front of public endpoints",
        addresses="SEC-05",
    ),
    RiskRule(
        "RISK-OBSERVABILITY", Severity.MEDIUM, ScoreCategory.RELIABILITY,
        "No Observability",
        "Operations (monitoring)",
        "Failures are discovered by users instead of alerts",
        condition=lambda s: s.monitoring == MonitoringLevel.NONE,
        remediation="Collect metrics and logs centrally and alert on error rates and saturation",
        addresses="REL-04",
    ),
    RiskRule(
        "RISK-IAM", Severity.MEDIUM, ScoreCategory.SECURITY,
        "Broad Access Permissions",
        "Identity and access management",
        "Shared or over-privileged credentials widen the blast radius of a leak",
        condition=lambda s: not s.iam_configured,
        remediation="Grant access through least-privilege IAM roles instead of shared credentials",
        addresses="SEC-06",
    ),
    RiskRule(
        "RISK-REGION", Severity.MEDIUM, ScoreCategory.RELIABILITY,
        "Regional Outage Exposure",
        "Deployment (single region)",
        "A regional outage takes down the service for a large user base",
        condition=lambda s: not s.multi_region and s.estimated_users >= 100_000,
        remediation="Add a warm standby in a second region with replicated data",
        addresses="REL-06",
    ),
    RiskRule(
        "RISK-DB-READ", Severity.MEDIUM, ScoreCategory.SCALABILITY,
        "Database Read Pressure",
        "Database (uncached reads)",
        "All reads hit the database, which becomes the bottleneck under load",
        condition=lambda s: s.caching_layer == CachingLayer.NONE
        and has_database(s)
        and s.estimated_users >= 10_000,
        remediation="Add a managed cache (e.g. Redis) in front of the database",
        addresses="SCL-05",
    ),
    RiskRule(
        "RISK-LOAD-DISTRIBUTION", Severity.MEDIUM, ScoreCategory.SCALABILITY,
        "Uneven Load Distribution",
        "Compute (no load balancer)",
        "Instances cannot share traffic or be replaced without client impact",
        condition=lambda s: s.load_balancer == LoadBalancerType.NONE
        and s.compute_count >= 2
        and has_provisioned_compute(s),
        remediation="Place the compute tier behind a managed load balancer",
        addresses="SCL-03",
    ),
    # Low
    RiskRule(
        "RISK-MANUAL-DEPLOY", Severity.LOW, ScoreCategory.RELIABILITY,
        "Manual Deployments",
        "Delivery pipeline",
        "Manual releases are slow to roll back and prone to configuration drift",
        condition=lambda s: not s.ci_cd,
        remediation="Automate build and deployment with a CI/CD pipeline",
        addresses="REL-09",
    ),
    RiskRule(
        "RISK-ON-DEMAND", Severity.LOW, ScoreCategory.COST_EFFICIENCY,
        "On-Demand Pricing Only",
        "Compute (pricing model)",
        "The whole fleet is billed at on-demand rates",
        condition=lambda s: not s.spot_instances
        and not s.reserved_instances
        and s.compute_model in (ComputeModel.VM, ComputeModel.CONTAINER)
        and s.compute_count >= 2,
        remediation="Cover steady-state baseline with reserved instances or savings plans",
        addresses="COST-03",
    ),
)


def find_risk_rule(rule_id: str, rules: tuple[RiskRule, ...] = RISK_RULES) -> Optional[RiskRule]:
    return next((r for r in rules if r.rule_id == rule_id), None)


def validate_risk_rules(
    rules: tuple[RiskRule, ...] = RISK_RULES,
    score_rules: tuple[ScoreRule, ...] = SCORE_RULES,
) -> None:
    """Check the risk table for defects.

    Raises:
        InternalComputationError: On duplicate ids, empty remediation text or
            a link to an unknown score rule.
    """
    issues = []
    seen_ids: set[str] = set()

    for rule in rules:
        if rule.rule_id in seen_ids:
            issues.append(f"duplicate risk rule id {rule.rule_id}")
        seen_ids.add(rule.rule_id)

        if not rule.remediation:
            issues.append(f"{rule.rule_id}: missing remediation")
        if rule.addresses and find_rule(rule.addresses, score_rules) is None:
            issues.append(f"{rule.rule_id}: links unknown score rule {rule.addresses}")

    if issues:
        for issue in issues:
            logger.error("Risk rule table defect: %s", issue)
        raise InternalComputationError("Risk rule table is inconsistent: " + "; ".join(issues))


def aggregate_risk_level(risks: list[Risk]) -> RiskLevel:
    """Highest severity among the risks, Low when there are none."""
    if not risks:
        return RiskLevel.LOW
    return RiskLevel.from_severity(min(risks, key=lambda r: r.severity.rank).severity)


class RiskAnalyzer:
    """Derives ranked risks from an architecture summary."""

    def __init__(self, rules: tuple[RiskRule, ...] = RISK_RULES):
        self.rules = rules

    def analyze(self, summary: ArchitectureSummary) -> RiskAnalysis:
        """Fire every matching rule and rank the results.

        Risks are ordered critical to low; within a severity tier they keep
        rule table order (sorted() is stable).
        """
        fired = [rule.to_risk() for rule in self.rules if rule.condition(summary)]
        risks = sorted(fired, key=lambda r: r.severity.rank)
        level = aggregate_risk_level(risks)

        logger.debug("Fired %d risk rules, risk level %s", len(risks), level.value)
        return RiskAnalysis(risk_level=level, risks=risks)
