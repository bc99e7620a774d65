"""Cost Modeler - Phase 4 of the Evaluation Pipeline.

Projects monthly USD cost from a fixed, versioned price table and applies
discount-only optimization rules per spend category. Prices are indicative
list prices for a single region; they are not fetched from any provider.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable

from .exceptions import InternalComputationError
from .schema import (
    ArchitectureSummary,
    CachingLayer,
    CdnType,
    ComputeModel,
    CostAnalysis,
    CostCategory,
    DatabaseType,
    LoadBalancerType,
    MonitoringLevel,
    ScalingType,
)
from .scorer import has_database, is_right_sized

logger = logging.getLogger(__name__)

# Bumped whenever any unit price or optimization factor changes.
PRICE_TABLE_VERSION = "2025.2"


# =============================================================================
# Unit Price Table (USD per month)
# =============================================================================

COMPUTE_UNIT_PRICE = {
    ComputeModel.NONE: 0,
    ComputeModel.VM: 70,
    ComputeModel.CONTAINER: 55,
    ComputeModel.PAAS: 60,
    ComputeModel.SERVERLESS: 0,  # Billed per component below
}

SERVERLESS_COMPONENT_PRICE = 20
MANAGED_CONTROL_PLANE_PRICE = 73

DATABASE_BASE_PRICE = {
    DatabaseType.NONE: 0,
    DatabaseType.RDS: 170,
    DatabaseType.RDS_POSTGRESQL: 180,
    DatabaseType.RDS_MYSQL: 170,
    DatabaseType.AURORA: 250,
    DatabaseType.POSTGRESQL: 120,
    DatabaseType.MYSQL: 110,
    DatabaseType.SQL_SERVER: 400,
    DatabaseType.AZURE_SQL: 220,
    DatabaseType.CLOUD_SQL: 170,
    DatabaseType.ORACLE: 600,
    DatabaseType.MONGODB: 140,
    DatabaseType.DYNAMODB: 90,
    DatabaseType.COSMOSDB: 150,
    DatabaseType.FIRESTORE: 60,
    DatabaseType.CASSANDRA: 300,
}

MULTI_AZ_MULTIPLIER = 2

CACHE_PRICE = {
    CachingLayer.NONE: 0,
    CachingLayer.REDIS: 90,
    CachingLayer.MEMCACHED: 70,
}

LOAD_BALANCER_PRICE = {
    LoadBalancerType.NONE: 0,
    LoadBalancerType.APPLICATION: 25,
    LoadBalancerType.NETWORK: 22,
    LoadBalancerType.CLASSIC: 20,
    LoadBalancerType.SOFTWARE: 15,
    LoadBalancerType.GENERIC: 22,
}

CDN_BASE_PRICE = 20
CDN_PRICE_PER_USER = 0.002

NAT_GATEWAY_PRICE = 35
API_GATEWAY_PRICE = 35
CROSS_REGION_TRANSFER_PRICE = 50
WAF_PRICE = 25

MONITORING_PRICE = {
    MonitoringLevel.NONE: 0,
    MonitoringLevel.BASIC: 15,
    MonitoringLevel.ADVANCED: 60,
}

BACKUP_SHARE_OF_DATABASE = 0.10
BACKUP_MINIMUM_PRICE = 10
CI_CD_PRICE = 10

# Breakdown order; categories with zero cost are omitted.
COST_CATEGORIES = [
    "Compute",
    "Database",
    "Caching",
    "Networking",
    "CDN",
    "Security",
    "Monitoring",
    "Backup",
    "Operations",
]


def _compute_cost(s: ArchitectureSummary) -> float:
    cost = COMPUTE_UNIT_PRICE[s.compute_model] * s.compute_count

    functions = s.serverless_components
    if s.compute_model == ComputeModel.SERVERLESS:
        functions = max(functions, s.compute_count, 1)
    cost += SERVERLESS_COMPONENT_PRICE * functions

    if s.container_orchestration.has_managed_control_plane():
        cost += MANAGED_CONTROL_PLANE_PRICE
    return cost


def _database_cost(s: ArchitectureSummary) -> float:
    base = DATABASE_BASE_PRICE[s.database_type]
    primary = base * (MULTI_AZ_MULTIPLIER if s.database_multi_az else 1)
    return primary + base * s.database_replicas


def _networking_cost(s: ArchitectureSummary) -> float:
    cost = LOAD_BALANCER_PRICE[s.load_balancer]
    if s.private_subnets:
        cost += NAT_GATEWAY_PRICE
    if s.api_gateway:
        cost += API_GATEWAY_PRICE
    if s.multi_region:
        cost += CROSS_REGION_TRANSFER_PRICE
    return cost


def _cdn_cost(s: ArchitectureSummary) -> float:
    if s.cdn == CdnType.NONE:
        return 0
    return CDN_BASE_PRICE + CDN_PRICE_PER_USER * s.estimated_users


def _backup_cost(s: ArchitectureSummary) -> float:
    if not s.backup_strategy:
        return 0
    return max(BACKUP_MINIMUM_PRICE, _database_cost(s) * BACKUP_SHARE_OF_DATABASE)


CATEGORY_COST: dict[str, Callable[[ArchitectureSummary], float]] = {
    "Compute": _compute_cost,
    "Database": _database_cost,
    "Caching": lambda s: CACHE_PRICE[s.caching_layer],
    "Networking": _networking_cost,
    "CDN": _cdn_cost,
    "Security": lambda s: WAF_PRICE if s.waf else 0,
    "Monitoring": lambda s: MONITORING_PRICE[s.monitoring],
    "Backup": _backup_cost,
    "Operations": lambda s: CI_CD_PRICE if s.ci_cd else 0,
}


# =============================================================================
# Optimization Rules
# =============================================================================


@dataclass(frozen=True)
class OptimizationRule:
    """A multiplicative discount on one spend category.

    ``factor`` is the share of cost that remains, in (0, 1]. Rules sharing an
    ``exclusive_group`` are alternatives: only the deepest discount of the
    group applies.
    """
    rule_id: str
    category: str
    factor: float
    description: str
    condition: Callable[[ArchitectureSummary], bool]
    exclusive_group: str = ""


OPTIMIZATION_RULES: tuple[OptimizationRule, ...] = (
    OptimizationRule(
        "OPT-SPOT", "Compute", 0.70,
        "Run interruptible capacity on spot instances (about 30% off compute)",
        condition=lambda s: s.compute_model in (ComputeModel.VM, ComputeModel.CONTAINER)
        and not s.spot_instances
        and s.compute_count >= 2,
        exclusive_group="compute-purchasing",
    ),
    OptimizationRule(
        "OPT-RESERVED-COMPUTE", "Compute", 0.72,
        "Commit to reserved capacity for the baseline (about 28% off compute)",
        condition=lambda s: s.compute_model in (ComputeModel.VM, ComputeModel.CONTAINER, ComputeModel.PAAS)
        and not s.reserved_instances
        and s.compute_count >= 1,
        exclusive_group="compute-purchasing",
    ),
    OptimizationRule(
        "OPT-RIGHT-SIZE", "Compute", 0.80,
        "Right-size the static fleet to expected demand (about 20% off compute)",
        condition=lambda s: s.scaling_type == ScalingType.NONE and not is_right_sized(s),
    ),
    OptimizationRule(
        "OPT-CACHE-OFFLOAD", "Database", 0.85,
        "Add a cache to offload database reads (about 15% off database capacity)",
        condition=lambda s: has_database(s) and s.caching_layer == CachingLayer.NONE,
    ),
    OptimizationRule(
        "OPT-RESERVED-DATABASE", "Database", 0.75,
        "Reserve database instances (about 25% off database)",
        condition=lambda s: s.database_type.is_provisioned() and not s.reserved_instances,
    ),
)


def validate_price_tables(rules: tuple[OptimizationRule, ...] = OPTIMIZATION_RULES) -> None:
    """Check optimization rules for defects.

    Raises:
        InternalComputationError: When a factor would raise cost or zero it
            out, or a rule targets an unknown category.
    """
    issues = []
    for rule in rules:
        if not 0 < rule.factor <= 1:
            issues.append(f"{rule.rule_id}: factor {rule.factor} outside (0, 1]")
        if rule.category not in CATEGORY_COST:
            issues.append(f"{rule.rule_id}: unknown category {rule.category!r}")

    if issues:
        for issue in issues:
            logger.error("Price table defect: %s", issue)
        raise InternalComputationError("Price table is inconsistent: " + "; ".join(issues))


def _best_of_groups(rules: list[OptimizationRule]) -> list[OptimizationRule]:
    """Drop all but the lowest factor of each exclusive group, keeping table order."""
    best: dict[str, OptimizationRule] = {}
    for rule in rules:
        if rule.exclusive_group and (
            rule.exclusive_group not in best or rule.factor < best[rule.exclusive_group].factor
        ):
            best[rule.exclusive_group] = rule
    return [r for r in rules if not r.exclusive_group or best[r.exclusive_group] is r]


class CostModeler:
    """Projects current and optimized monthly cost."""

    def __init__(
        self,
        rules: tuple[OptimizationRule, ...] = OPTIMIZATION_RULES,
        price_table_version: str = PRICE_TABLE_VERSION,
    ):
        self.rules = rules
        self.price_table_version = price_table_version

    def model(self, summary: ArchitectureSummary) -> CostAnalysis:
        """Build the cost projection for a summary.

        Raises:
            InternalComputationError: If an optimization produces a negative
                value or one above the current cost.
        """
        breakdown = []
        applied = []

        for category in COST_CATEGORIES:
            current = round(CATEGORY_COST[category](summary))
            if current <= 0:
                continue

            matching = _best_of_groups(
                [r for r in self.rules if r.category == category and r.condition(summary)]
            )
            factor = math.prod(r.factor for r in matching)
            optimized = round(current * factor)
            self._check_optimized(category, current, optimized)

            breakdown.append(CostCategory(category=category, current=current, optimized=optimized))
            applied.extend(r.description for r in matching)

        total_current = sum(c.current for c in breakdown)
        total_optimized = sum(c.optimized for c in breakdown)

        logger.debug(
            "Cost model: current=$%d optimized=$%d across %d categories",
            total_current, total_optimized, len(breakdown),
        )

        return CostAnalysis(
            total_current=total_current,
            total_optimized=total_optimized,
            monthly_savings=total_current - total_optimized,
            breakdown=breakdown,
            optimizations=applied,
            price_table_version=self.price_table_version,
        )

    def _check_optimized(self, category: str, current: int, optimized: int) -> None:
        if optimized < 0 or optimized > current:
            logger.error(
                "Optimization for %s produced $%d from $%d", category, optimized, current
            )
            raise InternalComputationError(
                f"Optimized cost for {category} is {optimized}, outside [0, {current}]"
            )
