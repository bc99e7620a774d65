"""Pydantic models for the Architecture Evaluator.

Input schemas for architecture summaries and simulation requests, and output
schemas for scores, risks, costs and the improvement roadmap.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Bumped whenever a rule, threshold or price table changes observable output.
RULES_VERSION = "1.0.0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Architecture Fact Enums
# =============================================================================


class ComputeModel(str, Enum):
    """How application code is hosted."""
    NONE = "none"
    VM = "vm"
    CONTAINER = "container"
    SERVERLESS = "serverless"
    PAAS = "paas"  # App Service, Elastic Beanstalk, App Engine, Heroku

    def is_provisioned(self) -> bool:
        """Check if the model runs on a count of provisioned units."""
        return self in (ComputeModel.VM, ComputeModel.CONTAINER, ComputeModel.PAAS)


class ScalingType(str, Enum):
    """How compute capacity changes with load."""
    NONE = "none"
    MANUAL = "manual"
    AUTO = "auto"


class DatabaseType(str, Enum):
    """Primary database technology."""
    NONE = "none"
    RDS = "rds"  # RDS with unspecified engine
    RDS_POSTGRESQL = "rds_postgresql"
    RDS_MYSQL = "rds_mysql"
    AURORA = "aurora"
    POSTGRESQL = "postgresql"  # Self-managed
    MYSQL = "mysql"
    SQL_SERVER = "sql_server"
    AZURE_SQL = "azure_sql"
    CLOUD_SQL = "cloud_sql"
    ORACLE = "oracle"
    MONGODB = "mongodb"
    DYNAMODB = "dynamodb"
    COSMOSDB = "cosmosdb"
    FIRESTORE = "firestore"
    CASSANDRA = "cassandra"

    def is_zone_redundant_by_default(self) -> bool:
        """Check if the managed service replicates across zones without configuration."""
        return self in (
            DatabaseType.AURORA,
            DatabaseType.DYNAMODB,
            DatabaseType.COSMOSDB,
            DatabaseType.FIRESTORE,
        )

    def is_provisioned(self) -> bool:
        """Check if the database is billed on provisioned instance capacity."""
        return self not in (
            DatabaseType.NONE,
            DatabaseType.DYNAMODB,
            DatabaseType.COSMOSDB,
            DatabaseType.FIRESTORE,
        )


class CachingLayer(str, Enum):
    """In-memory caching technology."""
    NONE = "none"
    REDIS = "redis"
    MEMCACHED = "memcached"


class LoadBalancerType(str, Enum):
    """Load balancer in front of the compute tier."""
    NONE = "none"
    APPLICATION = "application"  # ALB, Application Gateway, HTTPS LB
    NETWORK = "network"  # NLB, Azure Load Balancer
    CLASSIC = "classic"  # ELB classic
    SOFTWARE = "software"  # nginx, HAProxy, Envoy, Traefik
    GENERIC = "generic"  # "load balancer" without a product name


class CdnType(str, Enum):
    """Content delivery network."""
    NONE = "none"
    CLOUDFRONT = "cloudfront"
    AZURE_FRONT_DOOR = "azure_front_door"
    AZURE_CDN = "azure_cdn"
    CLOUD_CDN = "cloud_cdn"
    CLOUDFLARE = "cloudflare"
    AKAMAI = "akamai"
    FASTLY = "fastly"
    GENERIC = "generic"


class MonitoringLevel(str, Enum):
    """Depth of observability tooling."""
    NONE = "none"
    BASIC = "basic"  # Provider metrics and alarms (CloudWatch, Azure Monitor)
    ADVANCED = "advanced"  # APM, tracing, dashboards (Datadog, Prometheus, X-Ray)


class ContainerOrchestration(str, Enum):
    """Container orchestration platform."""
    NONE = "none"
    ECS = "ecs"
    EKS = "eks"
    AKS = "aks"
    GKE = "gke"
    KUBERNETES = "kubernetes"  # Self-managed or unspecified
    OPENSHIFT = "openshift"
    NOMAD = "nomad"
    DOCKER_SWARM = "docker_swarm"

    def has_managed_control_plane(self) -> bool:
        """Check if the platform bills a managed control plane."""
        return self in (
            ContainerOrchestration.EKS,
            ContainerOrchestration.AKS,
            ContainerOrchestration.GKE,
            ContainerOrchestration.OPENSHIFT,
        )


# =============================================================================
# Evaluation Enums
# =============================================================================


class ScoreCategory(str, Enum):
    """Evaluation dimension."""
    SCALABILITY = "scalability"
    RELIABILITY = "reliability"
    SECURITY = "security"
    COST_EFFICIENCY = "cost_efficiency"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class Severity(str, Enum):
    """Severity of a single risk."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Ordering rank, 0 is most severe."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class RiskLevel(str, Enum):
    """Aggregate risk level of an architecture."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_severity(cls, severity: Severity) -> "RiskLevel":
        return cls(severity.value.capitalize())


class MaturityLevel(str, Enum):
    """Qualitative maturity bucket derived from the overall score."""
    PROTOTYPE = "Prototype"
    EARLY_STAGE = "Early Stage"
    PRODUCTION_READY = "Production Ready"
    ENTERPRISE_GRADE = "Enterprise Grade"


class NarrativeStatus(str, Enum):
    """Outcome of the optional narrative collaborator call."""
    OK = "ok"
    DISABLED = "disabled"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    FAILED = "failed"


# =============================================================================
# Architecture Summary
# =============================================================================


# Common spellings mapped to the token used in enum values ("rds/postgres").
ENUM_TOKEN_ALIASES = {
    "postgres": "postgresql",
    "pg": "postgresql",
    "mongo": "mongodb",
    "mssql": "sql_server",
    "k8s": "kubernetes",
}


class ArchitectureSummary(BaseModel):
    """Structured facts extracted from an architecture description.

    Immutable once built. The simulation adapter produces new instances via
    ``model_copy(update=...)`` instead of mutating.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    compute_model: ComputeModel = ComputeModel.NONE
    compute_count: int = Field(0, ge=0)
    scaling_type: ScalingType = ScalingType.NONE
    database_type: DatabaseType = DatabaseType.NONE
    database_multi_az: bool = False
    database_replicas: int = Field(0, ge=0)
    caching_layer: CachingLayer = CachingLayer.NONE
    load_balancer: LoadBalancerType = LoadBalancerType.NONE
    cdn: CdnType = CdnType.NONE
    vpc: bool = False
    private_subnets: bool = False
    waf: bool = False
    encryption: bool = False
    ssl_tls: bool = False
    iam_configured: bool = False
    security_groups: bool = False
    monitoring: MonitoringLevel = MonitoringLevel.NONE
    ci_cd: bool = False
    container_orchestration: ContainerOrchestration = ContainerOrchestration.NONE
    serverless_components: int = Field(0, ge=0)
    multi_region: bool = False
    backup_strategy: bool = False
    spot_instances: bool = False
    reserved_instances: bool = False
    api_gateway: bool = False
    microservices: bool = False
    estimated_users: int = Field(0, ge=0)

    @field_validator(
        "compute_model",
        "scaling_type",
        "database_type",
        "caching_layer",
        "load_balancer",
        "cdn",
        "monitoring",
        "container_orchestration",
        mode="before",
    )
    @classmethod
    def _normalize_enum_text(cls, value: Any) -> Any:
        """Accept 'RDS PostgreSQL', 'rds-postgresql' or 'rds/postgres'."""
        if isinstance(value, str) and not isinstance(value, Enum):
            normalized = value.strip().lower()
            for sep in (" ", "-", "/"):
                normalized = normalized.replace(sep, "_")
            tokens = [ENUM_TOKEN_ALIASES.get(t, t) for t in normalized.split("_") if t]
            return "_".join(tokens) or "none"
        return value

    @classmethod
    def field_names(cls) -> list[str]:
        """All summary fields in declaration order."""
        return list(cls.model_fields.keys())


# =============================================================================
# Scoring Models
# =============================================================================


class CategoryScore(BaseModel):
    """Score for one evaluation dimension with cited reasons."""
    score: int
    max: int = 100
    explanation: list[str] = Field(default_factory=list)
    violated_principles: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bounds(self) -> "CategoryScore":
        if not 0 <= self.score <= self.max:
            raise ValueError(f"score {self.score} outside [0, {self.max}]")
        return self

    @property
    def ratio(self) -> float:
        return self.score / self.max if self.max else 0.0


class Scores(BaseModel):
    """Overall score plus the four category scores."""
    overall: int = Field(..., ge=0, le=100)
    scalability: CategoryScore
    reliability: CategoryScore
    security: CategoryScore
    cost_efficiency: CategoryScore

    def category(self, category: ScoreCategory) -> CategoryScore:
        return getattr(self, category.value)


# =============================================================================
# Risk Models
# =============================================================================


class Risk(BaseModel):
    """A risk produced by a deterministic rule match."""
    type: str
    component: str
    impact: str
    severity: Severity
    category: ScoreCategory
    rule_id: str


class RiskAnalysis(BaseModel):
    """Ranked risks with the aggregate level."""
    risk_level: RiskLevel = RiskLevel.LOW
    risks: list[Risk] = Field(default_factory=list)


# =============================================================================
# Cost Models
# =============================================================================


class CostCategory(BaseModel):
    """Monthly cost of one spend category in USD."""
    category: str
    current: int = Field(..., ge=0)
    optimized: int = Field(..., ge=0)


class CostAnalysis(BaseModel):
    """Current and optimized monthly cost projection."""
    total_current: int = 0
    total_optimized: int = 0
    monthly_savings: int = 0
    breakdown: list[CostCategory] = Field(default_factory=list)
    optimizations: list[str] = Field(default_factory=list)
    price_table_version: str = ""


# =============================================================================
# Roadmap Models
# =============================================================================


class ImprovementPhase(BaseModel):
    """One phase of the improvement roadmap."""
    phase: int = Field(..., ge=1)
    title: str
    actions: list[str] = Field(default_factory=list)
    impact: str


# =============================================================================
# Simulation Models
# =============================================================================


class SimulationParams(BaseModel):
    """What-if parameters applied to an existing summary."""
    model_config = ConfigDict(extra="forbid")

    traffic_multiplier: float = Field(1.0, ge=1)
    add_regions: int = Field(0, ge=0)
    cost_target: float = Field(0.0, ge=0, description="Monthly USD target, 0 means no limit")


class SimulationOutcome(BaseModel):
    """Simulation parameters echoed back with the cost target comparison."""
    params: SimulationParams
    cost_target_met: Optional[bool] = None


# =============================================================================
# Extraction and Result Models
# =============================================================================


class ExtractionResult(BaseModel):
    """Extracted summary with the input-quality signal."""
    summary: ArchitectureSummary
    confidence: float = Field(..., ge=0, le=1)
    recognized_fields: list[str] = Field(default_factory=list)
    unresolved_fields: list[str] = Field(default_factory=list)


class NarrativeResult(BaseModel):
    """Narrative addendum returned by the external collaborator."""
    ai_explanation: str = ""
    confidence_score: float = Field(0.0, ge=0, le=1)


class AnalysisResult(BaseModel):
    """Complete output of one evaluation request."""
    # Metadata
    rules_version: str = Field(default=RULES_VERSION)
    timestamp: datetime = Field(default_factory=_utcnow)

    # Deterministic pipeline output
    architecture_summary: ArchitectureSummary
    scores: Scores
    risk_analysis: RiskAnalysis
    cost_analysis: CostAnalysis
    improvement_plan: list[ImprovementPhase] = Field(default_factory=list)
    maturity_level: MaturityLevel
    extraction_confidence: Optional[float] = Field(default=None, ge=0, le=1)
    simulation: Optional[SimulationOutcome] = None

    # Collaborator output
    ai_explanation: str = ""
    confidence_score: float = Field(default=0.0, ge=0, le=1)
    narrative_status: NarrativeStatus = NarrativeStatus.DISABLED

    def deterministic_dump(self) -> dict[str, Any]:
        """Dump only the fields the rule tables determine."""
        return self.model_dump(
            mode="json",
            exclude={"timestamp", "ai_explanation", "confidence_score", "narrative_status"},
        )
