"""Shared fixtures for the evaluator tests."""

import pytest

from architecture_evaluator.config import reset_config
from architecture_evaluator.schema import (
    ArchitectureSummary,
    CachingLayer,
    CdnType,
    ComputeModel,
    ContainerOrchestration,
    DatabaseType,
    LoadBalancerType,
    MonitoringLevel,
    ScalingType,
)

REFERENCE_DESCRIPTION = (
    "3 EC2 instances behind an ALB with Auto Scaling, RDS PostgreSQL Multi-AZ, "
    "CloudFront CDN, VPC with private subnets, WAF enabled, Redis ElastiCache, "
    "CloudWatch monitoring"
)

SINGLE_SERVER_DESCRIPTION = "one single server, no backups, no monitoring"


@pytest.fixture(autouse=True)
def default_config():
    """Every test starts and ends with default configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def reference_summary() -> ArchitectureSummary:
    """Summary matching REFERENCE_DESCRIPTION."""
    return ArchitectureSummary(
        compute_model=ComputeModel.VM,
        compute_count=3,
        scaling_type=ScalingType.AUTO,
        database_type=DatabaseType.RDS_POSTGRESQL,
        database_multi_az=True,
        caching_layer=CachingLayer.REDIS,
        load_balancer=LoadBalancerType.APPLICATION,
        cdn=CdnType.CLOUDFRONT,
        vpc=True,
        private_subnets=True,
        waf=True,
        monitoring=MonitoringLevel.BASIC,
    )


@pytest.fixture
def single_server_summary() -> ArchitectureSummary:
    """Summary matching SINGLE_SERVER_DESCRIPTION."""
    return ArchitectureSummary(compute_model=ComputeModel.VM, compute_count=1)


@pytest.fixture
def hardened_summary() -> ArchitectureSummary:
    """Summary that satisfies every score rule and fires no risk."""
    return ArchitectureSummary(
        compute_model=ComputeModel.CONTAINER,
        compute_count=4,
        scaling_type=ScalingType.AUTO,
        database_type=DatabaseType.AURORA,
        database_multi_az=True,
        database_replicas=1,
        caching_layer=CachingLayer.REDIS,
        load_balancer=LoadBalancerType.APPLICATION,
        cdn=CdnType.CLOUDFRONT,
        vpc=True,
        private_subnets=True,
        waf=True,
        encryption=True,
        ssl_tls=True,
        iam_configured=True,
        security_groups=True,
        monitoring=MonitoringLevel.ADVANCED,
        ci_cd=True,
        container_orchestration=ContainerOrchestration.EKS,
        serverless_components=2,
        multi_region=True,
        backup_strategy=True,
        spot_instances=True,
        reserved_instances=True,
        api_gateway=True,
        microservices=True,
        estimated_users=100_000,
    )


@pytest.fixture
def sample_summaries(reference_summary, single_server_summary, hardened_summary) -> list[ArchitectureSummary]:
    """A spread of summaries for table-wide property checks."""
    return [
        ArchitectureSummary(),
        reference_summary,
        single_server_summary,
        hardened_summary,
        ArchitectureSummary(
            compute_model=ComputeModel.SERVERLESS,
            serverless_components=5,
            database_type=DatabaseType.DYNAMODB,
            api_gateway=True,
            estimated_users=250_000,
        ),
        ArchitectureSummary(
            compute_model=ComputeModel.VM,
            compute_count=20,
            database_type=DatabaseType.ORACLE,
            database_replicas=2,
            load_balancer=LoadBalancerType.CLASSIC,
            backup_strategy=True,
            estimated_users=60_000,
        ),
    ]


@pytest.fixture
def reference_description() -> str:
    return REFERENCE_DESCRIPTION


@pytest.fixture
def single_server_description() -> str:
    return SINGLE_SERVER_DESCRIPTION
