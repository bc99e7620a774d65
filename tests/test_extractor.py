"""Tests for the Extractor (Phase 1)."""

import pytest

from architecture_evaluator.extractor import EXTRACTION_RULES, Extractor, parse_quantity
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


@pytest.fixture
def extractor():
    return Extractor()


class TestReferenceDescriptions:
    """The two reference descriptions used throughout the test suite."""

    def test_reference_description_fields(self, extractor, reference_description):
        summary, _ = extractor.extract(reference_description)

        assert summary.compute_model == ComputeModel.VM
        assert summary.compute_count == 3
        assert summary.scaling_type == ScalingType.AUTO
        assert summary.database_type == DatabaseType.RDS_POSTGRESQL
        assert summary.database_multi_az is True
        assert summary.caching_layer == CachingLayer.REDIS
        assert summary.load_balancer == LoadBalancerType.APPLICATION
        assert summary.cdn == CdnType.CLOUDFRONT
        assert summary.vpc is True
        assert summary.private_subnets is True
        assert summary.waf is True
        assert summary.monitoring == MonitoringLevel.BASIC

    def test_reference_description_matches_fixture(self, extractor, reference_description, reference_summary):
        summary, _ = extractor.extract(reference_description)
        assert summary == reference_summary

    def test_reference_confidence(self, extractor, reference_description):
        result = extractor.extract_detailed(reference_description)
        assert len(result.recognized_fields) == 12
        assert result.confidence == round(12 / 27, 2)
        assert "encryption" in result.unresolved_fields

    def test_single_server_description(self, extractor, single_server_description):
        summary, _ = extractor.extract(single_server_description)

        assert summary.compute_model == ComputeModel.VM
        assert summary.compute_count == 1
        assert summary.scaling_type == ScalingType.NONE
        assert summary.backup_strategy is False
        assert summary.monitoring == MonitoringLevel.NONE

    def test_single_server_negations_are_recognized(self, extractor, single_server_description):
        result = extractor.extract_detailed(single_server_description)
        assert "backup_strategy" in result.recognized_fields
        assert "monitoring" in result.recognized_fields


class TestNeverFails:
    """Arbitrary input yields sentinel defaults instead of errors."""

    @pytest.mark.parametrize("text", [None, "", "   ", "!!!???", "12345", "lorem ipsum " * 500, "\x00\x01binary"])
    def test_arbitrary_input(self, extractor, text):
        summary, confidence = extractor.extract(text)
        assert isinstance(summary, ArchitectureSummary)
        assert 0.0 <= confidence <= 1.0

    def test_empty_text_is_all_defaults(self, extractor):
        summary, confidence = extractor.extract("")
        assert summary == ArchitectureSummary()
        assert confidence == 0.0

    def test_unrelated_text_has_zero_confidence(self, extractor):
        result = extractor.extract_detailed("The quick brown fox jumps over the lazy dog")
        assert result.confidence == 0.0
        assert result.recognized_fields == []
        assert len(result.unresolved_fields) == len(ArchitectureSummary.field_names())


class TestMatchResolution:
    """Longest match wins; ties keep table order."""

    def test_longest_match_wins(self, extractor):
        summary, _ = extractor.extract("Backed by RDS PostgreSQL")
        assert summary.database_type == DatabaseType.RDS_POSTGRESQL

    def test_tie_keeps_table_order(self, extractor):
        first, _ = extractor.extract("an NLB and an ELB")
        second, _ = extractor.extract("an ELB and an NLB")
        assert first.load_balancer == LoadBalancerType.NETWORK
        assert second.load_balancer == LoadBalancerType.NETWORK

    def test_order_independent(self, extractor, reference_description):
        reordered = ", ".join(reversed(reference_description.split(", ")))
        assert extractor.extract(reordered)[0] == extractor.extract(reference_description)[0]

    def test_case_insensitive(self, extractor, reference_description):
        assert extractor.extract(reference_description.upper())[0] == extractor.extract(reference_description)[0]

    def test_repeated_extraction_is_identical(self, extractor, reference_description):
        assert extractor.extract_detailed(reference_description) == extractor.extract_detailed(reference_description)

    def test_rules_reference_known_fields(self):
        fields = set(ArchitectureSummary.field_names())
        assert {rule.field for rule in EXTRACTION_RULES} == fields


class TestNegation:
    """Negated mentions set the sentinel and still count as recognized."""

    def test_negated_encryption(self, extractor):
        summary, _ = extractor.extract("Encryption disabled on the database")
        assert summary.encryption is False

    def test_unencrypted(self, extractor):
        result = extractor.extract_detailed("Data is unencrypted")
        assert result.summary.encryption is False
        assert "encryption" in result.recognized_fields

    def test_encryption_at_rest(self, extractor):
        summary, _ = extractor.extract("Encryption at rest with KMS")
        assert summary.encryption is True

    def test_transit_negation_does_not_touch_rest(self, extractor):
        result = extractor.extract_detailed("no encryption in transit")
        assert result.summary.ssl_tls is False
        assert "ssl_tls" in result.recognized_fields
        assert "encryption" not in result.recognized_fields

    def test_database_redundancy_phrase_keeps_database(self, extractor):
        summary, _ = extractor.extract("RDS MySQL without database redundancy")
        assert summary.database_type == DatabaseType.RDS_MYSQL

    def test_explicit_no_database(self, extractor):
        result = extractor.extract_detailed("A static website with no database.")
        assert result.summary.database_type == DatabaseType.NONE
        assert "database_type" in result.recognized_fields


class TestVendorVocabulary:

    def test_sql_server_is_not_a_vm(self, extractor):
        summary, _ = extractor.extract("Microsoft SQL Server on two VMs")
        assert summary.database_type == DatabaseType.SQL_SERVER
        assert summary.compute_model == ComputeModel.VM
        assert summary.compute_count == 2

    def test_serverless_stack(self, extractor):
        summary, _ = extractor.extract("Lambda functions behind API Gateway with DynamoDB")
        assert summary.compute_model == ComputeModel.SERVERLESS
        assert summary.serverless_components == 1
        assert summary.api_gateway is True
        assert summary.database_type == DatabaseType.DYNAMODB
        assert summary.compute_count == 0

    def test_database_instance_is_not_compute(self, extractor):
        summary, _ = extractor.extract(
            "Lambda functions behind API Gateway with a single RDS instance, encrypted, backups"
        )
        assert summary.compute_model == ComputeModel.SERVERLESS
        assert summary.database_type == DatabaseType.RDS
        assert summary.compute_count == 0

    @pytest.mark.parametrize("text", [
        "2 EC2 instances and a single RDS instance",
        "2 EC2 instances with one Redis cache node",
        "2 EC2 instances and 3 read replica instances",
    ])
    def test_data_tier_counts_ignored(self, extractor, text):
        summary, _ = extractor.extract(text)
        assert summary.compute_count == 2

    def test_kubernetes_cluster(self, extractor):
        summary, _ = extractor.extract("EKS cluster with 6 nodes")
        assert summary.compute_model == ComputeModel.CONTAINER
        assert summary.container_orchestration == ContainerOrchestration.EKS
        assert summary.compute_count == 6

    def test_spelled_out_count(self, extractor):
        summary, _ = extractor.extract("a pair of servers behind nginx")
        assert summary.compute_count == 2
        assert summary.load_balancer == LoadBalancerType.SOFTWARE

    def test_implied_single_unit_is_not_recognized(self, extractor):
        result = extractor.extract_detailed("Deployed on Heroku")
        assert result.summary.compute_model == ComputeModel.PAAS
        assert result.summary.compute_count == 1
        assert "compute_count" not in result.recognized_fields

    @pytest.mark.parametrize("text,expected", [
        ("Serving 50k users", 50_000),
        ("about 10,000 users a day", 10_000),
        ("1.5 million monthly users", 1_500_000),
    ])
    def test_estimated_users(self, extractor, text, expected):
        summary, _ = extractor.extract(text)
        assert summary.estimated_users == expected


class TestParseQuantity:

    @pytest.mark.parametrize("text,expected", [
        ("3", 3),
        ("10,000", 10_000),
        ("50k", 50_000),
        ("1.5 million", 1_500_000),
        ("two", 2),
        ("a dozen", 12),
        ("Single", 1),
    ])
    def test_parses(self, text, expected):
        assert parse_quantity(text) == expected

    @pytest.mark.parametrize("text", [None, "", "lots", "k"])
    def test_rejects(self, text):
        assert parse_quantity(text) is None
