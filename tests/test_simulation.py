"""Tests for the SimulationAdapter and summary validation."""

import pytest
from pydantic import ValidationError

from architecture_evaluator.schema import (
    ArchitectureSummary,
    ComputeModel,
    ContainerOrchestration,
    DatabaseType,
    SimulationParams,
)
from architecture_evaluator.simulation import SimulationAdapter, is_identity


@pytest.fixture
def adapter():
    return SimulationAdapter()


class TestSimulationAdapter:

    def test_identity(self, adapter, sample_summaries):
        for summary in sample_summaries:
            simulated = adapter.simulate(summary, SimulationParams())
            assert simulated == summary
            assert simulated.model_dump_json() == summary.model_dump_json()

    def test_cost_target_alone_is_identity(self, adapter, reference_summary):
        params = SimulationParams(cost_target=500)
        assert is_identity(params)
        assert adapter.simulate(reference_summary, params) == reference_summary

    def test_traffic_multiplier(self, adapter, reference_summary):
        summary = reference_summary.model_copy(update={"estimated_users": 1_000})
        simulated = adapter.simulate(summary, SimulationParams(traffic_multiplier=2.5))
        assert simulated.estimated_users == 2_500
        assert summary.estimated_users == 1_000

    def test_add_regions(self, adapter, reference_summary):
        simulated = adapter.simulate(reference_summary, SimulationParams(add_regions=2))
        assert simulated.multi_region is True
        assert simulated.compute_count == reference_summary.compute_count + 2
        assert reference_summary.multi_region is False

    @pytest.mark.parametrize("model", [ComputeModel.SERVERLESS, ComputeModel.NONE])
    def test_add_regions_keeps_unprovisioned_count(self, adapter, model):
        summary = ArchitectureSummary(compute_model=model, serverless_components=2)
        simulated = adapter.simulate(summary, SimulationParams(add_regions=1))
        assert simulated.multi_region is True
        assert simulated.compute_count == 0

    def test_other_fields_untouched(self, adapter, reference_summary):
        simulated = adapter.simulate(reference_summary, SimulationParams(traffic_multiplier=3, add_regions=1))
        before = reference_summary.model_dump(exclude={"estimated_users", "multi_region", "compute_count"})
        after = simulated.model_dump(exclude={"estimated_users", "multi_region", "compute_count"})
        assert before == after

    def test_summary_is_immutable(self, reference_summary):
        with pytest.raises(ValidationError):
            reference_summary.compute_count = 10


class TestSimulationParams:

    @pytest.mark.parametrize("kwargs", [
        {"traffic_multiplier": 0.5},
        {"add_regions": -1},
        {"cost_target": -10},
        {"unknown": 1},
    ])
    def test_invalid_params(self, kwargs):
        with pytest.raises(ValidationError):
            SimulationParams(**kwargs)

    def test_defaults(self):
        params = SimulationParams()
        assert params.traffic_multiplier == 1.0
        assert params.add_regions == 0
        assert params.cost_target == 0.0

    def test_summary_rejects_negative_counts(self):
        with pytest.raises(ValidationError):
            ArchitectureSummary(compute_count=-1)


class TestSummaryEnumText:

    @pytest.mark.parametrize("text,expected", [
        ("rds/postgres", DatabaseType.RDS_POSTGRESQL),
        ("RDS PostgreSQL", DatabaseType.RDS_POSTGRESQL),
        ("rds-postgresql", DatabaseType.RDS_POSTGRESQL),
        ("Postgres", DatabaseType.POSTGRESQL),
        ("mongo", DatabaseType.MONGODB),
        ("MSSQL", DatabaseType.SQL_SERVER),
        ("", DatabaseType.NONE),
    ])
    def test_database_spellings(self, text, expected):
        assert ArchitectureSummary(database_type=text).database_type == expected

    def test_orchestration_alias(self):
        summary = ArchitectureSummary(container_orchestration="k8s")
        assert summary.container_orchestration == ContainerOrchestration.KUBERNETES

    def test_unknown_value_rejected(self):
        with pytest.raises(ValidationError):
            ArchitectureSummary(database_type="rds/db2")
