"""Tests for the CostModeler (Phase 4)."""

import logging

import pytest

from architecture_evaluator.cost_modeler import (
    OPTIMIZATION_RULES,
    PRICE_TABLE_VERSION,
    CostModeler,
    OptimizationRule,
    validate_price_tables,
)
from architecture_evaluator.exceptions import InternalComputationError
from architecture_evaluator.schema import (
    ArchitectureSummary,
    CdnType,
    ComputeModel,
    DatabaseType,
    SimulationParams,
)
from architecture_evaluator.simulation import SimulationAdapter


@pytest.fixture
def modeler():
    return CostModeler()


def _by_category(analysis):
    return {c.category: c for c in analysis.breakdown}


class TestCostProjection:

    def test_reference_costs(self, modeler, reference_summary):
        analysis = modeler.model(reference_summary)
        costs = _by_category(analysis)

        assert list(costs) == ["Compute", "Database", "Caching", "Networking", "CDN", "Security", "Monitoring"]
        assert (costs["Compute"].current, costs["Compute"].optimized) == (210, 147)
        assert (costs["Database"].current, costs["Database"].optimized) == (360, 270)
        assert analysis.total_current == 780
        assert analysis.total_optimized == 627
        assert analysis.monthly_savings == 153
        assert analysis.price_table_version == PRICE_TABLE_VERSION

    def test_empty_summary_costs_nothing(self, modeler):
        analysis = modeler.model(ArchitectureSummary())
        assert analysis.total_current == 0
        assert analysis.total_optimized == 0
        assert analysis.breakdown == []

    def test_totals_reconcile(self, modeler, sample_summaries):
        for summary in sample_summaries:
            analysis = modeler.model(summary)
            assert sum(c.current for c in analysis.breakdown) == analysis.total_current
            assert sum(c.optimized for c in analysis.breakdown) == analysis.total_optimized
            assert analysis.total_optimized <= analysis.total_current
            assert analysis.monthly_savings == analysis.total_current - analysis.total_optimized

    def test_categories_without_optimization_pass_through(self, modeler, sample_summaries):
        optimizable = {r.category for r in OPTIMIZATION_RULES}
        for summary in sample_summaries:
            for item in modeler.model(summary).breakdown:
                assert 0 <= item.optimized <= item.current
                if item.category not in optimizable:
                    assert item.optimized == item.current

    def test_multi_az_doubles_database(self, modeler):
        single = ArchitectureSummary(database_type=DatabaseType.RDS_POSTGRESQL)
        multi = single.model_copy(update={"database_multi_az": True})
        assert _by_category(modeler.model(single))["Database"].current == 180
        assert _by_category(modeler.model(multi))["Database"].current == 360

    def test_replicas_add_base_price(self, modeler):
        summary = ArchitectureSummary(database_type=DatabaseType.POSTGRESQL, database_replicas=2)
        assert _by_category(modeler.model(summary))["Database"].current == 360

    def test_cdn_priced_per_user(self, modeler):
        summary = ArchitectureSummary(cdn=CdnType.GENERIC, estimated_users=100_000)
        assert _by_category(modeler.model(summary))["CDN"].current == 220

    def test_backup_minimum_without_database(self, modeler):
        summary = ArchitectureSummary(backup_strategy=True)
        assert _by_category(modeler.model(summary))["Backup"].current == 10

    def test_spot_discount_lists_optimization(self, modeler):
        summary = ArchitectureSummary(compute_model=ComputeModel.VM, compute_count=2, reserved_instances=True)
        analysis = modeler.model(summary)
        assert _by_category(analysis)["Compute"].optimized == 98
        assert any("spot" in opt for opt in analysis.optimizations)

    def test_purchasing_discounts_do_not_stack(self, modeler):
        summary = ArchitectureSummary(compute_model=ComputeModel.VM, compute_count=3)
        analysis = modeler.model(summary)
        assert _by_category(analysis)["Compute"].optimized == 147
        assert any("spot" in opt for opt in analysis.optimizations)
        assert not any("reserved" in opt for opt in analysis.optimizations)

    def test_right_sizing_follows_best_purchasing_discount(self, modeler):
        summary = ArchitectureSummary(compute_model=ComputeModel.VM, compute_count=20)
        analysis = modeler.model(summary)
        assert _by_category(analysis)["Compute"].current == 1400
        assert _by_category(analysis)["Compute"].optimized == 784
        assert len(analysis.optimizations) == 2

    def test_reserved_applies_where_spot_cannot(self, modeler):
        summary = ArchitectureSummary(compute_model=ComputeModel.PAAS, compute_count=1)
        analysis = modeler.model(summary)
        costs = _by_category(analysis)
        assert costs["Compute"].optimized == round(costs["Compute"].current * 0.72)
        assert any("reserved" in opt for opt in analysis.optimizations)

    def test_deterministic(self, modeler, reference_summary):
        assert modeler.model(reference_summary) == modeler.model(reference_summary)


class TestMonotonicity:

    def test_adding_regions_never_reduces_cost(self, modeler, sample_summaries):
        adapter = SimulationAdapter()
        for summary in sample_summaries:
            totals = [
                modeler.model(adapter.simulate(summary, SimulationParams(add_regions=n))).total_current
                for n in range(4)
            ]
            assert totals == sorted(totals)


class TestPriceTableValidation:

    def test_table_is_valid(self):
        validate_price_tables()

    @pytest.mark.parametrize("factor", [0.0, -0.1, 1.5])
    def test_bad_factor_rejected(self, factor):
        rule = OptimizationRule("OPT-BAD", "Compute", factor, "Bad", condition=lambda s: True)
        with pytest.raises(InternalComputationError, match="OPT-BAD"):
            validate_price_tables((rule,))

    def test_unknown_category_rejected(self):
        rule = OptimizationRule("OPT-BAD", "Lunch", 0.5, "Bad", condition=lambda s: True)
        with pytest.raises(InternalComputationError, match="Lunch"):
            validate_price_tables((rule,))

    def test_cost_increase_raises_and_logs(self, caplog):
        rule = OptimizationRule("OPT-BAD", "Compute", 1.5, "Bad", condition=lambda s: True)
        modeler = CostModeler(rules=(rule,))
        summary = ArchitectureSummary(compute_model=ComputeModel.VM, compute_count=2)

        with caplog.at_level(logging.ERROR, logger="architecture_evaluator.cost_modeler"):
            with pytest.raises(InternalComputationError):
                modeler.model(summary)
        assert "Optimization for Compute" in caplog.text
