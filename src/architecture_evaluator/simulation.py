"""What-if simulation over an existing architecture summary.

The adapter never mutates its input. Policy:

- ``estimated_users`` is multiplied by ``traffic_multiplier`` and rounded
- each added region sets ``multi_region``; provisioned compute (VMs,
  containers, PaaS) also gains one unit per region, while serverless or
  absent compute keeps its count
- ``cost_target`` leaves the summary untouched; callers compare it against
  the optimized cost of the re-evaluated result
"""

import logging

from .schema import ArchitectureSummary, SimulationParams

logger = logging.getLogger(__name__)

COMPUTE_UNITS_PER_REGION = 1


def is_identity(params: SimulationParams) -> bool:
    """Check if the parameters leave every summary unchanged."""
    return params.traffic_multiplier == 1 and params.add_regions == 0


class SimulationAdapter:
    """Applies simulation parameters to a summary."""

    def simulate(self, summary: ArchitectureSummary, params: SimulationParams) -> ArchitectureSummary:
        """Return an adjusted copy of the summary.

        Identity parameters return the input itself, so the re-evaluated
        result equals the baseline.
        """
        if is_identity(params):
            return summary

        update = {
            "estimated_users": round(summary.estimated_users * params.traffic_multiplier),
        }
        if params.add_regions > 0:
            update["multi_region"] = True
            if summary.compute_model.is_provisioned():
                update["compute_count"] = summary.compute_count + params.add_regions * COMPUTE_UNITS_PER_REGION

        logger.debug("Simulating %s on summary", params.model_dump())
        return summary.model_copy(update=update)
