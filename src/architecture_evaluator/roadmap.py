"""Roadmap Generator - Phase 5 of the Evaluation Pipeline.

Groups violated principles and fired risks into three themed phases:

1. Critical Risk & Security Remediation: critical/high risks and security gaps
2. Reliability Hardening: remaining reliability gaps
3. Scalability & Cost Optimization: scalability and cost efficiency gaps

Each action appears once, in the earliest phase that needs it. Empty phases
are dropped and the rest renumbered from 1.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import InternalComputationError
from .risk_analyzer import RISK_RULES, RiskRule, find_risk_rule
from .schema import ImprovementPhase, Risk, ScoreCategory, Scores, Severity
from .scorer import SCORE_RULES, ScoreRule, find_rule, find_rule_by_principle

logger = logging.getLogger(__name__)

PHASE_TITLES = {
    1: "Critical Risk & Security Remediation",
    2: "Reliability Hardening",
    3: "Scalability & Cost Optimization",
}

CATEGORY_PHASE = {
    ScoreCategory.SECURITY: 1,
    ScoreCategory.RELIABILITY: 2,
    ScoreCategory.SCALABILITY: 3,
    ScoreCategory.COST_EFFICIENCY: 3,
}

URGENT_SEVERITIES = (Severity.CRITICAL, Severity.HIGH)


@dataclass
class _Item:
    phase: int
    action: str
    rule_ids: list[str] = field(default_factory=list)
    severity: Optional[Severity] = None


@dataclass
class _PhaseDraft:
    actions: list[str] = field(default_factory=list)
    rule_ids: list[str] = field(default_factory=list)
    severities: list[Severity] = field(default_factory=list)


class RoadmapGenerator:
    """Builds the phased improvement plan from scores and risks."""

    def __init__(
        self,
        score_rules: tuple[ScoreRule, ...] = SCORE_RULES,
        risk_rules: tuple[RiskRule, ...] = RISK_RULES,
    ):
        self.score_rules = score_rules
        self.risk_rules = risk_rules

    def plan(self, scores: Scores, risks: list[Risk]) -> list[ImprovementPhase]:
        """Build the ordered improvement phases.

        Raises:
            InternalComputationError: If a principle or risk does not trace
                back to a rule in the tables.
        """
        items = self._risk_items(risks) + self._principle_items(scores)
        # sorted() is stable, so within a phase risks come first in rank order
        items.sort(key=lambda i: i.phase)

        drafts: dict[int, _PhaseDraft] = {n: _PhaseDraft() for n in PHASE_TITLES}
        action_phase: dict[str, int] = {}
        counted_rules: set[str] = set()

        for item in items:
            if item.action not in action_phase:
                action_phase[item.action] = item.phase
                drafts[item.phase].actions.append(item.action)
            draft = drafts[action_phase[item.action]]

            for rule_id in item.rule_ids:
                if rule_id not in counted_rules:
                    counted_rules.add(rule_id)
                    draft.rule_ids.append(rule_id)
            if item.severity is not None:
                draft.severities.append(item.severity)

        phases = []
        for number, title in PHASE_TITLES.items():
            draft = drafts[number]
            if not draft.actions:
                continue
            phases.append(ImprovementPhase(
                phase=len(phases) + 1,
                title=title,
                actions=draft.actions,
                impact=self._impact(draft),
            ))

        logger.debug(
            "Planned %d phases with %d actions",
            len(phases), sum(len(p.actions) for p in phases),
        )
        return phases

    def _risk_items(self, risks: list[Risk]) -> list[_Item]:
        items = []
        for risk in risks:
            rule = find_risk_rule(risk.rule_id, self.risk_rules)
            if rule is None:
                raise InternalComputationError(f"Risk {risk.rule_id} has no rule in the risk table")

            if risk.severity in URGENT_SEVERITIES:
                phase = 1
            else:
                phase = CATEGORY_PHASE[risk.category]
            items.append(_Item(
                phase=phase,
                action=rule.remediation,
                rule_ids=[rule.addresses] if rule.addresses else [],
                severity=risk.severity,
            ))
        return items

    def _principle_items(self, scores: Scores) -> list[_Item]:
        items = []
        for category in ScoreCategory:
            for principle in scores.category(category).violated_principles:
                rule = find_rule_by_principle(principle, self.score_rules)
                if rule is None or not rule.remediation:
                    raise InternalComputationError(
                        f"Violated principle {principle!r} has no remediation in the score table"
                    )
                items.append(_Item(
                    phase=CATEGORY_PHASE[rule.category],
                    action=rule.remediation,
                    rule_ids=[rule.rule_id],
                ))
        return items

    def _impact(self, draft: _PhaseDraft) -> str:
        """Summarize points regained per category and risks mitigated.

        Example: "+35 security pts, +15 reliability pts; mitigates 3 risks (2 critical)"
        """
        points = {category: 0 for category in ScoreCategory}
        for rule_id in draft.rule_ids:
            rule = find_rule(rule_id, self.score_rules)
            if rule is not None:
                points[rule.category] += rule.regained_points

        parts = []
        point_text = ", ".join(
            f"+{pts} {category.label} pts" for category, pts in points.items() if pts
        )
        if point_text:
            parts.append(point_text)

        if draft.severities:
            count = len(draft.severities)
            risk_text = f"mitigates {count} risk{'s' if count != 1 else ''}"
            critical = draft.severities.count(Severity.CRITICAL)
            if critical:
                risk_text += f" ({critical} critical)"
            parts.append(risk_text)

        return "; ".join(parts) if parts else "No score change"
