"""Compliance score calculator.

Runs every rule in :data:`rules.RULES`, sums the deductions and
orders the resulting issues.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence

from consent_inspector.analysis.scoring import rules
from consent_inspector.models import analysis
from consent_inspector.utils import logger

log = logger.create_logger("ComplianceScore")

MAX_SCORE = 100


@dataclasses.dataclass(frozen=True)
class ScoreResult:
    """Score, ordered issues and the raw hits they came from."""

    score: int
    issues: list[analysis.Issue]
    hits: tuple[rules.RuleHit, ...] = ()


def score_from_hits(hits: Iterable[rules.RuleHit]) -> int:
    """``max(0, 100 - total deductions)``."""
    return max(0, MAX_SCORE - sum(hit.deduction for hit in hits))


def order_issues(issues: Iterable[analysis.Issue]) -> list[analysis.Issue]:
    """Sort by severity, then category; equal keys keep their input order."""
    return sorted(issues, key=lambda i: (analysis.SEVERITY_RANK[i.severity], i.category))


def evaluate(context: rules.ScoringContext, rule_table: Sequence[rules.Rule] = rules.RULES) -> tuple[rules.RuleHit, ...]:
    """Evaluate *rule_table* in order and collect every hit."""
    return tuple(hit for rule in rule_table for hit in rule(context))


def calculate_score(context: rules.ScoringContext, rule_table: Sequence[rules.Rule] = rules.RULES) -> ScoreResult:
    """Calculate the compliance score and issue list.

    Args:
        context: The assembled inspection data.
        rule_table: Rules to apply, in tie-break order.

    Returns:
        A :class:`ScoreResult`; its ``score`` is always in
        ``[0, 100]``.
    """
    hits = evaluate(context, rule_table)
    score = score_from_hits(hits)
    issues = order_issues(hit.issue for hit in hits)

    log.success(
        "Compliance score calculated",
        {
            "score": score,
            "deductions": sum(hit.deduction for hit in hits),
            "errors": sum(1 for i in issues if i.severity == "error"),
            "warnings": sum(1 for i in issues if i.severity == "warning"),
        },
    )
    return ScoreResult(score=score, issues=issues, hits=hits)
