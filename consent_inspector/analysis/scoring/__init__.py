"""Compliance scoring package.

Turns correlator findings and page signals into a severity-tagged
issue list and a 0–100 score.  The public API is
:func:`calculate_score`.
"""

from __future__ import annotations

from consent_inspector.analysis.scoring.calculator import ScoreResult, calculate_score
from consent_inspector.analysis.scoring.rules import RuleHit, ScoringContext

__all__ = ["RuleHit", "ScoreResult", "ScoringContext", "calculate_score"]
