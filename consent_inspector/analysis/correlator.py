"""
Signal correlator.

Cross-checks what a page declares about consent (CMP state,
Google Consent Mode) against what it actually does (cookies set
and tag beacons fired) across the baseline, reject and accept
phases.

Non-essential activity is an ``analytics`` or ``marketing``
cookie, or a request to a known tag beacon.
"""

from __future__ import annotations

from collections.abc import Sequence

from consent_inspector.analysis import tracking_tags
from consent_inspector.models import analysis, tracking_data
from consent_inspector.utils import logger

log = logger.create_logger("Correlator")


def phase_signals(phase: analysis.PhaseResult) -> analysis.PhaseSignals:
    """Reduce one phase to its non-essential cookies and fired tags."""
    if not phase.available or phase.cookies is None:
        return analysis.PhaseSignals(phase=phase.phase, available=False, cmp_decision=phase.cmp_decision)
    return analysis.PhaseSignals(
        phase=phase.phase,
        available=True,
        non_essential_cookies=[c.key for c in phase.cookies.non_essential()],
        fired_tags=tracking_tags.fired_tags(phase.requests) if phase.requests else [],
        cmp_decision=phase.cmp_decision,
    )


def tracking_before_consent(baseline: tracking_data.CookieSnapshot | None) -> bool:
    """Whether analytics or marketing cookies exist before any decision."""
    return baseline is not None and bool(baseline.non_essential())


def reject_honored(baseline: analysis.PhaseSignals | None, reject: analysis.PhaseSignals | None) -> bool | None:
    """Whether rejecting removed (or never set) non-essential activity.

    ``None`` when either phase produced no data.
    """
    if not (baseline and baseline.available and reject and reject.available):
        return None
    remaining = len(reject.non_essential)
    return remaining == 0 or remaining < len(baseline.non_essential)


def accept_effective(reject: analysis.PhaseSignals | None, accept: analysis.PhaseSignals | None) -> bool | None:
    if not (reject and reject.available and accept and accept.available):
        return None
    return len(accept.non_essential) > len(reject.non_essential)


def _consent_mode_mismatches(phase: analysis.PhaseResult) -> list[str]:
    state = phase.consent_mode
    if state is None or not state.detected or phase.cookies is None:
        return []

    mismatches: list[str] = []
    if state.analytics_storage == "denied" and phase.cookies.by_category("analytics"):
        mismatches.append(f"{phase.phase}: analytics_storage is denied but analytics cookies are set")
    if state.ad_storage == "denied" and phase.cookies.by_category("marketing"):
        mismatches.append(f"{phase.phase}: ad_storage is denied but marketing cookies are set")

    if phase.applied and phase.phase == "reject":
        granted = [p for p in ("analytics_storage", "ad_storage") if getattr(state, p) == "granted"]
        if granted:
            mismatches.append(f"reject: {', '.join(granted)} still granted after rejecting")
    elif phase.applied and phase.phase == "accept":
        denied = [p for p in ("analytics_storage", "ad_storage") if getattr(state, p) == "denied"]
        if denied:
            mismatches.append(f"accept: {', '.join(denied)} still denied after accepting")
    return mismatches


def correlate(phases: Sequence[analysis.PhaseResult]) -> analysis.CorrelationFindings:
    """Compare declared consent signals with observed behaviour.

    Args:
        phases: Phase results in protocol order.  Unavailable
            phases are tolerated; findings that depend on them
            are ``None``.

    Returns:
        The correlation findings, including per-phase signals.
    """
    by_phase = {p.phase: p for p in phases}
    signals = {p.phase: phase_signals(p) for p in phases}
    baseline = by_phase.get("baseline")
    mismatches: list[str] = []

    # ── Before any decision ─────────────────────────────────
    baseline_cookies = baseline.cookies if baseline and baseline.available else None
    before = tracking_before_consent(baseline_cookies)
    evidence: list[str] = []
    if baseline_cookies is not None:
        evidence.extend(f"cookie:{c.key}" for c in baseline_cookies.non_essential())
        evidence.extend(f"tag:{t}" for t in signals["baseline"].fired_tags)
    if before:
        mismatches.append(f"baseline: {len(baseline_cookies.non_essential())} non-essential cookie(s) set before consent")  # type: ignore[union-attr]

    # ── Reject / accept effect ──────────────────────────────
    honored = reject_honored(signals.get("baseline"), signals.get("reject"))
    if honored is False:
        mismatches.append("reject: non-essential activity did not decrease after rejecting")
    effective = accept_effective(signals.get("reject"), signals.get("accept"))

    reject = signals.get("reject")
    claimed = bool(reject and reject.available and reject.cmp_decision == "rejected" and reject.non_essential_cookies)
    if claimed:
        mismatches.append("reject: CMP reports rejection while non-essential cookies persist")

    # ── Consent Mode ────────────────────────────────────────
    declared = [p for p in phases if p.available and p.consent_mode is not None and p.consent_mode.detected]
    consistency: bool | None = None
    if declared:
        mode_mismatches = [m for p in declared for m in _consent_mode_mismatches(p)]
        mismatches.extend(mode_mismatches)
        consistency = not mode_mismatches

    findings = analysis.CorrelationFindings(
        tracking_before_consent=before,
        tracking_before_consent_evidence=evidence,
        reject_honored=honored,
        accept_effective=effective,
        consent_mode_consistency=consistency,
        reject_claimed_but_tracking=claimed,
        mismatches=mismatches,
        phases=[signals[p.phase] for p in phases],
    )
    log.info(
        "Correlation complete",
        {
            "trackingBeforeConsent": before,
            "rejectHonored": honored,
            "consentModeConsistency": consistency,
            "mismatches": len(mismatches),
        },
    )
    return findings
