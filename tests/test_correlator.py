"""Tests for consent_inspector.analysis.correlator — declared vs observed consent."""

from __future__ import annotations

import random
from collections.abc import Sequence

import pytest

from consent_inspector.analysis import cookies, correlator
from consent_inspector.models import analysis, consent, tracking_data

# Names with a fixed category, for generated jars.
COOKIE_POOL = [
    "_ga",
    "_gid",
    "_fbp",
    "_gcl_au",
    "IDE",
    "_hjid",
    "PHPSESSID",
    "csrftoken",
    "lang",
    "euconsent-v2",
    "OptanonConsent",
    "cart_token",
    "theme",
]

GA_BEACON = "https://www.google-analytics.com/g/collect?v=2&tid=G-ABCDEF1234"


def _phase(
    name: tracking_data.Phase,
    cookie_names: Sequence[str] = (),
    *,
    urls: Sequence[str] = (),
    decision: consent.CmpDecision = "unknown",
    applied: bool | None = True,
    mode: consent.ConsentModeState | None = None,
) -> analysis.PhaseResult:
    return analysis.PhaseResult(
        phase=name,
        status="completed",
        applied=None if name == "baseline" else applied,
        cmp_decision=decision,
        cookies=cookies.build_snapshot(name, [{"name": n, "value": "1", "domain": ".example.com"} for n in cookie_names]),
        requests=tracking_data.RequestSnapshot(
            phase=name,
            requests=tuple(tracking_data.RequestRecord(url=u, host="x") for u in urls),
        ),
        consent_mode=mode,
    )


def _mode(**params: consent.ConsentParamState) -> consent.ConsentModeState:
    return consent.ConsentModeState(detected=True, version="v2", **params)


# ── Tracking before consent ─────────────────────────────────────


class TestTrackingBeforeConsent:
    @pytest.mark.parametrize("seed", range(25))
    def test_holds_iff_baseline_has_non_essential_cookie(self, seed: int) -> None:
        rng = random.Random(seed)
        names = rng.sample(COOKIE_POOL, rng.randint(0, 6))
        findings = correlator.correlate([_phase("baseline", names)])
        expected = any(cookies.categorize(n, ".example.com") in ("analytics", "marketing") for n in names)
        assert findings.tracking_before_consent is expected

    def test_tag_beacon_is_evidence_only(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["PHPSESSID"], urls=[GA_BEACON])])
        assert findings.tracking_before_consent is False
        assert findings.tracking_before_consent_evidence == ["tag:Google Analytics"]

    def test_evidence_lists_cookies(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_ga", "PHPSESSID"])])
        assert findings.tracking_before_consent_evidence == ["cookie:_ga@example.com"]

    def test_unavailable_baseline(self) -> None:
        findings = correlator.correlate([analysis.PhaseResult.unavailable("baseline", "timed-out", "slow")])
        assert findings.tracking_before_consent is False
        assert findings.phases[0].available is False


# ── Reject / accept ─────────────────────────────────────────────


class TestRejectHonored:
    def test_identical_jars_not_honored(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_ga", "_fbp"]), _phase("reject", ["_ga", "_fbp"])])
        assert findings.reject_honored is False
        assert any("did not decrease" in m for m in findings.mismatches)

    def test_empty_reject_honored(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("reject", ["PHPSESSID"])])
        assert findings.reject_honored is True

    def test_fewer_after_reject_honored(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_ga", "_fbp"]), _phase("reject", ["_ga"])])
        assert findings.reject_honored is True

    def test_tags_count_as_non_essential(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("reject", urls=[GA_BEACON])])
        assert findings.reject_honored is False

    def test_unknown_when_reject_unavailable(self) -> None:
        findings = correlator.correlate(
            [_phase("baseline", ["_ga"]), analysis.PhaseResult.unavailable("reject", "timed-out")]
        )
        assert findings.reject_honored is None

    def test_accept_effective(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("reject"), _phase("accept", ["_ga", "_fbp"])])
        assert findings.accept_effective is True

    def test_accept_not_effective(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("reject", ["_ga"]), _phase("accept", ["_ga"])])
        assert findings.accept_effective is False

    def test_reject_claimed_but_tracking(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_ga"]), _phase("reject", ["_fbp"], decision="rejected")])
        assert findings.reject_claimed_but_tracking is True

    def test_reject_claimed_and_clean(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("reject", ["OptanonConsent"], decision="rejected")])
        assert findings.reject_claimed_but_tracking is False


# ── Consent Mode ────────────────────────────────────────────────


class TestConsentModeConsistency:
    def test_none_when_never_declared(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_ga"])])
        assert findings.consent_mode_consistency is None

    def test_denied_analytics_with_analytics_cookie(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_ga"], mode=_mode(analytics_storage="denied"))])
        assert findings.consent_mode_consistency is False
        assert "baseline: analytics_storage is denied but analytics cookies are set" in findings.mismatches

    def test_denied_ads_with_marketing_cookie(self) -> None:
        findings = correlator.correlate([_phase("baseline", ["_fbp"], mode=_mode(ad_storage="denied"))])
        assert findings.consent_mode_consistency is False

    def test_consistent(self) -> None:
        findings = correlator.correlate(
            [
                _phase("baseline", mode=_mode(ad_storage="denied", analytics_storage="denied")),
                _phase("reject", mode=_mode(ad_storage="denied", analytics_storage="denied")),
                _phase("accept", ["_ga"], mode=_mode(ad_storage="granted", analytics_storage="granted")),
            ]
        )
        assert findings.consent_mode_consistency is True

    def test_reject_leaves_granted(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("reject", mode=_mode(analytics_storage="granted"))])
        assert findings.consent_mode_consistency is False

    def test_unapplied_reject_is_not_judged(self) -> None:
        findings = correlator.correlate(
            [_phase("baseline"), _phase("reject", applied=False, mode=_mode(analytics_storage="granted"))]
        )
        assert findings.consent_mode_consistency is True

    def test_accept_leaves_denied(self) -> None:
        findings = correlator.correlate([_phase("baseline"), _phase("accept", mode=_mode(ad_storage="denied"))])
        assert findings.consent_mode_consistency is False


class TestPhaseSignals:
    def test_non_essential_identity_set(self) -> None:
        signals = correlator.phase_signals(_phase("accept", ["_ga", "lang"], urls=[GA_BEACON]))
        assert signals.non_essential == {"cookie:_ga@example.com", "tag:Google Analytics"}
