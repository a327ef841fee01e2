"""Tests for consent_inspector.analysis.scoring — rule table and score."""

from __future__ import annotations

import dataclasses
import json
import random
from collections.abc import Callable, Sequence

import pytest

from consent_inspector.analysis import cookies, scoring
from consent_inspector.analysis.scoring import calculator, rules
from consent_inspector.models import analysis, consent, tracking, tracking_data

NOW = 1_760_000_000.0

Fault = Callable[[scoring.ScoringContext], scoring.ScoringContext]


def _available(name: tracking_data.Phase, *, applied: bool = True) -> analysis.PhaseResult:
    return analysis.PhaseResult(
        phase=name,
        status="completed",
        applied=None if name == "baseline" else applied,
        cookies=tracking_data.CookieSnapshot(phase=name),
    )


def _long_lived_jar() -> list[tracking_data.CookieRecord]:
    expires = NOW + 86_400 * 730
    return [
        cookies.build_record({"name": "_fbp", "value": "fb.1", "domain": ".example.com", "expires": expires}, NOW),
        cookies.build_record({"name": "_ga", "value": "GA1.2", "domain": ".example.com", "expires": expires}, NOW),
    ]


def clean_context() -> scoring.ScoringContext:
    """A page that does everything right."""
    return scoring.ScoringContext(
        cookie_banner=consent.CookieBannerResult(detected=True, vendor="onetrust", provider="OneTrust"),
        tcf=consent.TcfResult(detected=True, version="2.2"),
        consent_mode=consent.ConsentModeState(
            detected=True,
            version="v2",
            ad_storage="denied",
            analytics_storage="denied",
            ad_user_data="denied",
            ad_personalization="denied",
        ),
        tracking_tags=tracking.TrackingTagInventory(),
        correlation=analysis.CorrelationFindings(reject_honored=True, accept_effective=True, consent_mode_consistency=True),
        phases=[_available("baseline"), _available("reject"), _available("accept")],
        cookies=[],
    )


def _correlation(ctx: scoring.ScoringContext, **update: object) -> scoring.ScoringContext:
    return dataclasses.replace(ctx, correlation=ctx.correlation.model_copy(update=update))


FAULTS: dict[str, Fault] = {
    "no_cmp": lambda c: dataclasses.replace(c, cookie_banner=consent.CookieBannerResult(detected=False, script_hint="Cookiebot")),
    "reject_failed": lambda c: dataclasses.replace(
        c, phases=[_available("baseline"), _available("reject", applied=False), _available("accept")]
    ),
    "accept_failed": lambda c: dataclasses.replace(
        c, phases=[_available("baseline"), _available("reject"), _available("accept", applied=False)]
    ),
    "tracking_before_consent": lambda c: _correlation(
        c, tracking_before_consent=True, tracking_before_consent_evidence=["cookie:_ga@example.com"]
    ),
    "reject_not_honored": lambda c: _correlation(c, reject_honored=False),
    "reject_claimed": lambda c: _correlation(c, reject_claimed_but_tracking=True),
    "consent_mode_inconsistent": lambda c: _correlation(
        c, consent_mode_consistency=False, mismatches=["baseline: analytics_storage is denied but analytics cookies are set"]
    ),
    "long_lived": lambda c: dataclasses.replace(c, cookies=_long_lived_jar()),
    "google_without_consent_mode": lambda c: dataclasses.replace(
        c,
        consent_mode=consent.ConsentModeState(),
        tracking_tags=tracking.TrackingTagInventory(
            google_analytics=tracking.GoogleAnalyticsTag(
                detected=True,
                version="both",
                measurement_ids=["G-AAAAAAAAAA", "G-BBBBBBBBBB", "UA-1234567-1"],
                has_multiple_ids=True,
                has_legacy_ua=True,
            )
        ),
    ),
    "invalid_tc_string": lambda c: dataclasses.replace(
        c, tcf=consent.TcfResult(detected=True, tc_string="BOJObISOJObISAABAAENAA", valid_tc_string=False, source="cookie")
    ),
    "accept_unavailable": lambda c: dataclasses.replace(
        c, phases=[*c.phases[:2], analysis.PhaseResult.unavailable("accept", "timed-out", "Page did not settle")]
    ),
}


def _apply(names: Sequence[str]) -> scoring.ScoringContext:
    ctx = clean_context()
    for name in names:
        ctx = FAULTS[name](ctx)
    return ctx


def _titles(result: scoring.ScoreResult) -> list[str]:
    return [i.title for i in result.issues]


# ── Individual rules ────────────────────────────────────────────


class TestRules:
    def test_clean_page_scores_100(self) -> None:
        result = scoring.calculate_score(clean_context())
        assert result.score == 100
        assert result.issues == []

    def test_no_cmp(self) -> None:
        result = scoring.calculate_score(_apply(["no_cmp"]))
        no_cmp = result.issues[0]
        assert no_cmp.severity == "error"
        assert no_cmp.category == "cookie-banner"
        assert no_cmp.title == "No consent management platform detected"
        assert "CMP script without supported API" in _titles(result)
        assert result.score == 70

    def test_reject_not_honored_is_cookie_banner_error(self) -> None:
        result = scoring.calculate_score(_apply(["reject_not_honored"]))
        assert [(i.severity, i.category) for i in result.issues] == [("error", "cookie-banner")]
        assert result.score == 80

    def test_reject_simulation_failed(self) -> None:
        result = scoring.calculate_score(_apply(["reject_failed"]))
        assert _titles(result) == ["Reject all could not be triggered"]
        assert result.score == 90

    def test_simulation_rules_need_a_cmp(self) -> None:
        result = scoring.calculate_score(_apply(["no_cmp", "reject_failed", "accept_failed"]))
        assert "Reject all could not be triggered" not in _titles(result)
        assert "Accept all could not be triggered" not in _titles(result)

    def test_long_lived_cookies(self) -> None:
        result = scoring.calculate_score(_apply(["long_lived"]))
        assert [(i.severity, i.title) for i in result.issues] == [
            ("warning", "Long-lived marketing cookies"),
            ("info", "Long-lived analytics cookies"),
        ]
        assert result.score == 93

    def test_marketing_cookies_without_cmp(self) -> None:
        result = scoring.calculate_score(_apply(["no_cmp", "long_lived"]))
        assert "Marketing cookies without consent management" in _titles(result)

    def test_google_tag_rules(self) -> None:
        result = scoring.calculate_score(_apply(["google_without_consent_mode"]))
        assert _titles(result) == [
            "Google tags without Consent Mode",
            "Multiple Google Analytics properties",
            "Legacy Universal Analytics",
        ]
        assert result.score == 100 - 15 - 3 - 2

    def test_consent_mode_versions(self) -> None:
        v1 = dataclasses.replace(
            clean_context(),
            consent_mode=consent.ConsentModeState(detected=True, version="v1", ad_storage="denied", analytics_storage="denied"),
        )
        assert _titles(scoring.calculate_score(v1)) == ["Consent Mode v1 only"]
        partial_v2 = dataclasses.replace(
            clean_context(),
            consent_mode=consent.ConsentModeState(detected=True, version="v2", ad_user_data="denied"),
        )
        result = scoring.calculate_score(partial_v2)
        assert _titles(result) == ["Consent Mode v2 parameters missing"]
        assert "ad_personalization" in result.issues[0].description

    def test_tags_without_tcf_costs_nothing(self) -> None:
        ctx = dataclasses.replace(
            clean_context(),
            tcf=consent.TcfResult(),
            tracking_tags=tracking.TrackingTagInventory(meta_pixel=tracking.PixelTag(detected=True)),
        )
        result = scoring.calculate_score(ctx)
        assert _titles(result) == ["No IAB TCF signal"]
        assert result.score == 100

    def test_marketing_parameters_info(self) -> None:
        ctx = dataclasses.replace(
            clean_context(),
            tracking_tags=tracking.TrackingTagInventory(marketing_parameters=tracking.MarketingParameters(gclid=True)),
        )
        result = scoring.calculate_score(ctx)
        assert [(i.severity, i.category) for i in result.issues] == [("info", "tracking")]

    def test_unavailable_phase(self) -> None:
        result = scoring.calculate_score(_apply(["accept_unavailable"]))
        assert [(i.severity, i.category, i.title) for i in result.issues] == [("warning", "general", "Accept phase unavailable")]
        assert "Page did not settle" in result.issues[0].description

    def test_negative_deduction_rejected(self) -> None:
        issue = analysis.Issue(severity="info", category="general", title="t", description="d")
        with pytest.raises(ValueError):
            rules.RuleHit(issue=issue, deduction=-1)


# ── Score properties ────────────────────────────────────────────


class TestScoreProperties:
    @pytest.mark.parametrize("seed", range(30))
    def test_bounded_and_matches_deductions(self, seed: int) -> None:
        rng = random.Random(seed)
        names = rng.sample(sorted(FAULTS), rng.randint(0, len(FAULTS)))
        result = scoring.calculate_score(_apply(names))
        assert 0 <= result.score <= 100
        assert result.score == max(0, 100 - sum(h.deduction for h in result.hits))

    @pytest.mark.parametrize("seed", range(30))
    def test_adding_issues_never_raises_score(self, seed: int) -> None:
        rng = random.Random(seed)
        hits = list(calculator.evaluate(_apply(sorted(FAULTS))))
        rng.shuffle(hits)
        cut = rng.randint(0, len(hits))
        smaller, larger = hits[:cut], hits
        assert calculator.score_from_hits(larger) <= calculator.score_from_hits(smaller)
        for extra in range(cut, len(hits)):
            assert calculator.score_from_hits(hits[: extra + 1]) <= calculator.score_from_hits(hits[:extra])

    def test_floor_at_zero(self) -> None:
        assert scoring.calculate_score(_apply(sorted(FAULTS))).score == 0


# ── Ordering ────────────────────────────────────────────────────


class TestIssueOrder:
    def test_sorted_by_severity_then_category(self) -> None:
        result = scoring.calculate_score(_apply(sorted(FAULTS)))
        keys = [(analysis.SEVERITY_RANK[i.severity], i.category) for i in result.issues]
        assert keys == sorted(keys)

    def test_ties_keep_rule_order(self) -> None:
        result = scoring.calculate_score(_apply(["no_cmp", "reject_not_honored"]))
        errors = [i.title for i in result.issues if i.severity == "error" and i.category == "cookie-banner"]
        assert errors == ["No consent management platform detected", "Rejection is not honoured"]

    def test_byte_identical_across_runs(self) -> None:
        ctx = _apply(sorted(FAULTS))
        dumps = {
            json.dumps([i.model_dump(by_alias=True) for i in scoring.calculate_score(ctx).issues], sort_keys=True)
            for _ in range(5)
        }
        assert len(dumps) == 1
