"""Compliance rule table.

Each rule inspects the assembled inspection context and yields
zero or more :class:`RuleHit` values.  Rules are evaluated in the
order of :data:`RULES`; that order is also the tie-break order
of the final issue list.

Deductions:

=====================================================  ========  =====
Rule                                                   Severity  Pts
=====================================================  ========  =====
No CMP detected                                        error     30
Reject could not be simulated                          warning   10
Tracking before consent                                error     25
Reject not honoured                                    error     20
Consent Mode inconsistent with behaviour               warning   10
Long-lived marketing cookies                           warning   5
Long-lived analytics cookies                           info      2
CMP claims rejection, tracking persists                error     15
Accept could not be simulated                          info      2
Phase unavailable (each)                               warning   5
Google tags without Consent Mode                       error     15
Consent Mode v1 only                                   warning   5
Consent Mode v2 parameters missing                     warning   5
Tracking tags without TCF                              info      0
Invalid TC string                                      warning   5
Multiple GA4 measurement IDs                           warning   3
Legacy Universal Analytics                             info      2
Marketing URL parameters                               info      0
Marketing cookies without a CMP                        error     10
CMP script loaded, no supported API                    info      0
=====================================================  ========  =====
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence

from consent_inspector.analysis import cookies as cookie_analysis
from consent_inspector.models import analysis, consent, tracking, tracking_data


@dataclasses.dataclass(frozen=True)
class ScoringContext:
    """Everything the rules may look at."""

    cookie_banner: consent.CookieBannerResult
    tcf: consent.TcfResult
    consent_mode: consent.ConsentModeState
    tracking_tags: tracking.TrackingTagInventory
    correlation: analysis.CorrelationFindings
    phases: Sequence[analysis.PhaseResult] = ()
    cookies: Sequence[tracking_data.CookieRecord] = ()

    def phase(self, name: tracking_data.Phase) -> analysis.PhaseResult | None:
        return next((p for p in self.phases if p.phase == name), None)


@dataclasses.dataclass(frozen=True)
class RuleHit:
    """An issue together with the points it costs."""

    issue: analysis.Issue
    deduction: int = 0

    def __post_init__(self) -> None:
        if self.deduction < 0:
            raise ValueError("deduction must be non-negative")


Rule = Callable[[ScoringContext], list[RuleHit]]


def _hit(
    severity: analysis.Severity,
    category: analysis.IssueCategory,
    title: str,
    description: str,
    recommendation: str | None,
    deduction: int,
) -> list[RuleHit]:
    issue = analysis.Issue(
        severity=severity,
        category=category,
        title=title,
        description=description,
        recommendation=recommendation,
    )
    return [RuleHit(issue=issue, deduction=deduction)]


# ============================================================================
# Core rules
# ============================================================================


def no_cmp(ctx: ScoringContext) -> list[RuleHit]:
    if ctx.cookie_banner.detected:
        return []
    return _hit(
        "error",
        "cookie-banner",
        "No consent management platform detected",
        "No supported CMP API was found on the page.",
        "Integrate a consent management platform that blocks non-essential cookies until consent is given.",
        30,
    )


def reject_not_simulated(ctx: ScoringContext) -> list[RuleHit]:
    reject = ctx.phase("reject")
    if not ctx.cookie_banner.detected or reject is None or not reject.available or reject.applied:
        return []
    return _hit(
        "warning",
        "cookie-banner",
        "Reject all could not be triggered",
        f"No {ctx.cookie_banner.provider or 'CMP'} entry point or reject button accepted a reject-all decision.",
        "Offer a reject-all option that is as easy to reach as accept-all.",
        10,
    )


def tracking_before_consent(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.correlation.tracking_before_consent:
        return []
    cookies = [e.removeprefix("cookie:") for e in ctx.correlation.tracking_before_consent_evidence if e.startswith("cookie:")]
    return _hit(
        "error",
        "cookies",
        "Tracking before consent",
        f"{len(cookies)} analytics or marketing cookie(s) were set before any consent decision: {', '.join(cookies[:5])}.",
        "Block analytics and marketing tags until the visitor has opted in.",
        25,
    )


def reject_not_honored(ctx: ScoringContext) -> list[RuleHit]:
    if ctx.correlation.reject_honored is not False:
        return []
    return _hit(
        "error",
        "cookie-banner",
        "Rejection is not honoured",
        "Non-essential cookies or tags remained after rejecting all consent.",
        "Remove or stop setting non-essential cookies when the visitor rejects consent.",
        20,
    )


def consent_mode_inconsistent(ctx: ScoringContext) -> list[RuleHit]:
    if ctx.correlation.consent_mode_consistency is not False:
        return []
    details = [m for m in ctx.correlation.mismatches if "_storage" in m]
    return _hit(
        "warning",
        "consent-mode",
        "Consent Mode does not match behaviour",
        "; ".join(details) or "Declared Consent Mode state contradicts the cookies observed.",
        "Update Consent Mode from the CMP callback and respect it in every tag.",
        10,
    )


def long_lived_cookies(ctx: ScoringContext) -> list[RuleHit]:
    hits: list[RuleHit] = []
    marketing = cookie_analysis.long_lived(ctx.cookies, "marketing")
    if marketing:
        hits += _hit(
            "warning",
            "cookies",
            "Long-lived marketing cookies",
            f"{len(marketing)} marketing cookie(s) expire after more than "
            f"{cookie_analysis.LONG_LIVED_THRESHOLD_DAYS} days: {', '.join(c.name for c in marketing[:5])}.",
            "Limit marketing cookie lifetimes to 13 months or less.",
            5,
        )
    analytics_ = cookie_analysis.long_lived(ctx.cookies, "analytics")
    if analytics_:
        hits += _hit(
            "info",
            "cookies",
            "Long-lived analytics cookies",
            f"{len(analytics_)} analytics cookie(s) expire after more than "
            f"{cookie_analysis.LONG_LIVED_THRESHOLD_DAYS} days: {', '.join(c.name for c in analytics_[:5])}.",
            "Limit analytics cookie lifetimes to 13 months or less.",
            2,
        )
    return hits


# ============================================================================
# Extended rules
# ============================================================================


def reject_claimed_but_tracking(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.correlation.reject_claimed_but_tracking:
        return []
    return _hit(
        "error",
        "cookie-banner",
        "CMP reports rejection but tracking continues",
        "The CMP recorded a rejection, yet analytics or marketing cookies are still present.",
        "Make sure tags read the CMP decision before setting cookies.",
        15,
    )


def accept_not_simulated(ctx: ScoringContext) -> list[RuleHit]:
    accept = ctx.phase("accept")
    if not ctx.cookie_banner.detected or accept is None or not accept.available or accept.applied:
        return []
    return _hit(
        "info",
        "cookie-banner",
        "Accept all could not be triggered",
        "No entry point or accept button accepted an accept-all decision.",
        None,
        2,
    )


def phases_unavailable(ctx: ScoringContext) -> list[RuleHit]:
    hits: list[RuleHit] = []
    for phase in ctx.phases:
        if phase.available:
            continue
        hits += _hit(
            "warning",
            "general",
            f"{phase.phase.capitalize()} phase unavailable",
            f"The {phase.phase} phase was {phase.status}" + (f": {phase.error}" if phase.error else "."),
            "Re-run the inspection; results that depend on this phase are incomplete.",
            5,
        )
    return hits


def google_tags_without_consent_mode(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.tracking_tags.has_google_tags or ctx.consent_mode.detected:
        return []
    return _hit(
        "error",
        "consent-mode",
        "Google tags without Consent Mode",
        "Google Analytics or Tag Manager is loaded but no Consent Mode configuration was found.",
        "Configure Google Consent Mode v2 with denied defaults before any Google tag loads.",
        15,
    )


def consent_mode_v1(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.consent_mode.detected or ctx.consent_mode.version != "v1":
        return []
    return _hit(
        "warning",
        "consent-mode",
        "Consent Mode v1 only",
        "Only ad_storage/analytics_storage are declared; Consent Mode v2 is required for EEA traffic.",
        "Add ad_user_data and ad_personalization to the consent configuration.",
        5,
    )


def consent_mode_missing_v2(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.consent_mode.detected or ctx.consent_mode.version != "v2":
        return []
    missing = ctx.consent_mode.missing_v2_parameters()
    if not missing:
        return []
    return _hit(
        "warning",
        "consent-mode",
        "Consent Mode v2 parameters missing",
        f"Missing parameters: {', '.join(missing)}.",
        "Declare every Consent Mode v2 parameter in the default command.",
        5,
    )


def tags_without_tcf(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.tracking_tags.has_tags or ctx.tcf.detected:
        return []
    return _hit(
        "info",
        "tcf",
        "No IAB TCF signal",
        "Tracking tags are present but no TCF API or TC string was found.",
        "Consider a TCF-registered CMP if you work with programmatic advertising vendors.",
        0,
    )


def invalid_tc_string(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.tcf.tc_string or ctx.tcf.valid_tc_string:
        return []
    return _hit(
        "warning",
        "tcf",
        "Invalid TC string",
        f"The TC string from the {ctx.tcf.source or 'page'} is not a valid TCF v2 string.",
        "Check the CMP configuration.",
        5,
    )


def multiple_ga4_ids(ctx: ScoringContext) -> list[RuleHit]:
    ga = ctx.tracking_tags.google_analytics
    if not ga.has_multiple_ids:
        return []
    return _hit(
        "warning",
        "tracking",
        "Multiple Google Analytics properties",
        f"Data is sent to {len(ga.measurement_ids)} measurement IDs: {', '.join(ga.measurement_ids)}.",
        "Verify that every property is covered by the consent text.",
        3,
    )


def legacy_universal_analytics(ctx: ScoringContext) -> list[RuleHit]:
    if not ctx.tracking_tags.google_analytics.has_legacy_ua:
        return []
    return _hit(
        "info",
        "tracking",
        "Legacy Universal Analytics",
        "A Universal Analytics (UA-) property is still configured.",
        "Remove the UA tag; Universal Analytics no longer processes data.",
        2,
    )


def marketing_parameters(ctx: ScoringContext) -> list[RuleHit]:
    params = ctx.tracking_tags.marketing_parameters
    if not params.has_any:
        return []
    return _hit(
        "info",
        "tracking",
        "Marketing URL parameters",
        f"Click or campaign parameters found: {', '.join(params.found())}.",
        None,
        0,
    )


def marketing_cookies_without_cmp(ctx: ScoringContext) -> list[RuleHit]:
    if ctx.cookie_banner.detected:
        return []
    marketing = [c for c in ctx.cookies if c.category == "marketing"]
    if not marketing:
        return []
    return _hit(
        "error",
        "cookies",
        "Marketing cookies without consent management",
        f"{len(marketing)} marketing cookie(s) are set and no CMP is present to collect consent.",
        "Collect opt-in consent before setting marketing cookies.",
        10,
    )


def cmp_script_without_api(ctx: ScoringContext) -> list[RuleHit]:
    hint = ctx.cookie_banner.script_hint
    if ctx.cookie_banner.detected or not hint:
        return []
    return _hit(
        "info",
        "cookie-banner",
        "CMP script without supported API",
        f"A {hint} script was loaded but none of its JavaScript APIs could be found.",
        None,
        0,
    )


RULES: tuple[Rule, ...] = (
    no_cmp,
    reject_not_simulated,
    tracking_before_consent,
    reject_not_honored,
    consent_mode_inconsistent,
    long_lived_cookies,
    reject_claimed_but_tracking,
    accept_not_simulated,
    phases_unavailable,
    google_tags_without_consent_mode,
    consent_mode_v1,
    consent_mode_missing_v2,
    tags_without_tcf,
    invalid_tc_string,
    multiple_ga4_ids,
    legacy_universal_analytics,
    marketing_parameters,
    marketing_cookies_without_cmp,
    cmp_script_without_api,
)
