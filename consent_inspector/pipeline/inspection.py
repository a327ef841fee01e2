"""
Inspection entry point.

Validates the URL, runs the consent simulation, then assembles
the :class:`~consent_inspector.models.analysis.AnalysisResult`
from the captured phases once every browser has been closed.
"""

from __future__ import annotations

import asyncio

from consent_inspector import config
from consent_inspector.analysis import banner, correlator, scoring, tcf, third_party, tracking_tags
from consent_inspector.browser import session as browser_session
from consent_inspector.consent import probes
from consent_inspector.models import analysis, consent, tracking_data
from consent_inspector.pipeline import simulation
from consent_inspector.utils import logger
from consent_inspector.utils import url as url_mod

log = logger.create_logger("Inspector")

# Which phase's jar is reported as "the" cookies, most complete first.
_COOKIE_SOURCE_ORDER: tuple[tracking_data.Phase, ...] = ("accept", "reject", "baseline")


async def inspect_async(
    url: str,
    options: config.InspectOptions | None = None,
    *,
    session_factory: browser_session.SessionFactory | None = None,
    registry: probes.ProbeRegistry | None = None,
) -> analysis.AnalysisResult:
    """Inspect *url* and return the consent analysis.

    Args:
        url: Page to inspect; ``https://`` is assumed when no
            scheme is given.
        options: Per-call overrides; defaults come from settings.
        session_factory: Creates browser sessions (tests inject
            fakes here).
        registry: CMP probes to use, in detection order.

    Returns:
        The analysis.  A page that could not be loaded at all
        still yields a result, with ``status="error"``.

    Raises:
        errors.ValidationError: If *url* is malformed.  Raised
            before any browser is started.
        errors.LaunchFailure: If the browser could not start.
    """
    normalized = url_mod.normalize_url(url)
    options = options or config.InspectOptions.from_settings()

    logger.start_log_file(url_mod.extract_domain(normalized))
    log.section(f"Consent inspection: {normalized}")
    log.start_timer("inspection")
    try:
        manager = browser_session.SessionManager(options, session_factory or browser_session.BrowserSession)
        controller = simulation.ConsentSimulationController(manager, registry or probes.ProbeRegistry(), options)
        run = await controller.run(normalized)
        result = assemble(normalized, run)
        log.end_timer("inspection", "Inspection complete")
        log.success("Result", {"status": result.status, "score": result.score, "issues": len(result.issues)})
        return result
    finally:
        logger.end_log_file()


def inspect(url: str, options: config.InspectOptions | None = None) -> analysis.AnalysisResult:
    """Synchronous wrapper around :func:`inspect_async`."""
    return asyncio.run(inspect_async(url, options))


def _reported_cookies(run: simulation.SimulationRun) -> list[tracking_data.CookieRecord]:
    for name in _COOKIE_SOURCE_ORDER:
        phase = run.phase(name)
        if phase is not None and phase.available and phase.cookies is not None:
            return list(phase.cookies.cookies)
    return []


def _consent_mode_state(run: simulation.SimulationRun) -> consent.ConsentModeState:
    """Baseline state if declared there, else the first phase that declares one."""
    for phase in run.phases:
        if phase.available and phase.consent_mode is not None and phase.consent_mode.detected:
            return phase.consent_mode
    return consent.ConsentModeState()


def assemble(url: str, run: simulation.SimulationRun) -> analysis.AnalysisResult:
    """Build the final result from a finished simulation run."""
    request_urls = run.request_urls()
    cookies = _reported_cookies(run)

    tcf_result = tcf.analyze(run.tc_data, run.all_cookies(), has_api=run.window_flags.get("hasTcfApi", False))
    detection = run.detection.model_copy(
        update={
            "tc_string": tcf_result.tc_string,
            "tc_string_valid": tcf_result.valid_tc_string,
            "gdpr_applies": tcf_result.gdpr_applies,
        }
    )
    cookie_banner = banner.summarize(
        detection,
        reject=run.outcomes.get("reject"),
        accept=run.outcomes.get("accept"),
        request_urls=request_urls,
    )
    mode = _consent_mode_state(run)
    tags = tracking_tags.analyze(run.page.content, request_urls, run.window_flags, url)
    findings = correlator.correlate(run.phases)
    third_parties = third_party.analyze((p.requests for p in run.phases if p.requests is not None), cookies)

    scored = scoring.calculate_score(
        scoring.ScoringContext(
            cookie_banner=cookie_banner,
            tcf=tcf_result,
            consent_mode=mode,
            tracking_tags=tags,
            correlation=findings,
            phases=run.phases,
            cookies=cookies,
        )
    )

    baseline = run.phase("baseline")
    baseline_ok = baseline is not None and baseline.available
    return analysis.AnalysisResult(
        url=url,
        status="success" if baseline_ok else "error",
        cookie_banner=cookie_banner,
        tcf=tcf_result,
        google_consent_mode=mode,
        tracking_tags=tags,
        cookies=cookies,
        score=scored.score,
        issues=scored.issues,
        third_party_domains=third_parties,
        cookie_consent_test=analysis.ConsentTestResult(phases=run.phases, correlation=findings),
        error=None if baseline_ok else (baseline.error if baseline else None) or "Baseline phase unavailable",
    )
