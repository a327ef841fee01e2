"""
Consent simulation controller.

Runs the three-phase protocol against one URL:

1. **baseline**: load the page and record what happens before
   any decision.
2. **reject**: fresh session, reject all, record.
3. **accept**: fresh session, accept all, record.

Every phase gets its own browser session with an empty cookie
jar, so one decision never leaks into the next phase.  Phases
run strictly one after another and share one overall time
budget; a phase that cannot finish is recorded, never dropped.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Any

from playwright import async_api

from consent_inspector import config
from consent_inspector.analysis import consent_mode
from consent_inspector.browser import observer
from consent_inspector.browser import session as browser_session
from consent_inspector.consent import probes
from consent_inspector.models import analysis, consent, tracking_data
from consent_inspector.utils import errors, logger

log = logger.create_logger("Simulation")

PHASES: tuple[tracking_data.Phase, ...] = ("baseline", "reject", "accept")


@dataclasses.dataclass
class SimulationRun:
    """Phase results plus the page-level data gathered along the way."""

    phases: list[analysis.PhaseResult] = dataclasses.field(default_factory=list)
    detection: consent.CmpDetection = dataclasses.field(default_factory=consent.CmpDetection.not_detected)
    outcomes: dict[str, consent.SimulationOutcome] = dataclasses.field(default_factory=dict)
    tc_data: dict[str, Any] | None = None
    page: observer.PageSnapshot = dataclasses.field(default_factory=observer.PageSnapshot)
    window_flags: dict[str, bool] = dataclasses.field(default_factory=dict)

    def phase(self, name: tracking_data.Phase) -> analysis.PhaseResult | None:
        return next((p for p in self.phases if p.phase == name), None)

    def request_urls(self) -> list[str]:
        """URLs of every request in every available phase."""
        return [url for p in self.phases if p.requests is not None for url in p.requests.urls()]

    def all_cookies(self) -> list[tracking_data.CookieRecord]:
        return [c for p in self.phases if p.cookies is not None for c in p.cookies.cookies]


class ConsentSimulationController:
    """Drives the baseline → reject → accept protocol."""

    def __init__(
        self,
        manager: browser_session.SessionManager,
        registry: probes.ProbeRegistry,
        options: config.InspectOptions,
    ) -> None:
        self._manager = manager
        self._registry = registry
        self._options = options

    async def run(self, url: str) -> SimulationRun:
        """Run every phase against *url*.

        Raises:
            errors.LaunchFailure: If a browser could not be started.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._options.budget_ms / 1000
        result = SimulationRun()

        for phase in PHASES:
            remaining_ms = int((deadline - loop.time()) * 1000)
            if remaining_ms <= 0:
                log.warn("Inspection budget exhausted, skipping phase", {"phase": phase})
                result.phases.append(analysis.PhaseResult.unavailable(phase, "skipped", "Inspection budget exhausted"))
                continue
            result.phases.append(await self._run_phase(result, url, phase, deadline, remaining_ms))

        log.info(
            "Simulation finished",
            {"phases": {p.phase: p.status for p in result.phases}, "vendor": result.detection.vendor},
        )
        return result

    async def _run_phase(
        self,
        run: SimulationRun,
        url: str,
        phase: tracking_data.Phase,
        deadline: float,
        remaining_ms: int,
    ) -> analysis.PhaseResult:
        log.subsection(f"Phase: {phase}")
        log.start_timer(f"phase-{phase}")
        try:
            async with asyncio.timeout_at(deadline):
                async with self._manager.open(url, budget_ms=remaining_ms) as session:
                    phase_result = await self._observe(run, session, phase)
        except errors.NavigationTimeout as exc:
            log.warn("Phase timed out", {"phase": phase, "error": str(exc)})
            phase_result = analysis.PhaseResult.unavailable(phase, "timed-out", str(exc))
        except TimeoutError:
            log.warn("Phase exceeded the inspection budget", {"phase": phase})
            phase_result = analysis.PhaseResult.unavailable(phase, "timed-out", "Inspection budget exhausted")
        except errors.LaunchFailure:
            raise
        except (errors.InspectionError, async_api.Error) as exc:
            message = errors.get_error_message(exc)
            log.error("Phase failed", {"phase": phase, "error": message})
            phase_result = analysis.PhaseResult.unavailable(phase, "failed", message)
        finally:
            log.end_timer(f"phase-{phase}", f"Phase {phase} finished")
        return phase_result

    async def _observe(
        self,
        run: SimulationRun,
        session: browser_session.BrowserSession,
        phase: tracking_data.Phase,
    ) -> analysis.PhaseResult:
        """Detect, optionally simulate, then capture the phase data."""
        probe = await self._registry.detect(session)
        if probe is not None and not run.detection.detected:
            run.detection = await probe.describe(session)

        outcome: consent.SimulationOutcome | None = None
        if phase != "baseline":
            outcome = await probes.simulate_decision(session, probe, phase)
            run.outcomes[phase] = outcome
            if outcome.applied:
                await session.settle(self._options.action_settle_ms)

        decision: consent.CmpDecision = await probe.describe_state(session) if probe else "unknown"

        page = await observer.snapshot_page(session)
        if phase == "baseline":
            run.page = page
            if page.window_flags.get("hasTcfApi"):
                run.tc_data = await probes.read_tc_data(session)
        for name, present in page.window_flags.items():
            run.window_flags[name] = run.window_flags.get(name, False) or present

        cookies = await observer.snapshot_cookies(session, phase)
        requests = observer.snapshot_requests(session, phase)

        log.info(
            "Phase captured",
            {
                "phase": phase,
                "applied": outcome.applied if outcome else None,
                "method": outcome.method if outcome else None,
                "decision": decision,
                "cookies": len(cookies.cookies),
                "requests": len(requests.requests),
            },
        )
        return analysis.PhaseResult(
            phase=phase,
            status="completed",
            applied=outcome.applied if outcome else None,
            method=outcome.method if outcome else None,
            attempts=outcome.attempts if outcome else (),
            cmp_decision=decision,
            cookies=cookies,
            requests=requests,
            request_count=len(requests.requests),
            consent_mode=consent_mode.analyze(page.consent_commands, page.ics_entries, page.content),
        )
