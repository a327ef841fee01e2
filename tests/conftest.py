"""Shared fixtures and fakes for the test suite.

:class:`FakeSession` stands in for a Playwright-backed
:class:`~consent_inspector.browser.session.BrowserSession`.  It
answers each in-page script from a :class:`FakeSite` description
instead of a real page, and counts how often it was closed.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Callable
from typing import Any

import pytest
from playwright import async_api

from consent_inspector import config
from consent_inspector.browser import observer
from consent_inspector.consent import click, constants, scripts
from consent_inspector.models import browser, tracking_data
from consent_inspector.utils import errors
from consent_inspector.utils import url as url_mod

PHASE_ORDER: tuple[tracking_data.Phase, ...] = ("baseline", "reject", "accept")

_STATE_SCRIPTS = frozenset({
    scripts.USERCENTRICS_STATE_SCRIPT,
    scripts.REAL_COOKIE_BANNER_STATE_SCRIPT,
    scripts.ONETRUST_STATE_SCRIPT,
    scripts.COOKIEBOT_STATE_SCRIPT,
    scripts.DIDOMI_STATE_SCRIPT,
})

_VERSION_SCRIPTS = frozenset({scripts.USERCENTRICS_VERSION_SCRIPT, scripts.DIDOMI_VERSION_SCRIPT})


# ── Fake site ───────────────────────────────────────────────────


@dataclasses.dataclass
class FakeSite:
    """What a fake page exposes, keyed by phase where it varies.

    ``methods`` maps ``"target.method"`` to ``"ok"``, ``"throw"``
    (the JS call throws) or ``"error"`` (the evaluation itself
    fails).  ``failures`` maps a phase to the step that breaks
    in it: ``launch``, ``navigation``, ``hang``, ``probe``,
    ``simulation`` or ``cookies``.  The ``crash-*`` steps raise a raw
    Playwright error from ``clear``, ``navigation``, ``evaluate`` or
    ``cookies`` instead.
    """

    globals: set[str] = dataclasses.field(default_factory=set)
    methods: dict[str, str] = dataclasses.field(default_factory=dict)
    groups: list[dict[str, Any]] = dataclasses.field(default_factory=list)
    cookies: dict[str, list[dict[str, Any]]] = dataclasses.field(default_factory=dict)
    requests: dict[str, list[str]] = dataclasses.field(default_factory=dict)
    decisions: dict[str, str] = dataclasses.field(default_factory=dict)
    flags: dict[str, bool] = dataclasses.field(default_factory=dict)
    consent_commands: dict[str, list[list[Any]]] = dataclasses.field(default_factory=dict)
    buttons: dict[str, bool] = dataclasses.field(default_factory=dict)
    content: str = "<html><body></body></html>"
    version: str | None = None
    tc_data: dict[str, Any] | None = None
    failures: dict[str, str] = dataclasses.field(default_factory=dict)
    calls: list[tuple[str, str, list[Any]]] = dataclasses.field(default_factory=list)


class FakeSession:
    """Duck-typed ``BrowserSession`` driven by a :class:`FakeSite`."""

    def __init__(
        self,
        site: FakeSite,
        phase: tracking_data.Phase,
        target_url: str = "https://example.com",
        budget_ms: int = 60_000,
    ) -> None:
        self.site = site
        self.phase = phase
        self.target_url = target_url
        self.status = "running"
        self.close_calls = 0
        self.cleared = False
        self.deadline = time.monotonic() + budget_ms / 1000

    @property
    def remaining_ms(self) -> int:
        return max(0, int((self.deadline - time.monotonic()) * 1000))

    def _failing(self, step: str) -> bool:
        return self.site.failures.get(self.phase) == step

    def _crash(self, step: str) -> None:
        if self._failing(f"crash-{step}"):
            raise async_api.Error("Target page, context or browser has been closed")

    async def launch(self) -> None:
        if self._failing("launch"):
            raise errors.LaunchFailure("Browser launch failed: Executable doesn't exist")

    async def navigate(self, timeout_ms: int) -> browser.NavigationResult:
        self._crash("navigation")
        if self._failing("navigation"):
            raise errors.NavigationTimeout(f"Page did not settle within {timeout_ms}ms")
        if self._failing("hang"):
            await asyncio.sleep(3600)
        return browser.NavigationResult(success=True, status_code=200, final_url=self.target_url)

    async def settle(self, ms: int) -> None:
        await asyncio.sleep(0)

    async def evaluate(self, script: str, arg: Any = None, *, timeout_ms: int | None = None) -> Any:
        self._crash("evaluate")
        if self._failing("probe"):
            raise errors.ProbeEvaluationError("Target page, context or browser has been closed", script=script)
        if self._failing("simulation") and script in (scripts.CALL_METHOD_SCRIPT, click.CLICK_SCRIPT):
            raise errors.ProbeEvaluationError("Execution context was destroyed", script=script)

        if script == scripts.GLOBAL_TYPES_SCRIPT:
            return {path: "object" if path in self.site.globals else "undefined" for path in arg}
        if script == scripts.CALL_METHOD_SCRIPT:
            return self._call_method(arg)
        if script == click.CLICK_SCRIPT:
            action = "accept" if arg["selectors"] == list(constants.ACCEPT_BUTTON_SELECTORS) else "reject"
            if self.site.buttons.get(action):
                self.site.calls.append((self.phase, f"button:{action}", []))
                return {"clicked": True, "via": f"#{action}-all"}
            return {"clicked": False, "via": None}
        if script in _STATE_SCRIPTS:
            return self.site.decisions.get(self.phase, "none")
        if script in _VERSION_SCRIPTS:
            return self.site.version
        if script == scripts.REAL_COOKIE_BANNER_GROUPS_SCRIPT:
            return self.site.groups
        if script == scripts.TCF_DATA_SCRIPT:
            return self.site.tc_data
        if script == observer.PAGE_SIGNALS_SCRIPT:
            return {
                "flags": self.site.flags,
                "consentCommands": self.site.consent_commands.get(self.phase, []),
                "ics": {},
            }
        raise errors.ProbeEvaluationError("Unexpected script", script=script)

    def _call_method(self, arg: dict[str, Any]) -> dict[str, Any]:
        target, method = arg["target"], arg["method"]
        label = f"{target}.{method}"
        behaviour = self.site.methods.get(label)
        self.site.calls.append((self.phase, label, arg["args"]))
        if target not in self.site.globals:
            return {"ok": False, "error": f"missing target {target}"}
        if behaviour is None:
            return {"ok": False, "error": f"missing method {method}"}
        if behaviour == "throw":
            return {"ok": False, "error": f"{method} is not available in this version"}
        if behaviour == "error":
            raise errors.ProbeEvaluationError("Script timed out after 5000ms")
        return {"ok": True, "error": None}

    async def content(self) -> str:
        return self.site.content

    async def read_cookies(self) -> list[dict[str, Any]]:
        self._crash("cookies")
        if self._failing("cookies"):
            raise errors.ProbeEvaluationError("Browser has been closed")
        return [dict(c) for c in self.site.cookies.get(self.phase, [])]

    async def clear_cookies(self) -> None:
        self._crash("clear")
        self.cleared = True

    def get_tracked_requests(self) -> list[tracking_data.RequestRecord]:
        return [
            tracking_data.RequestRecord(
                url=u,
                host=url_mod.extract_domain(u),
                param_names=url_mod.query_param_names(u),
                is_third_party=url_mod.is_third_party(u, self.target_url),
            )
            for u in self.site.requests.get(self.phase, [])
        ]

    async def close(self) -> None:
        self.close_calls += 1


class FakeSessionFactory:
    """Hands out one :class:`FakeSession` per phase, in protocol order."""

    def __init__(self, site: FakeSite) -> None:
        self.site = site
        self.sessions: list[FakeSession] = []

    def __call__(self, options: config.InspectOptions, target_url: str, budget_ms: int) -> FakeSession:
        session = FakeSession(self.site, PHASE_ORDER[len(self.sessions)], target_url, budget_ms)
        self.sessions.append(session)
        return session


# ── Cookie builders ─────────────────────────────────────────────


def raw_cookie(name: str, domain: str = ".example.com", *, days: float | None = None, value: str = "1") -> dict[str, Any]:
    """A cookie dict in Playwright's ``context.cookies()`` shape."""
    return {
        "name": name,
        "value": value,
        "domain": domain,
        "path": "/",
        "expires": time.time() + days * 86_400 if days is not None else -1,
        "httpOnly": False,
        "secure": True,
        "sameSite": "Lax",
    }


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def make_cookie() -> Callable[..., dict[str, Any]]:
    """Factory for raw Playwright cookie dicts."""
    return raw_cookie


@pytest.fixture()
def fake_site() -> FakeSite:
    return FakeSite()


@pytest.fixture()
def session_factory(fake_site: FakeSite) -> FakeSessionFactory:
    return FakeSessionFactory(fake_site)


@pytest.fixture()
def fake_session(fake_site: FakeSite) -> FakeSession:
    """A single baseline-phase session on the fake site."""
    return FakeSession(fake_site, "baseline")


@pytest.fixture()
def fast_options() -> config.InspectOptions:
    """Inspection options without settle delays."""
    return config.InspectOptions.from_settings(
        budget_ms=30_000,
        settle_delay_ms=0,
        action_settle_ms=0,
        navigation_timeout_ms=5_000,
    )
