"""
Read-only snapshots of a session's cookies, requests and page signals.

All page state is read through these functions and copied into
immutable values; nothing here keeps a reference into the page,
which is torn down at the end of every phase.
"""

from __future__ import annotations

import dataclasses
import types
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from consent_inspector.analysis import cookies as cookie_analysis
from consent_inspector.models import tracking_data
from consent_inspector.utils import errors, logger

if TYPE_CHECKING:
    from consent_inspector.browser.session import BrowserSession

log = logger.create_logger("Observer")

PAGE_SIGNALS_SCRIPT = """() => {
    const w = window;
    const plain = (value) => {
        try { return JSON.parse(JSON.stringify(value)); } catch (e) { return null; }
    };
    const commands = [];
    if (Array.isArray(w.dataLayer)) {
        for (const entry of w.dataLayer) {
            if (entry && typeof entry === 'object' && entry[0] === 'consent') {
                commands.push(['consent', entry[1], plain(entry[2]) || {}]);
            }
        }
    }
    const ics = {};
    const entries = w.google_tag_data && w.google_tag_data.ics && w.google_tag_data.ics.entries;
    if (entries && typeof entries === 'object') {
        for (const [name, entry] of Object.entries(entries)) {
            ics[name] = { default: entry ? entry.default : undefined, update: entry ? entry.update : undefined };
        }
    }
    return {
        flags: {
            hasGtag: typeof w.gtag === 'function',
            hasDataLayer: Array.isArray(w.dataLayer),
            hasTcfApi: typeof w.__tcfapi === 'function',
            hasFbq: typeof w.fbq === 'function',
            hasTtq: typeof w.ttq === 'object' || typeof w.ttq === 'function',
            hasLintrk: typeof w.lintrk === 'function',
        },
        consentCommands: commands,
        ics: ics,
    };
}"""


@dataclasses.dataclass(frozen=True)
class PageSnapshot:
    """Page source and consent-relevant globals at one moment."""

    content: str = ""
    window_flags: Mapping[str, bool] = dataclasses.field(default_factory=lambda: types.MappingProxyType({}))
    consent_commands: tuple[tuple[Any, ...], ...] = ()
    ics_entries: Mapping[str, Mapping[str, Any]] = dataclasses.field(default_factory=lambda: types.MappingProxyType({}))


async def snapshot_cookies(session: BrowserSession, phase: tracking_data.Phase) -> tracking_data.CookieSnapshot:
    """Read and categorize the current cookie jar without modifying it."""
    raw = await session.read_cookies()
    snapshot = cookie_analysis.build_snapshot(phase, raw)
    log.debug("Cookie snapshot", {"phase": phase, "count": len(snapshot.cookies)})
    return snapshot


def snapshot_requests(session: BrowserSession, phase: tracking_data.Phase) -> tracking_data.RequestSnapshot:
    """Freeze the requests recorded by the session so far."""
    return tracking_data.RequestSnapshot(phase=phase, requests=tuple(session.get_tracked_requests()))


async def snapshot_page(session: BrowserSession) -> PageSnapshot:
    """Capture page HTML and consent globals.

    Evaluation failures degrade to an empty snapshot field rather
    than failing the phase.
    """
    try:
        content = await session.content()
    except errors.ProbeEvaluationError as exc:
        log.warn("Could not read page content", {"error": str(exc)})
        content = ""

    try:
        signals = await session.evaluate(PAGE_SIGNALS_SCRIPT) or {}
    except errors.ProbeEvaluationError as exc:
        log.warn("Could not read page signals", {"error": str(exc)})
        signals = {}

    return PageSnapshot(
        content=content,
        window_flags=types.MappingProxyType({k: bool(v) for k, v in (signals.get("flags") or {}).items()}),
        consent_commands=tuple(tuple(c) for c in signals.get("consentCommands") or ()),
        ics_entries=types.MappingProxyType(dict(signals.get("ics") or {})),
    )


async def clear_cookies(session: BrowserSession) -> None:
    """Empty the cookie jar before the first navigation of a phase."""
    await session.clear_cookies()
