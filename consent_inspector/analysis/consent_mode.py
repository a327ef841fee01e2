"""
Google Consent Mode analysis.

The declared state is read, in order of preference, from the
``consent`` commands pushed to ``dataLayer``, from Google's
runtime ``google_tag_data.ics`` entries, and finally from
``gtag('consent', ...)`` calls in the page source.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from consent_inspector.models import consent

_PARAM_PATTERNS: dict[str, re.Pattern[str]] = {
    name: re.compile(rf"['\"]?{name}['\"]?\s*:\s*['\"]?(granted|denied)", re.I)
    for name in consent.CONSENT_MODE_PARAMETERS
}

_COMMAND_RE = re.compile(
    r"gtag\s*\(\s*['\"]consent['\"]\s*,\s*['\"](default|update)['\"]\s*,\s*(\{[^}]+\})",
    re.I,
)
_WAIT_RE = re.compile(r"wait_for_update['\"]?\s*:\s*(\d+)", re.I)
_REGION_RE = re.compile(r"region['\"]?\s*:\s*\[([^\]]*)\]", re.I)

_V2_MARKERS = ("ad_user_data", "ad_personalization")
_V1_MARKERS = ("ad_storage", "analytics_storage")


def parse_block(text: str) -> dict[str, consent.ConsentParamState]:
    """Extract granted/denied values from a JS object literal."""
    found: dict[str, consent.ConsentParamState] = {}
    for name, pattern in _PARAM_PATTERNS.items():
        match = pattern.search(text)
        if match:
            found[name] = match.group(1).lower()  # type: ignore[assignment]
    return found


def _normalize(params: Mapping[str, Any]) -> dict[str, consent.ConsentParamState]:
    return {
        name: value
        for name, value in ((n, params.get(n)) for n in consent.CONSENT_MODE_PARAMETERS)
        if value in ("granted", "denied")
    }


def detect_version(keys: set[str]) -> consent.ConsentModeVersion | None:
    if keys & set(_V2_MARKERS):
        return "v2"
    if keys & set(_V1_MARKERS):
        return "v1"
    return None


def _build(
    default: dict[str, consent.ConsentParamState],
    updates: list[dict[str, consent.ConsentParamState]],
    *,
    wait_for_update: int | None = None,
    regions: list[str] | None = None,
    extra_keys: set[str] | None = None,
) -> consent.ConsentModeState:
    current = dict(default)
    for update in updates:
        current.update(update)
    keys = set(current) | (extra_keys or set())
    return consent.ConsentModeState(
        detected=bool(keys),
        version=detect_version(keys),
        default_consent=default,
        update_detected=bool(updates),
        wait_for_update=wait_for_update,
        regions=regions or [],
        **current,
    )


def from_commands(commands: Sequence[Sequence[Any]]) -> consent.ConsentModeState | None:
    """Build the state from ``['consent', action, params]`` commands.

    Returns ``None`` when no consent command was pushed.
    """
    default: dict[str, consent.ConsentParamState] = {}
    updates: list[dict[str, consent.ConsentParamState]] = []
    wait_for_update: int | None = None
    regions: list[str] = []

    for command in commands:
        if len(command) < 3 or command[0] != "consent" or not isinstance(command[2], Mapping):
            continue
        action, params = command[1], command[2]
        if action == "default":
            default.update(_normalize(params))
            wait = params.get("wait_for_update")
            if isinstance(wait, (int, float)) and not isinstance(wait, bool):
                wait_for_update = int(wait)
            region = params.get("region")
            if isinstance(region, list):
                regions.extend(str(r) for r in region)
        elif action == "update":
            updates.append(_normalize(params))

    if not default and not updates:
        return None
    return _build(default, updates, wait_for_update=wait_for_update, regions=regions)


def from_ics(entries: Mapping[str, Mapping[str, Any]]) -> consent.ConsentModeState | None:
    """Build the state from ``google_tag_data.ics.entries``.

    Each entry maps a parameter to ``{"default": bool, "update": bool}``
    where ``true`` means granted.
    """
    default: dict[str, consent.ConsentParamState] = {}
    update: dict[str, consent.ConsentParamState] = {}
    for name in consent.CONSENT_MODE_PARAMETERS:
        entry = entries.get(name) or {}
        if isinstance(entry.get("default"), bool):
            default[name] = "granted" if entry["default"] else "denied"
        if isinstance(entry.get("update"), bool):
            update[name] = "granted" if entry["update"] else "denied"
    if not default and not update:
        return None
    return _build(default, [update] if update else [])


def from_content(content: str) -> consent.ConsentModeState | None:
    """Build the state from ``gtag('consent', ...)`` calls in page source."""
    default: dict[str, consent.ConsentParamState] = {}
    updates: list[dict[str, consent.ConsentParamState]] = []
    wait_for_update: int | None = None
    regions: list[str] = []

    for match in _COMMAND_RE.finditer(content):
        block = match.group(2)
        if match.group(1).lower() == "default":
            default.update(parse_block(block))
            wait = _WAIT_RE.search(block)
            if wait:
                wait_for_update = int(wait.group(1))
            region = _REGION_RE.search(block)
            if region:
                regions.extend(r.strip().strip("'\"") for r in region.group(1).split(",") if r.strip())
        else:
            updates.append(parse_block(block))

    lowered = content.lower()
    mentioned = {name for name in consent.CONSENT_MODE_PARAMETERS if name in lowered}
    if not default and not updates and not mentioned:
        return None
    return _build(default, updates, wait_for_update=wait_for_update, regions=regions, extra_keys=mentioned)


def analyze(
    commands: Sequence[Sequence[Any]] = (),
    ics_entries: Mapping[str, Mapping[str, Any]] | None = None,
    content: str = "",
) -> consent.ConsentModeState:
    """Return the best available Consent Mode state for one page."""
    for state in (from_commands(commands), from_ics(ics_entries or {}), from_content(content)):
        if state is not None:
            return state
    return consent.ConsentModeState()
