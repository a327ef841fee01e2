"""
CMP vendor probes.

Each probe recognises one consent-management platform from the
globals it installs, reports its decision state, and simulates
"accept all" / "reject all" through the vendor's own JavaScript
API.  Entry points are tried in a fixed priority order and the
first call that executes without throwing wins.

Every call goes through ``page.evaluate`` with a serialized
script, so a probe never holds a live reference into the page.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from consent_inspector.consent import click, scripts
from consent_inspector.models import consent
from consent_inspector.utils import errors, logger

if TYPE_CHECKING:
    from consent_inspector.browser.session import BrowserSession

log = logger.create_logger("Probes")

_DECISIONS: frozenset[str] = frozenset({"accepted", "rejected", "partial", "none", "unknown"})


@dataclasses.dataclass(frozen=True)
class EntryPoint:
    """One way of expressing a decision through a vendor API.

    With ``per_item`` set the method is called once per argument
    tuple and the entry point only succeeds if every call does.
    """

    target: str
    method: str
    args: tuple[Any, ...] = ()
    per_item: tuple[tuple[Any, ...], ...] = ()

    @property
    def label(self) -> str:
        suffix = "[per-item]" if self.per_item else ""
        return f"{self.target}.{self.method}{suffix}"


# ============================================================================
# Base Probe
# ============================================================================


class VendorProbe:
    """Capability interface shared by all vendor probes."""

    vendor: ClassVar[str]
    provider: ClassVar[str]
    # Global paths whose presence identifies the vendor.
    fingerprints: ClassVar[tuple[str, ...]]
    accept_entry_points: ClassVar[tuple[EntryPoint, ...]] = ()
    reject_entry_points: ClassVar[tuple[EntryPoint, ...]] = ()
    state_script: ClassVar[str | None] = None
    version_script: ClassVar[str | None] = None

    async def detect(self, session: BrowserSession) -> bool:
        """Return whether any fingerprint global exists.  Never raises."""
        try:
            types = await session.evaluate(scripts.GLOBAL_TYPES_SCRIPT, list(self.fingerprints))
        except errors.ProbeEvaluationError as exc:
            log.warn("Probe evaluation failed, treating as no match", {"vendor": self.vendor, "error": str(exc)})
            return False
        types = types or {}
        return any(types.get(path) in ("object", "function") for path in self.fingerprints)

    async def describe(self, session: BrowserSession) -> consent.CmpDetection:
        """Describe the detected vendor."""
        return consent.CmpDetection(
            detected=True,
            vendor=self.vendor,
            provider=self.provider,
            version=await self._version(session),
        )

    async def _version(self, session: BrowserSession) -> str | None:
        if not self.version_script:
            return None
        try:
            version = await session.evaluate(self.version_script)
        except errors.ProbeEvaluationError:
            return None
        return str(version) if version else None

    async def describe_state(self, session: BrowserSession) -> consent.CmpDecision:
        """Return the decision the CMP itself reports."""
        if not self.state_script:
            return "unknown"
        try:
            state = await session.evaluate(self.state_script)
        except errors.ProbeEvaluationError as exc:
            log.debug("State read failed", {"vendor": self.vendor, "error": str(exc)})
            return "unknown"
        return state if state in _DECISIONS else "unknown"

    async def entry_points(self, session: BrowserSession, action: consent.ConsentAction) -> tuple[EntryPoint, ...]:
        """Entry points for *action*, highest priority first."""
        return self.accept_entry_points if action == "accept" else self.reject_entry_points

    async def simulate(self, session: BrowserSession, action: consent.ConsentAction) -> consent.SimulationOutcome:
        """Try each entry point in order and stop at the first success."""
        attempts: list[consent.SimulationAttempt] = []
        for entry in await self.entry_points(session, action):
            attempt = await _call_entry_point(session, entry)
            attempts.append(attempt)
            if attempt.ok:
                log.success("Simulated decision", {"vendor": self.vendor, "action": action, "method": entry.label})
                return consent.SimulationOutcome(action=action, applied=True, method=entry.label, attempts=tuple(attempts))
            log.debug("Entry point failed", {"method": entry.label, "error": attempt.error})
        return consent.SimulationOutcome.not_applied(action, tuple(attempts))

    async def simulate_accept(self, session: BrowserSession) -> consent.SimulationOutcome:
        return await self.simulate(session, "accept")

    async def simulate_reject(self, session: BrowserSession) -> consent.SimulationOutcome:
        return await self.simulate(session, "reject")


async def _call_entry_point(session: BrowserSession, entry: EntryPoint) -> consent.SimulationAttempt:
    """Invoke one entry point; a throw or missing method is a failed attempt."""
    calls = entry.per_item or (entry.args,)
    if not calls:
        return consent.SimulationAttempt(method=entry.label, ok=False, error="nothing to call")
    for args in calls:
        try:
            result = await session.evaluate(
                scripts.CALL_METHOD_SCRIPT,
                {"target": entry.target, "method": entry.method, "args": list(args)},
            )
        except errors.ProbeEvaluationError as exc:
            return consent.SimulationAttempt(method=entry.label, ok=False, error=str(exc))
        if not (result and result.get("ok")):
            error = (result or {}).get("error") or "call failed"
            return consent.SimulationAttempt(method=entry.label, ok=False, error=error)
    return consent.SimulationAttempt(method=entry.label, ok=True)


# ============================================================================
# Vendors
# ============================================================================


class UsercentricsProbe(VendorProbe):
    """Usercentrics (``UC_UI`` in v2, ``__ucCmp`` in v3)."""

    vendor = "usercentrics"
    provider = "Usercentrics"
    fingerprints = ("UC_UI", "__ucCmp")
    accept_entry_points = (
        EntryPoint("UC_UI", "acceptAllConsents"),
        EntryPoint("UC_UI", "acceptAll"),
        EntryPoint("__ucCmp", "acceptAllConsents"),
    )
    reject_entry_points = (
        EntryPoint("UC_UI", "denyAllConsents"),
        EntryPoint("UC_UI", "denyAll"),
        EntryPoint("UC_UI", "rejectAllConsents"),
        EntryPoint("UC_UI", "rejectAll"),
        EntryPoint("__ucCmp", "denyAllConsents"),
    )
    state_script = scripts.USERCENTRICS_STATE_SCRIPT
    version_script = scripts.USERCENTRICS_VERSION_SCRIPT


class RealCookieBannerProbe(VendorProbe):
    """Real Cookie Banner (WordPress), an item-granular consent API.

    Consent is given per consent-group item.  The groups are read
    from ``rcbConsentManager.getOptions()`` in the current page;
    accept selects every group and reject only the essential one.
    A single batched ``consentApi.consentAll`` call is tried
    first, then one ``consentApi.consent`` call per item.
    """

    vendor = "real-cookie-banner"
    provider = "Real Cookie Banner"
    fingerprints = ("rcbConsentManager", "consentApi")
    state_script = scripts.REAL_COOKIE_BANNER_STATE_SCRIPT

    async def entry_points(self, session: BrowserSession, action: consent.ConsentAction) -> tuple[EntryPoint, ...]:
        try:
            groups = await session.evaluate(scripts.REAL_COOKIE_BANNER_GROUPS_SCRIPT) or []
        except errors.ProbeEvaluationError as exc:
            log.warn("Could not enumerate consent groups", {"error": str(exc)})
            return ()
        return consent_group_entry_points(groups, action)


def consent_group_entry_points(
    groups: Sequence[Mapping[str, Any]],
    action: consent.ConsentAction,
) -> tuple[EntryPoint, ...]:
    """Build the batched and per-item calls for the selected groups."""
    selected = [g for g in groups if action == "accept" or g.get("essential")]
    selected = [g for g in selected if g.get("items")]
    if not selected:
        return ()
    pairs = tuple([g["id"], list(g["items"])] for g in selected)
    items = tuple((item,) for g in selected for item in g["items"])
    return (
        EntryPoint("consentApi", "consentAll", args=pairs),
        EntryPoint("consentApi", "consent", per_item=items),
    )


class OneTrustProbe(VendorProbe):
    """OneTrust / Optanon."""

    vendor = "onetrust"
    provider = "OneTrust"
    fingerprints = ("OneTrust", "Optanon")
    accept_entry_points = (EntryPoint("OneTrust", "AllowAll"), EntryPoint("Optanon", "AllowAll"))
    reject_entry_points = (EntryPoint("OneTrust", "RejectAll"), EntryPoint("Optanon", "RejectAll"))
    state_script = scripts.ONETRUST_STATE_SCRIPT


class CookiebotProbe(VendorProbe):
    """Cookiebot (``Cookiebot`` or its ``CookieConsent`` alias)."""

    vendor = "cookiebot"
    provider = "Cookiebot"
    fingerprints = ("Cookiebot", "CookieConsent")
    accept_entry_points = (
        EntryPoint("Cookiebot", "submitCustomConsent", args=(True, True, True)),
        EntryPoint("CookieConsent", "submitCustomConsent", args=(True, True, True)),
    )
    reject_entry_points = (
        EntryPoint("Cookiebot", "submitCustomConsent", args=(False, False, False)),
        EntryPoint("Cookiebot", "withdraw"),
        EntryPoint("CookieConsent", "submitCustomConsent", args=(False, False, False)),
    )
    state_script = scripts.COOKIEBOT_STATE_SCRIPT


class DidomiProbe(VendorProbe):
    """Didomi."""

    vendor = "didomi"
    provider = "Didomi"
    fingerprints = ("Didomi",)
    accept_entry_points = (EntryPoint("Didomi", "setUserAgreeToAll"),)
    reject_entry_points = (EntryPoint("Didomi", "setUserDisagreeToAll"),)
    state_script = scripts.DIDOMI_STATE_SCRIPT
    version_script = scripts.DIDOMI_VERSION_SCRIPT


class TcfProbe(VendorProbe):
    """Any CMP exposing only the standard IAB ``__tcfapi``.

    The TCF API has no command for recording a decision, so
    simulation relies on the DOM button fallback.
    """

    vendor = "tcf"
    provider = "IAB TCF CMP"
    fingerprints = ("__tcfapi",)

    async def describe(self, session: BrowserSession) -> consent.CmpDetection:
        data = await read_tc_data(session)
        version = f"2.{data['tcfPolicyVersion']}" if data and data.get("tcfPolicyVersion") else None
        return consent.CmpDetection(detected=True, vendor=self.vendor, provider=self.provider, version=version)

    async def describe_state(self, session: BrowserSession) -> consent.CmpDecision:
        return decision_from_tc_data(await read_tc_data(session))


async def read_tc_data(session: BrowserSession) -> dict[str, Any] | None:
    """Return the ``getTCData`` response, or ``None`` if unavailable."""
    try:
        data = await session.evaluate(scripts.TCF_DATA_SCRIPT)
    except errors.ProbeEvaluationError as exc:
        log.debug("getTCData failed", {"error": str(exc)})
        return None
    return data if isinstance(data, dict) else None


def decision_from_tc_data(data: Mapping[str, Any] | None) -> consent.CmpDecision:
    """Derive the visitor's decision from a ``tcData`` object."""
    if not data:
        return "unknown"
    if data.get("eventStatus") == "cmpuishown":
        return "none"
    consents = data.get("purposeConsents") or {}
    if not consents:
        return "rejected" if data.get("eventStatus") == "useractioncomplete" else "unknown"
    granted = sum(1 for v in consents.values() if v)
    if granted == 0:
        return "rejected"
    return "accepted" if granted == len(consents) else "partial"


# ============================================================================
# Registry
# ============================================================================


def default_probes() -> tuple[VendorProbe, ...]:
    """Vendor-specific probes first; the generic TCF probe last."""
    return (
        UsercentricsProbe(),
        RealCookieBannerProbe(),
        OneTrustProbe(),
        CookiebotProbe(),
        DidomiProbe(),
        TcfProbe(),
    )


class ProbeRegistry:
    """Ordered, extensible set of vendor probes."""

    def __init__(self, probes: Sequence[VendorProbe] | None = None) -> None:
        self._probes: tuple[VendorProbe, ...] = tuple(probes) if probes is not None else default_probes()

    def __iter__(self) -> Iterator[VendorProbe]:
        return iter(self._probes)

    def __len__(self) -> int:
        return len(self._probes)

    def get(self, vendor: str) -> VendorProbe | None:
        return next((p for p in self._probes if p.vendor == vendor), None)

    async def detect(self, session: BrowserSession) -> VendorProbe | None:
        """Return the first probe that recognises the page.

        Probes after the winner are not run.  Returns ``None``
        when no known CMP is present.
        """
        for probe in self._probes:
            if await probe.detect(session):
                log.info("CMP detected", {"vendor": probe.vendor})
                return probe
        log.info("No known CMP detected")
        return None


async def simulate_decision(
    session: BrowserSession,
    probe: VendorProbe | None,
    action: consent.ConsentAction,
) -> consent.SimulationOutcome:
    """Simulate *action* via the vendor API, then the DOM fallback."""
    attempts: tuple[consent.SimulationAttempt, ...] = ()
    if probe is not None:
        outcome = await probe.simulate(session, action)
        if outcome.applied:
            return outcome
        attempts = outcome.attempts

    button = await click.click_decision_button(session, action)
    attempts = (*attempts, button)
    if button.ok:
        return consent.SimulationOutcome(action=action, applied=True, method=button.method, attempts=attempts)
    log.warn("No working consent method found", {"action": action, "attempts": len(attempts)})
    return consent.SimulationOutcome.not_applied(action, attempts)
