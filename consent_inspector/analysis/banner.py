"""
Cookie banner summary.

Combines the probe-based CMP detection with the outcome of the
simulated decisions, and names a CMP from its script host when
no probe recognised one.
"""

from __future__ import annotations

from collections.abc import Iterable

from consent_inspector.analysis import tracker_patterns
from consent_inspector.models import consent


def script_hint(request_urls: Iterable[str]) -> str | None:
    """Return the CMP whose script host appears in *request_urls*."""
    urls = [u.lower() for u in request_urls]
    for host, provider in tracker_patterns.CMP_SCRIPT_DOMAINS:
        if any(host in url for url in urls):
            return provider
    return None


def summarize(
    detection: consent.CmpDetection,
    *,
    reject: consent.SimulationOutcome | None,
    accept: consent.SimulationOutcome | None,
    request_urls: Iterable[str] = (),
) -> consent.CookieBannerResult:
    """Merge detection and simulation outcomes into the banner result."""
    return consent.CookieBannerResult(
        **detection.model_dump(),
        script_hint=None if detection.detected else script_hint(request_urls),
        reject_simulated=bool(reject and reject.applied),
        reject_method=reject.method if reject else None,
        accept_simulated=bool(accept and accept.applied),
        accept_method=accept.method if accept else None,
    )
