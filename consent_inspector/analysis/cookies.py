"""
Cookie categorization and lifetime analysis.

Classifies each cookie into a consent category using, in order:
the table of well-known names, the consent-state cookie list,
name patterns, and finally the setting domain.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any

from consent_inspector.analysis import tracker_patterns
from consent_inspector.models import tracking_data

# Cookies expiring later than this are considered long-lived.
LONG_LIVED_THRESHOLD_DAYS = 390

_SECONDS_PER_DAY = 86_400


def categorize(name: str, domain: str = "") -> tracking_data.CookieCategory:
    """Infer the consent category of a cookie from its name and domain."""
    known = tracker_patterns.KNOWN_COOKIES.get(name)
    if known:
        return known  # type: ignore[return-value]

    if tracker_patterns.CONSENT_STATE_COOKIE_COMBINED.search(name):
        return "necessary"

    for pattern, category in tracker_patterns.COOKIE_NAME_PATTERNS:
        if pattern.search(name):
            return category  # type: ignore[return-value]

    host = domain.lower()
    if "google" in host or "doubleclick" in host:
        return "analytics" if name.startswith("_g") else "marketing"
    if "facebook" in host or "fb.com" in host:
        return "marketing"
    return "unknown"


def lifetime_days(expires: float | None, now: float | None = None) -> int | None:
    """Days until *expires* (epoch seconds); ``None`` for session cookies."""
    if expires is None or expires <= 0:
        return None
    now = time.time() if now is None else now
    return round((expires - now) / _SECONDS_PER_DAY)


def is_long_lived(days: int | None) -> bool:
    return days is not None and days > LONG_LIVED_THRESHOLD_DAYS


def build_record(raw: Mapping[str, Any], now: float | None = None) -> tracking_data.CookieRecord:
    """Build a categorized record from a Playwright cookie dict."""
    name = str(raw.get("name", ""))
    domain = str(raw.get("domain", ""))
    expires = raw.get("expires")
    expires = float(expires) if isinstance(expires, (int, float)) and expires > 0 else None
    days = lifetime_days(expires, now)
    return tracking_data.CookieRecord(
        name=name,
        value=str(raw.get("value", "")),
        domain=domain,
        path=str(raw.get("path", "/")),
        expires=expires,
        http_only=bool(raw.get("httpOnly", False)),
        secure=bool(raw.get("secure", False)),
        same_site=str(raw.get("sameSite") or "Lax"),
        category=categorize(name, domain),
        lifetime_days=days,
        is_long_lived=is_long_lived(days),
    )


def build_snapshot(
    phase: tracking_data.Phase,
    raw_cookies: Iterable[Mapping[str, Any]],
    now: float | None = None,
) -> tracking_data.CookieSnapshot:
    """Categorize a raw cookie jar into an immutable snapshot.

    Jar order is preserved so snapshots of identical jars compare
    equal.
    """
    now = time.time() if now is None else now
    return tracking_data.CookieSnapshot(
        phase=phase,
        cookies=tuple(build_record(raw, now) for raw in raw_cookies),
    )


def long_lived(
    cookies: Iterable[tracking_data.CookieRecord],
    category: tracking_data.CookieCategory,
) -> list[tracking_data.CookieRecord]:
    """Return the long-lived cookies of one category."""
    return [c for c in cookies if c.category == category and c.is_long_lived]
