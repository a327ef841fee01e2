"""
Tracking tag inventory.

Identifies analytics and advertising tags from the page source,
the window globals they install, and the requests they make.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable, Mapping

from consent_inspector.analysis import tracker_patterns
from consent_inspector.models import tracking, tracking_data


@dataclasses.dataclass(frozen=True)
class _TagDefinition:
    script_patterns: tuple[str, ...]
    network_patterns: tuple[str, ...]
    window_flags: tuple[str, ...] = ()


_GOOGLE_ANALYTICS = _TagDefinition(
    script_patterns=(
        "google-analytics.com/analytics.js",
        "google-analytics.com/ga.js",
        "googletagmanager.com/gtag/js",
    ),
    network_patterns=("google-analytics.com/collect", "google-analytics.com/g/collect", "analytics.google.com"),
    window_flags=("hasGtag",),
)
_TAG_MANAGER = _TagDefinition(
    script_patterns=("googletagmanager.com/gtm.js", "googletagmanager.com/ns.html"),
    network_patterns=("googletagmanager.com/gtm.js",),
)
_META_PIXEL = _TagDefinition(
    script_patterns=("connect.facebook.net/en_us/fbevents.js", "connect.facebook.net/signals", "facebook.com/tr"),
    network_patterns=("facebook.com/tr", "facebook.net/en_us/fbevents"),
    window_flags=("hasFbq",),
)
_LINKEDIN = _TagDefinition(
    script_patterns=("snap.licdn.com/li.lms-analytics", "_linkedin_partner_id"),
    network_patterns=("px.ads.linkedin.com", "snap.licdn.com", "linkedin.com/px"),
    window_flags=("hasLintrk",),
)
_TIKTOK = _TagDefinition(
    script_patterns=("analytics.tiktok.com", "tiktok.com/i18n/pixel"),
    network_patterns=("analytics.tiktok.com", "tiktok.com/i18n/pixel"),
    window_flags=("hasTtq",),
)

_GA4_ID_RE = re.compile(r"\bG-[A-Z0-9]{10,}\b")
_UA_ID_RE = re.compile(r"\bUA-\d{4,10}-\d{1,4}\b")
_GTM_ID_RE = re.compile(r"\bGTM-[A-Z0-9]{6,}\b")
_META_ID_RE = re.compile(r"fbq\s*\(\s*['\"]init['\"]\s*,\s*['\"](\d{15,16})['\"]")
_LINKEDIN_ID_RE = re.compile(r"_linkedin_partner_id\s*=\s*['\"]?(\d+)['\"]?")
_TIKTOK_ID_RE = re.compile(r"ttq\.load\s*\(\s*['\"]([A-Z0-9]+)['\"]")

_MARKETING_PARAMS: tuple[str, ...] = ("gclid", "dclid", "wbraid", "pbraid", "fbclid", "msclkid")


def _detected(definition: _TagDefinition, content: str, urls: list[str], flags: Mapping[str, bool]) -> bool:
    return (
        any(p in content for p in definition.script_patterns)
        or any(p in url for url in urls for p in definition.network_patterns)
        or any(flags.get(f) for f in definition.window_flags)
    )


def _unique(matches: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(matches))


def _google_analytics(content: str, raw: str, urls: list[str], flags: Mapping[str, bool]) -> tracking.GoogleAnalyticsTag:
    ga4_ids = _unique(_GA4_ID_RE.findall(raw))
    ua_ids = _unique(_UA_ID_RE.findall(raw))
    # Measurement IDs also travel as the "tid" parameter of beacons.
    for url in urls:
        if "collect" in url:
            ga4_ids.extend(i for i in _GA4_ID_RE.findall(url.upper()) if i not in ga4_ids)

    detected = _detected(_GOOGLE_ANALYTICS, content, urls, flags) or bool(ga4_ids or ua_ids)
    if not detected:
        return tracking.GoogleAnalyticsTag()

    version = None
    if ga4_ids and ua_ids:
        version = "both"
    elif ga4_ids:
        version = "GA4"
    elif ua_ids:
        version = "UA"
    ids = ga4_ids + ua_ids
    return tracking.GoogleAnalyticsTag(
        detected=True,
        version=version,
        measurement_id=ids[0] if ids else None,
        measurement_ids=ids,
        has_multiple_ids=len(ga4_ids) > 1,
        has_legacy_ua=bool(ua_ids),
    )


def _tag_manager(content: str, raw: str, urls: list[str]) -> tracking.TagManagerTag:
    ids = _unique(_GTM_ID_RE.findall(raw))
    for url in urls:
        if "googletagmanager.com/gtm.js" in url:
            ids.extend(i for i in _GTM_ID_RE.findall(url.upper()) if i not in ids)
    if not (_detected(_TAG_MANAGER, content, urls, {}) or ids):
        return tracking.TagManagerTag()
    return tracking.TagManagerTag(
        detected=True,
        container_id=ids[0] if ids else None,
        container_ids=ids,
        has_multiple_containers=len(ids) > 1,
    )


def _pixel(
    definition: _TagDefinition,
    id_pattern: re.Pattern[str],
    content: str,
    raw: str,
    urls: list[str],
    flags: Mapping[str, bool],
) -> tracking.PixelTag:
    if not _detected(definition, content, urls, flags):
        return tracking.PixelTag()
    match = id_pattern.search(raw)
    return tracking.PixelTag(detected=True, pixel_id=match.group(1) if match else None)


def marketing_parameters(urls: Iterable[str]) -> tracking.MarketingParameters:
    """Flag click-ID and ``utm_`` parameters present in any of *urls*."""
    found: dict[str, bool] = dict.fromkeys(_MARKETING_PARAMS, False)
    utm = False
    for url in urls:
        lowered = url.lower()
        for name in _MARKETING_PARAMS:
            if f"{name}=" in lowered:
                found[name] = True
        if "utm_" in lowered:
            utm = True
    return tracking.MarketingParameters(utm=utm, **found)


def analyze(
    content: str,
    request_urls: Iterable[str] = (),
    window_flags: Mapping[str, bool] | None = None,
    page_url: str = "",
) -> tracking.TrackingTagInventory:
    """Build the tag inventory for a page.

    Args:
        content: Page HTML including inline scripts.
        request_urls: URLs of every request seen in any phase.
        window_flags: ``{"hasGtag": ..., "hasFbq": ...}`` as read
            from the page.
        page_url: The inspected URL, checked for marketing params.
    """
    flags = window_flags or {}
    urls = [u.lower() for u in request_urls]
    lowered = content.lower()

    other = [
        tracking.OtherTag(name=name, category=category)  # type: ignore[arg-type]
        for name, category, patterns in tracker_patterns.OTHER_TRACKING_SERVICES
        if any(p in lowered or any(p in url for url in urls) for p in patterns)
    ]

    return tracking.TrackingTagInventory(
        google_analytics=_google_analytics(lowered, content, urls, flags),
        google_tag_manager=_tag_manager(lowered, content, urls),
        meta_pixel=_pixel(_META_PIXEL, _META_ID_RE, lowered, content, urls, flags),
        linkedin_insight=_pixel(_LINKEDIN, _LINKEDIN_ID_RE, lowered, content, urls, flags),
        tiktok_pixel=_pixel(_TIKTOK, _TIKTOK_ID_RE, lowered, content, urls, flags),
        other=other,
        marketing_parameters=marketing_parameters([page_url, *urls]),
    )


def fired_tags(requests: tracking_data.RequestSnapshot) -> list[str]:
    """Names of tags whose beacon request appears in *requests*."""
    fired: list[str] = []
    for name, pattern in tracker_patterns.TAG_BEACON_PATTERNS:
        if any(pattern.search(r.url) for r in requests.requests):
            fired.append(name)
    return fired
