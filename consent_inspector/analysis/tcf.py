"""
IAB TCF v2 signal analysis.

Extracts the TC string from the ``__tcfapi`` response or the
consent cookies, validates its shape, and decodes the header
fields of its core segment.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from consent_inspector.models import consent, tracking_data

# Subset of the IAB Europe CMP list.
KNOWN_CMPS: dict[int, str] = {
    1: "Quantcast",
    2: "Google",
    3: "Amazon",
    6: "Sourcepoint",
    10: "Didomi",
    14: "Evidon",
    28: "OneTrust",
    31: "Iubenda",
    50: "Sirdata",
    76: "TrustArc",
    107: "Admiral",
    128: "Usercentrics",
    134: "Cookiebot",
    162: "CookieYes",
    224: "Consentmanager",
    300: "Borlabs",
}

TC_STRING_COOKIES: tuple[str, ...] = ("euconsent-v2", "eupubconsent-v2", "IABTCF_TCString", "__tcfconsent")

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_MIN_TC_LENGTH = 20

# Bit widths of the core segment header, in order.
_CORE_FIELDS: tuple[tuple[str, int], ...] = (
    ("version", 6),
    ("created", 36),
    ("last_updated", 36),
    ("cmp_id", 12),
    ("cmp_version", 12),
    ("consent_screen", 6),
    ("consent_language", 12),
    ("vendor_list_version", 12),
    ("policy_version", 6),
)
_CORE_HEADER_BITS = sum(width for _, width in _CORE_FIELDS)


def validate_tc_string(tc_string: str | None) -> bool:
    """Check that *tc_string* has the shape of a TCF v2 string."""
    if not tc_string or len(tc_string) < _MIN_TC_LENGTH:
        return False
    # Version 2 encodes as a leading "C".
    if not tc_string.startswith("C"):
        return False
    if not _BASE64URL_RE.match(tc_string.replace(".", "")):
        return False
    return len(tc_string.split(".")[0]) >= _MIN_TC_LENGTH


def decode_core(tc_string: str) -> consent.TcStringCore | None:
    """Decode the header of the core segment, or ``None`` if unreadable."""
    segment = tc_string.split(".")[0]
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError):
        return None

    total = len(raw) * 8
    if total < _CORE_HEADER_BITS:
        return None
    bits = int.from_bytes(raw, "big")

    values: dict[str, int] = {}
    offset = 0
    for name, width in _CORE_FIELDS:
        values[name] = (bits >> (total - offset - width)) & ((1 << width) - 1)
        offset += width

    language = values["consent_language"]
    return consent.TcStringCore(
        version=values["version"],
        created=datetime.fromtimestamp(values["created"] / 10, UTC),
        last_updated=datetime.fromtimestamp(values["last_updated"] / 10, UTC),
        cmp_id=values["cmp_id"],
        cmp_version=values["cmp_version"],
        consent_screen=values["consent_screen"],
        consent_language=chr(ord("A") + (language >> 6)) + chr(ord("A") + (language & 0x3F)),
        vendor_list_version=values["vendor_list_version"],
        policy_version=values["policy_version"],
    )


def find_cookie_tc_string(cookies: Iterable[tracking_data.CookieRecord]) -> str | None:
    """Return the first TC string stored in a known consent cookie."""
    wanted = tuple(name.lower() for name in TC_STRING_COOKIES)
    for cookie in cookies:
        if cookie.name.lower() in wanted and len(cookie.value) > 10:
            return cookie.value
    return None


def analyze(
    tc_data: Mapping[str, Any] | None,
    cookies: Iterable[tracking_data.CookieRecord] = (),
    *,
    has_api: bool = False,
) -> consent.TcfResult:
    """Build the TCF result from ``getTCData`` output and cookies.

    Args:
        tc_data: The ``tcData`` object passed to the ``__tcfapi``
            callback, or ``None`` when the API was absent or silent.
        cookies: Cookies to search for a stored TC string.
        has_api: Whether ``window.__tcfapi`` exists.
    """
    tc_data = tc_data or {}
    tc_string: str | None = None
    source: str | None = None

    api_string = tc_data.get("tcString")
    if isinstance(api_string, str) and api_string:
        tc_string, source = api_string, "api"
    else:
        tc_string = find_cookie_tc_string(cookies)
        source = "cookie" if tc_string else None

    valid = validate_tc_string(tc_string)
    core = decode_core(tc_string) if tc_string and valid else None

    cmp_id = tc_data.get("cmpId")
    if not isinstance(cmp_id, int) or cmp_id <= 0:
        cmp_id = core.cmp_id if core and core.cmp_id > 0 else None

    policy = tc_data.get("tcfPolicyVersion")
    if isinstance(policy, int):
        version: str | None = f"2.{policy}"
    elif core is not None:
        version = f"2.{core.policy_version}"
    else:
        version = "2.x" if has_api else None

    gdpr_applies = tc_data.get("gdprApplies")
    return consent.TcfResult(
        detected=has_api or tc_string is not None,
        version=version,
        cmp_id=cmp_id,
        cmp_name=KNOWN_CMPS.get(cmp_id) if cmp_id else None,
        tc_string=tc_string,
        valid_tc_string=valid,
        gdpr_applies=gdpr_applies if isinstance(gdpr_applies, bool) else None,
        source=source,  # type: ignore[arg-type]
        core=core,
    )
