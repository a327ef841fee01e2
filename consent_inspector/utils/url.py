"""
URL and domain utility functions for consent inspection.
"""

from __future__ import annotations

import re
from urllib import parse

from consent_inspector.utils import errors

_TWO_PART_TLDS = frozenset([
    "co.uk", "com.au", "co.nz", "co.jp", "com.br",
    "co.in", "org.uk", "net.uk", "gov.uk", "co.at",
])

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_url(url: str) -> str:
    """Return a fully-qualified http(s) URL or raise.

    A missing scheme is assumed to be ``https``.  Anything
    without a usable hostname, or with a non-web scheme, is
    rejected.

    Raises:
        errors.ValidationError: If *url* cannot be inspected.
    """
    if not isinstance(url, str) or not url.strip():
        raise errors.ValidationError("URL is required")

    candidate = url.strip()
    if not _SCHEME_RE.match(candidate):
        candidate = f"https://{candidate}"

    try:
        parsed = parse.urlparse(candidate)
        host = parsed.hostname
    except ValueError as exc:
        raise errors.ValidationError(f"Invalid URL: {url}") from exc
    if parsed.scheme not in ("http", "https"):
        raise errors.ValidationError(f"Unsupported URL scheme: {parsed.scheme}")
    if not host or " " in candidate or ("." not in host and host != "localhost"):
        raise errors.ValidationError(f"Invalid URL: {url}")
    return candidate


def extract_domain(url: str) -> str:
    """Extract the hostname from a URL string."""
    try:
        return parse.urlparse(url).hostname or "unknown"
    except ValueError:
        return "unknown"


def get_base_domain(domain: str) -> str:
    """Extract the registrable base domain from a full hostname.

    Handles common multi-part TLDs (e.g. ``co.uk``) and strips
    a leading ``www.`` or cookie-domain dot.

    Args:
        domain: A hostname like ``"www.example.co.uk"``.

    Returns:
        The base domain, e.g. ``"example.co.uk"``.
    """
    clean = re.sub(r"^(\.|www\.)", "", domain).lower()
    parts = clean.split(".")
    if len(parts) >= 2:
        last_two = ".".join(parts[-2:])
        if last_two in _TWO_PART_TLDS and len(parts) >= 3:
            return ".".join(parts[-3:])
        return last_two
    return clean


def is_third_party(request_url: str, page_url: str) -> bool:
    """Determine if a request URL is third-party relative to the page URL."""
    return get_base_domain(extract_domain(request_url)) != get_base_domain(extract_domain(page_url))


def query_param_names(url: str) -> tuple[str, ...]:
    """Return the lower-cased query parameter names of *url*, in order."""
    try:
        query = parse.urlparse(url).query
    except ValueError:
        return ()
    return tuple(name.lower() for name, _ in parse.parse_qsl(query, keep_blank_values=True))
