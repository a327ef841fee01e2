"""Shared serialization helpers for camelCase conversion.

Provides the ``snake_to_camel`` alias generator used by every
model that is part of the JSON result contract.
"""

from __future__ import annotations


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"tracking_before_consent"``.

    Returns:
        The camelCase equivalent, e.g. ``"trackingBeforeConsent"``.
    """
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
