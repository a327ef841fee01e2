"""Pydantic models for observed browser state: cookies and network requests.

Snapshots are frozen once captured so that the phases of one
inspection can be compared without any risk of mutation.
"""

from __future__ import annotations

from typing import Literal

import pydantic

from consent_inspector.utils import serialization

Phase = Literal["baseline", "reject", "accept"]

CookieCategory = Literal["necessary", "functional", "analytics", "marketing", "unknown"]

# Categories that require prior consent.
NON_ESSENTIAL_CATEGORIES: frozenset[str] = frozenset({"analytics", "marketing"})

MAX_VALUE_DISPLAY_LENGTH = 50


class CookieRecord(pydantic.BaseModel):
    """A cookie read from the browser context, with its inferred category."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    name: str
    value: str
    domain: str
    path: str = "/"
    expires: float | None = None
    http_only: bool = False
    secure: bool = False
    same_site: str = "Lax"
    category: CookieCategory = "unknown"
    lifetime_days: int | None = None
    is_long_lived: bool = False

    @pydantic.field_serializer("value")
    def serialize_value(self, value: str) -> str:
        if len(value) > MAX_VALUE_DISPLAY_LENGTH:
            return value[:MAX_VALUE_DISPLAY_LENGTH] + "..."
        return value

    @property
    def is_non_essential(self) -> bool:
        return self.category in NON_ESSENTIAL_CATEGORIES

    @property
    def key(self) -> str:
        """Identity of the cookie across snapshots."""
        return f"{self.name}@{self.domain.lstrip('.')}"


class CookieSnapshot(pydantic.BaseModel):
    """Ordered cookie jar contents taken at one phase boundary."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    phase: Phase
    cookies: tuple[CookieRecord, ...] = ()

    def non_essential(self) -> tuple[CookieRecord, ...]:
        """Return the analytics and marketing cookies, in jar order."""
        return tuple(c for c in self.cookies if c.is_non_essential)

    def by_category(self, category: CookieCategory) -> tuple[CookieRecord, ...]:
        return tuple(c for c in self.cookies if c.category == category)


class RequestRecord(pydantic.BaseModel):
    """An outgoing request made by the page."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    url: str
    host: str
    method: str = "GET"
    resource_type: str = "other"
    param_names: tuple[str, ...] = ()
    is_third_party: bool = False


class RequestSnapshot(pydantic.BaseModel):
    """The requests observed during one phase, in the order they were sent."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    phase: Phase
    requests: tuple[RequestRecord, ...] = ()

    def urls(self) -> tuple[str, ...]:
        return tuple(r.url for r in self.requests)

    def hosts(self) -> tuple[str, ...]:
        """Distinct request hosts, in first-seen order."""
        return tuple(dict.fromkeys(r.host for r in self.requests))
