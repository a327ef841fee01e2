"""Pydantic models for the inventory of tracking tags found on a page."""

from __future__ import annotations

from typing import Literal

import pydantic

from consent_inspector.utils import serialization

_CAMEL = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)


class GoogleAnalyticsTag(pydantic.BaseModel):
    """Google Analytics (Universal Analytics and/or GA4)."""

    model_config = _CAMEL

    detected: bool = False
    version: Literal["UA", "GA4", "both"] | None = None
    measurement_id: str | None = None
    measurement_ids: list[str] = pydantic.Field(default_factory=list)
    has_multiple_ids: bool = False
    has_legacy_ua: bool = False


class TagManagerTag(pydantic.BaseModel):
    """Google Tag Manager containers."""

    model_config = _CAMEL

    detected: bool = False
    container_id: str | None = None
    container_ids: list[str] = pydantic.Field(default_factory=list)
    has_multiple_containers: bool = False


class PixelTag(pydantic.BaseModel):
    """An advertising pixel identified by a single account ID."""

    model_config = _CAMEL

    detected: bool = False
    pixel_id: str | None = None


class OtherTag(pydantic.BaseModel):
    """Any other recognised analytics or advertising service."""

    model_config = _CAMEL

    name: str
    category: Literal["analytics", "marketing"]


class MarketingParameters(pydantic.BaseModel):
    """Click-ID and campaign parameters seen in page or request URLs."""

    model_config = _CAMEL

    gclid: bool = False
    dclid: bool = False
    wbraid: bool = False
    pbraid: bool = False
    fbclid: bool = False
    msclkid: bool = False
    utm: bool = False

    @property
    def has_any(self) -> bool:
        return any(self.model_dump().values())

    def found(self) -> list[str]:
        """Names of the parameter families that were present."""
        return [name for name, present in self.model_dump().items() if present]


class TrackingTagInventory(pydantic.BaseModel):
    """Every tracking tag detected across the inspection."""

    model_config = _CAMEL

    google_analytics: GoogleAnalyticsTag = pydantic.Field(default_factory=GoogleAnalyticsTag)
    google_tag_manager: TagManagerTag = pydantic.Field(default_factory=TagManagerTag)
    meta_pixel: PixelTag = pydantic.Field(default_factory=PixelTag)
    linkedin_insight: PixelTag = pydantic.Field(default_factory=PixelTag)
    tiktok_pixel: PixelTag = pydantic.Field(default_factory=PixelTag)
    other: list[OtherTag] = pydantic.Field(default_factory=list)
    marketing_parameters: MarketingParameters = pydantic.Field(default_factory=MarketingParameters)

    @property
    def has_google_tags(self) -> bool:
        return self.google_analytics.detected or self.google_tag_manager.detected

    @property
    def has_tags(self) -> bool:
        return (
            self.has_google_tags
            or self.meta_pixel.detected
            or self.linkedin_insight.detected
            or self.tiktok_pixel.detected
            or bool(self.other)
        )


ThirdPartyCategory = Literal["advertising", "analytics", "social", "cdn", "functional", "unknown"]


class ThirdPartyDomain(pydantic.BaseModel):
    """One registrable third-party domain contacted by the page."""

    model_config = _CAMEL

    domain: str
    category: ThirdPartyCategory = "unknown"
    request_count: int = 0
    cookies_set: int = 0
    data_types: list[str] = pydantic.Field(default_factory=list)
    company: str | None = None
    country: str | None = None
    is_eu_based: bool | None = pydantic.Field(default=None, alias="isEUBased")


class ThirdPartyRiskAssessment(pydantic.BaseModel):
    """Domains whose data transfers deserve a closer look."""

    model_config = _CAMEL

    high_risk_domains: list[str] = pydantic.Field(default_factory=list)
    cross_border_transfers: list[str] = pydantic.Field(default_factory=list)
    unknown_domains: list[str] = pydantic.Field(default_factory=list)


class ThirdPartyInventory(pydantic.BaseModel):
    """Every third-party domain seen across the inspection, busiest first."""

    model_config = _CAMEL

    total_count: int = 0
    domains: list[ThirdPartyDomain] = pydantic.Field(default_factory=list)
    categories: dict[ThirdPartyCategory, int] = pydantic.Field(
        default_factory=lambda: {c: 0 for c in ("advertising", "analytics", "social", "cdn", "functional", "unknown")}
    )
    risk_assessment: ThirdPartyRiskAssessment = pydantic.Field(default_factory=ThirdPartyRiskAssessment)
