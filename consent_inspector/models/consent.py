"""Pydantic models for CMP detection, consent simulation and consent signals."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

import pydantic

from consent_inspector.utils import serialization

ConsentAction = Literal["accept", "reject"]

# State a CMP reports about the visitor's decision.
CmpDecision = Literal["accepted", "rejected", "partial", "none", "unknown"]

ConsentParamState = Literal["granted", "denied", "absent"]

ConsentModeVersion = Literal["v1", "v2"]

CONSENT_MODE_PARAMETERS: tuple[str, ...] = (
    "ad_storage",
    "analytics_storage",
    "ad_user_data",
    "ad_personalization",
    "functionality_storage",
    "personalization_storage",
    "security_storage",
)


class CmpDetection(pydantic.BaseModel):
    """Which CMP was found on the page, if any."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)

    detected: bool
    vendor: str | None = None
    provider: str | None = None
    version: str | None = None
    tc_string: str | None = None
    tc_string_valid: bool = False
    gdpr_applies: bool | None = None

    @classmethod
    def not_detected(cls) -> CmpDetection:
        """Return the result for a page without any known CMP."""
        return cls(detected=False)


class CookieBannerResult(CmpDetection):
    """CMP detection enriched with how the simulated decisions went."""

    script_hint: str | None = None
    accept_simulated: bool = False
    accept_method: str | None = None
    reject_simulated: bool = False
    reject_method: str | None = None


class SimulationAttempt(pydantic.BaseModel):
    """One entry point tried while simulating a decision."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    method: str
    ok: bool
    error: str | None = None


class SimulationOutcome(pydantic.BaseModel):
    """Result of simulating "accept all" or "reject all".

    ``applied`` only means a call executed without throwing; the
    correlator decides whether the page actually changed.
    """

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    action: ConsentAction
    applied: bool
    method: str | None = None
    attempts: tuple[SimulationAttempt, ...] = ()

    @classmethod
    def not_applied(cls, action: ConsentAction, attempts: tuple[SimulationAttempt, ...] = ()) -> SimulationOutcome:
        return cls(action=action, applied=False, attempts=attempts)


class ConsentModeState(pydantic.BaseModel):
    """Google Consent Mode parameters as declared on the page."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)

    detected: bool = False
    version: ConsentModeVersion | None = None
    ad_storage: ConsentParamState = "absent"
    analytics_storage: ConsentParamState = "absent"
    ad_user_data: ConsentParamState = "absent"
    ad_personalization: ConsentParamState = "absent"
    functionality_storage: ConsentParamState = "absent"
    personalization_storage: ConsentParamState = "absent"
    security_storage: ConsentParamState = "absent"
    default_consent: dict[str, ConsentParamState] = pydantic.Field(default_factory=dict)
    update_detected: bool = False
    wait_for_update: int | None = None
    regions: list[str] = pydantic.Field(default_factory=list)

    def parameters(self) -> dict[str, ConsentParamState]:
        """Return the current value of every Consent Mode parameter."""
        return {name: getattr(self, name) for name in CONSENT_MODE_PARAMETERS}

    def missing_v2_parameters(self) -> list[str]:
        return [name for name in ("ad_user_data", "ad_personalization") if getattr(self, name) == "absent"]


class TcStringCore(pydantic.BaseModel):
    """Header fields decoded from the core segment of a TCF v2 string."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)

    version: int
    created: datetime
    last_updated: datetime
    cmp_id: int
    cmp_version: int
    consent_screen: int
    consent_language: str
    vendor_list_version: int
    policy_version: int


class TcfResult(pydantic.BaseModel):
    """IAB TCF signals found on the page."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)

    detected: bool = False
    version: str | None = None
    cmp_id: int | None = None
    cmp_name: str | None = None
    tc_string: str | None = None
    valid_tc_string: bool = False
    gdpr_applies: bool | None = None
    source: Literal["api", "cookie"] | None = None
    core: TcStringCore | None = None
