"""Pydantic models for correlator findings, issues and the final result.

:class:`AnalysisResult` is the JSON contract handed to the
hosting application; its camelCase field names must stay stable.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

import pydantic

from consent_inspector.models import consent, tracking, tracking_data
from consent_inspector.utils import serialization

Severity = Literal["error", "warning", "info"]

IssueCategory = Literal["cookie-banner", "tcf", "consent-mode", "tracking", "cookies", "general"]

PhaseStatus = Literal["completed", "timed-out", "failed", "skipped"]

AnalysisStatus = Literal["success", "error"]

SEVERITY_RANK: dict[str, int] = {"error": 0, "warning": 1, "info": 2}

_CAMEL = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True)


class Issue(pydantic.BaseModel):
    """A compliance finding."""

    model_config = pydantic.ConfigDict(alias_generator=serialization.snake_to_camel, populate_by_name=True, frozen=True)

    severity: Severity
    category: IssueCategory
    title: str
    description: str
    recommendation: str | None = None


class PhaseResult(pydantic.BaseModel):
    """Everything captured during one phase of the consent test."""

    model_config = _CAMEL

    phase: tracking_data.Phase
    status: PhaseStatus
    applied: bool | None = None
    method: str | None = None
    attempts: tuple[consent.SimulationAttempt, ...] = ()
    cmp_decision: consent.CmpDecision = "unknown"
    cookies: tracking_data.CookieSnapshot | None = None
    requests: tracking_data.RequestSnapshot | None = pydantic.Field(default=None, exclude=True)
    request_count: int = 0
    consent_mode: consent.ConsentModeState | None = None
    error: str | None = None

    @pydantic.computed_field  # type: ignore[prop-decorator]
    @property
    def available(self) -> bool:
        """Whether this phase produced data the correlator can use."""
        return self.status == "completed" and self.cookies is not None

    @classmethod
    def unavailable(cls, phase: tracking_data.Phase, status: PhaseStatus, error: str | None = None) -> PhaseResult:
        """Record a phase that produced no data."""
        return cls(phase=phase, status=status, applied=None if phase == "baseline" else False, error=error)


class PhaseSignals(pydantic.BaseModel):
    """Non-essential activity observed in one phase."""

    model_config = _CAMEL

    phase: tracking_data.Phase
    available: bool
    non_essential_cookies: list[str] = pydantic.Field(default_factory=list)
    fired_tags: list[str] = pydantic.Field(default_factory=list)
    cmp_decision: consent.CmpDecision = "unknown"

    @property
    def non_essential(self) -> set[str]:
        """Identity set of non-essential cookies and fired tags."""
        return {f"cookie:{c}" for c in self.non_essential_cookies} | {f"tag:{t}" for t in self.fired_tags}


class CorrelationFindings(pydantic.BaseModel):
    """Declared consent signals cross-checked against observed behaviour."""

    model_config = _CAMEL

    tracking_before_consent: bool = False
    tracking_before_consent_evidence: list[str] = pydantic.Field(default_factory=list)
    reject_honored: bool | None = None
    accept_effective: bool | None = None
    consent_mode_consistency: bool | None = None
    reject_claimed_but_tracking: bool = False
    mismatches: list[str] = pydantic.Field(default_factory=list)
    phases: list[PhaseSignals] = pydantic.Field(default_factory=list)


class ConsentTestResult(pydantic.BaseModel):
    """Per-phase data of the baseline/reject/accept protocol."""

    model_config = _CAMEL

    phases: list[PhaseResult]
    correlation: CorrelationFindings

    def phase(self, name: tracking_data.Phase) -> PhaseResult | None:
        return next((p for p in self.phases if p.phase == name), None)


class AnalysisResult(pydantic.BaseModel):
    """Aggregate output of one inspection."""

    model_config = _CAMEL

    url: str
    timestamp: str = pydantic.Field(default_factory=lambda: datetime.now(UTC).isoformat())
    status: AnalysisStatus
    cookie_banner: consent.CookieBannerResult
    tcf: consent.TcfResult
    google_consent_mode: consent.ConsentModeState
    tracking_tags: tracking.TrackingTagInventory
    cookies: list[tracking_data.CookieRecord]
    score: int = pydantic.Field(ge=0, le=100)
    issues: list[Issue]
    third_party_domains: tracking.ThirdPartyInventory = pydantic.Field(default_factory=tracking.ThirdPartyInventory)
    cookie_consent_test: ConsentTestResult | None = None
    error: str | None = None

    def to_json(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape consumed by the host."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def failed(cls, url: str, error: str) -> AnalysisResult:
        """Build the empty error shell used when no inspection could run."""
        return cls(
            url=url,
            status="error",
            cookie_banner=consent.CookieBannerResult(detected=False),
            tcf=consent.TcfResult(),
            google_consent_mode=consent.ConsentModeState(),
            tracking_tags=tracking.TrackingTagInventory(),
            cookies=[],
            score=0,
            issues=[
                Issue(
                    severity="error",
                    category="general",
                    title="Inspection failed",
                    description=error,
                )
            ],
            error=error,
        )
