"""
Runtime configuration for the inspection engine.

Centralises environment variable names and defaults for the
browser session, navigation timing and logging.  Uses
``pydantic_settings.BaseSettings`` for environment binding,
type coercion and validation.
"""

from __future__ import annotations

import functools

import pydantic
import pydantic_settings

from consent_inspector.models import browser

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class InspectorSettings(pydantic_settings.BaseSettings):
    """Engine settings loaded from the environment.

    All durations are in milliseconds.

    Attributes:
        budget_ms: Hard wall-clock budget for one inspection.
        navigation_timeout_ms: Bound on each "network idle" wait.
        settle_delay_ms: Pause after navigation so late CMP
            scripts can initialise.
        action_settle_ms: Pause after a simulated decision so
            the page can react (set or drop cookies).
        evaluate_timeout_ms: Bound on each in-page script call.
    """

    model_config = pydantic_settings.SettingsConfigDict(extra="ignore")

    budget_ms: int = pydantic.Field(default=120_000, gt=0, validation_alias="INSPECT_BUDGET_MS")
    navigation_timeout_ms: int = pydantic.Field(default=25_000, gt=0, validation_alias="INSPECT_NAVIGATION_TIMEOUT_MS")
    settle_delay_ms: int = pydantic.Field(default=3_500, ge=0, validation_alias="INSPECT_SETTLE_DELAY_MS")
    action_settle_ms: int = pydantic.Field(default=2_000, ge=0, validation_alias="INSPECT_ACTION_SETTLE_MS")
    evaluate_timeout_ms: int = pydantic.Field(default=5_000, gt=0, validation_alias="INSPECT_EVALUATE_TIMEOUT_MS")
    headless: bool = pydantic.Field(default=True, validation_alias="INSPECT_HEADLESS")
    user_agent: str = pydantic.Field(default=DEFAULT_USER_AGENT, validation_alias="INSPECT_USER_AGENT")
    viewport_width: int = pydantic.Field(default=1920, gt=0, validation_alias="INSPECT_VIEWPORT_WIDTH")
    viewport_height: int = pydantic.Field(default=1080, gt=0, validation_alias="INSPECT_VIEWPORT_HEIGHT")
    locale: str = pydantic.Field(default="de-DE", validation_alias="INSPECT_LOCALE")
    timezone_id: str = pydantic.Field(default="Europe/Berlin", validation_alias="INSPECT_TIMEZONE")
    log_level: str = pydantic.Field(default="info", validation_alias="LOG_LEVEL")
    write_to_file: bool = pydantic.Field(default=False, validation_alias="WRITE_TO_FILE")
    log_dir: str = pydantic.Field(default=".logs", validation_alias="LOG_DIR")

    @property
    def debug_logging(self) -> bool:
        return self.log_level.lower() == "debug"


@functools.lru_cache(maxsize=1)
def get_settings() -> InspectorSettings:
    """Get the process-wide settings (read once from the environment)."""
    return InspectorSettings()


class InspectOptions(pydantic.BaseModel):
    """Per-call overrides accepted by :func:`consent_inspector.inspect`."""

    model_config = pydantic.ConfigDict(frozen=True)

    budget_ms: int = pydantic.Field(gt=0)
    user_agent: str
    viewport: browser.ViewportSize
    navigation_timeout_ms: int = pydantic.Field(gt=0)
    settle_delay_ms: int = pydantic.Field(ge=0)
    action_settle_ms: int = pydantic.Field(ge=0)
    evaluate_timeout_ms: int = pydantic.Field(gt=0)
    headless: bool = True
    locale: str = "de-DE"
    timezone_id: str = "Europe/Berlin"

    @classmethod
    def from_settings(cls, settings: InspectorSettings | None = None, **overrides: object) -> InspectOptions:
        """Build options from *settings*, applying keyword *overrides*."""
        settings = settings or get_settings()
        values: dict[str, object] = {
            "budget_ms": settings.budget_ms,
            "user_agent": settings.user_agent,
            "viewport": browser.ViewportSize(width=settings.viewport_width, height=settings.viewport_height),
            "navigation_timeout_ms": settings.navigation_timeout_ms,
            "settle_delay_ms": settings.settle_delay_ms,
            "action_settle_ms": settings.action_settle_ms,
            "evaluate_timeout_ms": settings.evaluate_timeout_ms,
            "headless": settings.headless,
            "locale": settings.locale,
            "timezone_id": settings.timezone_id,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
