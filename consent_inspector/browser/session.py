"""
Browser session management for consent inspections.

Each :class:`BrowserSession` owns one Chromium process, context
and page bound to a single target URL.  :class:`SessionManager`
hands sessions out as async context managers so the browser is
released on every exit path, including cancellation.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncIterator, Callable
from typing import Any

from playwright import async_api

from consent_inspector import config
from consent_inspector.browser import observer
from consent_inspector.models import browser, tracking_data
from consent_inspector.utils import errors, logger
from consent_inspector.utils import url as url_mod

log = logger.create_logger("BrowserSession")

# ============================================================================
# Constants
# ============================================================================

MAX_TRACKED_REQUESTS = 5000

_LAUNCH_ARGS = [
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-blink-features=AutomationControlled",
    "--disable-infobars",
    "--disable-extensions",
]

# Hide the most common automation tells so CMPs behave as for a visitor.
_INIT_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
    if (!window.chrome) {
        window.chrome = { runtime: {} };
    }
"""


class BrowserSession:
    """
    An isolated browser bound to one target URL for one phase.
    """

    def __init__(self, options: config.InspectOptions, target_url: str, budget_ms: int | None = None) -> None:
        self.options = options
        self.target_url = target_url
        self.started_at = time.monotonic()
        self.deadline = self.started_at + (budget_ms if budget_ms is not None else options.budget_ms) / 1000
        self.status: browser.SessionStatus = "running"

        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None
        self._context: async_api.BrowserContext | None = None
        self._page: async_api.Page | None = None
        self._closed = False

        self._tracked_requests: list[tracking_data.RequestRecord] = []

    # ==========================================================================
    # State Getters
    # ==========================================================================

    @property
    def remaining_ms(self) -> int:
        """Milliseconds left before this session's budget runs out."""
        return max(0, int((self.deadline - time.monotonic()) * 1000))

    @property
    def closed(self) -> bool:
        return self._closed

    def get_tracked_requests(self) -> list[tracking_data.RequestRecord]:
        """Return a copy of the requests captured so far."""
        return list(self._tracked_requests)

    # ==========================================================================
    # Browser Lifecycle
    # ==========================================================================

    async def launch(self) -> None:
        """Start Chromium and open a fresh context and page.

        Raises:
            errors.LaunchFailure: If any part of the browser could
                not be started.
        """
        log.info("Launching browser", {"headless": self.options.headless, "viewport": self.options.viewport.model_dump()})
        try:
            self._playwright = await async_api.async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.options.headless, args=_LAUNCH_ARGS)
            self._context = await self._browser.new_context(
                user_agent=self.options.user_agent,
                viewport={"width": self.options.viewport.width, "height": self.options.viewport.height},
                locale=self.options.locale,
                timezone_id=self.options.timezone_id,
                java_script_enabled=True,
            )
            await self._context.add_init_script(_INIT_SCRIPT)
            self._page = await self._context.new_page()
        except Exception as exc:
            raise errors.LaunchFailure(f"Browser launch failed: {errors.get_error_message(exc)}") from exc

        self._page.on("request", self._on_request)
        log.debug("Browser launched")

    def _on_request(self, request: async_api.Request) -> None:
        """Record an outgoing request."""
        if len(self._tracked_requests) >= MAX_TRACKED_REQUESTS:
            return
        request_url = request.url
        if request_url.startswith(("data:", "blob:")):
            return
        self._tracked_requests.append(
            tracking_data.RequestRecord(
                url=request_url,
                host=url_mod.extract_domain(request_url),
                method=request.method,
                resource_type=request.resource_type,
                param_names=url_mod.query_param_names(request_url),
                is_third_party=url_mod.is_third_party(request_url, self.target_url),
            )
        )

    # ==========================================================================
    # Navigation
    # ==========================================================================

    async def navigate(self, timeout_ms: int) -> browser.NavigationResult:
        """Load the target URL and wait for the network to settle.

        Raises:
            errors.NavigationTimeout: If the page did not settle within
                *timeout_ms* or could not be reached at all.
        """
        if not self._page:
            raise RuntimeError("No browser session active")

        log.debug("Navigating", {"url": self.target_url, "timeout": timeout_ms})
        try:
            response = await self._page.goto(self.target_url, wait_until="networkidle", timeout=timeout_ms)
        except async_api.TimeoutError as exc:
            raise errors.NavigationTimeout(f"Page did not settle within {timeout_ms}ms") from exc
        except async_api.Error as exc:
            raise errors.NavigationTimeout(f"Navigation failed: {errors.get_error_message(exc)}") from exc

        result = browser.NavigationResult(
            success=response is None or response.ok,
            status_code=response.status if response else None,
            status_text=response.status_text if response else None,
            final_url=self._page.url,
        )
        if not result.success:
            log.warn("Page returned an error status", {"statusCode": result.status_code})
        return result

    async def settle(self, ms: int) -> None:
        """Give late-loading scripts *ms* to run."""
        await asyncio.sleep(ms / 1000)

    # ==========================================================================
    # Page Access
    # ==========================================================================

    async def evaluate(self, script: str, arg: Any = None, *, timeout_ms: int | None = None) -> Any:
        """Run *script* in the page and return its (JSON-able) result.

        Every call is bounded by its own timeout.

        Raises:
            errors.ProbeEvaluationError: If the script threw, timed
                out, or the page is gone.
        """
        if not self._page:
            raise errors.ProbeEvaluationError("No page to evaluate in")
        timeout_ms = timeout_ms or self.options.evaluate_timeout_ms
        try:
            async with asyncio.timeout(timeout_ms / 1000):
                return await self._page.evaluate(script, arg)
        except TimeoutError as exc:
            raise errors.ProbeEvaluationError(f"Script timed out after {timeout_ms}ms", script=script) from exc
        except async_api.Error as exc:
            raise errors.ProbeEvaluationError(errors.get_error_message(exc), script=script) from exc

    async def content(self) -> str:
        """Return the current page HTML."""
        if not self._page:
            raise errors.ProbeEvaluationError("No page to read")
        try:
            return await self._page.content()
        except async_api.Error as exc:
            raise errors.ProbeEvaluationError(errors.get_error_message(exc)) from exc

    async def read_cookies(self) -> list[dict[str, Any]]:
        """Return the raw cookie jar of the context."""
        if not self._context:
            return []
        try:
            return [dict(c) for c in await self._context.cookies()]
        except async_api.Error as exc:
            raise errors.ProbeEvaluationError(errors.get_error_message(exc)) from exc

    async def clear_cookies(self) -> None:
        """Empty the context cookie jar."""
        if not self._context:
            return
        try:
            await self._context.clear_cookies()
        except async_api.Error as exc:
            raise errors.ProbeEvaluationError(errors.get_error_message(exc)) from exc

    # ==========================================================================
    # Cleanup
    # ==========================================================================

    async def close(self) -> None:
        """Close the browser and release all resources.

        Safe to call on a partially launched session; repeated
        calls are no-ops.
        """
        if self._closed:
            return
        self._closed = True
        log.debug("Closing browser session")

        if self._page:
            self._page.remove_listener("request", self._on_request)
            self._page = None

        if self._context:
            try:
                await self._context.close()
            except Exception as exc:
                log.debug("Context close error (non-fatal)", {"error": str(exc)})
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None

        log.debug("Browser session closed", {"status": self.status})


SessionFactory = Callable[[config.InspectOptions, str, int], BrowserSession]


class SessionManager:
    """Opens fresh, navigated browser sessions and guarantees their teardown."""

    def __init__(self, options: config.InspectOptions, session_factory: SessionFactory = BrowserSession) -> None:
        self._options = options
        self._session_factory = session_factory

    @contextlib.asynccontextmanager
    async def open(self, url: str, *, budget_ms: int) -> AsyncIterator[BrowserSession]:
        """Launch, clear cookies, navigate and settle, then yield the session.

        The session is closed exactly once when the block exits,
        whether it completed, raised, timed out or was cancelled.

        Raises:
            errors.LaunchFailure: If the browser could not start.
            errors.NavigationTimeout: If the page did not settle.
        """
        session = self._session_factory(self._options, url, budget_ms)
        try:
            await session.launch()
            await observer.clear_cookies(session)
            await session.navigate(timeout_ms=max(1, min(self._options.navigation_timeout_ms, session.remaining_ms)))
            await session.settle(self._options.settle_delay_ms)
            yield session
        except (errors.NavigationTimeout, TimeoutError):
            session.status = "timed-out"
            raise
        except asyncio.CancelledError:
            # The overall deadline cancels the phase once the session budget is spent.
            session.status = "timed-out" if session.remaining_ms == 0 else "failed"
            raise
        except BaseException:
            session.status = "failed"
            raise
        else:
            session.status = "completed"
        finally:
            await session.close()
