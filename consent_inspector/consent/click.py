"""
DOM button fallback for consent decisions.

Used when none of the detected vendor's API entry points worked,
or when no vendor was detected at all.  Tries the known CMP
button selectors, then visible buttons whose label matches the
accept or reject patterns.  An element is clicked only if doing
so cannot navigate the page away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from consent_inspector.consent import constants
from consent_inspector.models import consent
from consent_inspector.utils import errors, logger

if TYPE_CHECKING:
    from consent_inspector.browser.session import BrowserSession

log = logger.create_logger("Consent-Click")

CLICK_SCRIPT = """({ selectors, patterns }) => {
    const visible = (el) => {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
    };
    // Clicking must not navigate: buttons, JS handlers and
    // "#"/"javascript:" links are fine, real hrefs are not.
    const safe = (el) => {
        const tag = el.tagName.toLowerCase();
        if (tag === 'button' || el.type === 'submit' || el.type === 'button') return true;
        if (el.hasAttribute('onclick')) return true;
        const href = el.getAttribute('href');
        if (href === null) return true;
        const trimmed = href.trim();
        return trimmed === '' || trimmed.startsWith('#') || /^javascript:/i.test(trimmed);
    };
    for (const selector of selectors) {
        let el = null;
        try {
            el = document.querySelector(selector);
        } catch (e) {
            continue;
        }
        if (el && visible(el) && safe(el)) {
            el.click();
            return { clicked: true, via: selector };
        }
    }
    const candidates = Array.from(document.querySelectorAll(
        'button, [role="button"], a, input[type="button"], input[type="submit"]',
    ));
    for (const pattern of patterns) {
        const re = new RegExp(pattern, 'i');
        for (const el of candidates) {
            const label = (el.innerText || el.value || el.getAttribute('aria-label') || '').trim();
            if (label && label.length <= 60 && re.test(label) && visible(el) && safe(el)) {
                el.click();
                return { clicked: true, via: 'text:' + label };
            }
        }
    }
    return { clicked: false, via: null };
}"""


async def click_decision_button(session: BrowserSession, action: consent.ConsentAction) -> consent.SimulationAttempt:
    """Click the page's accept-all or reject-all button.

    Returns:
        The attempt, with ``method`` set to ``"dom:<selector>"``
        (or ``"dom:text:<label>"``) when a button was clicked.
    """
    if action == "accept":
        selectors, patterns = constants.ACCEPT_BUTTON_SELECTORS, constants.ACCEPT_TEXT_PATTERNS
    else:
        selectors, patterns = constants.REJECT_BUTTON_SELECTORS, constants.REJECT_TEXT_PATTERNS

    try:
        result = await session.evaluate(CLICK_SCRIPT, {"selectors": list(selectors), "patterns": list(patterns)})
    except errors.ProbeEvaluationError as exc:
        log.debug("Button fallback failed", {"action": action, "error": str(exc)})
        return consent.SimulationAttempt(method="dom", ok=False, error=str(exc))

    if result and result.get("clicked"):
        method = f"dom:{result.get('via')}"
        log.success("Clicked consent button", {"action": action, "via": result.get("via")})
        return consent.SimulationAttempt(method=method, ok=True)

    log.debug("No consent button found", {"action": action})
    return consent.SimulationAttempt(method="dom", ok=False, error="no matching button")
