"""Button selectors and label patterns for clicking consent dialogs.

Used by the DOM fallback when no vendor API accepted a decision.
CMP-specific selectors come first; generic ones last because
they can match unrelated page controls.
"""

from __future__ import annotations

ACCEPT_BUTTON_SELECTORS: tuple[str, ...] = (
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",  # Cookiebot
    "#CybotCookiebotDialogBodyButtonAccept",  # Cookiebot
    "#onetrust-accept-btn-handler",  # OneTrust
    "#accept-recommended-btn-handler",  # OneTrust
    '[data-testid="uc-accept-all-button"]',  # Usercentrics
    "#uc-btn-accept-banner",  # Usercentrics
    ".qc-cmp2-summary-buttons button[mode=\"primary\"]",  # Quantcast
    ".cky-btn-accept",  # CookieYes
    ".osano-cm-accept-all",  # Osano
    "#truste-consent-button",  # TrustArc
    "#didomi-notice-agree-button",  # Didomi
    ".klaro .cm-btn-accept-all",  # Klaro
    "#cmplz-accept-all",  # Complianz
    ".cmplz-btn.cmplz-accept",  # Complianz
    "#BorlabsCookieBoxButtonAccept",  # Borlabs
    ".BorlabsCookie button[data-cookie-accept-all]",  # Borlabs
    "a[data-rcb-accept-all], [data-rcb-accept-all]",  # Real Cookie Banner
    ".iubenda-cs-accept-btn",  # Iubenda
    ".t-acceptAllBtn",  # Termly
    "#cn-accept-cookie",  # Cookie Notice
    "#shopify-pc__banner__btn-accept",  # Shopify
    '[data-action="accept"]',  # Generic
    '[data-consent="accept"]',  # Generic
)

REJECT_BUTTON_SELECTORS: tuple[str, ...] = (
    "#CybotCookiebotDialogBodyButtonDecline",  # Cookiebot
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinDeclineAll",  # Cookiebot
    "#onetrust-reject-all-handler",  # OneTrust
    '[data-testid="uc-deny-all-button"]',  # Usercentrics
    "#uc-btn-deny-banner",  # Usercentrics
    ".qc-cmp2-summary-buttons button[mode=\"secondary\"]",  # Quantcast
    ".cky-btn-reject",  # CookieYes
    ".osano-cm-deny",  # Osano
    "#truste-consent-required",  # TrustArc
    "#didomi-notice-disagree-button",  # Didomi
    ".klaro .cm-btn-decline",  # Klaro
    "#cmplz-deny-all",  # Complianz
    ".cmplz-btn.cmplz-deny",  # Complianz
    "#BorlabsCookieBoxButtonDecline",  # Borlabs
    ".BorlabsCookie button[data-cookie-refuse]",  # Borlabs
    "a[data-rcb-accept-essentials], [data-rcb-accept-essentials]",  # Real Cookie Banner
    ".iubenda-cs-reject-btn",  # Iubenda
    ".t-declineAllBtn",  # Termly
    "#cn-refuse-cookie",  # Cookie Notice
    "#shopify-pc__banner__btn-decline",  # Shopify
    '[data-action="reject"]',  # Generic
    '[data-consent="reject"]',  # Generic
)

# Label regexes (JS syntax, matched case-insensitively), most
# specific first.  German labels are included because many of
# the audited sites are German.
ACCEPT_TEXT_PATTERNS: tuple[str, ...] = (
    r"^(alle )?(cookies )?akzeptieren$",
    r"^accept( all)?( cookies)?$",
    r"^allow( all)?( cookies)?$",
    r"^(alle )?zustimmen$",
    r"^(ich stimme zu|einverstanden|i agree|agree)$",
    r"^(annehmen|got it|verstanden|ok)$",
)

REJECT_TEXT_PATTERNS: tuple[str, ...] = (
    r"^(alle )?ablehnen$",
    r"^(reject|decline|deny|refuse)( all)?( cookies)?$",
    r"^nur (notwendige|essenzielle|erforderliche)( cookies)?( akzeptieren)?$",
    r"^(only|accept only) (necessary|essential)( cookies)?$",
    r"^(necessary|essential) (cookies )?only$",
    r"^(nein, danke|nicht zustimmen|nicht akzeptieren)$",
)
