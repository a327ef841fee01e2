"""
Known cookie, tag and CMP patterns used for classification.

Compiled regex tables that map cookie names to consent
categories, request URLs to tracking tags, and script hosts to
consent-management platforms.
"""

from __future__ import annotations

import re

# ============================================================================
# Cookie Classification
# ============================================================================

# Exact cookie names with a well-known purpose.
KNOWN_COOKIES: dict[str, str] = {
    # Necessary
    "PHPSESSID": "necessary",
    "JSESSIONID": "necessary",
    "ASP.NET_SessionId": "necessary",
    "csrftoken": "necessary",
    "_csrf": "necessary",
    "XSRF-TOKEN": "necessary",
    "sessionid": "necessary",
    "__cf_bm": "necessary",
    "cf_clearance": "necessary",
    # Analytics
    "_ga": "analytics",
    "_gid": "analytics",
    "_gat": "analytics",
    "__utma": "analytics",
    "__utmb": "analytics",
    "__utmc": "analytics",
    "__utmz": "analytics",
    "_hjid": "analytics",
    "_hjSessionUser": "analytics",
    "_clck": "analytics",
    "_clsk": "analytics",
    "_pk_id": "analytics",
    "_pk_ses": "analytics",
    "amplitude_id": "analytics",
    # Marketing
    "_fbp": "marketing",
    "_fbc": "marketing",
    "fr": "marketing",
    "_gcl_au": "marketing",
    "_gcl_aw": "marketing",
    "IDE": "marketing",
    "DSID": "marketing",
    "NID": "marketing",
    "_pin_unauth": "marketing",
    "_ttp": "marketing",
    "_uetsid": "marketing",
    "_uetvid": "marketing",
    "MUID": "marketing",
    "lidc": "marketing",
    "bcookie": "marketing",
    "li_sugr": "marketing",
    "personalization_id": "marketing",
    "guest_id": "marketing",
    # Functional
    "lang": "functional",
    "locale": "functional",
    "timezone": "functional",
    "currency": "functional",
    "wp-wpml_current_language": "functional",
}

# Name patterns, checked in order after the exact map.
COOKIE_NAME_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^_ga_[A-Z0-9]+$", re.I), "analytics"),
    (re.compile(r"^_gat_", re.I), "analytics"),
    (re.compile(r"^__utm", re.I), "analytics"),
    (re.compile(r"^_hj", re.I), "analytics"),
    (re.compile(r"^_pk_", re.I), "analytics"),
    (re.compile(r"^(amplitude|mp_|mixpanel|ajs_)", re.I), "analytics"),
    (re.compile(r"^_gcl", re.I), "marketing"),
    (re.compile(r"^_fb", re.I), "marketing"),
    (re.compile(r"^_tt_|^_ttp", re.I), "marketing"),
    (re.compile(r"^_uet", re.I), "marketing"),
    (re.compile(r"^_pin", re.I), "marketing"),
    (re.compile(r"^_rdt_", re.I), "marketing"),
    (re.compile(r"^(__gads|__gpi)$", re.I), "marketing"),
    (re.compile(r"criteo|adroll|taboola|outbrain", re.I), "marketing"),
    (re.compile(r"^(wordpress_logged_in|wp-settings)", re.I), "necessary"),
    (re.compile(r"sess(ion)?(id)?$", re.I), "necessary"),
    (re.compile(r"csrf|xsrf", re.I), "necessary"),
    (re.compile(r"^(lang|locale|language)", re.I), "functional"),
]

# Cookies that store the visitor's consent decision.  Setting one
# is required to honour the decision, so they are never counted
# as tracking.
CONSENT_STATE_COOKIE_PATTERNS: list[re.Pattern[str]] = [
    # IAB TCF
    re.compile(r"^euconsent", re.I),
    re.compile(r"^eupubconsent", re.I),
    re.compile(r"^addtl_consent$", re.I),
    re.compile(r"^IABTCF_", re.I),
    re.compile(r"^__tcfconsent$", re.I),
    re.compile(r"^usprivacy$", re.I),
    # OneTrust
    re.compile(r"^OptanonConsent$", re.I),
    re.compile(r"^OptanonAlertBoxClosed$", re.I),
    # Cookiebot
    re.compile(r"^CookieConsent$", re.I),
    # Usercentrics
    re.compile(r"^uc_", re.I),
    # Real Cookie Banner
    re.compile(r"^real_cookie_banner", re.I),
    # Didomi
    re.compile(r"^didomi", re.I),
    # Borlabs, Complianz, CookieYes
    re.compile(r"^borlabs-cookie$", re.I),
    re.compile(r"^cmplz_", re.I),
    re.compile(r"^cookieyes-consent$", re.I),
    # Sourcepoint, TrustArc
    re.compile(r"^consentUUID$", re.I),
    re.compile(r"^notice_(behavior|preferences)$", re.I),
    # Google
    re.compile(r"^SOCS$", re.I),
]


def _combine(patterns: list[re.Pattern[str]]) -> re.Pattern[str]:
    """Merge a list of compiled patterns into one alternation regex."""
    return re.compile("|".join(f"(?:{p.pattern})" for p in patterns), re.IGNORECASE)


CONSENT_STATE_COOKIE_COMBINED: re.Pattern[str] = _combine(CONSENT_STATE_COOKIE_PATTERNS)

# ============================================================================
# Tracking Requests
# ============================================================================

# Beacon endpoints whose presence means the tag actually fired,
# as opposed to its library merely being downloaded.
TAG_BEACON_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("Google Analytics", re.compile(r"google-analytics\.com/(g/)?collect|analytics\.google\.com/g/collect", re.I)),
    ("Google Ads", re.compile(r"googleadservices\.com/pagead/conversion|googleads\.g\.doubleclick\.net", re.I)),
    ("DoubleClick", re.compile(r"(ad|stats)\.doubleclick\.net", re.I)),
    ("Meta Pixel", re.compile(r"facebook\.com/tr[/?]", re.I)),
    ("LinkedIn Insight", re.compile(r"px\.ads\.linkedin\.com|linkedin\.com/px", re.I)),
    ("TikTok Pixel", re.compile(r"analytics\.tiktok\.com/api", re.I)),
    ("Microsoft Clarity", re.compile(r"clarity\.ms/collect", re.I)),
    ("Bing Ads", re.compile(r"bat\.bing\.com/action", re.I)),
    ("Hotjar", re.compile(r"(in|vc|metrics)\.hotjar\.(com|io)", re.I)),
    ("Pinterest Tag", re.compile(r"ct\.pinterest\.com", re.I)),
    ("Twitter Pixel", re.compile(r"analytics\.twitter\.com|t\.co/i/adsct", re.I)),
    ("Snapchat Pixel", re.compile(r"tr\.snapchat\.com", re.I)),
    ("Criteo", re.compile(r"(sslwidget|dis)\.criteo\.com", re.I)),
    ("Adobe Analytics", re.compile(r"\.omtrdc\.net/b/ss", re.I)),
    ("Matomo", re.compile(r"matomo\.php|piwik\.php", re.I)),
]

# Known services, matched against page content and request URLs.
OTHER_TRACKING_SERVICES: list[tuple[str, str, tuple[str, ...]]] = [
    ("Hotjar", "analytics", ("static.hotjar.com", "hotjar.com")),
    ("Microsoft Clarity", "analytics", ("clarity.ms",)),
    ("Pinterest Tag", "marketing", ("pintrk", "s.pinimg.com/ct")),
    ("Twitter Pixel", "marketing", ("static.ads-twitter.com", "analytics.twitter.com")),
    ("Snapchat Pixel", "marketing", ("sc-static.net/scevent",)),
    ("Criteo", "marketing", ("static.criteo.net", "criteo.com")),
    ("Adobe Analytics", "analytics", ("omtrdc.net", "adobedtm.com")),
    ("Matomo", "analytics", ("matomo.js", "piwik.js")),
    ("HubSpot", "marketing", ("js.hs-scripts.com", "js.hsforms.net")),
    ("Segment", "analytics", ("cdn.segment.com", "api.segment.io")),
    ("Mixpanel", "analytics", ("cdn.mxpnl.com",)),
    ("Amplitude", "analytics", ("cdn.amplitude.com",)),
    ("FullStory", "analytics", ("fullstory.com",)),
    ("Mouseflow", "analytics", ("mouseflow.com",)),
    ("Taboola", "marketing", ("cdn.taboola.com",)),
    ("Outbrain", "marketing", ("outbrain.com",)),
    ("AdRoll", "marketing", ("adroll.com",)),
    ("Bing Ads", "marketing", ("bat.bing.com",)),
]

# ============================================================================
# CMP Script Hosts
# ============================================================================

CMP_SCRIPT_DOMAINS: list[tuple[str, str]] = [
    ("consent.cookiebot.com", "Cookiebot"),
    ("cookiebot.com", "Cookiebot"),
    ("cdn.cookielaw.org", "OneTrust"),
    ("onetrust.com", "OneTrust"),
    ("app.usercentrics.eu", "Usercentrics"),
    ("usercentrics.eu", "Usercentrics"),
    ("privacy-mgmt.com", "Sourcepoint"),
    ("quantcast.mgr.consensu.org", "Quantcast"),
    ("quantcast.com", "Quantcast"),
    ("sdk.privacy-center.org", "Didomi"),
    ("didomi.io", "Didomi"),
    ("consent-manager.trustarc.com", "TrustArc"),
    ("cdn.iubenda.com", "Iubenda"),
    ("app.termly.io", "Termly"),
    ("cmp.osano.com", "Osano"),
    ("cdn-cookieyes.com", "CookieYes"),
    ("klaro.org", "Klaro"),
    ("delivery.consentmanager.net", "Consentmanager"),
    ("consentmanager.net", "Consentmanager"),
    ("/real-cookie-banner/", "Real Cookie Banner"),
    ("/borlabs-cookie/", "Borlabs Cookie"),
    ("/complianz-gdpr/", "Complianz"),
]

# ============================================================================
# Third-Party Domains
# ============================================================================

# Registrable domain -> (category, company, country, EU-based).
KNOWN_THIRD_PARTY_DOMAINS: dict[str, tuple[str, str, str, bool]] = {
    # Advertising
    "doubleclick.net": ("advertising", "Google", "US", False),
    "googlesyndication.com": ("advertising", "Google", "US", False),
    "googleadservices.com": ("advertising", "Google", "US", False),
    "facebook.com": ("advertising", "Meta", "US", False),
    "facebook.net": ("advertising", "Meta", "US", False),
    "licdn.com": ("advertising", "LinkedIn/Microsoft", "US", False),
    "linkedin.com": ("advertising", "LinkedIn/Microsoft", "US", False),
    "ads-twitter.com": ("advertising", "X/Twitter", "US", False),
    "pinterest.com": ("advertising", "Pinterest", "US", False),
    "pinimg.com": ("advertising", "Pinterest", "US", False),
    "snapchat.com": ("advertising", "Snap Inc.", "US", False),
    "sc-static.net": ("advertising", "Snap Inc.", "US", False),
    "criteo.com": ("advertising", "Criteo", "FR", True),
    "criteo.net": ("advertising", "Criteo", "FR", True),
    "bing.com": ("advertising", "Microsoft", "US", False),
    "taboola.com": ("advertising", "Taboola", "US", False),
    "outbrain.com": ("advertising", "Outbrain", "US", False),
    "adroll.com": ("advertising", "AdRoll", "US", False),
    "amazon-adsystem.com": ("advertising", "Amazon", "US", False),
    "adsrvr.org": ("advertising", "The Trade Desk", "US", False),
    "demdex.net": ("advertising", "Adobe", "US", False),
    # Analytics
    "google-analytics.com": ("analytics", "Google", "US", False),
    "googletagmanager.com": ("analytics", "Google", "US", False),
    "omtrdc.net": ("analytics", "Adobe", "US", False),
    "hotjar.com": ("analytics", "Hotjar", "MT", True),
    "clarity.ms": ("analytics", "Microsoft", "US", False),
    "mouseflow.com": ("analytics", "Mouseflow", "DK", True),
    "fullstory.com": ("analytics", "FullStory", "US", False),
    "heap.io": ("analytics", "Heap", "US", False),
    "amplitude.com": ("analytics", "Amplitude", "US", False),
    "mixpanel.com": ("analytics", "Mixpanel", "US", False),
    "segment.io": ("analytics", "Segment/Twilio", "US", False),
    "segment.com": ("analytics", "Segment/Twilio", "US", False),
    "plausible.io": ("analytics", "Plausible", "EU", True),
    "matomo.cloud": ("analytics", "Matomo", "EU", True),
    "newrelic.com": ("analytics", "New Relic", "US", False),
    "sentry.io": ("analytics", "Sentry", "US", False),
    # Social
    "twitter.com": ("social", "X/Twitter", "US", False),
    "instagram.com": ("social", "Meta", "US", False),
    "youtube.com": ("social", "Google", "US", False),
    "youtu.be": ("social", "Google", "US", False),
    "vimeo.com": ("social", "Vimeo", "US", False),
    "tiktok.com": ("social", "TikTok/ByteDance", "CN", False),
    # CDN
    "cloudflare.com": ("cdn", "Cloudflare", "US", False),
    "jsdelivr.net": ("cdn", "jsDelivr", "EU", True),
    "unpkg.com": ("cdn", "Cloudflare", "US", False),
    "bootstrapcdn.com": ("cdn", "StackPath", "US", False),
    "googleapis.com": ("cdn", "Google", "US", False),
    "gstatic.com": ("cdn", "Google", "US", False),
    "akamaihd.net": ("cdn", "Akamai", "US", False),
    "akamai.net": ("cdn", "Akamai", "US", False),
    "fastly.net": ("cdn", "Fastly", "US", False),
    "stackpath.com": ("cdn", "StackPath", "US", False),
    # Functional
    "cookiebot.com": ("functional", "Cookiebot", "DK", True),
    "cookielaw.org": ("functional", "OneTrust", "US", False),
    "onetrust.com": ("functional", "OneTrust", "US", False),
    "usercentrics.eu": ("functional", "Usercentrics", "DE", True),
    "intercom.io": ("functional", "Intercom", "US", False),
    "zendesk.com": ("functional", "Zendesk", "US", False),
    "hubspot.com": ("functional", "HubSpot", "US", False),
    "hs-scripts.com": ("functional", "HubSpot", "US", False),
    "recaptcha.net": ("functional", "Google", "US", False),
    "hcaptcha.com": ("functional", "hCaptcha", "US", False),
    "stripe.com": ("functional", "Stripe", "US", False),
    "paypal.com": ("functional", "PayPal", "US", False),
}

# Substring fallbacks for unlisted domains of the largest operators.
THIRD_PARTY_DOMAIN_HINTS: list[tuple[str, tuple[str, str, str, bool]]] = [
    ("google", ("analytics", "Google", "US", False)),
    ("facebook", ("advertising", "Meta", "US", False)),
    ("amazon", ("advertising", "Amazon", "US", False)),
    ("microsoft", ("functional", "Microsoft", "US", False)),
    ("adobe", ("analytics", "Adobe", "US", False)),
]

# Data transfers to these countries are flagged as high risk.
HIGH_RISK_COUNTRIES: frozenset[str] = frozenset({"CN", "RU"})
