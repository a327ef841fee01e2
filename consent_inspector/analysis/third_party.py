"""
Third-party domain inventory.

Groups every third-party request by registrable domain and
annotates each domain with its operator and where that operator
is based, so transfers outside the EU stand out.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from consent_inspector.analysis import tracker_patterns
from consent_inspector.models import tracking, tracking_data
from consent_inspector.utils import logger
from consent_inspector.utils import url as url_mod

log = logger.create_logger("ThirdParty")


@dataclasses.dataclass
class _DomainStats:
    request_count: int = 0
    cookies_set: int = 0
    data_types: dict[str, None] = dataclasses.field(default_factory=dict)


def lookup_domain(domain: str) -> tuple[str, str, str, bool] | None:
    """Return ``(category, company, country, eu_based)`` for *domain*.

    Exact and parent-domain matches against the known table come
    first, then substring hints for the largest operators.
    """
    for known, info in tracker_patterns.KNOWN_THIRD_PARTY_DOMAINS.items():
        if domain == known or domain.endswith("." + known):
            return info
    for hint, info in tracker_patterns.THIRD_PARTY_DOMAIN_HINTS:
        if hint in domain:
            return info
    return None


def analyze(
    snapshots: Iterable[tracking_data.RequestSnapshot],
    cookies: Iterable[tracking_data.CookieRecord] = (),
) -> tracking.ThirdPartyInventory:
    """Build the third-party inventory from the captured requests.

    Args:
        snapshots: Request snapshots of every available phase.
            Request counts add up across phases.
        cookies: Reported cookies, counted against the domain
            that matches their cookie domain.
    """
    stats: dict[str, _DomainStats] = {}
    for snapshot in snapshots:
        for request in snapshot.requests:
            if not request.is_third_party:
                continue
            entry = stats.setdefault(url_mod.get_base_domain(request.host), _DomainStats())
            entry.request_count += 1
            entry.data_types[request.resource_type] = None

    for cookie in cookies:
        entry = stats.get(url_mod.get_base_domain(cookie.domain))
        if entry is not None:
            entry.cookies_set += 1

    inventory = tracking.ThirdPartyInventory()
    risk = inventory.risk_assessment
    domains: list[tracking.ThirdPartyDomain] = []
    for domain, entry in stats.items():
        info = lookup_domain(domain)
        category, company, country, eu_based = info if info else ("unknown", None, None, None)
        domains.append(
            tracking.ThirdPartyDomain(
                domain=domain,
                category=category,  # type: ignore[arg-type]
                request_count=entry.request_count,
                cookies_set=entry.cookies_set,
                data_types=list(entry.data_types),
                company=company,
                country=country,
                is_eu_based=eu_based,
            )
        )
        inventory.categories[category] += 1  # type: ignore[index]
        if info is None:
            risk.unknown_domains.append(domain)
            continue
        if country in tracker_patterns.HIGH_RISK_COUNTRIES:
            risk.high_risk_domains.append(domain)
        if not eu_based:
            risk.cross_border_transfers.append(domain)

    inventory.domains = sorted(domains, key=lambda d: d.request_count, reverse=True)
    inventory.total_count = len(domains)
    log.info(
        "Third-party domains",
        {"count": inventory.total_count, "crossBorder": len(risk.cross_border_transfers), "unknown": len(risk.unknown_domains)},
    )
    return inventory
