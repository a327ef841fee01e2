"""Tests for consent_inspector.analysis.tracking_tags — tag inventory."""

from __future__ import annotations

from consent_inspector.analysis import tracking_tags
from consent_inspector.models import tracking_data

GA4_PAGE = """
<script async src="https://www.googletagmanager.com/gtag/js?id=G-ABCDEF1234"></script>
<script>gtag('config', 'G-ABCDEF1234'); gtag('config', 'G-ZYXWVU9876');</script>
"""


def _requests(*urls: str) -> tracking_data.RequestSnapshot:
    return tracking_data.RequestSnapshot(
        phase="baseline",
        requests=tuple(tracking_data.RequestRecord(url=u, host="x") for u in urls),
    )


class TestGoogleAnalytics:
    def test_multiple_ga4_ids(self) -> None:
        inventory = tracking_tags.analyze(GA4_PAGE)
        ga = inventory.google_analytics
        assert ga.detected is True
        assert ga.version == "GA4"
        assert ga.measurement_ids == ["G-ABCDEF1234", "G-ZYXWVU9876"]
        assert ga.has_multiple_ids is True
        assert ga.has_legacy_ua is False
        assert inventory.has_google_tags is True

    def test_legacy_ua_and_ga4(self) -> None:
        ga = tracking_tags.analyze("ga('create', 'UA-1234567-1'); gtag('config', 'G-ABCDEF1234');").google_analytics
        assert ga.version == "both"
        assert ga.has_legacy_ua is True

    def test_id_from_beacon(self) -> None:
        ga = tracking_tags.analyze("", ["https://region1.google-analytics.com/g/collect?v=2&tid=G-QWERTY1234"]).google_analytics
        assert ga.detected is True
        assert ga.measurement_ids == ["G-QWERTY1234"]

    def test_window_flag_only(self) -> None:
        assert tracking_tags.analyze("", window_flags={"hasGtag": True}).google_analytics.detected is True


class TestOtherTags:
    def test_tag_manager_containers(self) -> None:
        gtm = tracking_tags.analyze("<script src='https://www.googletagmanager.com/gtm.js?id=GTM-ABC1234'></script>").google_tag_manager
        assert gtm.detected is True
        assert gtm.container_id == "GTM-ABC1234"

    def test_meta_pixel_id(self) -> None:
        pixel = tracking_tags.analyze("fbq('init', '123456789012345');", window_flags={"hasFbq": True}).meta_pixel
        assert pixel.detected is True
        assert pixel.pixel_id == "123456789012345"

    def test_linkedin_and_tiktok(self) -> None:
        content = '_linkedin_partner_id = "98765"; ttq.load("C1ABCDEF");'
        inventory = tracking_tags.analyze(content, ["https://analytics.tiktok.com/i18n/pixel/events.js"])
        assert inventory.linkedin_insight.pixel_id == "98765"
        assert inventory.tiktok_pixel.detected is True
        assert inventory.tiktok_pixel.pixel_id == "C1ABCDEF"

    def test_other_services(self) -> None:
        inventory = tracking_tags.analyze("", ["https://static.hotjar.com/c/hotjar-1.js", "https://cdn.taboola.com/libtrc/x.js"])
        assert [(t.name, t.category) for t in inventory.other] == [("Hotjar", "analytics"), ("Taboola", "marketing")]

    def test_clean_page(self) -> None:
        inventory = tracking_tags.analyze("<html><body>Hello</body></html>")
        assert inventory.has_tags is False


class TestMarketingParameters:
    def test_click_ids_and_utm(self) -> None:
        params = tracking_tags.marketing_parameters(["https://example.com/?gclid=abc&utm_source=news", "https://x.com/?fbclid=1"])
        assert params.found() == ["gclid", "fbclid", "utm"]
        assert params.has_any is True

    def test_page_url_is_checked(self) -> None:
        inventory = tracking_tags.analyze("", page_url="https://example.com/?msclkid=42")
        assert inventory.marketing_parameters.msclkid is True


class TestFiredTags:
    def test_beacons_in_pattern_order(self) -> None:
        requests = _requests(
            "https://www.facebook.com/tr/?id=1&ev=PageView",
            "https://www.google-analytics.com/g/collect?v=2",
            "https://www.googletagmanager.com/gtag/js?id=G-1",
        )
        assert tracking_tags.fired_tags(requests) == ["Google Analytics", "Meta Pixel"]

    def test_library_download_is_not_a_beacon(self) -> None:
        assert tracking_tags.fired_tags(_requests("https://connect.facebook.net/en_US/fbevents.js")) == []
