"""Tests for consent_inspector.analysis.consent_mode — Consent Mode parsing."""

from __future__ import annotations

from consent_inspector.analysis import consent_mode

V2_DEFAULT = {
    "ad_storage": "denied",
    "analytics_storage": "denied",
    "ad_user_data": "denied",
    "ad_personalization": "denied",
    "wait_for_update": 500,
    "region": ["DE", "AT"],
}


class TestFromCommands:
    def test_default_then_update(self) -> None:
        state = consent_mode.from_commands(
            [
                ["consent", "default", V2_DEFAULT],
                ["config", "G-ABC", {}],
                ["consent", "update", {"analytics_storage": "granted"}],
            ]
        )
        assert state is not None
        assert state.detected is True
        assert state.version == "v2"
        assert state.analytics_storage == "granted"
        assert state.ad_storage == "denied"
        assert state.default_consent["analytics_storage"] == "denied"
        assert state.update_detected is True
        assert state.wait_for_update == 500
        assert state.regions == ["DE", "AT"]

    def test_v1_only(self) -> None:
        state = consent_mode.from_commands([["consent", "default", {"ad_storage": "denied", "analytics_storage": "denied"}]])
        assert state is not None
        assert state.version == "v1"
        assert state.missing_v2_parameters() == ["ad_user_data", "ad_personalization"]

    def test_no_consent_commands(self) -> None:
        assert consent_mode.from_commands([["js", "2024-01-01"], ["config", "G-ABC"]]) is None

    def test_ignores_unknown_values(self) -> None:
        state = consent_mode.from_commands([["consent", "default", {"ad_storage": "maybe", "analytics_storage": "granted"}]])
        assert state is not None
        assert state.ad_storage == "absent"
        assert state.analytics_storage == "granted"


class TestFromIcs:
    def test_booleans_map_to_states(self) -> None:
        state = consent_mode.from_ics(
            {
                "ad_storage": {"default": False, "update": True},
                "ad_user_data": {"default": False},
            }
        )
        assert state is not None
        assert state.ad_storage == "granted"
        assert state.ad_user_data == "denied"
        assert state.version == "v2"

    def test_empty(self) -> None:
        assert consent_mode.from_ics({}) is None


class TestFromContent:
    def test_parses_gtag_calls(self) -> None:
        html = """
        <script>
          gtag('consent', 'default', {'ad_storage': 'denied', 'analytics_storage': 'denied', 'wait_for_update': 2000});
          gtag('consent', 'update', {'ad_storage': 'granted'});
        </script>
        """
        state = consent_mode.from_content(html)
        assert state is not None
        assert state.ad_storage == "granted"
        assert state.analytics_storage == "denied"
        assert state.wait_for_update == 2000
        assert state.version == "v1"

    def test_no_consent_mode(self) -> None:
        assert consent_mode.from_content("<html><script>gtag('config', 'G-1')</script></html>") is None


class TestAnalyze:
    def test_commands_win_over_content(self) -> None:
        state = consent_mode.analyze(
            [["consent", "default", {"ad_storage": "granted"}]],
            None,
            "gtag('consent', 'default', {'ad_storage': 'denied'})",
        )
        assert state.ad_storage == "granted"

    def test_empty_page(self) -> None:
        state = consent_mode.analyze()
        assert state.detected is False
        assert state.version is None
        assert set(state.parameters().values()) == {"absent"}
