"""Consent inspection engine.

Loads a page in a controlled browser, simulates "accept all" and
"reject all" through the page's consent-management platform, and
reports cookies, consent signals, issues and a compliance score.
"""

from __future__ import annotations

from consent_inspector.config import InspectOptions
from consent_inspector.models.analysis import AnalysisResult
from consent_inspector.pipeline.inspection import inspect, inspect_async

__all__ = ["AnalysisResult", "InspectOptions", "inspect", "inspect_async"]
