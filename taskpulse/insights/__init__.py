"""Validation of LLM-generated productivity insights."""

from taskpulse.insights.parser import (
    Insight,
    InsightPayload,
    parse_insights,
    parse_insights_or_default,
)

__all__ = ["Insight", "InsightPayload", "parse_insights", "parse_insights_or_default"]
