"""
Tool: Insight Parser
Purpose: Validate the insights payload produced by the analysis LLM

The analysis step stores whatever the model answered: a JSON document with an
`insights` array, a bare array, a single insight object, or text wrapped in
a markdown code fence. This module turns that into typed Insight records or
an explicit error. Nothing is guessed from free text.

Usage:
    from taskpulse.insights.parser import parse_insights, parse_insights_or_default

    result = parse_insights(raw)
    if result.ok:
        for insight in result.value:
            ...

    insights = parse_insights_or_default(raw)  # [] on error, logged
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from taskpulse.logging_config import get_logger
from taskpulse.result import Err, Ok, Result

logger = get_logger(__name__)


class Insight(BaseModel):
    """One productivity insight. Priority 3 is the most important."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    description: str = Field(default="")
    insight_type: str = Field(default="general")
    priority: int = Field(default=1, ge=1, le=3)
    confidence: float | None = Field(default=None, ge=0, le=1)
    insight_data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_actionable(self) -> bool:
        """Worth a suggestion: priority 2+ and not a general remark."""
        return self.priority >= 2 and self.insight_type != "general"


class InsightPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    insights: list[Insight] = Field(default_factory=list)


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


def parse_insights(raw: Any) -> Result[list[Insight]]:
    """
    Parse and validate an insights payload.

    Args:
        raw: JSON text, a decoded mapping with an `insights` key, a list of
             insight mappings, or a single insight mapping

    Returns:
        Ok(list of Insight) or Err describing why the payload was rejected
    """
    if raw is None:
        return Ok([])

    if isinstance(raw, (str, bytes)):
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            raw = json.loads(_strip_code_fence(raw))
        except json.JSONDecodeError as e:
            return Err(f"Insights are not valid JSON: {e}", e)

    if isinstance(raw, list):
        raw = {"insights": raw}
    elif isinstance(raw, dict) and "insights" not in raw:
        raw = {"insights": [raw]}
    elif not isinstance(raw, dict):
        return Err(f"Unsupported insights payload: {type(raw).__name__}")

    try:
        payload = InsightPayload.model_validate(raw)
    except ValidationError as e:
        return Err(f"Insights failed validation: {e.error_count()} error(s)", e)

    return Ok(payload.insights)


def parse_insights_or_default(raw: Any, default: list[Insight] | None = None) -> list[Insight]:
    result = parse_insights(raw)
    if isinstance(result, Err):
        logger.warning("insights_parse_failed", error=result.error)
        return list(default or [])
    return result.value
