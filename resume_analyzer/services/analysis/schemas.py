"""Canonical schema definitions for resume analysis data.

This module defines the typed payloads produced by each pipeline stage and the
aggregated ``AnalysisResult`` that is persisted on the resume row and returned
to the frontend. Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


ANALYSIS_SCHEMA_VERSION = "1.0.0"
logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low"]
ImprovementCategory = Literal["impact", "clarity", "skills", "achievement", "structure"]
InsightType = Literal["strength", "weakness", "opportunity", "gap"]


class CamelModel(BaseModel):
    """Base model accepting both snake_case names and camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DetailedAnalysis(CamelModel):
    """Stage 1 output: base scores used as context by later stages."""

    impact_score: float
    clarity_score: float
    achievement_score: float
    skills_relevance: float
    overall_score: float
    section_scores: Dict[str, float] = Field(default_factory=dict)


class Improvement(CamelModel):
    area: str
    suggestion: str
    priority: Priority = "medium"

    # Older prompt shape; kept so stored analyses keep loading
    section: Optional[str] = None
    original: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[ImprovementCategory] = None


class Insight(CamelModel):
    type: InsightType
    description: str
    action_items: List[str] = Field(default_factory=list)


class MarketAlignmentData(CamelModel):
    role_alignment: float
    missing_keywords: List[str] = Field(default_factory=list)
    industry_trends: List[str] = Field(default_factory=list)
    recommended_skills: List[str] = Field(default_factory=list)


class AnalysisResult(CamelModel):
    """Final artifact of the pipeline. Immutable once built."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    score: float
    improvements: List[Improvement] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)
    market_alignment: MarketAlignmentData


def build_analysis_result(
    *,
    detailed: DetailedAnalysis,
    improvements: List[Improvement],
    insights: List[Insight],
    market_alignment: MarketAlignmentData,
) -> AnalysisResult:
    """Assemble the final result; ``score`` is copied from the overall score."""
    return AnalysisResult(
        score=detailed.overall_score,
        improvements=list(improvements),
        insights=list(insights),
        market_alignment=market_alignment,
    )


def analysis_to_transport_payload(analysis: AnalysisResult) -> Dict[str, Any]:
    """Return a JSON-serialisable dict with camelCase field naming."""

    return json.loads(analysis.model_dump_json(by_alias=True, exclude_none=True))


def load_analysis_from_storage(
    payload: Optional[Dict[str, Any]],
) -> Optional[AnalysisResult]:
    """Hydrate an ``AnalysisResult`` from a stored JSON column.

    Returns None when nothing is stored or the stored payload no longer
    matches the schema, so the caller recomputes instead of serving garbage.
    """

    if not payload:
        return None
    try:
        return AnalysisResult.model_validate(payload)
    except ValidationError:
        logger.warning("Failed to parse stored analysis_json; ignoring it", exc_info=True)
        return None


__all__ = [
    "ANALYSIS_SCHEMA_VERSION",
    "DetailedAnalysis",
    "Improvement",
    "Insight",
    "MarketAlignmentData",
    "AnalysisResult",
    "build_analysis_result",
    "analysis_to_transport_payload",
    "load_analysis_from_storage",
]
