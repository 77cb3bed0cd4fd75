"""Shape checks for the JSON returned by each analysis stage.

``decode`` is the uniform entry point: it never raises for bad input and returns
a ``Decoded`` holding either the typed model or a ``SchemaValidationError``.
``validate`` is the raising variant. ``StagePolicy`` says what the orchestrator
does when a stage keeps producing invalid output.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .exceptions import SchemaValidationError
from .schemas import DetailedAnalysis, Improvement, Insight, MarketAlignmentData

logger = logging.getLogger(__name__)

SCORE_MIN, SCORE_MAX = 1.0, 100.0
ALIGNMENT_MIN, ALIGNMENT_MAX = 0.0, 100.0

_DETAILED_FIELDS = (
    "impactScore",
    "clarityScore",
    "achievementScore",
    "skillsRelevance",
    "overallScore",
)
_MARKET_LIST_FIELDS = ("missingKeywords", "industryTrends", "recommendedSkills")
_PRIORITIES = {"high", "medium", "low"}
_CATEGORIES = {"impact", "clarity", "skills", "achievement", "structure"}
_INSIGHT_TYPES = {"strength", "weakness", "opportunity", "gap"}


class AnalysisKind(str, enum.Enum):
    DETAILED_ANALYSIS = "detailed_analysis"
    IMPROVEMENTS = "improvements"
    INSIGHTS = "insights"
    MARKET_ALIGNMENT = "market_alignment"

    @property
    def expects(self) -> str:
        """JSON container the prompt asks for: ``object`` or ``array``."""
        return "array" if self is AnalysisKind.INSIGHTS else "object"


@dataclass(frozen=True)
class Decoded:
    value: Any = None
    error: Optional[SchemaValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = (str(item).strip() for item in value if isinstance(item, (str, int, float)))
    return [item for item in items if item]


def _fail(kind: AnalysisKind, message: str) -> Decoded:
    return Decoded(error=SchemaValidationError(message, kind=kind.value))


def _decode_detailed(value: Any, clamp: bool) -> Decoded:
    kind = AnalysisKind.DETAILED_ANALYSIS
    if not isinstance(value, dict):
        return _fail(kind, f"expected an object, got {type(value).__name__}")

    scores: Dict[str, float] = {}
    for name in _DETAILED_FIELDS:
        raw = value.get(name)
        if not _is_number(raw):
            return _fail(kind, f"{name} must be a number, got {raw!r}")
        scores[name] = _clamp(raw, SCORE_MIN, SCORE_MAX) if clamp else float(raw)

    sections = value.get("sectionScores")
    if not isinstance(sections, dict):
        return _fail(kind, "sectionScores must be an object")
    section_scores: Dict[str, float] = {}
    for section, raw in sections.items():
        if not _is_number(raw):
            logger.debug("Dropping non-numeric section score %r=%r", section, raw)
            continue
        section_scores[str(section)] = _clamp(raw, SCORE_MIN, SCORE_MAX) if clamp else float(raw)

    return Decoded(
        value=DetailedAnalysis(
            impact_score=scores["impactScore"],
            clarity_score=scores["clarityScore"],
            achievement_score=scores["achievementScore"],
            skills_relevance=scores["skillsRelevance"],
            overall_score=scores["overallScore"],
            section_scores=section_scores,
        )
    )


def _coerce_improvement(item: Any) -> Optional[Improvement]:
    if not isinstance(item, dict):
        return None
    area = item.get("area") or item.get("section")
    suggestion = item.get("suggestion")
    if not isinstance(area, str) or not area.strip():
        return None
    if not isinstance(suggestion, str) or not suggestion.strip():
        return None

    priority = str(item.get("priority", "medium")).strip().lower()
    if priority not in _PRIORITIES:
        priority = "medium"
    category = item.get("category")
    if not isinstance(category, str) or category.strip().lower() not in _CATEGORIES:
        category = None
    else:
        category = category.strip().lower()

    def _optional_str(key: str) -> Optional[str]:
        raw = item.get(key)
        return raw if isinstance(raw, str) and raw.strip() else None

    return Improvement(
        area=area.strip(),
        suggestion=suggestion.strip(),
        priority=priority,
        section=_optional_str("section"),
        original=_optional_str("original"),
        reason=_optional_str("reason"),
        category=category,
    )


def _decode_improvements(value: Any, clamp: bool) -> Decoded:
    kind = AnalysisKind.IMPROVEMENTS
    if isinstance(value, list):
        value = {"improvements": value}
    if not isinstance(value, dict):
        return _fail(kind, f"expected an object, got {type(value).__name__}")
    items = value.get("improvements")
    if not isinstance(items, list):
        return _fail(kind, "improvements must be an array")

    improvements = []
    for item in items:
        improvement = _coerce_improvement(item)
        if improvement is None:
            logger.debug("Skipping malformed improvement: %r", item)
            continue
        improvements.append(improvement)
    return Decoded(value=improvements)


def _decode_insights(value: Any, clamp: bool) -> Decoded:
    kind = AnalysisKind.INSIGHTS
    if isinstance(value, dict) and isinstance(value.get("insights"), list):
        value = value["insights"]
    if not isinstance(value, list):
        return _fail(kind, f"expected an array, got {type(value).__name__}")

    insights = []
    for item in value:
        if not isinstance(item, dict):
            continue
        insight_type = str(item.get("type", "")).strip().lower()
        description = item.get("description")
        if insight_type not in _INSIGHT_TYPES:
            logger.debug("Skipping insight with unknown type %r", item.get("type"))
            continue
        if not isinstance(description, str) or not description.strip():
            continue
        insights.append(
            Insight(
                type=insight_type,
                description=description.strip(),
                action_items=_string_list(item.get("actionItems")),
            )
        )
    return Decoded(value=insights)


def _decode_market_alignment(value: Any, clamp: bool) -> Decoded:
    kind = AnalysisKind.MARKET_ALIGNMENT
    if not isinstance(value, dict):
        return _fail(kind, f"expected an object, got {type(value).__name__}")
    alignment = value.get("roleAlignment")
    if not _is_number(alignment):
        return _fail(kind, f"roleAlignment must be a number, got {alignment!r}")
    for name in _MARKET_LIST_FIELDS:
        if not isinstance(value.get(name), list):
            return _fail(kind, f"{name} must be an array")

    return Decoded(
        value=MarketAlignmentData(
            role_alignment=_clamp(alignment, ALIGNMENT_MIN, ALIGNMENT_MAX) if clamp else float(alignment),
            missing_keywords=_string_list(value["missingKeywords"]),
            industry_trends=_string_list(value["industryTrends"]),
            recommended_skills=_string_list(value["recommendedSkills"]),
        )
    )


_DECODERS: Dict[AnalysisKind, Callable[[Any, bool], Decoded]] = {
    AnalysisKind.DETAILED_ANALYSIS: _decode_detailed,
    AnalysisKind.IMPROVEMENTS: _decode_improvements,
    AnalysisKind.INSIGHTS: _decode_insights,
    AnalysisKind.MARKET_ALIGNMENT: _decode_market_alignment,
}


def decode(value: Any, kind: AnalysisKind, *, clamp: bool = True) -> Decoded:
    """Check ``value`` against the shape for ``kind`` and build the typed result.

    Scores are clamped to their documented ranges when ``clamp`` is set.
    Malformed list items are dropped rather than failing the whole list.
    """
    return _DECODERS[AnalysisKind(kind)](value, clamp)


def validate(value: Any, kind: AnalysisKind, *, clamp: bool = True) -> Any:
    return decode(value, kind, clamp=clamp).unwrap()


# Static substitutes used when a non-critical stage cannot be recovered
FALLBACK_MARKET_ALIGNMENT = MarketAlignmentData(
    role_alignment=50,
    missing_keywords=[],
    industry_trends=["Unable to analyze market trends at this time"],
    recommended_skills=[],
)


@dataclass(frozen=True)
class StagePolicy:
    """What a stage does once its output keeps failing to parse or validate.

    ``on_invalid="fail"`` aborts the run; ``"fallback"`` substitutes
    ``fallback()``. ``attempts`` bounds how many times the stage asks the model.
    """

    on_invalid: str = "fail"
    fallback: Optional[Callable[[], Any]] = None
    attempts: Optional[int] = None

    def __post_init__(self):
        if self.on_invalid not in ("fail", "fallback"):
            raise ValueError(f"on_invalid must be 'fail' or 'fallback', got {self.on_invalid!r}")
        if self.on_invalid == "fallback" and self.fallback is None:
            raise ValueError("fallback policy needs a fallback factory")
        if self.attempts is not None and self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")

    @classmethod
    def fail(cls, attempts: Optional[int] = None) -> "StagePolicy":
        return cls(on_invalid="fail", attempts=attempts)

    @classmethod
    def fallback_to(cls, factory: Callable[[], Any], attempts: Optional[int] = None) -> "StagePolicy":
        return cls(on_invalid="fallback", fallback=factory, attempts=attempts)

    @property
    def falls_back(self) -> bool:
        return self.on_invalid == "fallback"


def default_policies() -> Dict[AnalysisKind, StagePolicy]:
    return {
        AnalysisKind.DETAILED_ANALYSIS: StagePolicy.fail(),
        AnalysisKind.IMPROVEMENTS: StagePolicy.fallback_to(list),
        AnalysisKind.INSIGHTS: StagePolicy.fallback_to(list),
        AnalysisKind.MARKET_ALIGNMENT: StagePolicy.fallback_to(
            lambda: FALLBACK_MARKET_ALIGNMENT.model_copy(deep=True)
        ),
    }


DEFAULT_POLICIES = default_policies()


__all__ = [
    "AnalysisKind",
    "Decoded",
    "decode",
    "validate",
    "StagePolicy",
    "DEFAULT_POLICIES",
    "default_policies",
    "FALLBACK_MARKET_ALIGNMENT",
]
