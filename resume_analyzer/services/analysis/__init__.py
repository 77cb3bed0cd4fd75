"""
Resume analysis pipeline.

Four LLM-backed stages (scoring, improvements, insights, market alignment)
turn resume text into an ``AnalysisResult``:

- prompts: prompt templates per stage
- llm_client: provider clients and the retrying invoker
- normalizer / validator: JSON extraction and shape checks
- analyzer: the stage orchestrator
- service: cache-before-compute facade over storage and persistence
"""

from .analyzer import AnalysisRun, ResumeAnalyzer, RunState, build_analyzer
from .config import AnalysisConfig, config
from .exceptions import (
    AnalysisError,
    AnalysisFailed,
    DeadlineExceeded,
    SchemaValidationError,
    TransientError,
    UnparsableResponseError,
)
from .llm_client import GeminiClient, LLMInvoker, OpenAIChatClient, build_llm_client
from .normalizer import normalize
from .repository import AnalysisRepository
from .retry import Deadline, call_with_retry, linear_backoff
from .schemas import (
    AnalysisResult,
    DetailedAnalysis,
    Improvement,
    Insight,
    MarketAlignmentData,
    analysis_to_transport_payload,
    load_analysis_from_storage,
)
from .service import ResumeAnalysisService, build_default_service
from .validator import (
    FALLBACK_MARKET_ALIGNMENT,
    AnalysisKind,
    Decoded,
    StagePolicy,
    decode,
    validate,
)

__all__ = [
    "AnalysisConfig",
    "config",
    "AnalysisError",
    "AnalysisFailed",
    "DeadlineExceeded",
    "SchemaValidationError",
    "TransientError",
    "UnparsableResponseError",
    "GeminiClient",
    "OpenAIChatClient",
    "LLMInvoker",
    "build_llm_client",
    "normalize",
    "AnalysisRepository",
    "Deadline",
    "call_with_retry",
    "linear_backoff",
    "AnalysisResult",
    "DetailedAnalysis",
    "Improvement",
    "Insight",
    "MarketAlignmentData",
    "analysis_to_transport_payload",
    "load_analysis_from_storage",
    "AnalysisRun",
    "ResumeAnalyzer",
    "RunState",
    "build_analyzer",
    "ResumeAnalysisService",
    "build_default_service",
    "FALLBACK_MARKET_ALIGNMENT",
    "AnalysisKind",
    "Decoded",
    "StagePolicy",
    "decode",
    "validate",
]
