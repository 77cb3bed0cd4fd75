"""
Analysis Pipeline Configuration

Centralized configuration for the LLM invoker and the four-stage analysis
pipeline, with environment variable support so the pipeline can be tuned
without code changes.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class LLMConfig:
    """Provider selection and generation parameters."""

    # "gemini" (REST generateContent) or "openai" (langchain ChatOpenAI)
    provider: str = os.getenv("LLM_PROVIDER", "gemini").strip().lower()
    model: str = os.getenv("LLM_MODEL", "gemini-1.5-flash").strip()
    google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY")
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    base_url: Optional[str] = os.getenv("LLM_BASE_URL") or None

    # Low temperature keeps the JSON output stable between runs
    temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
    max_output_tokens: int = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "2048"))
    timeout_s: float = float(os.getenv("LLM_TIMEOUT_S", "30"))

    @property
    def api_key(self) -> Optional[str]:
        if self.provider == "openai":
            return self.openai_api_key
        return self.google_api_key


@dataclass
class RetryConfig:
    """Transport retry policy: total attempts and linear backoff step."""

    max_attempts: int = int(os.getenv("LLM_MAX_ATTEMPTS", "3"))
    backoff_base_s: float = float(os.getenv("LLM_BACKOFF_BASE_S", "1.0"))


@dataclass
class PipelineConfig:
    """Stage-level behaviour of the orchestrator."""

    # How many times a stage re-asks the model when the reply is unparsable
    # or has the wrong shape, before the stage policy applies.
    stage_attempts: int = int(os.getenv("ANALYSIS_STAGE_ATTEMPTS", "3"))
    deadline_s: float = float(os.getenv("ANALYSIS_DEADLINE_S", "120"))
    clamp_scores: bool = os.getenv("ANALYSIS_CLAMP_SCORES", "1") == "1"

    def __post_init__(self):
        if self.stage_attempts < 1:
            raise ValueError(f"ANALYSIS_STAGE_ATTEMPTS must be at least 1, got {self.stage_attempts}")


@dataclass
class AnalysisConfig:
    """Complete analysis configuration."""

    llm: LLMConfig = None
    retry: RetryConfig = None
    pipeline: PipelineConfig = None

    def __post_init__(self):
        if self.llm is None:
            self.llm = LLMConfig()
        if self.retry is None:
            self.retry = RetryConfig()
        if self.pipeline is None:
            self.pipeline = PipelineConfig()

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and health reports (no secrets)."""
        return {
            "llm": {
                "provider": self.llm.provider,
                "model": self.llm.model,
                "temperature": self.llm.temperature,
                "max_output_tokens": self.llm.max_output_tokens,
                "timeout_s": self.llm.timeout_s,
                "api_key_configured": bool(self.llm.api_key),
            },
            "retry": {
                "max_attempts": self.retry.max_attempts,
                "backoff_base_s": self.retry.backoff_base_s,
            },
            "pipeline": {
                "stage_attempts": self.pipeline.stage_attempts,
                "deadline_s": self.pipeline.deadline_s,
                "clamp_scores": self.pipeline.clamp_scores,
            },
        }


# Global configuration instance
config = AnalysisConfig()
