from typing import Optional


class AnalysisError(RuntimeError):
    """Base class for every failure raised by the analysis pipeline."""


class TransientError(AnalysisError):
    """Raised when the LLM call fails at the transport/HTTP level or the
    provider envelope is missing the generated text. Safe to retry."""


class DeadlineExceeded(AnalysisError):
    """Raised when the request deadline leaves no time for another LLM attempt."""


class UnparsableResponseError(AnalysisError):
    """Raised when no extraction strategy could turn model text into JSON."""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


class SchemaValidationError(AnalysisError):
    """Raised when parsed JSON does not have the shape a stage expects."""

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class AnalysisFailed(AnalysisError):
    """Single error surfaced at the orchestrator boundary.

    ``cause`` holds the original exception, ``stage`` the pipeline state in
    which it happened.
    """

    def __init__(self, cause: BaseException, stage: Optional[str] = None):
        detail = str(cause) or cause.__class__.__name__
        super().__init__(f"Failed to analyze resume: {detail}")
        self.cause = cause
        self.stage = stage
