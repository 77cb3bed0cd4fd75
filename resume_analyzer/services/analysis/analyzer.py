"""Four-stage resume analysis pipeline.

Stages run strictly in sequence because stages 2-4 embed the stage 1 scores:

    Idle -> Scoring -> Improving -> Insighting -> MarketAligning -> Done

Any fatal error moves the run to ``Failed`` and surfaces as ``AnalysisFailed``;
no partial result is returned.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Dict, List, Optional

from .config import AnalysisConfig
from .config import config as default_config
from .exceptions import AnalysisFailed, UnparsableResponseError
from .llm_client import LLMInvoker, build_llm_client
from .normalizer import normalize
from .prompts import (
    build_improvements_prompt,
    build_insights_prompt,
    build_market_alignment_prompt,
    build_scoring_prompt,
)
from .retry import Deadline
from .schemas import AnalysisResult, DetailedAnalysis, build_analysis_result
from .validator import AnalysisKind, StagePolicy, decode, default_policies

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    IDLE = "Idle"
    SCORING = "Scoring"
    IMPROVING = "Improving"
    INSIGHTING = "Insighting"
    MARKET_ALIGNING = "MarketAligning"
    DONE = "Done"
    FAILED = "Failed"


_NEXT_STATE = {
    RunState.IDLE: RunState.SCORING,
    RunState.SCORING: RunState.IMPROVING,
    RunState.IMPROVING: RunState.INSIGHTING,
    RunState.INSIGHTING: RunState.MARKET_ALIGNING,
    RunState.MARKET_ALIGNING: RunState.DONE,
}


class AnalysisRun:
    """One execution of the pipeline over one resume text.

    A run is single-use: ``execute`` may be called once. ``transitions`` keeps
    every state the run passed through, ``fallbacks`` the stages whose output
    was replaced by their policy's fallback value.
    """

    def __init__(
        self,
        analyzer: "ResumeAnalyzer",
        resume_text: str,
        deadline: Optional[Deadline] = None,
    ):
        self._analyzer = analyzer
        self.resume_text = resume_text
        self.deadline = deadline
        self.state = RunState.IDLE
        self.transitions: List[RunState] = [RunState.IDLE]
        self.fallbacks: List[AnalysisKind] = []
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[AnalysisFailed] = None

    def _advance(self, expected: RunState) -> None:
        target = _NEXT_STATE.get(self.state)
        if target is not expected:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {expected.value}")
        self._move(target)

    def _move(self, state: RunState) -> None:
        logger.debug("Analysis run %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    def execute(self) -> AnalysisResult:
        if self.state is not RunState.IDLE:
            raise RuntimeError("An analysis run can only be executed once")

        text = self.resume_text
        try:
            if not isinstance(text, str) or not text.strip():
                raise ValueError("Resume text is empty")

            self._advance(RunState.SCORING)
            detailed: DetailedAnalysis = self._run_stage(
                AnalysisKind.DETAILED_ANALYSIS, build_scoring_prompt(text)
            )

            self._advance(RunState.IMPROVING)
            improvements = self._run_stage(
                AnalysisKind.IMPROVEMENTS, build_improvements_prompt(text, detailed)
            )

            self._advance(RunState.INSIGHTING)
            insights = self._run_stage(
                AnalysisKind.INSIGHTS, build_insights_prompt(text, detailed)
            )

            self._advance(RunState.MARKET_ALIGNING)
            market_alignment = self._run_stage(
                AnalysisKind.MARKET_ALIGNMENT,
                build_market_alignment_prompt(text, detailed),
            )

            result = build_analysis_result(
                detailed=detailed,
                improvements=improvements,
                insights=insights,
                market_alignment=market_alignment,
            )
        except Exception as exc:
            failed_in = self.state.value
            self._move(RunState.FAILED)
            self.error = AnalysisFailed(exc, stage=failed_in)
            logger.error("Resume analysis failed during %s: %r", failed_in, exc)
            raise self.error from exc

        self._advance(RunState.DONE)
        self.result = result
        logger.info(
            "Resume analysis complete: score=%.1f improvements=%d insights=%d fallbacks=%s",
            result.score,
            len(result.improvements),
            len(result.insights),
            [kind.value for kind in self.fallbacks] or "none",
        )
        return result

    def _run_stage(self, kind: AnalysisKind, prompt: str) -> Any:
        """Ask the model until the reply decodes, then apply the stage policy.

        Transport failures (after the invoker's own retries) and deadline
        expiry propagate immediately; only unparsable or mis-shaped replies are
        re-asked.
        """
        policy = self._analyzer.policy_for(kind)
        attempts = policy.attempts
        if attempts is None:
            attempts = self._analyzer.config.pipeline.stage_attempts
        clamp = self._analyzer.config.pipeline.clamp_scores
        logger.info("Stage %s started", kind.value)

        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            raw = self._analyzer.invoker.invoke(prompt, deadline=self.deadline)
            try:
                value = normalize(raw, expect=kind.expects)
            except UnparsableResponseError as exc:
                last_error = exc
                logger.warning(
                    "Stage %s attempt %d/%d: unparsable response", kind.value, attempt, attempts
                )
                continue

            decoded = decode(value, kind, clamp=clamp)
            if decoded.ok:
                logger.info("Stage %s finished", kind.value)
                return decoded.value
            last_error = decoded.error
            logger.warning(
                "Stage %s attempt %d/%d: %s", kind.value, attempt, attempts, decoded.error
            )

        if policy.falls_back:
            logger.warning(
                "Stage %s produced no valid output after %d attempt(s); using fallback",
                kind.value,
                attempts,
            )
            self.fallbacks.append(kind)
            return policy.fallback()
        raise last_error


class ResumeAnalyzer:
    """Runs the analysis pipeline with an injected ``LLMInvoker``.

    ``policies`` overrides the default per-stage failure policies; stages not
    named keep their defaults.
    """

    def __init__(
        self,
        invoker: LLMInvoker,
        policies: Optional[Dict[AnalysisKind, StagePolicy]] = None,
        config: Optional[AnalysisConfig] = None,
    ):
        self.invoker = invoker
        self.config = config or default_config
        self.policies = default_policies()
        if policies:
            self.policies.update({AnalysisKind(kind): policy for kind, policy in policies.items()})

    def policy_for(self, kind: AnalysisKind) -> StagePolicy:
        return self.policies[kind]

    def new_run(self, resume_text: str, deadline: Optional[Deadline] = None) -> AnalysisRun:
        if deadline is None:
            deadline = Deadline.from_timeout(self.config.pipeline.deadline_s)
        return AnalysisRun(self, resume_text, deadline)

    def analyze(self, resume_text: str, deadline: Optional[Deadline] = None) -> AnalysisResult:
        return self.new_run(resume_text, deadline).execute()


def build_analyzer(
    analysis_config: Optional[AnalysisConfig] = None,
    *,
    client_factory: Optional[Callable[[Any], Any]] = None,
) -> ResumeAnalyzer:
    """Wire a ``ResumeAnalyzer`` from configuration.

    The client is built once here and shared by every run of the analyzer.
    """
    cfg = analysis_config or default_config
    client = (client_factory or build_llm_client)(cfg.llm)
    invoker = LLMInvoker(client, cfg.retry, timeout_s=cfg.llm.timeout_s)
    logger.info("Resume analyzer configured: %s", cfg.to_dict()["llm"])
    return ResumeAnalyzer(invoker, config=cfg)
