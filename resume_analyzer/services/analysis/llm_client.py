"""LLM transport clients and the retrying invoker used by the pipeline.

A client knows how to send one prompt to one provider and pull the generated
text out of the provider's response envelope. The invoker owns retry policy and
deadline handling, so clients never retry on their own.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Protocol

import openai
import requests
from langchain_openai import ChatOpenAI

from .config import LLMConfig, RetryConfig
from .exceptions import TransientError
from .retry import Deadline, call_with_retry, linear_backoff

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class LLMClient(Protocol):
    def generate(self, prompt: str, *, timeout: float) -> str:
        ...


def extract_gemini_text(payload: Any) -> str:
    """Pull ``candidates[0].content.parts[*].text`` out of a Gemini response.

    Raises ``TransientError`` when any level of the envelope is missing.
    """
    if not isinstance(payload, dict):
        raise TransientError("Gemini response is not a JSON object")
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = payload.get("promptFeedback")
        raise TransientError(f"Gemini response has no candidates (promptFeedback={feedback!r})")
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    if not isinstance(content, dict):
        raise TransientError("Gemini candidate has no content")
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts:
        raise TransientError("Gemini candidate content has no parts")

    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    if not texts:
        raise TransientError("Gemini candidate parts contain no text")
    return "".join(texts)


class GeminiClient:
    """Calls the Gemini ``generateContent`` REST endpoint with ``requests``."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        temperature: float = 0.2,
        max_output_tokens: int = 2048,
        session: Optional[requests.Session] = None,
        endpoint: str = GEMINI_ENDPOINT,
    ):
        if not api_key:
            raise ValueError("GOOGLE_API_KEY is required for the Gemini client")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.session = session or requests.Session()
        self.endpoint = endpoint

    def _body(self, prompt: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    def generate(self, prompt: str, *, timeout: float) -> str:
        url = self.endpoint.format(model=self.model)
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=self._body(prompt),
                timeout=timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise TransientError(f"Gemini request timed out after {timeout:.1f}s") from exc
        except requests.exceptions.RequestException as exc:
            raise TransientError(f"Gemini request failed: {exc}") from exc

        if response.status_code >= 400:
            raise TransientError(
                f"Gemini returned HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransientError("Gemini returned a non-JSON body") from exc
        return extract_gemini_text(payload)


class OpenAIChatClient:
    """Same contract over ``langchain_openai.ChatOpenAI``."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        *,
        temperature: float = 0.2,
        max_output_tokens: int = 2048,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        llm: Any = None,
    ):
        if llm is None:
            # The invoker owns retries; keep the library from stacking its own
            llm = ChatOpenAI(
                model=model,
                temperature=temperature,
                max_tokens=max_output_tokens,
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
            )
        self.llm = llm

    def generate(self, prompt: str, *, timeout: float) -> str:
        try:
            message = self.llm.invoke(prompt, timeout=timeout)
        except openai.APIError as exc:
            raise TransientError(f"OpenAI request failed: {exc}") from exc

        content = getattr(message, "content", message)
        if isinstance(content, list):
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        if not isinstance(content, str) or not content.strip():
            raise TransientError("OpenAI response contained no text")
        return content


class LLMInvoker:
    """Send a prompt through a client, retrying transient failures.

    ``TransientError`` is retried up to ``max_attempts`` total tries with a
    linear backoff (1s, 2s by default). Anything else, including parse and
    shape problems, is not the invoker's concern and propagates untouched.
    """

    def __init__(
        self,
        client: LLMClient,
        retry_config: Optional[RetryConfig] = None,
        *,
        timeout_s: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.retry_config = retry_config or RetryConfig()
        self.timeout_s = timeout_s
        self._sleep = sleep

    def invoke(self, prompt: str, *, deadline: Optional[Deadline] = None) -> str:
        def _attempt() -> str:
            timeout = deadline.cap(self.timeout_s) if deadline else self.timeout_s
            return self.client.generate(prompt, timeout=timeout)

        return call_with_retry(
            _attempt,
            max_attempts=self.retry_config.max_attempts,
            backoff=linear_backoff(self.retry_config.backoff_base_s),
            retry_on=(TransientError,),
            sleep=self._sleep,
            deadline=deadline,
            label="LLM call",
        )


def build_llm_client(llm_config: LLMConfig) -> LLMClient:
    """Construct the provider client selected by ``LLM_PROVIDER``."""
    provider = llm_config.provider
    if provider == "gemini":
        return GeminiClient(
            llm_config.google_api_key,
            llm_config.model,
            temperature=llm_config.temperature,
            max_output_tokens=llm_config.max_output_tokens,
        )
    if provider == "openai":
        return OpenAIChatClient(
            llm_config.openai_api_key,
            llm_config.model,
            temperature=llm_config.temperature,
            max_output_tokens=llm_config.max_output_tokens,
            base_url=llm_config.base_url,
            timeout=llm_config.timeout_s,
        )
    raise ValueError(f"Unsupported LLM_PROVIDER: {provider!r}")
