"""Turn loosely formatted model output into a JSON value.

Models asked for "JSON only" still wrap replies in markdown fences or add a
sentence before or after the payload. ``normalize`` tries progressively more
permissive strategies and returns on the first one that parses.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterator, List, Optional, Tuple

from .exceptions import UnparsableResponseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_OPENERS = {"object": "{", "array": "["}
_CLOSERS = {"{": "}", "[": "]"}
_CONTAINERS = {"{": dict, "[": list}


def _parse_direct(text: str) -> Any:
    return json.loads(text)


def _strip_fences(text: str) -> Any:
    match = _FENCE_RE.search(text)
    if match:
        return json.loads(match.group(1).strip())
    # Unterminated fence: drop the opening line and any trailing backticks
    stripped = text.strip()
    if stripped.startswith("```"):
        body = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        return json.loads(body.rstrip("`").strip())
    raise ValueError("no code fence found")


def iter_balanced(text: str, opener: str) -> Iterator[str]:
    """Yield every top-level balanced ``opener ... closer`` span of ``text``.

    Scanning resumes after each span, so spans nested inside an earlier one
    are never yielded. Brackets inside JSON string literals (including
    escaped quotes) are not counted.
    """
    closer = _CLOSERS[opener]
    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    end = index
                    break
        if end == -1:
            # Unbalanced from this opener; try the next one
            start = text.find(opener, start + 1)
            continue
        yield text[start : end + 1]
        start = text.find(opener, end + 1)


def find_balanced(text: str, opener: str) -> Optional[str]:
    """Return the first balanced ``opener ... closer`` span of ``text``, or None."""
    return next(iter_balanced(text, opener), None)


def _largest_parsed(text: str, opener: str, container: Optional[type]) -> Any:
    """Parse each top-level span; keep the longest one of the wanted container type.

    Short bracketed asides in prose ("my [3] tips", "{name}") lose to the payload.
    """
    best: Optional[Tuple[int, Any]] = None
    for candidate in iter_balanced(text, opener):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if container is not None and not isinstance(value, container):
            continue
        if best is None or len(candidate) > best[0]:
            best = (len(candidate), value)
    if best is None:
        raise ValueError(f"no balanced {opener} substring parsed")
    return best[1]


def _make_substring_strategy(expect: str) -> Callable[[str], Any]:
    primary = _OPENERS.get(expect, "{")
    secondary = "[" if primary == "{" else "{"

    def _extract(text: str) -> Any:
        try:
            return _largest_parsed(text, primary, _CONTAINERS[primary])
        except ValueError:
            pass
        try:
            return _largest_parsed(text, secondary, None)
        except ValueError:
            raise ValueError("no balanced JSON substring found") from None

    return _extract


def _trim_and_parse(text: str) -> Any:
    return json.loads(text.strip().lstrip("\ufeff").strip())


def normalize(raw_text: str, expect: str = "object") -> Any:
    """Parse ``raw_text`` into a JSON value.

    Strategies, in order: direct parse, markdown fence stripping, the largest balanced
    ``{...}`` (or ``[...]`` when ``expect="array"``) substring, whitespace/BOM
    trim and reparse. Raises ``UnparsableResponseError`` when all fail.
    """
    if not isinstance(raw_text, str) or not raw_text:
        raise UnparsableResponseError("Model returned an empty response", raw_text or "")

    strategies: List[Tuple[str, Callable[[str], Any]]] = [
        ("direct", _parse_direct),
        ("fence", _strip_fences),
        ("substring", _make_substring_strategy(expect)),
        ("trim", _trim_and_parse),
    ]
    for name, strategy in strategies:
        try:
            value = strategy(raw_text)
        except (ValueError, IndexError):
            continue
        if name != "direct":
            logger.debug("Parsed model output using %s strategy", name)
        return value

    preview = raw_text[:200].replace("\n", " ")
    logger.warning("Could not extract JSON from model output: %r", preview)
    raise UnparsableResponseError(
        "No JSON could be extracted from the model response", raw_text
    )
