from __future__ import annotations

from typing import Any, Optional


def get_resume_text(resume_row: Any) -> Optional[str]:
    """Return the stored parsed text of a resume row, or None if not extracted yet."""
    text = (getattr(resume_row, "parsed_text", None) or "").strip()
    return text or None
