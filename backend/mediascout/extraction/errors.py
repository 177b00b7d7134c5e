"""Extraction error taxonomy.

Strategies raise these so the orchestrator can decide whether a source is skipped,
a strategy is treated as empty, or the next strategy in the chain runs.
None of them ever escapes the discovery endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ExtractionError(Exception):
    """Base class for extraction errors."""

    message: str
    retryable: bool = False
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class InvalidSourceError(ExtractionError):
    """The source is not an absolute http(s) URL; the whole source is skipped."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, retryable=False, details=details)


class ToolUnavailableError(ExtractionError):
    """An external binary (yt-dlp, browser) could not be started."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, retryable=False, details=details)


class NavigationError(ExtractionError):
    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, retryable=True, details=details)
