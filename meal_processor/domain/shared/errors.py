"""
Processor exceptions.

Typed exceptions for explicit error handling. Each failure path of the
pipeline raises exactly one of these; the HTTP layer maps them to the
``{"error": ...}`` response contract using ``http_status``.
"""

from __future__ import annotations

from typing import Optional


# Longest slice of an unparseable reply that may travel inside an error.
PREVIEW_CHARS = 100


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class ProcessorError(Exception):
    """
    Base exception for all processor errors.

    Allows catching every pipeline failure with a single except clause.
    """

    http_status = 500
    error_kind = "processor_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ═══════════════════════════════════════════════════════════
# CLIENT-CAUSED
# ═══════════════════════════════════════════════════════════


class ValidationError(ProcessorError):
    """
    Request validation failed.

    Raised when:
    - ``kind`` is missing or unknown
    - A field required by the request kind is missing or blank
    - The body is not a JSON object

    Never retried and never reaches the network.

    Example:
        >>> raise ValidationError("meal_description is required for kind 'text'")
    """

    http_status = 400
    error_kind = "validation_error"


# ═══════════════════════════════════════════════════════════
# SERVER-SIDE
# ═══════════════════════════════════════════════════════════


class ConfigurationError(ProcessorError):
    """
    Process configuration is unusable.

    Raised when:
    - The backend credential is not configured
    - A numeric setting cannot be parsed

    Example:
        >>> raise ConfigurationError("AI_API_KEY not configured")
    """

    http_status = 500
    error_kind = "configuration_error"


class UpstreamError(ProcessorError):
    """
    Generative backend call failed.

    Raised when:
    - The backend answered with a non-retryable status
    - The retry budget was exhausted on transient failures
    - The caller-level pipeline timeout expired
    - The backend returned no text

    Example:
        >>> raise UpstreamError("AI backend error: 503", status_code=503, attempts=3)
    """

    http_status = 502
    error_kind = "upstream_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class ExtractionError(ProcessorError):
    """
    No structured object could be recovered from the backend reply.

    The message carries at most ``PREVIEW_CHARS`` characters of the reply,
    never the full text.

    Example:
        >>> err = ExtractionError.from_reply("no json here")
        >>> err.preview
        'no json here'
    """

    http_status = 502
    error_kind = "extraction_error"

    def __init__(self, message: str, preview: str = "") -> None:
        super().__init__(message)
        self.preview = preview

    @classmethod
    def from_reply(cls, raw: str, reason: str = "no parseable JSON object") -> "ExtractionError":
        preview = (raw or "")[:PREVIEW_CHARS]
        return cls(f"Could not extract result ({reason}): {preview!r}", preview=preview)
