"""
Request routing.

Entry point of the pipeline: fail fast when no backend credential is
configured, classify the body by ``kind``, validate the fields that kind
requires, then run assemble → transport → extract. All validation happens
before any outbound work.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional, Protocol

import structlog
from pydantic import ValidationError as PydanticValidationError

from meal_processor.config import Settings
from meal_processor.domain.analysis.extraction import ResponseExtractor
from meal_processor.domain.analysis.prompt_assembler import PromptAssembler, PromptPayload
from meal_processor.domain.analysis.prompts import DEFAULT_TEMPLATES, PromptTemplates
from meal_processor.domain.analysis.requests import REQUEST_MODELS, AnalysisKind, AnalysisRequest
from meal_processor.domain.shared.errors import ProcessorError, UpstreamError, ValidationError
from meal_processor.infrastructure.ai.transport import RetryingTransport, TransportReply

logger = structlog.get_logger(__name__)

# Older clients send ``type`` instead of ``kind`` and call the grocery path "grocery".
LEGACY_KIND_ALIASES = {"grocery": AnalysisKind.GROCERY_LIST}

# Top-level keys that belong in ``context``, grouped by the field they fill.
FLAT_CONTEXT_KEYS = {
    "participants": ("participants", "member_profiles", "memberProfiles"),
    "voice_annotation": ("voice_annotation", "voiceAnnotation", "voice_context", "voiceContext"),
    "food_history": ("food_history", "foodHistory"),
}


class Transport(Protocol):
    async def send(self, payload: PromptPayload) -> TransportReply: ...


TransportFactory = Callable[[Settings], Transport]


def _fold_context(body: Dict[str, Any]) -> Dict[str, Any]:
    """Move flat context keys under ``context``; keys already nested there win."""
    flat_keys = [k for aliases in FLAT_CONTEXT_KEYS.values() for k in aliases if k in body]
    if not flat_keys:
        return body

    nested = body.get("context")
    if nested is not None and not isinstance(nested, dict):
        return body
    context = dict(nested or {})
    for aliases in FLAT_CONTEXT_KEYS.values():
        if any(a in context for a in aliases):
            continue
        for alias in aliases:
            if alias in body:
                context[alias] = body[alias]
                break

    folded = {k: v for k, v in body.items() if k not in flat_keys}
    folded["context"] = context
    return folded


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class RequestRouter:
    """
    Dispatch one request body through the analysis pipeline.

    Stateless: every call to ``handle`` builds its own transport, and
    nothing is shared between requests.

    Example:
        >>> router = RequestRouter(load_settings())
        >>> result = await router.handle({"kind": "text", "mealDescription": "Idli sambar"})
        >>> result["meal_name"]
        'Idli with Sambar'
    """

    def __init__(
        self,
        settings: Settings,
        transport_factory: Optional[TransportFactory] = None,
        templates: PromptTemplates = DEFAULT_TEMPLATES,
        extractor: Optional[ResponseExtractor] = None,
    ) -> None:
        self._settings = settings
        self._transport_factory: TransportFactory = transport_factory or RetryingTransport
        self._assembler = PromptAssembler(
            templates=templates,
            default_portion=settings.default_portion,
            default_participant_count=settings.default_participant_count,
            default_plan_days=settings.default_plan_days,
        )
        self._extractor = extractor or ResponseExtractor()

    def classify(self, body: Any) -> AnalysisKind:
        """Read the discriminant; a missing or unknown kind is never defaulted."""
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        raw = body.get("kind")
        if raw is None:
            raw = body.get("type")
            if isinstance(raw, str) and raw in LEGACY_KIND_ALIASES:
                return LEGACY_KIND_ALIASES[raw]
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise ValidationError("'kind' is required")

        try:
            return AnalysisKind(raw)
        except ValueError:
            allowed = ", ".join(k.value for k in AnalysisKind)
            raise ValidationError(f"Unknown kind {raw!r} (expected one of: {allowed})") from None

    def validate(self, kind: AnalysisKind, body: Dict[str, Any]) -> AnalysisRequest:
        """Validate ``body`` against the model of ``kind``."""
        data = _fold_context(body)
        data = {k: v for k, v in data.items() if k != "type"}
        data["kind"] = kind
        try:
            return REQUEST_MODELS[kind].model_validate(data)  # type: ignore[return-value]
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid '{kind.value}' request: {_describe(exc)}") from exc

    async def handle(self, body: Any) -> Dict[str, Any]:
        """
        Run the full pipeline for one request body.

        Returns:
            JSON-ready dict of the extracted result

        Raises:
            ValidationError: Body, kind or required fields invalid
            ConfigurationError: Backend credential not configured
            UpstreamError: Backend failure or pipeline timeout
            ExtractionError: Reply could not be turned into a result
        """
        kind_label = "unknown"
        try:
            self._settings.require_api_key()
            kind = self.classify(body)
            kind_label = kind.value
            logger.debug("request_classified", kind=kind_label)
            request = self.validate(kind, body)

            try:
                result = await asyncio.wait_for(
                    self._run(request), timeout=self._settings.pipeline_timeout_s
                )
            except asyncio.TimeoutError as exc:
                raise UpstreamError(
                    f"Analysis timed out after {self._settings.pipeline_timeout_s}s"
                ) from exc
        except ProcessorError as exc:
            logger.warning(
                "request_failed",
                kind=kind_label,
                error_kind=exc.error_kind,
                error=exc.message,
            )
            raise

        return result

    async def _run(self, request: AnalysisRequest) -> Dict[str, Any]:
        payload = self._assembler.assemble(request)
        logger.info("prompt_assembled", **payload.log_summary())

        transport = self._transport_factory(self._settings)
        reply = await transport.send(payload)

        result = self._extractor.extract(reply.text, request.kind)
        logger.info("request_completed", kind=request.kind.value, attempts=reply.attempts)
        return result.model_dump(mode="json")
