"""
Prompt assembly.

Turns a validated request into one immutable ``PromptPayload``: the kind
template with its substitutions, followed by the context fragments the kind
uses, in the fixed order participant → food history → voice annotation.
Every kind gets all three except correction, which gets the participant
block only.
The image payload is carried alongside the text, never inside it.
"""

from __future__ import annotations

import base64
import binascii
import json
from string import Template
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from meal_processor.domain.analysis.context_blocks import (
    MAX_RECENT_MEALS,
    render_food_history_block,
    render_participant_block,
    render_voice_block,
)
from meal_processor.domain.analysis.prompts import DEFAULT_TEMPLATES, PromptTemplates
from meal_processor.domain.analysis.requests import (
    AnalysisKind,
    AnalysisRequest,
    ContextProfile,
    CorrectionRequest,
    GroceryListRequest,
    ImageAnalysisRequest,
    MealPlanRequest,
    TextAnalysisRequest,
)

# An enrichment renders one fragment from the (possibly absent) context.
Enrichment = Callable[[Optional[ContextProfile]], str]


def participant_enrichment(context: Optional[ContextProfile]) -> str:
    return render_participant_block(context.participants if context else None)


def food_history_enrichment(context: Optional[ContextProfile]) -> str:
    return render_food_history_block(context.food_history if context else None)


def voice_enrichment(context: Optional[ContextProfile]) -> str:
    return render_voice_block(context.voice_annotation if context else None)


FULL_ENRICHMENT: Tuple[Enrichment, ...] = (
    participant_enrichment,
    food_history_enrichment,
    voice_enrichment,
)

ENRICHMENTS_BY_KIND: Dict[AnalysisKind, Tuple[Enrichment, ...]] = {
    AnalysisKind.IMAGE: FULL_ENRICHMENT,
    AnalysisKind.TEXT: FULL_ENRICHMENT,
    AnalysisKind.MEAL_PLAN: FULL_ENRICHMENT,
    AnalysisKind.GROCERY_LIST: FULL_ENRICHMENT,
    AnalysisKind.CORRECTION: (participant_enrichment,),
}


class ImagePart(BaseModel):
    """Base64 image sent as a sibling content part of the prompt text."""

    model_config = ConfigDict(frozen=True)

    media_type: str
    data: str

    def approx_bytes(self) -> int:
        """Decoded size in bytes (estimated from length if the data is not valid base64)."""
        try:
            return len(base64.b64decode(self.data, validate=True))
        except (binascii.Error, ValueError):
            return len(self.data) * 3 // 4

    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


class PromptPayload(BaseModel):
    """
    One outbound prompt, built once per request and never mutated.

    Example:
        >>> payload = PromptPayload(kind=AnalysisKind.TEXT, text="Analyze...")
        >>> payload.log_summary()["image"] is None
        True
    """

    model_config = ConfigDict(frozen=True)

    kind: AnalysisKind
    text: str
    image: Optional[ImagePart] = None

    def log_summary(self) -> Dict[str, Any]:
        """Fields safe to log: sizes and media type, never the image data."""
        image = None
        if self.image is not None:
            image = {
                "media_type": self.image.media_type,
                "bytes": self.image.approx_bytes(),
            }
        return {
            "kind": self.kind.value,
            "text_chars": len(self.text),
            "image": image,
        }


class PromptAssembler:
    """
    Build a ``PromptPayload`` from a validated request.

    Template selection depends on the kind only; defaults for optional
    request fields come from configuration.

    Example:
        >>> assembler = PromptAssembler()
        >>> payload = assembler.assemble(TextAnalysisRequest(meal_description="Idli sambar"))
        >>> "Idli sambar" in payload.text
        True
    """

    def __init__(
        self,
        templates: PromptTemplates = DEFAULT_TEMPLATES,
        default_portion: str = "medium",
        default_participant_count: int = 4,
        default_plan_days: int = 7,
    ) -> None:
        self._templates = templates
        self._default_portion = default_portion
        self._default_participant_count = default_participant_count
        self._default_plan_days = default_plan_days

    def assemble(self, request: AnalysisRequest) -> PromptPayload:
        """Render the kind template, then append the kind's enrichment fragments."""
        kind = request.kind
        base, image = self._render_base(request)
        fragments: List[str] = [enrich(request.context) for enrich in ENRICHMENTS_BY_KIND[kind]]
        return PromptPayload(kind=kind, text=base + "".join(fragments), image=image)

    # ─── per-kind templates ────────────────────────────────

    def _render_base(self, request: AnalysisRequest) -> Tuple[str, Optional[ImagePart]]:
        t = self._templates

        if isinstance(request, ImageAnalysisRequest):
            image = ImagePart(media_type=request.media_type, data=request.image_base64)
            return t.food_recognition, image

        if isinstance(request, TextAnalysisRequest):
            section = Template(t.text_section).safe_substitute(
                meal_description=request.meal_description,
                portion=request.portion or self._default_portion,
            )
            return t.food_recognition + section, None

        if isinstance(request, CorrectionRequest):
            section = Template(t.correction_section).safe_substitute(
                previous_dishes=json.dumps(request.previous_dishes, ensure_ascii=False, indent=2),
                correction=request.correction,
            )
            image = None
            if request.image_base64:
                image = ImagePart(media_type=request.media_type, data=request.image_base64)
            return t.food_recognition + section, image

        if isinstance(request, GroceryListRequest):
            text = Template(t.grocery_list).safe_substitute(
                meal_names=", ".join(request.meal_names),
                participant_count=request.participant_count or self._default_participant_count,
            )
            return text, None

        if isinstance(request, MealPlanRequest):
            recent = request.recent_meal_names[:MAX_RECENT_MEALS]
            text = Template(t.meal_plan).safe_substitute(
                days=request.days or self._default_plan_days,
                dietary_preference=request.dietary_preference or "no restriction",
                recent_meals=", ".join(recent) if recent else "none provided",
            )
            return text, None

        raise TypeError(f"Unsupported request type: {type(request).__name__}")
