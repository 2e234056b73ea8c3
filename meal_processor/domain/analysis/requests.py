"""
Domain models for inbound analysis requests.

One request model per request kind; each carries only the fields its kind
needs. Field names are accepted both in snake_case and in the camelCase used
by existing mobile/web clients (``mealDescription``, ``memberProfiles``...).
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_MEDIA_TYPE = "image/jpeg"
MAX_PLAN_DAYS = 14

SUPPORTED_MEDIA_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}

_MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}

_DATA_URL = re.compile(r"^data:(?P<media>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


class AnalysisKind(str, Enum):
    """Discriminant selecting one of the five processing paths."""

    IMAGE = "image"
    TEXT = "text"
    CORRECTION = "correction"
    GROCERY_LIST = "grocery-list"
    MEAL_PLAN = "meal-plan"


def _strip_required(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be empty or whitespace")
    return v.strip()


def _clean_names(values: List[str]) -> List[str]:
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


# ═══════════════════════════════════════════════════════════
# CONTEXT PROFILE
# ═══════════════════════════════════════════════════════════


class ParticipantProfile(BaseModel):
    """
    One person eating the meal.

    Example:
        >>> p = ParticipantProfile(name="Amma", age=62, conditions=["diabetes"])
        >>> p.relationship is None
        True

    Every field is optional; a profile with no name still renders a line.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: Optional[str] = Field(None, description="Display name")
    age: Optional[int] = Field(None, ge=0, le=130, description="Age in years")
    conditions: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("conditions", "health_conditions", "healthConditions"),
        description="Health condition tags; 'none' means no condition",
    )
    relationship: Optional[str] = Field(None, description="Relationship label, e.g. 'mother'")

    @field_validator("conditions", mode="before")
    @classmethod
    def coerce_conditions(cls, v: Any) -> Any:
        """Accept a single tag or null from older clients."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


class FoodHistory(BaseModel):
    """What this household usually eats; biases ambiguous identification."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    preferred_cuisine: Optional[str] = Field(
        None, validation_alias=AliasChoices("preferred_cuisine", "preferredCuisine")
    )
    common_dishes: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("common_dishes", "commonDishes", "frequent_dishes"),
    )
    recent_meal_names: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("recent_meal_names", "recentMealNames", "recent_meals"),
    )

    @field_validator("common_dishes", "recent_meal_names", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("common_dishes", "recent_meal_names")
    @classmethod
    def drop_blank(cls, v: List[str]) -> List[str]:
        return _clean_names(v)


class ContextProfile(BaseModel):
    """
    Optional enrichment bundle attached to any request kind.

    Every field may be absent; absence means "no fragment emitted".
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    participants: List[ParticipantProfile] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "participants", "member_profiles", "memberProfiles"
        ),
    )
    voice_annotation: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "voice_annotation", "voiceAnnotation", "voice_context", "voiceContext"
        ),
    )
    food_history: Optional[FoodHistory] = Field(
        None, validation_alias=AliasChoices("food_history", "foodHistory")
    )

    @field_validator("participants", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ═══════════════════════════════════════════════════════════
# REQUEST VARIANTS
# ═══════════════════════════════════════════════════════════


class _RequestBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    context: Optional[ContextProfile] = None


class _ImageFields(BaseModel):
    """Shared normalization for requests that may carry a photo."""

    @model_validator(mode="before")
    @classmethod
    def split_data_url(cls, data: Any) -> Any:
        """Accept ``data:<media>;base64,<payload>`` and let its media type win."""
        if not isinstance(data, dict):
            return data
        for key in ("image_base64", "imageBase64", "image"):
            value = data.get(key)
            if isinstance(value, str):
                match = _DATA_URL.match(value.strip())
                if match:
                    data = {**data, key: match.group("data"), "media_type": match.group("media")}
                    data.pop("mediaType", None)
                break
        return data

    @field_validator("media_type", mode="before", check_fields=False)
    @classmethod
    def normalize_media_type(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_MEDIA_TYPE
        if not isinstance(v, str):
            return v
        media = v.strip().lower()
        media = _MEDIA_TYPE_ALIASES.get(media, media)
        if media not in SUPPORTED_MEDIA_TYPES:
            raise ValueError(f"unsupported media type '{v}'")
        return media


class ImageAnalysisRequest(_ImageFields, _RequestBase):
    """Identify dishes in a meal photo."""

    kind: Literal[AnalysisKind.IMAGE] = AnalysisKind.IMAGE
    image_base64: str = Field(
        ...,
        validation_alias=AliasChoices("image_base64", "imageBase64", "image"),
        description="Base64-encoded image bytes",
    )
    media_type: str = Field(
        DEFAULT_MEDIA_TYPE, validation_alias=AliasChoices("media_type", "mediaType")
    )

    @field_validator("image_base64")
    @classmethod
    def image_not_empty(cls, v: str) -> str:
        return _strip_required(v)


class TextAnalysisRequest(_RequestBase):
    """Analyze a meal from its free-text description."""

    kind: Literal[AnalysisKind.TEXT] = AnalysisKind.TEXT
    meal_description: str = Field(
        ...,
        validation_alias=AliasChoices("meal_description", "mealDescription", "description"),
    )
    portion: Optional[str] = Field(None, description="small / medium / large")

    @field_validator("meal_description")
    @classmethod
    def description_not_empty(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("portion")
    @classmethod
    def blank_portion_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class CorrectionRequest(_ImageFields, _RequestBase):
    """Re-run detection with the user's correction of a previous result."""

    kind: Literal[AnalysisKind.CORRECTION] = AnalysisKind.CORRECTION
    correction: str = Field(
        ...,
        validation_alias=AliasChoices(
            "correction", "correction_text", "correctionText", "userCorrection"
        ),
    )
    previous_dishes: List[Union[Dict[str, Any], str]] = Field(
        ...,
        validation_alias=AliasChoices(
            "previous_dishes", "previousDishes", "detected_dishes", "detectedDishes"
        ),
        description="Prior detections; an empty list means none",
    )
    image_base64: Optional[str] = Field(
        None, validation_alias=AliasChoices("image_base64", "imageBase64", "image")
    )
    media_type: str = Field(
        DEFAULT_MEDIA_TYPE, validation_alias=AliasChoices("media_type", "mediaType")
    )

    @field_validator("correction")
    @classmethod
    def correction_not_empty(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("image_base64")
    @classmethod
    def blank_image_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class GroceryListRequest(_RequestBase):
    """Build next week's shopping list from this week's meals."""

    kind: Literal[AnalysisKind.GROCERY_LIST] = AnalysisKind.GROCERY_LIST
    meal_names: List[str] = Field(
        ..., validation_alias=AliasChoices("meal_names", "mealNames")
    )
    participant_count: Optional[int] = Field(
        None,
        ge=1,
        validation_alias=AliasChoices(
            "participant_count", "participantCount", "member_count", "memberCount"
        ),
    )

    @field_validator("meal_names")
    @classmethod
    def at_least_one_meal(cls, v: List[str]) -> List[str]:
        names = _clean_names(v)
        if not names:
            raise ValueError("at least one meal name is required")
        return names


class MealPlanRequest(_RequestBase):
    """Propose a weekly meal plan; every field is an optional enrichment."""

    kind: Literal[AnalysisKind.MEAL_PLAN] = AnalysisKind.MEAL_PLAN
    dietary_preference: Optional[str] = Field(
        None, validation_alias=AliasChoices("dietary_preference", "dietaryPreference")
    )
    recent_meal_names: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("recent_meal_names", "recentMealNames", "mealNames"),
    )
    days: Optional[int] = Field(None, ge=1, le=MAX_PLAN_DAYS)

    @field_validator("recent_meal_names", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("recent_meal_names")
    @classmethod
    def drop_blank(cls, v: List[str]) -> List[str]:
        return _clean_names(v)


AnalysisRequest = Union[
    ImageAnalysisRequest,
    TextAnalysisRequest,
    CorrectionRequest,
    GroceryListRequest,
    MealPlanRequest,
]

REQUEST_MODELS: Dict[AnalysisKind, Type[_RequestBase]] = {
    AnalysisKind.IMAGE: ImageAnalysisRequest,
    AnalysisKind.TEXT: TextAnalysisRequest,
    AnalysisKind.CORRECTION: CorrectionRequest,
    AnalysisKind.GROCERY_LIST: GroceryListRequest,
    AnalysisKind.MEAL_PLAN: MealPlanRequest,
}
