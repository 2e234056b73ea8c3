"""
Domain models for structured analysis results.

The backend is instructed to answer with one of these shapes, but its reply
is untrusted: fields are optional wherever the consumers can cope without
them, numbers are coerced, and keys the schema does not know are preserved
(``extra="allow"``) so newer prompt versions do not break older servers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _ReplyModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ═══════════════════════════════════════════════════════════
# DISH DETECTION (image / text / correction)
# ═══════════════════════════════════════════════════════════


class DishAlternative(_ReplyModel):
    name: str
    reason: Optional[str] = None


class Dish(_ReplyModel):
    """Simplified dish entry (legacy ``dishes`` array)."""

    name: str
    name_telugu: Optional[str] = None
    portion: Optional[str] = None
    estimated_calories: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    fiber_g: Optional[float] = None


class DetectedDish(Dish):
    """
    Detailed dish entry with confidence scoring.

    Example:
        >>> dish = DetectedDish(name="Pesarattu", confidence="high", confidence_pct=92)
        >>> dish.confidence
        'high'
    """

    confidence: Optional[str] = Field(None, description="high / medium / low")
    confidence_pct: Optional[float] = Field(None, ge=0, le=100)
    alternatives: List[DishAlternative] = Field(default_factory=list)
    visual_cues: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def lower_confidence(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class MemberGuidance(_ReplyModel):
    traffic_light: Optional[str] = None
    tip: Optional[str] = None
    avoid: Optional[str] = None


class MemberScore(_ReplyModel):
    """Personalized outcome for one participant."""

    name: str
    score: Optional[float] = Field(None, ge=0, le=100)
    traffic_light: Optional[str] = None
    tip: Optional[str] = None
    avoid: Optional[str] = None
    reason: Optional[str] = None


class DishDetectionResult(_ReplyModel):
    """
    Result for image, text and correction requests.

    ``detected_dishes`` is the detailed form and ``dishes`` the simplified
    legacy array. Both are kept; when the reply only carries the detailed
    form, ``dishes`` is rebuilt from it.
    """

    meal_name: Optional[str] = None
    meal_name_telugu: Optional[str] = None
    detected_dishes: List[DetectedDish] = Field(default_factory=list)
    dishes: List[Dish] = Field(default_factory=list)
    verification_questions: List[str] = Field(default_factory=list)

    total_calories: Optional[float] = None
    total_protein_g: Optional[float] = None
    total_carbs_g: Optional[float] = None
    total_fat_g: Optional[float] = None
    total_fiber_g: Optional[float] = None

    glycemic_index: Optional[str] = None
    traffic_light: Optional[str] = None
    traffic_light_reason: Optional[str] = None
    quick_verdict: Optional[str] = None
    before_cooking_tips: List[str] = Field(default_factory=list)
    per_member_guidance: Dict[str, MemberGuidance] = Field(default_factory=dict)
    family_member_scores: List[MemberScore] = Field(default_factory=list)
    culturally_appropriate_swaps: List[str] = Field(default_factory=list)
    is_telugu_meal: Optional[bool] = None
    ayurvedic_note: Optional[str] = None

    @field_validator("traffic_light", mode="before")
    @classmethod
    def lower_traffic_light(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator(
        "before_cooking_tips",
        "culturally_appropriate_swaps",
        "verification_questions",
        "detected_dishes",
        "dishes",
        "family_member_scores",
        mode="before",
    )
    @classmethod
    def null_list_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("per_member_guidance", mode="before")
    @classmethod
    def drop_null_guidance(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {k: g for k, g in v.items() if g is not None}
        return v

    @model_validator(mode="after")
    def backfill_legacy_dishes(self) -> "DishDetectionResult":
        if self.detected_dishes and not self.dishes:
            self.dishes = [
                Dish.model_validate(
                    d.model_dump(
                        include={
                            "name",
                            "name_telugu",
                            "portion",
                            "estimated_calories",
                            "protein_g",
                            "carbs_g",
                            "fat_g",
                            "fiber_g",
                        }
                    )
                )
                for d in self.detected_dishes
            ]
        return self


# ═══════════════════════════════════════════════════════════
# GROCERY LIST
# ═══════════════════════════════════════════════════════════


class GroceryItem(_ReplyModel):
    name: str
    quantity: Optional[str] = None
    cost: Optional[str] = None

    @field_validator("quantity", "cost", mode="before")
    @classmethod
    def number_to_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v


class GroceryCategory(_ReplyModel):
    category: str
    emoji: Optional[str] = None
    items: List[GroceryItem] = Field(default_factory=list)


class GroceryListResult(_ReplyModel):
    """Result for grocery-list requests."""

    grocery_list: List[GroceryCategory]
    estimated_total: Optional[str] = None
    smart_tips: List[str] = Field(default_factory=list)

    @field_validator("estimated_total", mode="before")
    @classmethod
    def total_to_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v


# ═══════════════════════════════════════════════════════════
# MEAL PLAN
# ═══════════════════════════════════════════════════════════


class DayPlan(_ReplyModel):
    day: str
    breakfast: Optional[str] = None
    lunch: Optional[str] = None
    dinner: Optional[str] = None
    snacks: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("day", mode="before")
    @classmethod
    def day_number_to_text(cls, v: Any) -> Any:
        return f"Day {v}" if isinstance(v, int) else v

    @field_validator("snacks", mode="before")
    @classmethod
    def single_snack_to_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


class MealPlanResult(_ReplyModel):
    """Result for meal-plan requests."""

    days: List[DayPlan]
    shopping_focus: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)


ExtractedResult = Union[DishDetectionResult, GroceryListResult, MealPlanResult]
