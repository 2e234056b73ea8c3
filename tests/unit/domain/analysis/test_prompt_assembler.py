"""
Unit tests for PromptAssembler.

Covers determinism, enrichment order and per-kind template substitution.
"""

import json

import pytest

from meal_processor.domain.analysis.context_blocks import VOICE_INSTRUCTIONS
from meal_processor.domain.analysis.prompt_assembler import PromptAssembler
from meal_processor.domain.analysis.prompts import PromptTemplates
from meal_processor.domain.analysis.requests import (
    AnalysisKind,
    ContextProfile,
    CorrectionRequest,
    GroceryListRequest,
    ImageAnalysisRequest,
    MealPlanRequest,
    TextAnalysisRequest,
)

PARTICIPANT_HEADER = "FAMILY MEMBER PROFILES EATING THIS MEAL"
HISTORY_HEADER = "HOUSEHOLD FOOD HISTORY"
VOICE_HEADER = "USER VOICE CONTEXT"


@pytest.fixture
def full_context() -> ContextProfile:
    return ContextProfile.model_validate(
        {
            "memberProfiles": [
                {"name": "Amma", "age": 62, "conditions": ["diabetes"], "relationship": "mother"},
                {"name": "Chinni", "age": 9, "conditions": ["none"]},
            ],
            "voiceContext": "it is ragi mudde",
            "foodHistory": {"preferredCuisine": "Telugu", "commonDishes": ["Pesarattu"]},
        }
    )


@pytest.fixture
def assembler() -> PromptAssembler:
    return PromptAssembler()


class TestDeterminism:
    def test_identical_inputs_give_identical_text(
        self, assembler: PromptAssembler, full_context: ContextProfile
    ) -> None:
        request = TextAnalysisRequest(meal_description="Idli sambar", context=full_context)

        first = assembler.assemble(request)
        second = assembler.assemble(
            TextAnalysisRequest(meal_description="Idli sambar", context=full_context)
        )

        assert first.text == second.text
        assert first == second


class TestEnrichmentOrder:
    @pytest.mark.parametrize(
        "request_",
        [
            ImageAnalysisRequest(image_base64="aGVsbG8="),
            TextAnalysisRequest(meal_description="Pulihora"),
            MealPlanRequest(),
            GroceryListRequest(meal_names=["Biryani"]),
        ],
        ids=["image", "text", "meal-plan", "grocery-list"],
    )
    def test_participant_then_history_then_voice(
        self, assembler: PromptAssembler, full_context: ContextProfile, request_
    ) -> None:
        request = request_.model_copy(update={"context": full_context})

        text = assembler.assemble(request).text

        assert text.index(PARTICIPANT_HEADER) < text.index(HISTORY_HEADER) < text.index(VOICE_HEADER)
        assert text.endswith(VOICE_INSTRUCTIONS)

    def test_no_context_means_no_fragments(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(TextAnalysisRequest(meal_description="Pulihora")).text

        assert PARTICIPANT_HEADER not in text
        assert HISTORY_HEADER not in text
        assert VOICE_HEADER not in text

    def test_two_participants_render_two_lines(
        self, assembler: PromptAssembler, full_context: ContextProfile
    ) -> None:
        text = assembler.assemble(
            TextAnalysisRequest(meal_description="Biryani", context=full_context)
        ).text

        assert "- Amma (age 62, relationship: mother, health: diabetes)" in text
        assert "- Chinni (age 9, relationship: family, health: none)" in text


class TestTextKind:
    def test_description_and_default_portion(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(TextAnalysisRequest(meal_description="Upma with chutney")).text

        assert 'Meal description: "Upma with chutney"' in text
        assert "Portion size: medium" in text

    def test_explicit_portion(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(
            TextAnalysisRequest(meal_description="Upma", portion="large")
        ).text

        assert "Portion size: large" in text

    def test_configured_default_portion(self) -> None:
        text = PromptAssembler(default_portion="small").assemble(
            TextAnalysisRequest(meal_description="Upma")
        ).text

        assert "Portion size: small" in text

    def test_no_image_part(self, assembler: PromptAssembler) -> None:
        payload = assembler.assemble(TextAnalysisRequest(meal_description="Upma"))

        assert payload.image is None
        assert payload.kind is AnalysisKind.TEXT


class TestImageKind:
    def test_image_travels_beside_text(self, assembler: PromptAssembler) -> None:
        payload = assembler.assemble(
            ImageAnalysisRequest(image_base64="aGVsbG8=", media_type="image/png")
        )

        assert payload.image is not None
        assert payload.image.data == "aGVsbG8="
        assert payload.image.media_type == "image/png"
        assert "aGVsbG8=" not in payload.text

    def test_log_summary_has_no_image_data(self, assembler: PromptAssembler) -> None:
        payload = assembler.assemble(ImageAnalysisRequest(image_base64="aGVsbG8="))

        summary = payload.log_summary()

        assert summary == {
            "kind": "image",
            "text_chars": len(payload.text),
            "image": {"media_type": "image/jpeg", "bytes": 5},
        }
        assert "aGVsbG8=" not in json.dumps(summary)


class TestCorrectionKind:
    def test_placeholders_are_substituted(self, assembler: PromptAssembler) -> None:
        previous = [{"name": "Dosa", "confidence": "low"}]
        payload = assembler.assemble(
            CorrectionRequest(correction="It is pesarattu, not dosa", previous_dishes=previous)
        )

        assert json.dumps(previous, ensure_ascii=False, indent=2) in payload.text
        assert '"It is pesarattu, not dosa"' in payload.text
        assert "$previous_dishes" not in payload.text
        assert "$correction" not in payload.text

    def test_only_participant_block_is_appended(
        self, assembler: PromptAssembler, full_context: ContextProfile
    ) -> None:
        text = assembler.assemble(
            CorrectionRequest(correction="Remove the papad", previous_dishes=[], context=full_context)
        ).text

        assert PARTICIPANT_HEADER in text
        assert HISTORY_HEADER not in text
        assert VOICE_HEADER not in text

    def test_empty_prior_list_is_rendered(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(CorrectionRequest(correction="Add curd", previous_dishes=[])).text

        assert "detected these dishes:\n[]" in text

    def test_optional_image_is_passed_through(self, assembler: PromptAssembler) -> None:
        payload = assembler.assemble(
            CorrectionRequest(correction="Add curd", previous_dishes=[], image_base64="aGVsbG8=")
        )

        assert payload.image is not None
        assert payload.image.data == "aGVsbG8="


class TestGroceryListKind:
    def test_meal_names_and_default_count(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(
            GroceryListRequest(meal_names=["Biryani", "Pesarattu", "Pappu"])
        ).text

        assert "Biryani, Pesarattu, Pappu" in text
        assert "Family size: 4 members." in text

    def test_explicit_count(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(
            GroceryListRequest(meal_names=["Biryani"], participant_count=6)
        ).text

        assert "Family size: 6 members." in text

    def test_full_enrichment_order(
        self, assembler: PromptAssembler, full_context: ContextProfile
    ) -> None:
        text = assembler.assemble(
            GroceryListRequest(meal_names=["Biryani"], context=full_context)
        ).text

        assert text.index(PARTICIPANT_HEADER) < text.index(HISTORY_HEADER) < text.index(VOICE_HEADER)


class TestMealPlanKind:
    def test_defaults(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(MealPlanRequest()).text

        assert "next 7 days" in text
        assert "Dietary preference: no restriction" in text
        assert "none provided" in text

    def test_substitutions(self, assembler: PromptAssembler) -> None:
        text = assembler.assemble(
            MealPlanRequest(days=3, dietary_preference="vegetarian", recent_meal_names=["Upma"])
        ).text

        assert "next 3 days" in text
        assert "Dietary preference: vegetarian" in text
        assert "avoid repeating them too often): Upma" in text


class TestInjectedTemplates:
    def test_custom_template_is_used_verbatim(self) -> None:
        assembler = PromptAssembler(
            templates=PromptTemplates(grocery_list="Meals: $meal_names for $participant_count")
        )

        payload = assembler.assemble(GroceryListRequest(meal_names=["a", "b"]))

        assert payload.text == "Meals: a, b for 4"
