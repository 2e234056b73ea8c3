"""
Unit tests for context block renderers.

All three renderers are total: empty input gives an empty fragment.
"""

import pytest

from meal_processor.domain.analysis.context_blocks import (
    VOICE_INSTRUCTIONS,
    render_food_history_block,
    render_participant_block,
    render_voice_block,
)
from meal_processor.domain.analysis.requests import FoodHistory, ParticipantProfile


class TestParticipantBlock:
    """Test suite for the participant block."""

    @pytest.mark.parametrize("participants", [None, []])
    def test_absent_participants_render_nothing(self, participants) -> None:
        assert render_participant_block(participants) == ""

    def test_line_format(self) -> None:
        block = render_participant_block(
            [
                ParticipantProfile(
                    name="Amma", age=62, conditions=["diabetes", "none"], relationship="mother"
                )
            ]
        )

        assert "- Amma (age 62, relationship: mother, health: diabetes)" in block

    def test_relationship_and_health_defaults(self) -> None:
        block = render_participant_block([ParticipantProfile(name="Ravi", age=35, conditions=["none"])])

        assert "- Ravi (age 35, relationship: family, health: none)" in block

    def test_multiple_conditions_are_comma_joined(self) -> None:
        block = render_participant_block(
            [ParticipantProfile(name="Nanna", age=68, conditions=["diabetes", "hypertension"])]
        )

        assert "health: diabetes, hypertension)" in block

    def test_distinct_participants_get_distinct_lines(self) -> None:
        block = render_participant_block(
            [
                ParticipantProfile(name="Amma", age=62, conditions=["diabetes"]),
                ParticipantProfile(name="Chinni", age=9, conditions=[]),
            ]
        )

        lines = [line for line in block.splitlines() if ", relationship:" in line]
        assert len(lines) == 2
        assert lines[0] != lines[1]

    def test_duplicate_participants_are_not_merged(self) -> None:
        twin = ParticipantProfile(name="Twin", age=10)
        block = render_participant_block([twin, twin])

        assert block.count("- Twin (age 10") == 2

    def test_scoring_instructions_follow_profiles(self) -> None:
        block = render_participant_block([ParticipantProfile(name="Amma", age=62)])

        assert block.index("FAMILY MEMBER PROFILES") < block.index("family_member_scores")
        assert "MUST NOT receive identical outcomes" in block

    def test_unknown_age_does_not_raise(self) -> None:
        block = render_participant_block([ParticipantProfile(name="Guest")])

        assert "- Guest (age unknown" in block

    def test_unnamed_participant_is_labelled_by_position(self) -> None:
        block = render_participant_block(
            [
                ParticipantProfile(name="Amma", age=62),
                ParticipantProfile(age=40, conditions=["diabetes"]),
            ]
        )

        assert "- Member 2 (age 40, relationship: family, health: diabetes)" in block


class TestFoodHistoryBlock:
    """Test suite for the food history block."""

    def test_absent_history_renders_nothing(self) -> None:
        assert render_food_history_block(None) == ""

    def test_empty_history_renders_nothing(self) -> None:
        assert render_food_history_block(FoodHistory()) == ""

    def test_all_three_lines(self) -> None:
        block = render_food_history_block(
            FoodHistory(
                preferred_cuisine="Telugu",
                common_dishes=["Pesarattu", "Pappu"],
                recent_meal_names=["Biryani"],
            )
        )

        assert "- Preferred cuisine: Telugu" in block
        assert "- Commonly eaten dishes: Pesarattu, Pappu" in block
        assert "- Recent meals: Biryani" in block
        assert "never override" in block

    def test_recent_meals_capped_at_ten(self) -> None:
        history = FoodHistory(recent_meal_names=[f"meal{i}" for i in range(15)])

        block = render_food_history_block(history)

        assert "meal9" in block
        assert "meal10" not in block

    def test_only_present_lines_rendered(self) -> None:
        block = render_food_history_block(FoodHistory(preferred_cuisine="Andhra"))

        assert "Preferred cuisine" in block
        assert "Commonly eaten" not in block
        assert "Recent meals" not in block

    def test_null_lists_render_only_present_lines(self) -> None:
        history = FoodHistory.model_validate(
            {"preferredCuisine": "Telugu", "commonDishes": None, "recentMealNames": None}
        )

        block = render_food_history_block(history)

        assert "- Preferred cuisine: Telugu" in block
        assert "Commonly eaten" not in block
        assert "Recent meals" not in block


class TestVoiceBlock:
    """Test suite for the voice annotation block."""

    @pytest.mark.parametrize("annotation", [None, "", "   \n"])
    def test_blank_annotation_renders_nothing(self, annotation) -> None:
        assert render_voice_block(annotation) == ""

    def test_annotation_is_trimmed_and_wrapped(self) -> None:
        block = render_voice_block("  this is ragi mudde, not rice  ")

        assert 'USER VOICE CONTEXT: "this is ragi mudde, not rice"' in block
        assert block.endswith(VOICE_INSTRUCTIONS)
