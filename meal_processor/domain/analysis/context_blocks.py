"""
Context block renderers.

Each renderer turns one optional piece of ``ContextProfile`` into a prompt
fragment. They are total: absent or empty input yields ``""`` and nothing
here raises. Every non-empty fragment starts with a blank line so fragments
can be concatenated onto a template as-is.
"""

from __future__ import annotations

from typing import Optional, Sequence

from meal_processor.domain.analysis.requests import FoodHistory, ParticipantProfile

# Recent meal names beyond this are not rendered.
MAX_RECENT_MEALS = 10

NO_CONDITION_TAG = "none"

PARTICIPANT_SCORING_INSTRUCTIONS = """CRITICAL: In addition to per_member_guidance, return a "family_member_scores" array:
[
  {
    "name": "Member Name",
    "score": 75,
    "traffic_light": "green",
    "tip": "Personalized tip for THIS specific member based on their age and conditions",
    "avoid": "What this member should avoid or null",
    "reason": "Why this score for this member"
  }
]
RULES for family_member_scores:
- Return exactly one entry per member listed above, in the same order.
- A diabetic person eating rice/biryani scores 30-45 (RED). A healthy child eating the same meal scores 70-85 (GREEN).
- Someone with hypertension eating pickles/papad gets a WARNING and lower score.
- Growing children (age <18) generally score HIGHER on carb-heavy meals.
- Seniors (age >60) with conditions get LOWER scores than healthy adults.
- Members with different ages or health conditions MUST NOT receive identical outcomes: each gets a DIFFERENT score and a DIFFERENT tip."""

FOOD_HISTORY_INSTRUCTIONS = (
    "Use this history only to break ties when a dish is ambiguous. "
    "It must never override what is clearly visible or described."
)

VOICE_INSTRUCTIONS = (
    "The user has provided additional context about this meal. Trust it over any "
    "visual or textual ambiguity: use it to correct misidentified dishes and adjust "
    "the analysis accordingly."
)


def _participant_line(participant: ParticipantProfile, position: int) -> str:
    conditions = [
        c.strip()
        for c in participant.conditions
        if c and c.strip() and c.strip().lower() != NO_CONDITION_TAG
    ]
    age = participant.age if participant.age is not None else "unknown"
    relationship = participant.relationship or "family"
    health = ", ".join(conditions) or NO_CONDITION_TAG
    name = (participant.name or "").strip() or f"Member {position}"
    return f"- {name} (age {age}, relationship: {relationship}, health: {health})"


def render_participant_block(participants: Optional[Sequence[ParticipantProfile]]) -> str:
    """Render one line per participant plus the per-participant scoring rules.

    Participants are never merged or deduplicated: two entries with the same
    name still produce two lines. A participant without a name is labelled by
    position, e.g. "Member 2".
    """
    if not participants:
        return ""
    lines = "\n".join(_participant_line(p, i) for i, p in enumerate(participants, start=1))
    return (
        "\n\nFAMILY MEMBER PROFILES EATING THIS MEAL:\n"
        f"{lines}\n\n"
        f"{PARTICIPANT_SCORING_INSTRUCTIONS}"
    )


def render_food_history_block(history: Optional[FoodHistory]) -> str:
    """Render up to three history lines framed as a soft identification bias."""
    if history is None:
        return ""

    lines = []
    if history.preferred_cuisine and history.preferred_cuisine.strip():
        lines.append(f"- Preferred cuisine: {history.preferred_cuisine.strip()}")
    if history.common_dishes:
        lines.append(f"- Commonly eaten dishes: {', '.join(history.common_dishes)}")
    if history.recent_meal_names:
        recent = history.recent_meal_names[:MAX_RECENT_MEALS]
        lines.append(f"- Recent meals: {', '.join(recent)}")

    if not lines:
        return ""
    return "\n\nHOUSEHOLD FOOD HISTORY:\n" + "\n".join(lines) + "\n" + FOOD_HISTORY_INSTRUCTIONS


def render_voice_block(annotation: Optional[str]) -> str:
    """Wrap the trimmed user annotation in a trust-the-user instruction."""
    if not annotation or not annotation.strip():
        return ""
    return f'\n\nUSER VOICE CONTEXT: "{annotation.strip()}"\n{VOICE_INSTRUCTIONS}'
