"""
Shared fixtures for processor tests.

No test touches the network: the router and the HTTP app receive a fake
transport, and the retrying transport receives a mocked AsyncOpenAI client.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Union
from unittest.mock import AsyncMock, MagicMock

import pytest

from meal_processor.config import Settings
from meal_processor.domain.analysis.prompt_assembler import PromptPayload
from meal_processor.infrastructure.ai.transport import TransportReply

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


# ═══════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def settings() -> Settings:
    """Settings with a credential and no backoff wait."""
    return Settings(
        api_key="test-key",
        request_timeout_s=1.0,
        pipeline_timeout_s=5.0,
        max_attempts=3,
        retry_backoff_s=0.0,
        retry_backoff_max_s=0.0,
    )


@pytest.fixture
def settings_without_key() -> Settings:
    return Settings(api_key=None, retry_backoff_s=0.0, retry_backoff_max_s=0.0)


# ═══════════════════════════════════════════════════════════
# SAMPLE REPLIES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def dish_reply_data() -> Dict[str, Any]:
    return {
        "meal_name": "Idli with Sambar",
        "meal_name_telugu": "ఇడ్లీ సాంబార్",
        "detected_dishes": [
            {
                "name": "Idli",
                "confidence": "High",
                "confidence_pct": 95,
                "portion": "medium",
                "estimated_calories": 260,
            },
            {"name": "Sambar", "confidence": "medium", "estimated_calories": 130},
        ],
        "total_calories": 390,
        "traffic_light": "Green",
        "family_member_scores": [
            {"name": "Amma", "score": 55, "traffic_light": "yellow"},
            {"name": "Chinni", "score": 82, "traffic_light": "green"},
        ],
        "serving_note": "kept as an extra key",
    }


@pytest.fixture
def dish_reply(dish_reply_data: Dict[str, Any]) -> str:
    """Dish detection reply wrapped the way the backend often answers."""
    return "Here is the analysis:\n```json\n" + json.dumps(dish_reply_data) + "\n```"


@pytest.fixture
def grocery_reply() -> str:
    return json.dumps(
        {
            "grocery_list": [
                {
                    "category": "Vegetables",
                    "emoji": "🥬",
                    "items": [{"name": "Tomatoes", "quantity": "1 kg", "cost": 40}],
                }
            ],
            "estimated_total": "₹2,500",
            "smart_tips": ["Stock up on moong dal"],
        }
    )


@pytest.fixture
def meal_plan_reply() -> str:
    return json.dumps(
        {
            "days": [
                {"day": 1, "breakfast": "Pesarattu", "lunch": "Pappu annam", "snacks": "Chana"},
                {"day": "Day 2", "dinner": "Jowar roti"},
            ],
            "tips": ["Soak dal overnight"],
        }
    )


# ═══════════════════════════════════════════════════════════
# FAKE TRANSPORT (router / API tests)
# ═══════════════════════════════════════════════════════════


class FakeTransport:
    """Records payloads and answers with queued replies (or raises them)."""

    def __init__(self, replies: List[Union[str, Exception]], delay: float = 0.0) -> None:
        self.replies = list(replies)
        self.delay = delay
        self.payloads: List[PromptPayload] = []

    @property
    def calls(self) -> int:
        return len(self.payloads)

    async def send(self, payload: PromptPayload) -> TransportReply:
        self.payloads.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return TransportReply(text=reply, attempts=1, status_code=200)


@pytest.fixture
def fake_transport(dish_reply: str) -> FakeTransport:
    return FakeTransport([dish_reply])


@pytest.fixture
def transport_factory(fake_transport: FakeTransport) -> MagicMock:
    """Factory handing out ``fake_transport``; ``call_count`` counts transports built."""
    return MagicMock(side_effect=lambda _settings: fake_transport)


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


# ═══════════════════════════════════════════════════════════
# MOCK OPENAI CLIENT (transport tests)
# ═══════════════════════════════════════════════════════════


def make_completion(content: Any) -> MagicMock:
    completion = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = "stop"
    completion.choices = [choice]
    return completion


@pytest.fixture
def completion() -> Callable[[Any], MagicMock]:
    """Build a mocked ChatCompletion with the given message content."""
    return make_completion


@pytest.fixture
def mock_openai_client() -> AsyncMock:
    client = AsyncMock()
    client.close = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def png_base64() -> str:
    return PNG_BASE64
