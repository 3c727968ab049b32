"""Claude topic classifier tests"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from messenger_sales_bot.core.models import SignalsConfig
from messenger_sales_bot.core.topic_switch import TopicSwitchArbiter
from messenger_sales_bot.integrations.topic_classifier import AnthropicTopicClassifier


def _fake_client(text: str) -> SimpleNamespace:
    response = SimpleNamespace(content=[SimpleNamespace(text=text)])
    return SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=response)))


class TestFromConfig:
    def test_uses_configured_model_and_budget(self):
        config = SignalsConfig(classifier_model="claude-test-model", classifier_max_tokens=64)
        classifier = AnthropicTopicClassifier.from_config(config, client=_fake_client(""))
        assert classifier.model == "claude-test-model"
        assert classifier.max_tokens == 64

    @pytest.mark.asyncio
    async def test_request_carries_config_and_prompt(self):
        config = SignalsConfig(classifier_model="claude-test-model", classifier_max_tokens=64)
        client = _fake_client('  {"shouldSwitch": false, "confidence": 0.9}\n')
        classifier = AnthropicTopicClassifier.from_config(config, client=client)

        text = await classifier.classify("prompt del sistema", "y el rollo?")

        assert text == '{"shouldSwitch": false, "confidence": 0.9}'
        client.messages.create.assert_awaited_once()
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-test-model"
        assert kwargs["max_tokens"] == 64
        assert kwargs["system"] == "prompt del sistema"
        assert kwargs["messages"] == [{"role": "user", "content": "y el rollo?"}]


class TestWithArbiter:
    @pytest.mark.asyncio
    async def test_arbiter_parses_classifier_reply(self):
        client = _fake_client('{"shouldSwitch": true, "targetProduct": "rollo", "confidence": 0.8}')
        classifier = AnthropicTopicClassifier.from_config(SignalsConfig(), client=client)
        arbiter = TopicSwitchArbiter(classifier)

        verdict = await arbiter.arbitrate("quiero el rollo de 100 metros", "malla_sombra")

        assert verdict.should_switch is True
        assert verdict.target_topic == "rollo"
        assert verdict.confidence == 0.8
        assert "Responde ÚNICAMENTE con JSON" in client.messages.create.await_args.kwargs["system"]
