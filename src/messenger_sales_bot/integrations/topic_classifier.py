"""
Claude-backed advisory classifier for topic-switch arbitration.

Implements the TopicClassifier capability with the Anthropic messages API.
Timeouts and malformed replies are handled by TopicSwitchArbiter; this class
only sends the prompt and returns the raw text.
"""
import logging
import os
from typing import Optional, TYPE_CHECKING

from dotenv import load_dotenv

from messenger_sales_bot.core.models import SignalsConfig

load_dotenv()

if TYPE_CHECKING:
    from anthropic import AsyncAnthropic

logger = logging.getLogger(__name__)


class AnthropicTopicClassifier:
    """
    Topic classifier using Claude.

    Attributes:
        client: Async Anthropic API client
        model: Model to use for classification
        max_tokens: Reply budget; the expected JSON is short

    Example:
        >>> classifier = AnthropicTopicClassifier()
        >>> arbiter = TopicSwitchArbiter(classifier)
        >>> verdict = await arbiter.arbitrate("y el rollo?", "malla_sombra")
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 150,
        temperature: float = 0.1,
        client: Optional["AsyncAnthropic"] = None,
    ):
        """
        Initialize classifier with an Anthropic client.

        Args:
            model: Claude model to use
            max_tokens: Maximum tokens in the reply
            temperature: Sampling temperature, kept low for stable labels
            client: Pre-built client (defaults to one using ANTHROPIC_API_KEY)
        """
        if client is None:
            # Lazy import to avoid import-time failures if anthropic package has issues
            from anthropic import AsyncAnthropic
            client = AsyncAnthropic(api_key=os.getenv("ANTHROPIC_API_KEY"))
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_config(
        cls,
        config: SignalsConfig,
        client: Optional["AsyncAnthropic"] = None,
    ) -> "AnthropicTopicClassifier":
        """Build a classifier using the model and reply budget from SignalsConfig."""
        return cls(
            model=config.classifier_model,
            max_tokens=config.classifier_max_tokens,
            client=client,
        )

    async def classify(self, system_prompt: str, message: str) -> str:
        """
        Send the classification prompt and return the reply text.

        Args:
            system_prompt: Instructions and conversation context
            message: The user's message to classify

        Returns:
            Raw text of the first content block
        """
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": message}],
        )
        text = response.content[0].text.strip()
        logger.debug(f"Topic classifier reply: {text[:200]}")
        return text
