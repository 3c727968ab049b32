"""External service integrations."""

from messenger_sales_bot.integrations.topic_classifier import AnthropicTopicClassifier

__all__ = ["AnthropicTopicClassifier"]
