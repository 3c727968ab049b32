"""Core signal modules (models, config, topic switching)."""

from messenger_sales_bot.core.config import ConfigError, load_config
from messenger_sales_bot.core.models import (
    ConversationContext,
    ConversationTurn,
    FutureInterestRecord,
    SignalReport,
    SignalsConfig,
    TopicSwitchVerdict,
)
from messenger_sales_bot.core.topic_switch import TopicClassifier, TopicSwitchArbiter

__all__ = [
    "ConfigError",
    "load_config",
    "ConversationContext",
    "ConversationTurn",
    "FutureInterestRecord",
    "SignalReport",
    "SignalsConfig",
    "TopicSwitchVerdict",
    "TopicClassifier",
    "TopicSwitchArbiter",
]
