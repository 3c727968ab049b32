"""
Signal service - wires debouncing to the two interpreters.

Every inbound message goes through the debouncer. When the user settles, the
combined text is checked for future purchase intent and, if it names a
product other than the active one, the topic-switch arbiter is consulted.
The resulting SignalReport is handed to the caller, who persists and acts on it.
"""
import logging
from typing import Any, Awaitable, Callable, Optional

from messenger_sales_bot.core.models import ConversationContext, SignalReport, SignalsConfig
from messenger_sales_bot.core.topic_switch import TopicClassifier, TopicSwitchArbiter, detect_topic_keyword
from messenger_sales_bot.temporal.future_interest import FutureInterestDetector
from messenger_sales_bot.temporal.message_debouncer import MessageDebouncer

logger = logging.getLogger(__name__)

ContextAccessor = Callable[[str], Awaitable[Optional[ConversationContext]]]
ReportCallback = Callable[[SignalReport], Awaitable[None]]


class SignalService:
    """Debounces a user's messages and extracts signals from each settled burst."""

    def __init__(
        self,
        config: SignalsConfig,
        context_accessor: ContextAccessor,
        classifier: Optional[TopicClassifier] = None,
        detector: Optional[FutureInterestDetector] = None,
        debouncer: Optional[MessageDebouncer] = None,
    ):
        """
        Args:
            config: Signals configuration
            context_accessor: Fetches the user's conversation snapshot at settle time
            classifier: Advisory topic classifier; without one, topic switches are never arbitrated
            detector: Future interest detector (built from config if omitted)
            debouncer: Message debouncer (built from config if omitted)
        """
        self.config = config
        self.context_accessor = context_accessor
        self.detector = detector or FutureInterestDetector(timezone_name=config.timezone)
        self.debouncer = debouncer or MessageDebouncer(
            window_seconds=config.debounce_seconds,
            max_wait_seconds=config.debounce_max_wait_seconds,
        )
        self.arbiter: Optional[TopicSwitchArbiter] = None
        if classifier is not None:
            self.arbiter = TopicSwitchArbiter(
                classifier,
                topics=config.topics,
                timeout_seconds=config.classifier_timeout_seconds,
                history_window=config.history_window,
            )

    def submit(
        self,
        user_id: str,
        text: str,
        on_report: ReportCallback,
        source_context: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue a message; on_report receives the SignalReport once the user settles."""
        async def on_ready(combined: str) -> None:
            report = await self.analyze(user_id, combined, source_context)
            await on_report(report)

        self.debouncer.submit(user_id, text, on_ready)

    def cancel(self, user_id: str) -> None:
        """Drop pending messages, e.g. when a human operator takes over."""
        self.debouncer.cancel(user_id)

    async def analyze(
        self,
        user_id: str,
        combined_text: str,
        source_context: Optional[dict[str, Any]] = None,
    ) -> SignalReport:
        """Run both interpreters over an already combined message."""
        context = await self.context_accessor(user_id)
        future_interest = self.detector.detect(combined_text, context)

        topic_switch = None
        current_topic = context.current_topic if context else None
        candidate = detect_topic_keyword(combined_text)
        if self.arbiter and current_topic and candidate and candidate != current_topic:
            logger.info(
                f"Ambiguous topic for {user_id}: '{candidate}' while in '{current_topic}', arbitrating"
            )
            topic_switch = await self.arbiter.arbitrate(
                combined_text,
                current_topic,
                context.recent_messages,
                source_context,
            )

        return SignalReport(
            user_id=user_id,
            combined_text=combined_text,
            future_interest=future_interest,
            topic_switch=topic_switch,
        )
