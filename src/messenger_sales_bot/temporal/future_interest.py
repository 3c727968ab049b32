"""
Future purchase intent detection.

Recognizes messages like "sí me interesa, pero en un par de meses" and turns
them into a FutureInterestRecord with a concrete follow-up date, so the
conversation engine can schedule a reminder instead of dropping the lead.

Detection order:
1. Rejection phrases short-circuit everything ("no gracias", "ya compré").
2. Interest phrases are noted ("me interesa", "lo voy a necesitar").
3. The first matching timeframe rule gives the day offset. No timeframe, no record.
4. Without an explicit interest phrase the timeframe alone is too weak: the
   conversation must already be anchored on a product, or the message must
   carry a "pero" ("ahorita no, pero en marzo sí").
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import pytz

from messenger_sales_bot.core.models import ConversationContext, FutureInterestRecord
from messenger_sales_bot.temporal.timeframe import (
    MONTH_NAMES,
    TIMEFRAME_RULES,
    TimeframeRule,
    find_timeframe,
)

logger = logging.getLogger(__name__)

INTEREST_INDICATORS = [
    re.compile(r"\bs[ií]\s+(estoy\s+)?interesad[oa]\b"),
    re.compile(r"\bme\s+interesa\b"),
    re.compile(r"\bs[ií]\s+(lo\s+|la\s+)?quiero\b"),
    re.compile(r"\bs[ií]\s+(lo\s+|la\s+)?necesito\b"),
    re.compile(r"\bs[ií]\s+(lo\s+|la\s+)?ocupo\b"),
    re.compile(r"\blo\s+voy\s+a\s+(necesitar|ocupar|comprar)\b"),
    re.compile(r"\btengo\s+planes\s+de\s+(comprar|adquirir)\b"),
    re.compile(r"\bpienso\s+(comprar|adquirir)\b"),
    re.compile(r"\bquiero\s+(comprar|adquirir)\b"),
    re.compile(r"\bvoy\s+a\s+(comprar|necesitar)\b"),
]

REJECTION_INDICATORS = [
    re.compile(r"\bno\s+(me\s+)?interesa\b"),
    re.compile(r"\bno\s+gracias\b"),
    re.compile(r"\bya\s+no\s+(lo\s+|la\s+)?necesito\b"),
    re.compile(r"\bya\s+compr[eé]\b"),
    re.compile(r"\bya\s+(lo\s+|la\s+)?consegu[ií]\b"),
]

# "..., pero ..." implies the interest survives the hesitation
CONTRAST_PATTERN = re.compile(r"\bpero\b")

# Substrings of last_intent that show the user was already shopping
CONTEXT_INTENT_MARKERS = ("measure", "price")

WEEKDAY_NAMES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]


def _has_product_context(context: Optional[ConversationContext]) -> bool:
    if context is None:
        return False
    if context.product_interest or context.requested_size:
        return True
    last_intent = context.last_intent or ""
    return any(marker in last_intent for marker in CONTEXT_INTENT_MARKERS)


def _product_from_context(context: Optional[ConversationContext]) -> Optional[str]:
    if context is None:
        return None
    return context.product_interest or context.requested_size or context.item_name


class FutureInterestDetector:
    """
    Detects deferred purchase intent in a single (possibly combined) message.

    Attributes:
        clock: Returns the current time; used for calendar rules and timestamps
        rules: Ordered timeframe table

    Example:
        >>> detector = FutureInterestDetector(timezone_name="America/Mexico_City")
        >>> record = detector.detect("Sí me interesa, en 2 semanas", None)
        >>> record.timeframe_days
        14
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        timezone_name: str = "America/Mexico_City",
        rules: tuple[TimeframeRule, ...] = TIMEFRAME_RULES,
    ):
        if clock is None:
            tz = pytz.timezone(timezone_name)
            clock = lambda: datetime.now(tz)  # noqa: E731
        self.clock = clock
        self.rules = rules

    def detect(
        self,
        message: Optional[str],
        context: Optional[ConversationContext] = None,
    ) -> Optional[FutureInterestRecord]:
        """
        Look for deferred purchase intent.

        Args:
            message: The user's message, usually the debounced combined text
            context: Read-only conversation snapshot, may be None

        Returns:
            FutureInterestRecord, or None when there is no usable signal
        """
        if not message:
            return None

        msg = message.lower().strip()
        if not msg:
            return None

        if any(pattern.search(msg) for pattern in REJECTION_INDICATORS):
            logger.debug(f"Rejection phrase in message, skipping future interest: {msg[:50]!r}")
            return None

        has_interest_signal = any(pattern.search(msg) for pattern in INTEREST_INDICATORS)

        now = self.clock()
        timeframe = find_timeframe(msg, now, self.rules)
        if timeframe is None:
            return None

        if not has_interest_signal:
            if not _has_product_context(context) and not CONTRAST_PATTERN.search(msg):
                logger.debug(
                    f"Timeframe '{timeframe.raw_text}' without interest or context, ignoring"
                )
                return None

        follow_up_date = now + timedelta(days=timeframe.days)
        if hasattr(now.tzinfo, "normalize"):
            # pytz keeps the old UTC offset after arithmetic across a DST change
            follow_up_date = now.tzinfo.normalize(follow_up_date)

        record = FutureInterestRecord(
            raw_matched_text=timeframe.raw_text,
            timeframe_label=timeframe.label,
            timeframe_days=timeframe.days,
            follow_up_date=follow_up_date,
            product_interest=_product_from_context(context),
            original_message=message,
            detected_at=now,
        )
        logger.info(
            f"Future interest detected: '{timeframe.raw_text}' -> {timeframe.days} days "
            f"(product: {record.product_interest})"
        )
        return record


def format_follow_up_date(value: Optional[date]) -> Optional[str]:
    """
    Format a follow-up date as a long Spanish date.

    Example:
        >>> format_follow_up_date(date(2026, 10, 19))
        'lunes, 19 de octubre de 2026'
    """
    if value is None:
        return None
    weekday = WEEKDAY_NAMES[value.weekday()]
    month = MONTH_NAMES[value.month - 1]
    return f"{weekday}, {value.day} de {month} de {value.year}"
