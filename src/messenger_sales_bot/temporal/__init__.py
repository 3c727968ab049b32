"""Temporal processing modules (debouncing, timeframes, future interest)."""

from messenger_sales_bot.temporal.message_debouncer import MessageDebouncer
from messenger_sales_bot.temporal.timeframe import TimeframeMatch, find_timeframe
from messenger_sales_bot.temporal.future_interest import FutureInterestDetector, format_follow_up_date

__all__ = [
    "MessageDebouncer",
    "TimeframeMatch",
    "find_timeframe",
    "FutureInterestDetector",
    "format_follow_up_date",
]
