"""Future interest detection tests"""

from datetime import date, datetime, timedelta

import pytest
import pytz

from messenger_sales_bot.core.models import ConversationContext
from messenger_sales_bot.temporal.future_interest import FutureInterestDetector, format_follow_up_date


@pytest.fixture
def detector(reference_now) -> FutureInterestDetector:
    return FutureInterestDetector(clock=lambda: reference_now)


class TestRejection:
    @pytest.mark.parametrize(
        "message",
        [
            "No gracias, tal vez el próximo mes",
            "no me interesa, en 2 semanas ya veremos",
            "Ya compré, pero me interesa en marzo",
            "ya no lo necesito, después",
            "Ya lo conseguí, me interesa en un par de meses",
        ],
    )
    def test_rejection_dominates(self, detector, message):
        context = ConversationContext(requested_size="4x6", product_interest="malla_sombra")
        assert detector.detect(message, context) is None


class TestInterestSignal:
    def test_interest_with_timeframe(self, detector, reference_now):
        record = detector.detect("Sí me interesa, en 2 semanas", None)
        assert record is not None
        assert record.interested is True
        assert record.timeframe_days == 14
        assert record.raw_matched_text == "en 2 semanas"
        assert record.original_message == "Sí me interesa, en 2 semanas"
        assert record.detected_at == reference_now
        assert record.product_interest is None

    def test_interest_without_timeframe(self, detector):
        assert detector.detect("me interesa la de 4x6", None) is None

    def test_first_matching_rule_wins(self, detector):
        record = detector.detect("lo voy a comprar después de navidad", None)
        assert record.timeframe_label == "después de navidad"
        assert record.timeframe_days == 68

    def test_message_is_normalized(self, detector):
        record = detector.detect("   QUIERO COMPRAR EL PRÓXIMO MES  ", None)
        assert record.timeframe_days == 30

    @pytest.mark.parametrize("message", [None, "", "   "])
    def test_empty_message(self, detector, message):
        assert detector.detect(message, None) is None


class TestContextGate:
    def test_bare_timeframe_is_too_weak(self, detector):
        assert detector.detect("tal vez el próximo mes", None) is None
        assert detector.detect("tal vez el próximo mes", ConversationContext()) is None

    def test_requested_size_supports_timeframe(self, detector):
        context = ConversationContext(requested_size="4x6")
        record = detector.detect("tal vez el próximo mes", context)
        assert record is not None
        assert record.timeframe_days == 30
        assert record.product_interest == "4x6"

    def test_product_interest_takes_priority(self, detector):
        context = ConversationContext(product_interest="malla sombra 90%", requested_size="4x6")
        record = detector.detect("en una quincena", context)
        assert record.product_interest == "malla sombra 90%"

    def test_price_intent_supports_timeframe(self, detector):
        context = ConversationContext(last_intent="price_query", item_name="Rollo 4.20x100")
        record = detector.detect("en un par de meses", context)
        assert record.timeframe_days == 60
        assert record.product_interest == "Rollo 4.20x100"

    def test_measure_intent_supports_timeframe(self, detector):
        context = ConversationContext(last_intent="measures_given")
        assert detector.detect("más adelante", context) is not None

    def test_unrelated_intent_does_not_support_timeframe(self, detector):
        context = ConversationContext(last_intent="greeting", item_name="Rollo 4.20x100")
        assert detector.detect("más adelante", context) is None

    def test_contrast_supports_timeframe(self, detector):
        record = detector.detect("Ahorita no, pero en marzo", None)
        assert record is not None
        assert record.timeframe_label == "marzo"
        assert record.timeframe_days == 147


class TestFollowUpDate:
    def test_follow_up_is_offset_by_timeframe(self, detector):
        record = detector.detect("sí lo quiero, en 3 meses", None)
        assert record.follow_up_date - record.detected_at == timedelta(days=90)
        assert record.follow_up_date > record.detected_at

    def test_format_follow_up_date(self):
        assert format_follow_up_date(date(2026, 10, 19)) == "lunes, 19 de octubre de 2026"
        assert format_follow_up_date(date(2026, 12, 25)) == "viernes, 25 de diciembre de 2026"
        assert format_follow_up_date(None) is None

    def test_follow_up_across_dst_change_uses_new_offset(self):
        tz = pytz.timezone("America/New_York")
        now = tz.localize(datetime(2026, 10, 19, 12, 0))
        detector = FutureInterestDetector(clock=lambda: now)

        record = detector.detect("sí me interesa, el próximo mes", None)

        # Daylight saving ends on November 1, 2026
        assert now.utcoffset() == timedelta(hours=-4)
        assert record.follow_up_date.utcoffset() == timedelta(hours=-5)
        assert record.follow_up_date - record.detected_at == timedelta(days=30)
        assert record.follow_up_date.date() == date(2026, 11, 18)


class TestOversizedTimeframe:
    @pytest.mark.parametrize(
        "message",
        ["sí me interesa, en 100000 meses", "sí lo quiero, en 9999999999 semanas"],
    )
    def test_unreasonable_quantity_is_ignored(self, detector, message):
        assert detector.detect(message, None) is None

    def test_unreasonable_quantity_does_not_hide_other_timeframes(self, detector):
        record = detector.detect("sí me interesa, en 100000 meses o más adelante", None)
        assert record.timeframe_label == "más adelante"
        assert record.timeframe_days == 30
