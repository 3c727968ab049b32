"""
Timeframe resolution - maps Spanish timeframe expressions to a day offset.

The rule table is ordered: specific expressions come before the general ones
they overlap with ("después de navidad" before "después"), and the first
matching rule wins. Each rule only carries the data needed to compute a day
count; the arithmetic lives in the resolver functions below.

All distances are measured from a reference "now", rounded up to whole days
and never less than one day.
"""
import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RuleKind(str, Enum):
    """How a timeframe rule turns a match into a day count."""
    FIXED = "fixed"
    MULTIPLIER = "multiplier"
    END_OF_YEAR = "end_of_year"
    AFTER_CHRISTMAS = "after_christmas"
    MONTH = "month"


# Unit sizes for "en N <unidad>" expressions
WEEK_DAYS = 7
FORTNIGHT_DAYS = 15
MONTH_DAYS = 30

# Used once this year's December 31 is behind us
END_OF_YEAR_FALLBACK_DAYS = 365

# Longest follow-up a multiplier expression may ask for (~10 years)
MAX_TIMEFRAME_DAYS = 3650
MAX_QUANTITY_DIGITS = 6

SECONDS_PER_DAY = 86400

NUMBER_WORDS = {
    "dos": 2,
    "tres": 3,
    "cuatro": 4,
    "cinco": 5,
    "seis": 6,
    "siete": 7,
    "ocho": 8,
    "nueve": 9,
    "diez": 10,
    "once": 11,
    "doce": 12,
}

_QUANTITY = r"(\d+|" + "|".join(NUMBER_WORDS) + r")"


@dataclass(frozen=True)
class TimeframeRule:
    """One entry of the ordered timeframe table."""
    pattern: re.Pattern
    label: str
    kind: RuleKind = RuleKind.FIXED
    days: Optional[int] = None  # FIXED
    unit_days: Optional[int] = None  # MULTIPLIER
    month: Optional[int] = None  # MONTH, 1-12


@dataclass(frozen=True)
class TimeframeMatch:
    """Result of scanning a message against the timeframe table."""
    raw_text: str
    days: int
    label: str


def _fixed(pattern: str, days: int, label: str) -> TimeframeRule:
    return TimeframeRule(re.compile(pattern, re.IGNORECASE), label, RuleKind.FIXED, days=days)


def _multiplier(unit: str, unit_days: int, label: str) -> TimeframeRule:
    pattern = rf"\ben\s+{_QUANTITY}\s+(?:{unit})\b"
    return TimeframeRule(
        re.compile(pattern, re.IGNORECASE), label, RuleKind.MULTIPLIER, unit_days=unit_days
    )


def _special(pattern: str, kind: RuleKind, label: str) -> TimeframeRule:
    return TimeframeRule(re.compile(pattern, re.IGNORECASE), label, kind)


MONTH_NAMES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

TIMEFRAME_RULES: tuple[TimeframeRule, ...] = (
    # Weeks
    _fixed(r"\b(la\s+)?pr[oó]xima\s+semana\b", 7, "próxima semana"),
    _fixed(r"\ben\s+(una?\s+)?semana\b", 7, "una semana"),
    _multiplier(r"semanas?", WEEK_DAYS, "semanas"),
    # Fortnights
    _fixed(r"\b(la\s+)?pr[oó]xima\s+quincena\b", 15, "próxima quincena"),
    _fixed(r"\ben\s+(una?\s+)?quincena\b", 15, "una quincena"),
    _multiplier(r"quincenas?", FORTNIGHT_DAYS, "quincenas"),
    # Months
    _fixed(r"\b(el\s+)?pr[oó]ximo\s+mes\b", 30, "próximo mes"),
    _fixed(r"\ben\s+un\s+mes\b", 30, "un mes"),
    _fixed(r"\ben\s+(un\s+)?par\s+de\s+meses\b", 60, "par de meses"),
    _multiplier(r"mes(?:es)?", MONTH_DAYS, "meses"),
    _fixed(r"\ben\s+unos?\s+meses?\b", 60, "unos meses"),
    # Calendar anchors
    _fixed(r"\bfin\s+de\s+mes\b", 15, "fin de mes"),
    _special(r"\bfin\s+de\s+a[ñn]o\b", RuleKind.END_OF_YEAR, "fin de año"),
    _special(r"\bdespu[eé]s\s+de\s+navidad\b", RuleKind.AFTER_CHRISTMAS, "después de navidad"),
    *(
        TimeframeRule(
            re.compile(rf"\ben\s+{name}\b", re.IGNORECASE), name, RuleKind.MONTH, month=number
        )
        for number, name in enumerate(MONTH_NAMES, start=1)
    ),
    # Vague
    _fixed(r"\bm[aá]s\s+adelante\b", 30, "más adelante"),
    _fixed(r"\bdespu[eé]s\b", 30, "después"),
    _fixed(r"\bluego\b", 14, "luego"),
    _fixed(r"\bpor\s+ahora\s+no\b", 30, "por ahora no"),
    _fixed(r"\btodav[ií]a\s+no\b", 30, "todavía no"),
    _fixed(r"\bcuando\s+(tenga|junte|ahorre|me\s+paguen)\b", 30, "cuando tenga dinero"),
    _fixed(r"\bcuando\s+pueda\b", 30, "cuando pueda"),
)


def _local_midnight(now: datetime, year: int, month: int, day: int) -> datetime:
    """Midnight of the given date in the same timezone as ``now``."""
    target = datetime(year, month, day)
    tz = now.tzinfo
    if tz is None:
        return target
    if hasattr(tz, "localize"):
        # pytz zones need localize() to pick the right UTC offset
        return tz.localize(target)
    return target.replace(tzinfo=tz)


def days_between(now: datetime, target: datetime) -> int:
    """Whole days from ``now`` until ``target``, rounding partial days up (minimum 1)."""
    seconds = (target - now).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def parse_quantity(token: Optional[str]) -> Optional[int]:
    """
    Parse the N of an "en N semanas" expression.

    Args:
        token: Digits or a spelled-out Spanish number

    Returns:
        Positive integer, or None if the token is not a usable quantity
    """
    if not token:
        return None
    token = token.strip().lower()
    if token.isdigit():
        if len(token) > MAX_QUANTITY_DIGITS:
            return None
        value = int(token)
    else:
        value = NUMBER_WORDS.get(token)
    if not value:
        return None
    return value


def days_until_end_of_year(now: datetime) -> int:
    """
    Days until December 31 of the current year.

    Once that date has passed, returns a flat 365 rather than the distance
    to next year's December 31.
    """
    end_of_year = _local_midnight(now, now.year, 12, 31)
    if end_of_year < now:
        return END_OF_YEAR_FALLBACK_DAYS
    return days_between(now, end_of_year)


def days_until_after_christmas(now: datetime) -> int:
    """Days until December 26, or until January 5 of next year once the 26th has passed."""
    target = _local_midnight(now, now.year, 12, 26)
    if target < now:
        target = _local_midnight(now, now.year + 1, 1, 5)
    return days_between(now, target)


def days_until_month(month: int, now: datetime) -> int:
    """
    Days until the middle (15th) of the next occurrence of ``month``.

    Args:
        month: Calendar month 1-12. The current or an earlier month rolls to next year.
        now: Reference time
    """
    year = now.year if month > now.month else now.year + 1
    return days_between(now, _local_midnight(now, year, month, 15))


def resolve_rule(rule: TimeframeRule, match: re.Match, now: datetime) -> Optional[int]:
    """
    Compute the day count for a matched rule.

    Returns:
        Days (>= 1), or None when a multiplier quantity cannot be parsed
        or resolves beyond MAX_TIMEFRAME_DAYS
    """
    if rule.kind == RuleKind.FIXED:
        return rule.days
    if rule.kind == RuleKind.MULTIPLIER:
        quantity = parse_quantity(match.group(1))
        if quantity is None:
            return None
        days = quantity * rule.unit_days
        if days > MAX_TIMEFRAME_DAYS:
            return None
        return days
    if rule.kind == RuleKind.END_OF_YEAR:
        return days_until_end_of_year(now)
    if rule.kind == RuleKind.AFTER_CHRISTMAS:
        return days_until_after_christmas(now)
    if rule.kind == RuleKind.MONTH:
        return days_until_month(rule.month, now)
    raise ValueError(f"Unknown timeframe rule kind: {rule.kind}")


def find_timeframe(
    text: str,
    now: datetime,
    rules: tuple[TimeframeRule, ...] = TIMEFRAME_RULES,
) -> Optional[TimeframeMatch]:
    """
    Scan ``text`` against the ordered rule table.

    Args:
        text: Message text (any case)
        now: Reference time for calendar-based rules
        rules: Ordered rule table, first match wins

    Returns:
        TimeframeMatch for the first rule that matches and resolves, or None
    """
    for rule in rules:
        match = rule.pattern.search(text)
        if not match:
            continue
        days = resolve_rule(rule, match, now)
        if days is None:
            continue
        return TimeframeMatch(raw_text=match.group(0), days=days, label=rule.label)
    return None
