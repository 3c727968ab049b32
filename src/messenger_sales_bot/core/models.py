"""
Pydantic models for the signal core.

Context snapshots are read-only inputs provided by the conversation engine;
records and verdicts are created fresh per call and never mutated afterwards.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

# Product flows the bot can sell, with the description handed to the classifier
DEFAULT_TOPICS: dict[str, str] = {
    "malla_sombra": "malla sombra confeccionada (piezas cortadas a medida)",
    "rollo": "rollos de malla sombra (100m de largo, venta por rollo completo)",
    "groundcover": "malla antimaleza / ground cover (control de hierbas)",
    "monofilamento": "malla monofilamento (uso agrícola)",
    "borde_separador": "borde separador para jardín (cinta plástica)",
}


class ConversationTurn(BaseModel):
    """A single turn in the rolling window of recent messages."""
    role: Literal["user", "bot"]
    text: str


class ConversationContext(BaseModel):
    """
    Snapshot of what the conversation is currently anchored on.

    Only the fields the signal core reads are modelled here; the conversation
    engine keeps the full record.
    """
    product_interest: Optional[str] = None
    requested_size: Optional[str] = None  # e.g. "4x6"
    item_name: Optional[str] = None  # Catalogue item the user referenced
    last_intent: Optional[str] = None
    current_topic: Optional[str] = None  # Active product flow key
    recent_messages: list[ConversationTurn] = Field(default_factory=list)

    class Config:
        frozen = True


class FutureInterestRecord(BaseModel):
    """Deferred purchase intent detected in a message."""
    interested: Literal[True] = True
    raw_matched_text: str
    timeframe_label: str
    timeframe_days: int = Field(ge=1)
    follow_up_date: datetime
    product_interest: Optional[str] = None
    original_message: str
    detected_at: datetime

    class Config:
        frozen = True


class TopicSwitchVerdict(BaseModel):
    """Decision on whether the conversation should move to another product flow."""
    should_switch: bool = False
    target_topic: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    class Config:
        frozen = True

    @classmethod
    def fail_safe(cls) -> "TopicSwitchVerdict":
        """Conservative verdict used whenever the classifier cannot be trusted."""
        return cls(should_switch=False, target_topic=None, confidence=0.0)


class SignalReport(BaseModel):
    """Everything the core extracted from one settled burst of messages."""
    user_id: str
    combined_text: str
    future_interest: Optional[FutureInterestRecord] = None
    topic_switch: Optional[TopicSwitchVerdict] = None

    class Config:
        frozen = True


class SignalsConfig(BaseModel):
    """Configuration for debouncing and signal interpretation."""
    # Message debouncing
    debounce_seconds: float = Field(default=3.0, gt=0)  # Quiet window
    debounce_max_wait_seconds: Optional[float] = Field(default=None, gt=0)  # None disables the cap

    # Reference clock for timeframe arithmetic
    timezone: str = "America/Mexico_City"

    # Advisory topic classifier
    classifier_model: str = "claude-sonnet-4-20250514"
    classifier_timeout_seconds: float = Field(default=10.0, gt=0)
    classifier_max_tokens: int = 150
    history_window: int = Field(default=3, ge=0)  # Recent turns shown to the classifier

    topics: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_TOPICS))
