"""
Topic-switch arbitration.

A single keyword like "rollo" can mean "the same shade mesh, sold by the
roll" or "I want a different product". Instead of switching product flows on
the keyword alone, the arbiter asks an advisory classifier whether the user
really wants to change topic. The classifier is advisory only: whenever it
errors, times out or answers with something unparseable, the conversation
stays in its current flow.
"""
import asyncio
import json
import logging
import re
from typing import Any, Optional, Protocol, Sequence, Union

from pydantic import BaseModel, Field, ValidationError

from messenger_sales_bot.core.models import DEFAULT_TOPICS, ConversationTurn, TopicSwitchVerdict

logger = logging.getLogger(__name__)

UNKNOWN_ORIGIN = "desconocido"

# Keyword -> product flow, checked in order (malla sombra only when no "rollo")
TOPIC_KEYWORDS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\brollo\b|\b100\s*m(etros?)?\b", re.IGNORECASE), "rollo"),
    (re.compile(r"\bborde\b|\bcinta\s*pl[aá]stica\b", re.IGNORECASE), "borde_separador"),
    (re.compile(r"\b(ground\s*cover|antimaleza|malla\s*(para\s*)?maleza)\b", re.IGNORECASE), "groundcover"),
    (re.compile(r"\bmonofilamento\b", re.IGNORECASE), "monofilamento"),
    (re.compile(r"\b(malla\s*sombra|confeccionada)\b", re.IGNORECASE), "malla_sombra"),
]

SYSTEM_PROMPT_TEMPLATE = """Eres un clasificador de intenciones para un chatbot de ventas de mallas sombra.

El cliente está actualmente en el flujo de: {current_topic}
Origen del anuncio: {ad_origin}

Otros productos disponibles:
{available_topics}

{recent_block}Analiza si el cliente REALMENTE quiere cambiar a un producto diferente, o si simplemente está continuando la conversación sobre el mismo producto con una palabra ambigua.

IMPORTANTE:
- Una sola palabra ambigua que puede ser sinónimo o presentación del producto actual NO es motivo para cambiar. Por ejemplo, si el cliente está en malla_sombra y dice "rollo" sin más contexto, probablemente habla del mismo producto en presentación rollo.
- Si el cliente vino de un anuncio de un producto específico, es MUY probable que siga interesado en ese producto.
- Solo marca shouldSwitch=true si hay clara intención de cambiar de producto.

Responde ÚNICAMENTE con JSON:
{{
  "shouldSwitch": true/false,
  "targetProduct": "nombre_del_flujo" o null,
  "confidence": 0.0-1.0,
  "reason": "breve explicación"
}}"""


class TopicClassifier(Protocol):
    """Advisory classifier capability: returns the raw model reply for a prompt."""

    async def classify(self, system_prompt: str, message: str) -> str:
        ...


class ClassifierReply(BaseModel):
    """Expected shape of the classifier's JSON answer."""
    should_switch: bool = Field(alias="shouldSwitch")
    target_topic: Optional[str] = Field(default=None, alias="targetProduct")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reason: Optional[str] = None

    class Config:
        populate_by_name = True


def detect_topic_keyword(text: str) -> Optional[str]:
    """Product flow named by a keyword in ``text``, or None."""
    for pattern, topic in TOPIC_KEYWORDS:
        if pattern.search(text):
            return topic
    return None


def extract_json_object(text: str) -> Optional[dict]:
    """
    Parse a JSON object from a model reply.

    Accepts a bare JSON object or one embedded in surrounding prose.
    Nesting too deep for the decoder counts as unparseable.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        start = text.find('{')
        end = text.rfind('}')
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start:end + 1])
        except (json.JSONDecodeError, RecursionError):
            return None
    return data if isinstance(data, dict) else None


def _ad_origin(source_context: Optional[dict]) -> str:
    ad = (source_context or {}).get("ad") or {}
    return ad.get("product") or ad.get("flowRef") or ad.get("flow_ref") or UNKNOWN_ORIGIN


def _turn_role_text(turn: Union[ConversationTurn, dict]) -> tuple[str, str]:
    if isinstance(turn, dict):
        return turn.get("role", ""), turn.get("text", "")
    return turn.role, turn.text


class TopicSwitchArbiter:
    """
    Decides whether an ambiguous message should move the user to another product flow.

    Attributes:
        classifier: Injected advisory classifier
        topics: Product flow key -> human readable description
        timeout_seconds: Upper bound for one classifier call
        history_window: Number of recent turns included in the prompt
    """

    def __init__(
        self,
        classifier: TopicClassifier,
        topics: Optional[dict[str, str]] = None,
        timeout_seconds: float = 10.0,
        history_window: int = 3,
    ):
        self.classifier = classifier
        self.topics = dict(topics) if topics is not None else dict(DEFAULT_TOPICS)
        self.timeout_seconds = timeout_seconds
        self.history_window = history_window

    def build_prompt(
        self,
        current_topic: str,
        recent_history: Optional[Sequence[Union[ConversationTurn, dict]]] = None,
        source_context: Optional[dict] = None,
    ) -> str:
        """Render the classifier system prompt for the current conversation."""
        turns = list(recent_history or [])
        turns = turns[-self.history_window:] if self.history_window else []
        lines = []
        for turn in turns:
            role, text = _turn_role_text(turn)
            speaker = "Cliente" if role == "user" else "Bot"
            lines.append(f"{speaker}: {text}")
        recent_block = ""
        if lines:
            history = "\n".join(lines)
            recent_block = f"Últimos mensajes:\n{history}\n\n"

        available = "\n".join(
            f"- {key}: {desc}" for key, desc in self.topics.items() if key != current_topic
        )

        return SYSTEM_PROMPT_TEMPLATE.format(
            current_topic=self.topics.get(current_topic, current_topic),
            ad_origin=_ad_origin(source_context),
            available_topics=available,
            recent_block=recent_block,
        )

    async def arbitrate(
        self,
        message: str,
        current_topic: str,
        recent_history: Optional[Sequence[Union[ConversationTurn, dict]]] = None,
        source_context: Optional[dict[str, Any]] = None,
    ) -> TopicSwitchVerdict:
        """
        Ask the classifier whether ``message`` is a real topic switch.

        Never raises: any failure yields TopicSwitchVerdict.fail_safe().

        Args:
            message: The user's (combined) message
            current_topic: Active product flow key
            recent_history: Recent turns, oldest first
            source_context: Where the conversation came from, e.g. {"ad": {"product": "rollo"}}

        Returns:
            TopicSwitchVerdict
        """
        try:
            system_prompt = self.build_prompt(current_topic, recent_history, source_context)
            raw = await asyncio.wait_for(
                self.classifier.classify(system_prompt, message),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Topic switch classifier timed out after {self.timeout_seconds}s, staying in {current_topic}"
            )
            return TopicSwitchVerdict.fail_safe()
        except Exception as e:
            logger.error(f"Error analyzing topic switch: {e}")
            return TopicSwitchVerdict.fail_safe()

        data = extract_json_object(raw) if isinstance(raw, str) else None
        if data is None:
            logger.error(f"Could not parse topic switch reply as JSON: {str(raw)[:200]}")
            return TopicSwitchVerdict.fail_safe()

        if "targetProduct" not in data and "targetTopic" in data:
            data["targetProduct"] = data["targetTopic"]

        try:
            reply = ClassifierReply.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed topic switch reply: {e}")
            return TopicSwitchVerdict.fail_safe()

        logger.info(
            f"Topic switch analysis for {current_topic}: switch={reply.should_switch} "
            f"target={reply.target_topic} confidence={reply.confidence:.2f} ({reply.reason})"
        )
        return TopicSwitchVerdict(
            should_switch=reply.should_switch,
            target_topic=reply.target_topic or None,
            confidence=reply.confidence,
        )
