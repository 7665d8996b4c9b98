import json
from datetime import date, timedelta
from typing import List, Sequence, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.runnables import Runnable
from pydantic import TypeAdapter, ValidationError

from flightchat.errors import IntentParseError
from flightchat.obs.logger import log_event
from flightchat.types import ChatMessage, FlightSearchIntent, ParsedIntent, TextIntent

SYSTEM = """You are a flight search assistant. Today's date is {today}.
Based on the user's latest message:
1. If they want flights, extract:
- baseCity (default: "{default_origin}")
- destinationCity (default: "{default_destination}")
- travelDate (default: {default_date}, YYYY-MM-DD)
- returnDate (optional, default: null, YYYY-MM-DD)
- adults (default: 1)
- children (optional, default: 0)
- infants (optional, default: 0)
- preference (cheapest, speed, convenience, default: balanced)
- budget (default: null, in INR)
- tripDuration (default: null, in days)
- nationality (optional, default: null)
Return JSON: {{
  "type": "flight",
  "baseCity": "DEL",
  "destinationCity": "BOM",
  "travelDate": "{default_date}",
  "returnDate": null,
  "adults": 1,
  "children": 0,
  "infants": 0,
  "preference": "cheapest",
  "budget": 15000,
  "tripDuration": 5,
  "nationality": "IN"
}}
2. If they want an explanation, return JSON: {{"type": "text", "query": "original user message"}}
Respond with the JSON object only.
"""

EXPLAIN_SYSTEM = "Provide a helpful response or explanation based on the user's query and prior context."

FALLBACK_REPLY = "I'm not sure how to help with that. Could you clarify?"

_intent_adapter = TypeAdapter(ParsedIntent)


def to_langchain_messages(history: Sequence[ChatMessage]) -> List[BaseMessage]:
    out: List[BaseMessage] = []
    for m in history:
        text = m.content_text()
        if m.role == "user":
            out.append(HumanMessage(content=text))
        elif m.role == "assistant":
            out.append(AIMessage(content=text))
        else:
            out.append(SystemMessage(content=text))
    return out


def strip_code_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content[3:]
        if content.lower().startswith("json"):
            content = content[4:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def decode_intent(content: str) -> Union[FlightSearchIntent, TextIntent]:
    """Decode and validate a model reply into an intent.

    Raises IntentParseError for anything that is not a JSON object matching
    one of the two intent shapes.
    """
    cleaned = strip_code_fences(content)
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise IntentParseError(f"model reply is not JSON: {e}", raw=content) from e
    if not isinstance(data, dict):
        raise IntentParseError("model reply is not a JSON object", raw=content)

    if "type" not in data and ("baseCity" in data or "destinationCity" in data):
        data["type"] = "flight"
    try:
        return _intent_adapter.validate_python(data)
    except ValidationError as e:
        raise IntentParseError(f"model reply failed validation: {e.error_count()} error(s)", raw=content) from e


class IntentParser:
    """Classify the latest turn as a flight search or a free-text question."""

    def __init__(self, intent_llm: Runnable, text_llm: Runnable,
                 default_origin: str = "DEL", default_destination: str = "BOM",
                 days_ahead: int = 7):
        self.intent_llm = intent_llm
        self.text_llm = text_llm
        self.default_origin = default_origin
        self.default_destination = default_destination
        self.days_ahead = days_ahead
        self.prompt = ChatPromptTemplate.from_messages(
            [("system", SYSTEM), MessagesPlaceholder("history")]
        )

    async def parse(self, history: Sequence[ChatMessage]) -> Union[FlightSearchIntent, TextIntent]:
        today = date.today()
        msgs = self.prompt.format_messages(
            today=today.isoformat(),
            default_origin=self.default_origin,
            default_destination=self.default_destination,
            default_date=(today + timedelta(days=self.days_ahead)).isoformat(),
            history=to_langchain_messages(history),
        )
        res = await self.intent_llm.ainvoke(msgs)
        content = res.content if isinstance(res.content, str) else json.dumps(res.content)
        intent = decode_intent(content)
        log_event("intent_parsed", intent_type=intent.type)
        return intent

    async def explain(self, history: Sequence[ChatMessage]) -> str:
        msgs = [SystemMessage(content=EXPLAIN_SYSTEM), *to_langchain_messages(history)]
        res = await self.text_llm.ainvoke(msgs)
        text = res.content if isinstance(res.content, str) else ""
        return text.strip() or FALLBACK_REPLY
