"""Per-turn orchestration: history -> intent -> search -> ranked reply -> history."""

import asyncio
from typing import Any, Dict, List, Optional, Union

from flightchat.amadeus.client import AmadeusClient
from flightchat.errors import AmadeusError, IntentParseError
from flightchat.flights.fetcher import FlightOfferFetcher
from flightchat.iata.resolver import LocationResolver
from flightchat.llm.intent_parser import IntentParser
from flightchat.obs.logger import log_event
from flightchat.rank.pipeline import RankingPipeline
from flightchat.session.conversation_store import ConversationStore
from flightchat.types import ChatMessage, FlightResults, FlightSearchIntent, TextIntent, UserPreferences

GENERIC_ERROR_REPLY = "Sorry, there was an error processing your request. Please try again."
CLARIFY_REPLY = (
    "Sorry, I couldn't work out that flight search. Could you tell me where you're flying "
    "from, where to, and on which date?"
)

Reply = Union[str, Dict[str, Any]]


def unresolved_city_message(city: str) -> str:
    return (f"Could not find the airport for {city}. "
            f"Please try using the IATA code or a different city name.")


def no_flights_message(intent: FlightSearchIntent) -> str:
    msg = f"No flights found from {intent.base_city} to {intent.destination_city} on {intent.travel_date}"
    if intent.return_date:
        msg += f" to {intent.return_date}"
    return msg + ". Try adjusting your dates or preferences."


class FlightAssistant:
    def __init__(self, conversations: ConversationStore, intent_parser: IntentParser,
                 resolver: LocationResolver, fetcher: FlightOfferFetcher,
                 amadeus: AmadeusClient, pipeline: RankingPipeline,
                 request_timeout: float = 60.0):
        self.conversations = conversations
        self.intent_parser = intent_parser
        self.resolver = resolver
        self.fetcher = fetcher
        self.amadeus = amadeus
        self.pipeline = pipeline
        self.request_timeout = request_timeout

    async def handle_message(self, chat_id: Union[str, int], message: str,
                             preferences: Optional[UserPreferences] = None) -> Reply:
        """Run one chat turn and persist both sides of it.

        The user turn and an assistant turn are saved even when processing
        raises; the exception then propagates to the HTTP boundary.
        """
        async with self.conversations.lock(chat_id):
            history = await self.conversations.load(chat_id)
            history.append(ChatMessage(role="user", content=message))
            try:
                result = await asyncio.wait_for(self.respond(history, preferences), self.request_timeout)
            except Exception:
                history.append(ChatMessage(role="assistant", content=GENERIC_ERROR_REPLY))
                await self.conversations.save(chat_id, history)
                raise

            reply: Reply = result.to_wire() if isinstance(result, FlightResults) else result
            history.append(ChatMessage(role="assistant", content=reply))
            await self.conversations.save(chat_id, history)
            return reply

    async def respond(self, history: List[ChatMessage],
                      preferences: Optional[UserPreferences] = None) -> Union[str, FlightResults]:
        try:
            intent = await self.intent_parser.parse(history)
        except IntentParseError as e:
            log_event("intent_parse_failed", level="WARNING", error=str(e), raw=e.raw[:500])
            return CLARIFY_REPLY

        if isinstance(intent, TextIntent):
            return await self.intent_parser.explain(history)
        return await self.search(intent, preferences)

    async def search(self, intent: FlightSearchIntent,
                     preferences: Optional[UserPreferences] = None) -> Union[str, FlightResults]:
        origin = await self.resolver.resolve(intent.base_city)
        destination = await self.resolver.resolve(intent.destination_city)
        if not origin or not destination:
            failed = intent.base_city if not origin else intent.destination_city
            return unresolved_city_message(failed)

        offers, busiest = await asyncio.gather(
            self.fetcher.fetch(
                origin, destination, intent.travel_date, intent.adults,
                children=intent.children, infants=intent.infants, return_date=intent.return_date,
            ),
            self.busiest_period(origin, destination),
        )
        if not offers:
            return no_flights_message(intent)

        return await self.pipeline.run(
            intent, offers, origin, destination,
            busiest_period=busiest, preferences=preferences,
        )

    async def busiest_period(self, origin: str, destination: str) -> Optional[List[Any]]:
        try:
            return await self.amadeus.busiest_traveling_period(origin, destination)
        except AmadeusError as e:
            log_event("busiest_period_unavailable", level="WARNING", status=e.status_code, error=str(e))
            return None
