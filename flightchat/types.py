import json
from datetime import date, timedelta
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from flightchat.config import settings
from flightchat.utils.dates import ISO_DATE_RE, to_iso_date


Preference = Literal["cheapest", "speed", "convenience", "balanced"]
PreferredTime = Literal["morning", "afternoon", "evening"]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire and in the cache."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: Union[str, Dict[str, Any]]

    def content_text(self) -> str:
        """Content as a string, structured results serialised as JSON."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, separators=(",", ":"))


# --- Intents -----------------------------------------------------------------

def default_travel_date() -> str:
    return (date.today() + timedelta(days=settings.DEFAULT_TRAVEL_DAYS_AHEAD)).isoformat()


class FlightSearchIntent(CamelModel):
    type: Literal["flight"] = "flight"
    base_city: str = Field(default_factory=lambda: settings.DEFAULT_ORIGIN, min_length=1)
    destination_city: str = Field(default_factory=lambda: settings.DEFAULT_DESTINATION, min_length=1)
    travel_date: str = Field(default_factory=default_travel_date, description="YYYY-MM-DD")
    return_date: Optional[str] = None
    adults: int = Field(1, ge=1, le=9)
    children: int = Field(0, ge=0, le=9)
    infants: int = Field(0, ge=0, le=9)
    preference: Preference = "balanced"
    budget: Optional[float] = None
    trip_duration: Optional[int] = None
    nationality: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Models send explicit nulls for "not given"; let field defaults apply
        if isinstance(data, dict):
            nullable = {"returnDate", "return_date", "budget", "tripDuration",
                        "trip_duration", "nationality"}
            return {k: v for k, v in data.items() if v is not None or k in nullable}
        return data

    @field_validator("base_city", "destination_city", mode="before")
    @classmethod
    def _strip_city(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("travel_date", "return_date", mode="before")
    @classmethod
    def _normalise_date(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        text = str(v).strip()
        if ISO_DATE_RE.match(text):
            return text
        iso = to_iso_date(text)
        if not iso:
            raise ValueError(f"unrecognised date: {text!r}")
        return iso

    @field_validator("preference", mode="before")
    @classmethod
    def _normalise_preference(cls, v: Any) -> str:
        p = str(v or "").strip().lower()
        aliases = {"cheap": "cheapest", "fastest": "speed", "fast": "speed", "direct": "convenience"}
        p = aliases.get(p, p)
        return p if p in ("cheapest", "speed", "convenience", "balanced") else "balanced"

    @field_validator("budget", mode="before")
    @classmethod
    def _normalise_budget(cls, v: Any) -> Any:
        if v in (None, "", 0, "0"):
            return None
        return v

    @field_validator("budget")
    @classmethod
    def _positive_budget(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            return None
        return v

    @property
    def total_travelers(self) -> int:
        return self.adults + self.children + self.infants


class TextIntent(CamelModel):
    type: Literal["text"] = "text"
    query: str = ""


ParsedIntent = Annotated[Union[FlightSearchIntent, TextIntent], Field(discriminator="type")]


class UserPreferences(CamelModel):
    preferred_time: Optional[PreferredTime] = None
    direct_flight: Optional[bool] = None


# --- Flight offers -------------------------------------------------------------

class Endpoint(CamelModel):
    iata_code: str
    at: str  # local ISO datetime, e.g. 2025-05-01T06:10:00
    terminal: Optional[str] = None


class Segment(CamelModel):
    departure: Endpoint
    arrival: Endpoint
    carrier_code: Optional[str] = None
    number: Optional[str] = None
    duration: Optional[str] = None


class Itinerary(CamelModel):
    duration: str = ""  # ISO-8601 e.g. PT2H10M
    segments: List[Segment] = Field(default_factory=list)


class Price(CamelModel):
    total: str
    currency: str

    @field_validator("total", mode="before")
    @classmethod
    def _numeric_total(cls, v: Any) -> str:
        if v is None:
            raise ValueError("price total is required")
        float(v)
        return str(v)

    @property
    def amount(self) -> float:
        return float(self.total)


class FlightOffer(CamelModel):
    model_config = ConfigDict(frozen=True)

    price: Price
    itineraries: List[Itinerary] = Field(default_factory=list)
    number_of_bookable_seats: int = 0
    last_ticketing_date: Optional[str] = None
    validating_airline_codes: List[str] = Field(default_factory=list)
    pricing_options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def outbound(self) -> Itinerary:
        return self.itineraries[0] if self.itineraries else Itinerary()

    @property
    def stops(self) -> int:
        return max(len(self.outbound.segments) - 1, 0)

    @property
    def is_direct(self) -> bool:
        return len(self.outbound.segments) == 1


class BookingLink(BaseModel):
    status: Literal["found", "not_found", "unavailable"]
    url: str = ""


class EnhancedFlightOffer(FlightOffer):
    reasoning: str
    family_solo_consideration: str
    morning_night_comparison: str
    transit_routes: str
    visa_info: str
    cost_score: int
    convenience_score: int
    recommendation_score: int
    tavily_booking_link: str = ""
    booking_link_status: Literal["found", "not_found", "unavailable"] = "unavailable"
    busyness_info: Optional[Dict[str, Any]] = None


class FlightResults(CamelModel):
    flights: List[EnhancedFlightOffer]
    busiest_traveling_period: Optional[Any] = None
