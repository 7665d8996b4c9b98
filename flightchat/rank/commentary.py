"""Templated explanations attached to each shortlisted offer."""

from typing import Optional

from flightchat.amadeus.transform import duration_hours
from flightchat.rank.scoring import departure_hour, parse_local_time
from flightchat.types import FlightOffer
from flightchat.utils.dates import format_duration_minutes

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

DIRECT_FLIGHT = "Direct flight: No transits required."
MORNING_FLIGHT = "Morning flight: Ideal for early arrivals and maximizing daytime at your destination."
NIGHT_FLIGHT = "Night flight: Great for overnight travel, saving daytime for activities or rest."
DAYTIME_FLIGHT = "Daytime flight: Balanced option for convenience and comfort."
NO_NATIONALITY = "Nationality not provided; visa info unavailable."


def format_money(amount: Optional[float], currency: str = "INR") -> str:
    if amount is None:
        return "N/A"
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    if float(amount).is_integer():
        return f"{symbol}{amount:,.0f}"
    return f"{symbol}{amount:,.2f}"


def flight_reasoning(offer: FlightOffer, preference: str, budget: Optional[float] = None,
                     trip_duration: Optional[int] = None) -> str:
    price = offer.price.amount
    currency = offer.price.currency
    duration = duration_hours(offer.outbound.duration)

    reasoning = "This flight is recommended because it offers "
    if preference == "cheapest" and (not budget or price <= budget):
        reasoning += (f"a low price ({format_money(price, currency)}) within your budget of "
                      f"{format_money(budget, currency)}")
    elif preference == "speed" and duration <= 5:
        reasoning += f"a quick travel time ({duration:.1f}h)"
    elif preference == "convenience" and offer.is_direct:
        reasoning += "a convenient direct flight"
    else:
        reasoning += (f"a good balance of cost ({format_money(price, currency)}) "
                      f"and duration ({duration:.1f}h)")
    if trip_duration:
        reasoning += f", fitting well with your {trip_duration}-day trip"
    return reasoning + "."


def family_solo_consideration(offer: FlightOffer, adults: int, children: int = 0, infants: int = 0) -> str:
    seats = offer.number_of_bookable_seats
    total = adults + children + infants
    if adults == 1 and not children and not infants:
        return "Ideal for solo travelers due to flexibility and availability."
    if children or infants:
        if seats >= total:
            return (f"Suitable for families with {children} children and {infants} infants; "
                    f"{seats} seats available.")
        return f"Limited seats ({seats}); may not accommodate all {total} travelers."
    return f"Good for a group of {adults} adults with {seats} seats available."


def morning_night_comparison(offer: FlightOffer) -> str:
    hour = departure_hour(offer)
    if hour is None:
        return DAYTIME_FLIGHT
    if 5 <= hour < 12:
        return MORNING_FLIGHT
    if hour >= 18 or hour < 5:
        return NIGHT_FLIGHT
    return DAYTIME_FLIGHT


def transit_routes(offer: FlightOffer) -> str:
    segments = offer.outbound.segments
    if len(segments) <= 1:
        return DIRECT_FLIGHT
    stops = []
    for prev, curr in zip(segments, segments[1:]):
        gap = parse_local_time(curr.departure.at) - parse_local_time(prev.arrival.at)
        minutes = max(int(gap.total_seconds() // 60), 0)
        stops.append(f"{prev.arrival.iata_code} ({format_duration_minutes(minutes)} layover)")
    return f"Transit route: {' -> '.join(stops)}. Total duration: {offer.outbound.duration}."


def visa_info(origin: str, destination: str, nationality: Optional[str]) -> str:
    if not nationality:
        return NO_NATIONALITY
    return (f"Visa info for {nationality} traveling from {origin} to {destination} is not "
            f"directly available via Amadeus. Check with official embassy sources.")
