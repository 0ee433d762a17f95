"""
Destination discovery: weather, cheapest fares and popular picks from an origin.

All three fan their downstream calls out over a thread pool; each call is
read-only, so a failed search for one destination only drops that destination.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from booking_assistant.models.context import ConversationContext
from booking_assistant.services import reference_data
from booking_assistant.services.api.base import BusinessRuleError, DownstreamError, SearchCapability, WeatherCapability
from booking_assistant.services.api.response_models import WeatherReading
from booking_assistant.tools.argument_extractor import FieldKind, RangePolicy, ToolParameter
from booking_assistant.tools.handlers.common import MAX_RESULTS, ORIGIN, tomorrow

logger = logging.getLogger(__name__)

WARM_RANGE = (18, 28)
MAX_WINDOW_DAYS = 14

WEATHER_DESTINATIONS_ARGS = (
    ORIGIN,
    ToolParameter("weather_preference", FieldKind.ENUM, description="sunny, warm, cool or any",
                  choices=("sunny", "warm", "cool", "any"), fallback="sunny", default="sunny"),
    MAX_RESULTS,
)
CHEAPEST_FLIGHTS_ARGS = (
    ORIGIN,
    ToolParameter("date_from", FieldKind.DATE, description="Start of the travel window (default: tomorrow)",
                  compute_default=tomorrow),
    ToolParameter("date_to", FieldKind.DATE, description="End of the travel window (default: a week after date_from)"),
    MAX_RESULTS,
)
POPULAR_DESTINATIONS_ARGS = (
    ORIGIN,
    ToolParameter("travel_type", FieldKind.ENUM, description="leisure, business, family, adventure or any",
                  choices=("leisure", "business", "family", "adventure", "any"), fallback="any", default="any"),
    ToolParameter("max_results", FieldKind.INT, description="Maximum number of destinations to return",
                  default=6, minimum=1, maximum=10, range_policy=RangePolicy.CLAMP),
)


def matches_weather(reading: WeatherReading, preference: str) -> bool:
    if preference == "sunny":
        return reading.condition == "sunny"
    if preference == "warm":
        return WARM_RANGE[0] <= reading.temperature <= WARM_RANGE[1]
    if preference == "cool":
        return reading.temperature < WARM_RANGE[0]
    return True


def travel_window(date_from: date, date_to: Optional[date], today: date) -> Tuple[date, date]:
    """Normalize the requested window: default a week, swap reversed bounds, never past, at most 14 days"""
    if date_to is None:
        date_to = date_from + timedelta(days=6)
    if date_to < date_from:
        date_from, date_to = date_to, date_from
    date_from = max(date_from, today)
    date_to = max(date_to, date_from)
    return date_from, min(date_to, date_from + timedelta(days=MAX_WINDOW_DAYS - 1))


class DiscoveryToolHandlers:

    def __init__(self, search: SearchCapability, weather: WeatherCapability,
                 today: Callable[[], date], max_workers: int = 5):
        self.search = search
        self.weather = weather
        self.today = today
        self.max_workers = max_workers

    def find_weather_destinations(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        origin, preference = args["origin"], args["weather_preference"]
        destinations = self._destinations_from(origin)
        readings = self.weather.for_cities(destinations)

        candidates = [readings[code] for code in destinations if code in readings]
        matching = [r for r in candidates if matches_weather(r, preference)]
        if matching:
            candidates = matching
        else:
            logger.info(f"No {preference} destinations from {origin}, returning all {len(candidates)}")

        if preference == "cool":
            candidates.sort(key=lambda r: r.temperature)
        elif preference == "warm":
            candidates.sort(key=lambda r: abs(r.temperature - sum(WARM_RANGE) / 2))
        else:
            candidates.sort(key=lambda r: -self._popularity(r.city_code))

        suggestions = [
            self._suggestion(r.city_code, weather=r, reason=f"{r.description}, {r.temperature}°C")
            for r in candidates[:args["max_results"]]
        ]
        return self._payload(origin, "weather", suggestions)

    def find_cheapest_flights(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        origin = args["origin"]
        date_from, date_to = travel_window(args["date_from"], args["date_to"], self.today())
        destinations = self._destinations_from(origin)

        days = [date_from + timedelta(days=i) for i in range((date_to - date_from).days + 1)]
        jobs = [(code, day) for code in destinations for day in days]
        logger.info(f"Pricing {len(jobs)} route/date combinations from {origin} ({date_from}..{date_to})")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            prices = list(executor.map(lambda job: self._cheapest_fare(origin, *job), jobs))

        best: Dict[str, Tuple[Decimal, date, str]] = {}
        for (code, day), found in zip(jobs, prices):
            if found is None:
                continue
            price, flight_number = found
            if code not in best or price < best[code][0]:
                best[code] = (price, day, flight_number)

        ranked = sorted(best.items(), key=lambda item: (item[1][0], item[1][1]))
        suggestions = []
        for code, (price, day, flight_number) in ranked[:args["max_results"]]:
            suggestion = self._suggestion(code, price=price, reason=f"From SAR {price} on {day.isoformat()}")
            suggestion["date"] = day
            suggestion["flightNumber"] = flight_number
            suggestions.append(suggestion)

        payload = self._payload(origin, "cheapest", suggestions)
        payload["dateFrom"] = date_from
        payload["dateTo"] = date_to
        return payload

    def get_popular_destinations(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        origin, travel_type = args["origin"], args["travel_type"]
        destinations = self._destinations_from(origin)

        if travel_type != "any":
            tagged = [c for c in destinations if travel_type in self._travel_types(c)]
            destinations = tagged or destinations

        picks = sorted(destinations, key=lambda c: -self._popularity(c))[:args["max_results"]]
        sample_date = self.today() + timedelta(days=1)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            prices = list(executor.map(lambda code: self._cheapest_fare(origin, code, sample_date), picks))
        readings = self.weather.for_cities(picks)

        suggestions = []
        for code, found in zip(picks, prices):
            city = reference_data.get_city(code)
            suggestions.append(self._suggestion(
                code,
                weather=readings.get(code),
                price=found[0] if found else None,
                reason=city.highlight if city else "Popular destination",
            ))
        return self._payload(origin, "popular", suggestions)

    def _destinations_from(self, origin: str) -> List[str]:
        destinations = self.search.route_map().destinations_from(origin)
        if not destinations:
            raise BusinessRuleError(
                f"I couldn't find any flights from {origin}. Would you like to try a different departure city?"
            )
        return destinations

    def _cheapest_fare(self, origin: str, destination: str, day: date) -> Optional[Tuple[Decimal, str]]:
        try:
            result = self.search.search(origin, destination, day, 1)
        except DownstreamError as e:
            logger.warning(f"Price lookup {origin}->{destination} on {day} failed: {e}")
            return None

        priced = [(f.lowest_price, f.flight_number) for f in result.flights if f.lowest_price is not None]
        return min(priced) if priced else None

    def _suggestion(self, code: str, weather: Optional[WeatherReading] = None,
                    price: Optional[Decimal] = None, reason: str = "") -> Dict[str, Any]:
        suggestion: Dict[str, Any] = {
            "destinationCode": code,
            "destinationName": reference_data.city_name(code),
            "country": reference_data.country_for(code),
            "reason": reason,
        }
        if weather is not None:
            suggestion["weather"] = {
                "temperature": weather.temperature,
                "condition": weather.condition,
                "description": weather.description,
            }
        if price is not None:
            suggestion["lowestPrice"] = price
        return suggestion

    def _payload(self, origin: str, suggestion_type: str, suggestions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {"origin": origin, "suggestionType": suggestion_type, "suggestions": suggestions}

    def _popularity(self, code: str) -> int:
        city = reference_data.get_city(code)
        return city.popularity if city else 0

    def _travel_types(self, code: str) -> Tuple[str, ...]:
        city = reference_data.get_city(code)
        return city.travel_types if city else ()
