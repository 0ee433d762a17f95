import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import BusinessRuleError
from booking_assistant.services.api.mock_provider import MockAirlineProvider
from booking_assistant.services.api.response_models import (
    FareFamily, FareFamilyCode, FlightOption, RouteMap, SearchResult, WeatherReading,
)
from booking_assistant.tools.handlers.discovery import DiscoveryToolHandlers, matches_weather, travel_window

TODAY = date(2025, 6, 10)

PRICES = {"JED": 350, "DXB": 650, "IST": 900, "AHB": 420}


def reading(code, temperature, condition="sunny"):
    return WeatherReading(code, code.title(), temperature, condition, "Clear skies")


def fake_search(origin, destination, day, passengers):
    if destination not in PRICES:
        raise BusinessRuleError("no flights")
    # every destination is cheaper on the 13th
    price = Decimal(PRICES[destination] - (50 if day == date(2025, 6, 13) else 0))
    departure = datetime.combine(day, datetime.min.time())
    return SearchResult("search_x", origin, destination, day, [
        FlightOption(f"F3{len(destination)}00", origin, destination, departure, departure, 60,
                     [FareFamily(FareFamilyCode.FLY, price)]),
    ])


class TestTravelWindow:

    def test_defaults_to_a_week(self):
        assert travel_window(date(2025, 6, 11), None, TODAY) == (date(2025, 6, 11), date(2025, 6, 17))

    def test_reversed_bounds_are_swapped(self):
        assert travel_window(date(2025, 6, 20), date(2025, 6, 15), TODAY) == (date(2025, 6, 15), date(2025, 6, 20))

    def test_past_start_is_moved_to_today(self):
        assert travel_window(date(2025, 6, 1), date(2025, 6, 12), TODAY) == (TODAY, date(2025, 6, 12))
        assert travel_window(date(2025, 6, 1), date(2025, 6, 3), TODAY) == (TODAY, TODAY)

    def test_window_is_capped(self):
        start, end = travel_window(date(2025, 6, 11), date(2025, 8, 1), TODAY)
        assert (end - start).days == 13


class TestMatchesWeather:

    def test_preferences(self):
        assert matches_weather(reading("JED", 35), "sunny")
        assert not matches_weather(reading("IST", 15, "partly_cloudy"), "sunny")
        assert matches_weather(reading("CAI", 18), "warm")
        assert matches_weather(reading("CAI", 28), "warm")
        assert not matches_weather(reading("DXB", 29), "warm")
        assert matches_weather(reading("AHB", 17), "cool")
        assert not matches_weather(reading("AHB", 18), "cool")
        assert matches_weather(reading("IST", 15, "rainy"), "any")


class TestDiscoveryToolHandlers:

    @pytest.fixture
    def search(self):
        search = Mock()
        search.route_map.return_value = RouteMap({"RUH": ["JED", "DXB", "IST", "AHB", "MLE"]})
        search.search.side_effect = fake_search
        return search

    @pytest.fixture
    def weather(self):
        weather = Mock()
        weather.for_cities.return_value = {
            "JED": reading("JED", 34),
            "DXB": reading("DXB", 36),
            "IST": reading("IST", 16, "partly_cloudy"),
            "AHB": reading("AHB", 21),
        }
        return weather

    @pytest.fixture
    def handlers(self, search, weather):
        return DiscoveryToolHandlers(search, weather, lambda: TODAY, max_workers=2)

    def test_sunny_destinations(self, handlers):
        result = handlers.find_weather_destinations(
            {"origin": "RUH", "weather_preference": "sunny", "max_results": 5}, ConversationContext(),
        )

        codes = [s["destinationCode"] for s in result["suggestions"]]
        # sorted by popularity; MLE has no reading and IST is not sunny
        assert codes == ["DXB", "JED", "AHB"]
        assert result["suggestionType"] == "weather"
        assert result["suggestions"][0]["weather"] == {
            "temperature": 36, "condition": "sunny", "description": "Clear skies",
        }

    def test_cool_destinations_coolest_first(self, handlers):
        result = handlers.find_weather_destinations(
            {"origin": "RUH", "weather_preference": "cool", "max_results": 5}, ConversationContext(),
        )
        assert [s["destinationCode"] for s in result["suggestions"]] == ["IST"]

    def test_no_match_returns_everything(self, handlers, weather):
        weather.for_cities.return_value = {"IST": reading("IST", 16, "partly_cloudy")}

        result = handlers.find_weather_destinations(
            {"origin": "RUH", "weather_preference": "sunny", "max_results": 5}, ConversationContext(),
        )
        assert [s["destinationCode"] for s in result["suggestions"]] == ["IST"]

    def test_cheapest_flights(self, handlers, search):
        result = handlers.find_cheapest_flights(
            {"origin": "RUH", "date_from": date(2025, 6, 11), "date_to": date(2025, 6, 14), "max_results": 2},
            ConversationContext(),
        )

        assert result["suggestionType"] == "cheapest"
        assert result["dateFrom"] == date(2025, 6, 11)
        assert result["dateTo"] == date(2025, 6, 14)
        assert [s["destinationCode"] for s in result["suggestions"]] == ["JED", "AHB"]
        cheapest = result["suggestions"][0]
        assert cheapest["lowestPrice"] == Decimal(300)
        assert cheapest["date"] == date(2025, 6, 13)
        assert cheapest["destinationName"] == "Jeddah"
        # five destinations over four days
        assert search.search.call_count == 20

    def test_cheapest_flights_window_from_today(self, handlers, search):
        result = handlers.find_cheapest_flights(
            {"origin": "RUH", "date_from": date(2025, 5, 1), "date_to": None, "max_results": 5},
            ConversationContext(),
        )
        assert result["dateFrom"] == TODAY
        days = {call.args[2] for call in search.search.call_args_list}
        assert min(days) == TODAY
        assert max(days) - min(days) <= timedelta(days=13)

    def test_repeated_cheapest_flights_keep_search_cache_bounded(self, weather):
        """Test discovery fan-out does not pile up searches in the airline"""
        now = datetime(2025, 6, 10, 9, 0, tzinfo=ZoneInfo("Asia/Riyadh"))
        airline = MockAirlineProvider(clock=lambda: now, max_searches=50)
        handlers = DiscoveryToolHandlers(airline, weather, lambda: TODAY, max_workers=2)
        args = {"origin": "RUH", "date_from": date(2025, 6, 11), "date_to": date(2025, 6, 24), "max_results": 3}

        for _ in range(3):
            result = handlers.find_cheapest_flights(args, ConversationContext())

        assert len(result["suggestions"]) == 3
        assert len(airline._searches) <= 50

    def test_popular_destinations(self, handlers):
        result = handlers.get_popular_destinations(
            {"origin": "RUH", "travel_type": "any", "max_results": 3}, ConversationContext(),
        )

        suggestions = result["suggestions"]
        assert [s["destinationCode"] for s in suggestions] == ["DXB", "JED", "IST"]
        assert suggestions[0]["lowestPrice"] == Decimal(650)
        assert suggestions[0]["reason"] == "Shopping, beaches, adventure"

    def test_popular_by_travel_type(self, handlers):
        result = handlers.get_popular_destinations(
            {"origin": "RUH", "travel_type": "adventure", "max_results": 6}, ConversationContext(),
        )
        assert [s["destinationCode"] for s in result["suggestions"]] == ["AHB"]

    def test_popular_without_price_keeps_destination(self, handlers):
        result = handlers.get_popular_destinations(
            {"origin": "RUH", "travel_type": "leisure", "max_results": 6}, ConversationContext(),
        )
        maldives = next(s for s in result["suggestions"] if s["destinationCode"] == "MLE")
        assert "lowestPrice" not in maldives
        assert "weather" not in maldives

    def test_unknown_origin(self, handlers, search):
        search.route_map.return_value = RouteMap({})

        with pytest.raises(BusinessRuleError, match="couldn't find any flights from XYZ"):
            handlers.get_popular_destinations(
                {"origin": "XYZ", "travel_type": "any", "max_results": 6}, ConversationContext(),
            )
