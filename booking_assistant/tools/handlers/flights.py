import logging
from typing import Any, Dict

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import SearchCapability
from booking_assistant.tools.argument_extractor import FieldKind, ToolParameter
from booking_assistant.tools.handlers.common import ORIGIN, airport_code, tomorrow
from booking_assistant.tools.result_projector import HandlerOutcome

logger = logging.getLogger(__name__)


SEARCH_FLIGHTS_ARGS = (
    ORIGIN,
    ToolParameter("destination", FieldKind.STRING, required=True, description="IATA code of the arrival airport",
                  case="upper", parser=airport_code),
    ToolParameter("date", FieldKind.DATE, description="YYYY-MM-DD or 'tomorrow', 'next friday'...",
                  aliases=("departure_date",), compute_default=tomorrow),
    ToolParameter("passengers", FieldKind.INT, description="Number of passengers (1-9)",
                  default=1, minimum=1, maximum=9),
)

SELECT_FLIGHT_ARGS = (
    ToolParameter("flight_number", FieldKind.STRING, required=True, description="Flight number from the search results",
                  case="upper"),
)


class FlightToolHandlers:
    """search_flights / select_flight"""

    def __init__(self, search: SearchCapability):
        self.search = search

    def search_flights(self, args: Dict[str, Any], context: ConversationContext) -> HandlerOutcome:
        result = self.search.search(args["origin"], args["destination"], args["date"], args["passengers"])

        flights = [
            {
                "flightNumber": flight.flight_number,
                "departureTime": flight.departure_time,
                "arrivalTime": flight.arrival_time,
                "duration": f"{flight.duration_minutes} minutes",
                "lowestPrice": flight.lowest_price,
                "currency": "SAR",
                "fareFamilies": [
                    {"code": fare.code, "price": fare.price, "currency": fare.currency}
                    for fare in flight.fare_families
                ],
            }
            for flight in result.flights
        ]

        data = {
            "searchId": result.search_id,
            "origin": result.origin,
            "destination": result.destination,
            "date": result.departure_date,
            "passengers": args["passengers"],
            "flightCount": len(flights),
            "flights": flights,
        }
        # a new search invalidates any flight picked from the previous one
        return HandlerOutcome(data, {"lastSearchId": result.search_id, "lastFlightNumber": None})

    def select_flight(self, args: Dict[str, Any], context: ConversationContext) -> HandlerOutcome:
        flight_number = args["flight_number"]
        logger.info(f"Flight selected: {flight_number}")
        data = {
            "status": "selected",
            "flightNumber": flight_number,
            "searchId": context.last_search_id,
            "message": f"Flight {flight_number} has been selected. Ready to proceed with booking.",
        }
        return HandlerOutcome(data, {"lastFlightNumber": flight_number})
