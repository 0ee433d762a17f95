from typing import Any, Dict

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import AncillaryCapability
from booking_assistant.tools.argument_extractor import FieldKind, ToolParameter
from booking_assistant.tools.handlers.common import PASSENGER_NAME, PNR

BAGGAGE_WEIGHTS = (20, 25, 30)

SEAT_MAP_ARGS = (PNR,)
CHANGE_SEAT_ARGS = (
    PNR,
    PASSENGER_NAME,
    ToolParameter("new_seat", FieldKind.STRING, description="Specific seat such as 12A", case="upper"),
    ToolParameter("preference", FieldKind.ENUM, description="window, aisle or middle",
                  choices=("window", "aisle", "middle"), fallback="middle"),
)
MEALS_ARGS = (PNR,)
ADD_MEAL_ARGS = (
    PNR,
    PASSENGER_NAME,
    ToolParameter("meal_code", FieldKind.STRING, required=True, description="Meal code from the menu", case="upper"),
)
ADD_BAGGAGE_ARGS = (
    PNR,
    PASSENGER_NAME,
    # unrecognized weights fall back to the lowest tier
    ToolParameter("weight_kg", FieldKind.INT, required=True, description="20, 25 or 30",
                  allowed=BAGGAGE_WEIGHTS, fallback=BAGGAGE_WEIGHTS[0]),
)


def seat_type(seat: str) -> str:
    if seat.endswith(("A", "F")):
        return "window"
    if seat.endswith(("C", "D")):
        return "aisle"
    return "middle"


class AncillaryToolHandlers:

    def __init__(self, ancillary: AncillaryCapability):
        self.ancillary = ancillary

    def get_seat_map(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        seat_map = self.ancillary.seat_map(args["pnr"])
        return {
            "pnr": seat_map.pnr,
            "flightNumber": seat_map.flight_number,
            "availableSeats": seat_map.available_seats,
            "windowSeats": seat_map.window_seats,
            "aisleSeats": seat_map.aisle_seats,
        }

    def change_seat(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        assigned = self.ancillary.assign_seat(
            args["pnr"], args["passenger_name"], seat=args["new_seat"], preference=args["preference"],
        )
        return {
            "success": True,
            "pnr": args["pnr"],
            "passengerName": assigned.name,
            "newSeat": assigned.seat,
            "seatType": seat_type(assigned.seat),
            "message": f"Successfully changed {assigned.name}'s seat to {assigned.seat}",
        }

    def get_available_meals(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        meals = self.ancillary.meals(args["pnr"])
        return {
            "pnr": args["pnr"],
            "meals": [
                {
                    "code": m.code,
                    "name": m.name,
                    "price": m.price,
                    "isHalal": m.is_halal,
                    "isVegetarian": m.is_vegetarian,
                }
                for m in meals
            ],
            "currency": "SAR",
        }

    def add_meal(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        meal = self.ancillary.add_meal(args["pnr"], args["passenger_name"], args["meal_code"])
        return {
            "success": True,
            "pnr": args["pnr"],
            "passengerName": args["passenger_name"],
            "mealCode": meal.code,
            "mealName": meal.name,
            "price": meal.price,
            "currency": "SAR",
            "message": f"Successfully added {meal.name} to the booking",
        }

    def add_baggage(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        added = self.ancillary.add_baggage(args["pnr"], args["passenger_name"], args["weight_kg"])
        data = {"success": True, "pnr": args["pnr"]}
        data.update(added)
        data["message"] = f"Successfully added {args['weight_kg']}kg baggage allowance"
        return data
