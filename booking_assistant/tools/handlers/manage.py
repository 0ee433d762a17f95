from typing import Any, Dict

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import ManageBookingCapability
from booking_assistant.tools.argument_extractor import FieldKind, ToolParameter
from booking_assistant.tools.handlers.common import OPTIONAL_PASSENGER_NAME, PASSENGER_NAME, PNR

NEW_FLIGHT_NUMBER = ToolParameter(
    "new_flight_number", FieldKind.STRING, required=True, description="Flight number to move to", case="upper",
)

CANCEL_PASSENGER_ARGS = (PNR, PASSENGER_NAME)
CHANGE_FEES_ARGS = (PNR, NEW_FLIGHT_NUMBER)
CHANGE_FLIGHT_ARGS = (PNR, NEW_FLIGHT_NUMBER, OPTIONAL_PASSENGER_NAME)


class ManageBookingToolHandlers:
    """Changes to an existing booking; every rule lives in the manage-booking service"""

    def __init__(self, manage: ManageBookingCapability):
        self.manage = manage

    def cancel_specific_passenger(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        result = self.manage.cancel_passenger(args["pnr"], args["passenger_name"])
        return {
            "success": True,
            "cancelledPassenger": result.cancelled_passenger,
            "originalPnr": result.original_pnr,
            "newPnr": result.new_pnr,
            "refundAmount": result.refund_amount,
            "currency": "SAR",
            "message": f"Successfully cancelled {result.cancelled_passenger} from booking {result.original_pnr}",
        }

    def calculate_change_fees(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        quote = self.manage.calculate_change_fees(args["pnr"], args["new_flight_number"])
        return {
            "pnr": quote.pnr,
            "currentFlight": quote.current_flight_number,
            "newFlight": quote.new_flight_number,
            "changeFee": quote.change_fee,
            "priceDifference": quote.price_difference,
            "totalDue": quote.total_due,
            "currency": quote.currency,
        }

    def change_flight(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        result = self.manage.change_flight(args["pnr"], args["new_flight_number"], args["passenger_name"])
        return {
            "success": True,
            "pnr": result.pnr,
            "newFlight": result.new_flight_number,
            "passengers": result.affected_passengers,
            "amountCharged": result.amount_charged,
            "currency": "SAR",
            "message": f"Successfully changed flight to {result.new_flight_number}",
        }
