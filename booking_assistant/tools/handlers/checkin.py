from typing import Any, Dict

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import CheckInCapability
from booking_assistant.tools.handlers.common import OPTIONAL_PASSENGER_NAME, PASSENGER_NAME, PNR

CHECK_IN_ARGS = (PNR, OPTIONAL_PASSENGER_NAME)
BOARDING_PASS_ARGS = (PNR, PASSENGER_NAME)


class CheckInToolHandlers:

    def __init__(self, check_in: CheckInCapability):
        self.check_in_service = check_in

    def check_in(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        checked_in = self.check_in_service.check_in(args["pnr"], args["passenger_name"])
        return {
            "success": True,
            "pnr": args["pnr"],
            "checkedInPassengers": [
                {"name": p.name, "seat": p.seat, "boardingGroup": p.boarding_group} for p in checked_in
            ],
            "message": "Successfully checked in",
        }

    def get_boarding_pass(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        boarding_pass = self.check_in_service.boarding_pass(args["pnr"], args["passenger_name"])
        return {
            "pnr": boarding_pass.pnr,
            "passengerName": boarding_pass.passenger_name,
            "flightNumber": boarding_pass.flight_number,
            "origin": boarding_pass.origin,
            "destination": boarding_pass.destination,
            "departureTime": boarding_pass.departure_time,
            "gate": boarding_pass.gate,
            "seat": boarding_pass.seat,
            "boardingGroup": boarding_pass.boarding_group,
            "qrCode": boarding_pass.barcode,
        }
