import logging
import re
from datetime import date
from typing import Any, Callable, Dict, List

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import BookingCapability, NotFoundError, ProfileCapability
from booking_assistant.services.api.response_models import (
    BookingConfirmation, BookingRequest, FareFamilyCode, Gender, Passenger, PassengerType, Title,
)
from booking_assistant.tools.argument_extractor import FieldKind, ToolParameter
from booking_assistant.tools.errors import InvalidFieldValueError, PreconditionNotMetError
from booking_assistant.tools.handlers.common import PNR
from booking_assistant.tools.result_projector import HandlerOutcome

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_COUNTRY = re.compile(r"^[A-Z]{2}$")


def iso_date(value: str) -> date:
    return date.fromisoformat(value)


def email_address(value: str) -> str:
    if not _EMAIL.match(value):
        raise ValueError(f"'{value}' is not an email address")
    return value


def country_code(value: str) -> str:
    if not _COUNTRY.match(value):
        raise ValueError(f"'{value}' is not a 2-letter country code")
    return value


PASSENGER_FIELDS = (
    ToolParameter("firstName", FieldKind.STRING, required=True, aliases=("first_name",)),
    ToolParameter("lastName", FieldKind.STRING, required=True, aliases=("last_name",)),
    ToolParameter("dateOfBirth", FieldKind.STRING, required=True, aliases=("date_of_birth",),
                  description="YYYY-MM-DD", parser=iso_date),
    ToolParameter("gender", FieldKind.ENUM, choices=("MALE", "FEMALE"), fallback="MALE", default="MALE",
                  parser=Gender),
    # travel document is never defaulted
    ToolParameter("documentNumber", FieldKind.STRING, required=True,
                  aliases=("document_number", "documentId", "passportNumber"), case="upper"),
    ToolParameter("nationality", FieldKind.STRING, default="SA", case="upper", parser=country_code),
)

CREATE_BOOKING_ARGS = (
    ToolParameter("flight_number", FieldKind.STRING, required=True, description="Flight number to book",
                  context_field="last_flight_number", case="upper"),
    ToolParameter("fare_family", FieldKind.ENUM, description="FLY, FLY_PLUS or FLY_MAX",
                  choices=tuple(c.value for c in FareFamilyCode), fallback="FLY", default="FLY",
                  parser=FareFamilyCode),
    ToolParameter("passengers", FieldKind.ARRAY, required=True, description="Passengers to book",
                  item_fields=PASSENGER_FIELDS, min_items=1, max_items=9),
    ToolParameter("contact_email", FieldKind.STRING, required=True, description="Email for the confirmation",
                  context_field="user_email", parser=email_address),
)

GET_BOOKING_ARGS = (PNR,)


def require_search(context: ConversationContext, arguments: Dict[str, Any]):
    if not context.last_search_id:
        raise PreconditionNotMetError("No search found. Please search for flights first.")


def require_login(context: ConversationContext, arguments: Dict[str, Any]):
    if not context.user_id:
        raise PreconditionNotMetError("User not logged in. Please log in to access saved travelers.")


def age_on(birth: date, today: date) -> int:
    return today.year - birth.year - ((today.month, today.day) < (birth.month, birth.day))


def passenger_type_for(birth: date, today: date) -> PassengerType:
    age = age_on(birth, today)
    if age < 2:
        return PassengerType.INFANT
    if age < 12:
        return PassengerType.CHILD
    return PassengerType.ADULT


def title_for(gender: Gender, passenger_type: PassengerType) -> Title:
    if passenger_type in (PassengerType.CHILD, PassengerType.INFANT):
        return Title.MSTR if gender == Gender.MALE else Title.MISS
    return Title.MR if gender == Gender.MALE else Title.MS


class BookingToolHandlers:
    """get_saved_travelers / create_booking / get_booking"""

    def __init__(self, booking: BookingCapability, profile: ProfileCapability, today: Callable[[], date]):
        self.booking = booking
        self.profile = profile
        self.today = today

    def get_saved_travelers(self, args: Dict[str, Any], context: ConversationContext) -> Dict[str, Any]:
        travelers = self.profile.get_travelers(context.user_id)
        if not travelers:
            return {
                "travelers": [],
                "count": 0,
                "message": "No saved travelers found. Please add travelers in your profile.",
            }

        return {
            "travelers": [
                {
                    "id": t.id,
                    "firstName": t.first_name,
                    "lastName": t.last_name,
                    "fullName": t.full_name,
                    "dateOfBirth": t.date_of_birth,
                    "nationality": t.nationality,
                    "gender": t.gender,
                    "email": t.email,
                    "phone": t.phone,
                    "isMainTraveler": t.is_main_traveler,
                    "documents": [
                        {
                            "type": d.type,
                            "number": d.number,
                            "issuingCountry": d.issuing_country,
                            "expiryDate": d.expiry_date,
                            "isDefault": d.is_default,
                        }
                        for d in t.documents
                    ],
                }
                for t in travelers
            ],
            "count": len(travelers),
            "message": f"Found {len(travelers)} saved traveler(s)",
        }

    def create_booking(self, args: Dict[str, Any], context: ConversationContext) -> HandlerOutcome:
        passengers = self._build_passengers(args["passengers"])
        request = BookingRequest(
            search_id=context.last_search_id,
            flight_number=args["flight_number"],
            fare_family=args["fare_family"],
            passengers=passengers,
            contact_email=args["contact_email"],
        )
        logger.info(
            f"Creating booking: flight={request.flight_number}, fareFamily={request.fare_family.value}, "
            f"passengers={len(passengers)}"
        )

        confirmation = self.booking.create(request, context.user_id)
        data = self._summary(confirmation)
        data["success"] = True
        data["bookingReference"] = confirmation.booking_reference
        data["fareFamily"] = confirmation.fare_family
        data["message"] = f"Booking confirmed! Your PNR is {confirmation.pnr}"
        return HandlerOutcome(data, {"currentPnr": confirmation.pnr})

    def get_booking(self, args: Dict[str, Any], context: ConversationContext) -> HandlerOutcome:
        pnr = args["pnr"]
        confirmation = self.booking.get(pnr)
        if confirmation is None:
            raise NotFoundError(f"Booking not found with PNR: {pnr}")
        return HandlerOutcome(self._summary(confirmation), {"currentPnr": confirmation.pnr})

    def _build_passengers(self, entries: List[Dict[str, Any]]) -> List[Passenger]:
        today = self.today()
        passengers = []
        for index, entry in enumerate(entries):
            birth = entry["dateOfBirth"]
            if birth > today:
                raise InvalidFieldValueError(f"passengers[{index}].dateOfBirth", "date of birth is in the future")
            passenger_type = passenger_type_for(birth, today)
            passengers.append(Passenger(
                type=passenger_type,
                title=title_for(entry["gender"], passenger_type),
                first_name=entry["firstName"],
                last_name=entry["lastName"],
                nationality=entry["nationality"],
                date_of_birth=birth,
                document_id=entry["documentNumber"],
            ))
        return passengers

    def _summary(self, confirmation: BookingConfirmation) -> Dict[str, Any]:
        flight = confirmation.flight
        return {
            "pnr": confirmation.pnr,
            "flightNumber": flight.flight_number,
            "origin": flight.origin,
            "destination": flight.destination,
            "departureTime": flight.departure_time,
            "passengers": [{"name": p.full_name, "type": p.type} for p in confirmation.passengers],
            "totalPaid": confirmation.total_paid,
            "currency": confirmation.currency,
        }
