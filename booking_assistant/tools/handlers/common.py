import re
from datetime import date, timedelta
from typing import Any, Dict

from booking_assistant.models.context import ConversationContext
from booking_assistant.tools.argument_extractor import ExtractionScope, FieldKind, RangePolicy, ToolParameter
from booking_assistant.tools.errors import PreconditionNotMetError

_AIRPORT_CODE = re.compile(r"^[A-Z]{3}$")
_PNR = re.compile(r"^[A-Z0-9]{5,8}$")


def airport_code(value: str) -> str:
    if not _AIRPORT_CODE.match(value):
        raise ValueError(f"'{value}' is not a 3-letter airport code")
    return value


def pnr_code(value: str) -> str:
    if not _PNR.match(value):
        raise ValueError(f"'{value}' is not a valid booking reference")
    return value


def tomorrow(scope: ExtractionScope) -> date:
    return scope.today + timedelta(days=1)


PNR = ToolParameter(
    "pnr", FieldKind.STRING, required=True, description="6-character booking reference",
    context_field="current_pnr", case="upper", parser=pnr_code,
)
PASSENGER_NAME = ToolParameter(
    "passenger_name", FieldKind.STRING, required=True, description="Passenger name as on the booking",
)
OPTIONAL_PASSENGER_NAME = ToolParameter(
    "passenger_name", FieldKind.STRING, description="Passenger name; all passengers when omitted",
)
ORIGIN = ToolParameter(
    "origin", FieldKind.STRING, required=True, description="IATA code of the departure airport",
    context_field="user_origin_airport", case="upper", parser=airport_code,
)
MAX_RESULTS = ToolParameter(
    "max_results", FieldKind.INT, description="Maximum number of destinations to return",
    default=5, minimum=1, maximum=10, range_policy=RangePolicy.CLAMP,
)


def require_origin(context: ConversationContext, arguments: Dict[str, Any]):
    """The user has to tell us where they fly from before anything route-based can run"""
    origin = arguments.get("origin")
    if isinstance(origin, str) and origin.strip():
        return
    if context.user_origin_airport:
        return
    raise PreconditionNotMetError(
        "I need to know which city you're flying from.",
        code="origin_required",
        prompt="Where will you be flying from?",
    )

