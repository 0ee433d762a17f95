# tool_registry.py - closed catalog of assistant tools, built once at startup
from dataclasses import dataclass
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from booking_assistant.models.context import ConversationContext
from booking_assistant.tools import handlers
from booking_assistant.tools.argument_extractor import ArgumentSpec, FieldKind, ToolParameter
from booking_assistant.tools.date_resolver import DEFAULT_TIMEZONE, today_in
from booking_assistant.tools.handlers import ancillaries, booking, checkin, discovery, flights, manage
from booking_assistant.tools.handlers.common import require_origin
from booking_assistant.tools.result_projector import UiHint

Precondition = Callable[[ConversationContext, Dict[str, Any]], None]
Handler = Callable[[Dict[str, Any], ConversationContext], Any]


class ToolName(Enum):
    SEARCH_FLIGHTS = "search_flights"
    SELECT_FLIGHT = "select_flight"
    GET_SAVED_TRAVELERS = "get_saved_travelers"
    CREATE_BOOKING = "create_booking"
    GET_BOOKING = "get_booking"
    CANCEL_SPECIFIC_PASSENGER = "cancel_specific_passenger"
    CALCULATE_CHANGE_FEES = "calculate_change_fees"
    CHANGE_FLIGHT = "change_flight"
    GET_SEAT_MAP = "get_seat_map"
    CHANGE_SEAT = "change_seat"
    GET_AVAILABLE_MEALS = "get_available_meals"
    ADD_MEAL = "add_meal"
    ADD_BAGGAGE = "add_baggage"
    CHECK_IN = "check_in"
    GET_BOARDING_PASS = "get_boarding_pass"
    FIND_WEATHER_DESTINATIONS = "find_weather_destinations"
    FIND_CHEAPEST_FLIGHTS = "find_cheapest_flights"
    GET_POPULAR_DESTINATIONS = "get_popular_destinations"


@dataclass(frozen=True)
class ToolDefinition:
    name: ToolName
    description: str
    parameters: ArgumentSpec
    handler: Handler
    ui_hint: Optional[UiHint] = None
    preconditions: Tuple[Precondition, ...] = ()
    instructions: str = ""


_JSON_TYPES = {
    FieldKind.STRING: "string",
    FieldKind.INT: "integer",
    FieldKind.ENUM: "string",
    FieldKind.DATE: "string",
    FieldKind.ARRAY: "array",
    FieldKind.OBJECT: "object",
}


class ToolRegistry:
    """
    Maps every ToolName to its argument spec, handler and display hint.

    Registration happens in the constructor; afterwards the catalog is a
    read-only mapping, so dispatch never races with a registration.
    """

    REQUIRED_SERVICES = ("search", "booking", "manage_booking", "check_in", "ancillary", "profile", "weather")

    def __init__(self, services: Dict[str, Any], timezone: str = DEFAULT_TIMEZONE,
                 clock: Optional[Callable[[], date]] = None, max_workers: int = 5):
        self.services = services
        self.today = clock or (lambda: today_in(timezone))
        self.max_workers = max_workers
        self._validate_required_services()

        self._tools: Dict[ToolName, ToolDefinition] = {}
        self._register_all_tools()
        self.tools: Mapping[ToolName, ToolDefinition] = MappingProxyType(self._tools)

    def _validate_required_services(self):
        """Validate all required services are provided"""
        for service_name in self.REQUIRED_SERVICES:
            if service_name not in self.services or self.services[service_name] is None:
                raise ValueError(f"Required service not provided: {service_name}")

    def _register_all_tools(self):
        # Phase 1: Search & selection
        self._register_flight_tools()
        # Phase 2: Booking
        self._register_booking_tools()
        # Phase 3: Manage booking
        self._register_manage_tools()
        # Phase 4: Ancillaries & check-in
        self._register_ancillary_tools()
        self._register_check_in_tools()
        # Phase 5: Destination discovery
        self._register_discovery_tools()

        missing = [name.value for name in ToolName if name not in self._tools]
        if missing:
            raise RuntimeError(f"Tools without a registration: {', '.join(missing)}")

    def _register(self, definition: ToolDefinition):
        if definition.name in self._tools:
            raise ValueError(f"Tool registered twice: {definition.name.value}")
        self._tools[definition.name] = definition

    # =============================================================================
    # LOOKUP
    # =============================================================================

    def get(self, tool_name: str) -> Optional[ToolDefinition]:
        """Definition for a wire name, None when the name is not in the catalog"""
        try:
            return self.tools[ToolName(tool_name)]
        except ValueError:
            return None

    def names(self) -> List[str]:
        return [name.value for name in self.tools]

    def __contains__(self, tool_name: str) -> bool:
        return self.get(tool_name) is not None

    def __len__(self) -> int:
        return len(self.tools)

    def tool_schemas(self) -> List[Dict[str, Any]]:
        """Function-calling declarations for the planner"""
        return [self._schema(definition) for definition in self.tools.values()]

    def _schema(self, definition: ToolDefinition) -> Dict[str, Any]:
        return {
            "name": definition.name.value,
            "description": definition.description,
            "parameters": _object_schema(definition.parameters),
        }

    # =============================================================================
    # FLIGHT TOOLS
    # =============================================================================

    def _register_flight_tools(self):
        handler = handlers.FlightToolHandlers(self.services["search"])

        self._register(ToolDefinition(
            name=ToolName.SEARCH_FLIGHTS,
            description="Search for available flights between two airports on a date",
            parameters=flights.SEARCH_FLIGHTS_ARGS,
            handler=handler.search_flights,
            ui_hint=UiHint.FLIGHT_LIST,
            preconditions=(require_origin,),
            instructions="Use whenever the user names a destination, even if they say 'cheapest'.",
        ))
        self._register(ToolDefinition(
            name=ToolName.SELECT_FLIGHT,
            description="Select a flight from the search results",
            parameters=flights.SELECT_FLIGHT_ARGS,
            handler=handler.select_flight,
            ui_hint=UiHint.FLIGHT_SELECTED,
        ))

    # =============================================================================
    # BOOKING TOOLS
    # =============================================================================

    def _register_booking_tools(self):
        handler = handlers.BookingToolHandlers(self.services["booking"], self.services["profile"], self.today)

        self._register(ToolDefinition(
            name=ToolName.GET_SAVED_TRAVELERS,
            description="Get the logged-in user's saved travelers and their documents",
            parameters=(),
            handler=handler.get_saved_travelers,
            ui_hint=UiHint.PASSENGER_SELECT,
            preconditions=(booking.require_login,),
        ))
        self._register(ToolDefinition(
            name=ToolName.CREATE_BOOKING,
            description="Book the selected flight for the given passengers",
            parameters=booking.CREATE_BOOKING_ARGS,
            handler=handler.create_booking,
            ui_hint=UiHint.BOOKING_CONFIRMED,
            preconditions=(booking.require_search,),
            instructions="Only after the user confirmed the flight, fare and every passenger's details.",
        ))
        self._register(ToolDefinition(
            name=ToolName.GET_BOOKING,
            description="Retrieve a booking by PNR",
            parameters=booking.GET_BOOKING_ARGS,
            handler=handler.get_booking,
            ui_hint=UiHint.BOOKING_SUMMARY,
        ))

    # =============================================================================
    # MANAGE BOOKING TOOLS
    # =============================================================================

    def _register_manage_tools(self):
        handler = handlers.ManageBookingToolHandlers(self.services["manage_booking"])

        self._register(ToolDefinition(
            name=ToolName.CANCEL_SPECIFIC_PASSENGER,
            description="Remove one passenger from a multi-passenger booking",
            parameters=manage.CANCEL_PASSENGER_ARGS,
            handler=handler.cancel_specific_passenger,
        ))
        self._register(ToolDefinition(
            name=ToolName.CALCULATE_CHANGE_FEES,
            description="Quote the fees for moving a booking to another flight",
            parameters=manage.CHANGE_FEES_ARGS,
            handler=handler.calculate_change_fees,
            ui_hint=UiHint.FLIGHT_COMPARISON,
            instructions="Always quote before calling change_flight.",
        ))
        self._register(ToolDefinition(
            name=ToolName.CHANGE_FLIGHT,
            description="Move a booking, or one passenger on it, to another flight",
            parameters=manage.CHANGE_FLIGHT_ARGS,
            handler=handler.change_flight,
        ))

    # =============================================================================
    # ANCILLARY & CHECK-IN TOOLS
    # =============================================================================

    def _register_ancillary_tools(self):
        handler = handlers.AncillaryToolHandlers(self.services["ancillary"])

        self._register(ToolDefinition(
            name=ToolName.GET_SEAT_MAP,
            description="Show available seats on the booked flight",
            parameters=ancillaries.SEAT_MAP_ARGS,
            handler=handler.get_seat_map,
            ui_hint=UiHint.SEAT_MAP,
        ))
        self._register(ToolDefinition(
            name=ToolName.CHANGE_SEAT,
            description="Assign a specific seat or one matching a preference",
            parameters=ancillaries.CHANGE_SEAT_ARGS,
            handler=handler.change_seat,
        ))
        self._register(ToolDefinition(
            name=ToolName.GET_AVAILABLE_MEALS,
            description="List meals that can be pre-ordered",
            parameters=ancillaries.MEALS_ARGS,
            handler=handler.get_available_meals,
            ui_hint=UiHint.ANCILLARY_OPTIONS,
        ))
        self._register(ToolDefinition(
            name=ToolName.ADD_MEAL,
            description="Pre-order a meal for a passenger",
            parameters=ancillaries.ADD_MEAL_ARGS,
            handler=handler.add_meal,
        ))
        self._register(ToolDefinition(
            name=ToolName.ADD_BAGGAGE,
            description="Add checked baggage allowance (20, 25 or 30 kg)",
            parameters=ancillaries.ADD_BAGGAGE_ARGS,
            handler=handler.add_baggage,
        ))

    def _register_check_in_tools(self):
        handler = handlers.CheckInToolHandlers(self.services["check_in"])

        self._register(ToolDefinition(
            name=ToolName.CHECK_IN,
            description="Check in one passenger or everyone on the booking",
            parameters=checkin.CHECK_IN_ARGS,
            handler=handler.check_in,
        ))
        self._register(ToolDefinition(
            name=ToolName.GET_BOARDING_PASS,
            description="Get the boarding pass of a checked-in passenger",
            parameters=checkin.BOARDING_PASS_ARGS,
            handler=handler.get_boarding_pass,
            ui_hint=UiHint.BOARDING_PASS,
        ))

    # =============================================================================
    # DESTINATION DISCOVERY TOOLS
    # =============================================================================

    def _register_discovery_tools(self):
        handler = handlers.DiscoveryToolHandlers(
            self.services["search"], self.services["weather"], self.today, self.max_workers,
        )

        self._register(ToolDefinition(
            name=ToolName.FIND_WEATHER_DESTINATIONS,
            description="Find destinations with the weather the user is after",
            parameters=discovery.WEATHER_DESTINATIONS_ARGS,
            handler=handler.find_weather_destinations,
            ui_hint=UiHint.DESTINATION_SUGGESTIONS,
            preconditions=(require_origin,),
        ))
        self._register(ToolDefinition(
            name=ToolName.FIND_CHEAPEST_FLIGHTS,
            description="Find the cheapest destinations from the origin over a date window",
            parameters=discovery.CHEAPEST_FLIGHTS_ARGS,
            handler=handler.find_cheapest_flights,
            ui_hint=UiHint.DESTINATION_SUGGESTIONS,
            preconditions=(require_origin,),
            instructions="Only when no destination is mentioned; otherwise use search_flights.",
        ))
        self._register(ToolDefinition(
            name=ToolName.GET_POPULAR_DESTINATIONS,
            description="Suggest popular destinations from the origin",
            parameters=discovery.POPULAR_DESTINATIONS_ARGS,
            handler=handler.get_popular_destinations,
            ui_hint=UiHint.DESTINATION_SUGGESTIONS,
            preconditions=(require_origin,),
        ))


def _object_schema(spec: ArgumentSpec) -> Dict[str, Any]:
    properties = {p.name: _property_schema(p) for p in spec}
    return {
        "type": "object",
        "properties": properties,
        # context-sourced fields may be omitted by the planner
        "required": [p.name for p in spec if p.required and not p.sources_context],
    }


def _property_schema(param: ToolParameter) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": _JSON_TYPES[param.kind]}
    if param.description:
        schema["description"] = param.description
    if param.kind == FieldKind.ENUM and param.choices:
        schema["enum"] = list(param.choices)
    if param.kind == FieldKind.DATE:
        schema["format"] = "date"
    if param.kind == FieldKind.ARRAY and param.item_fields:
        schema["items"] = _object_schema(param.item_fields)
    return schema
