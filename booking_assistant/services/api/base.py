"""
Narrow interfaces for the transactional services the tool handlers call.

The handlers only depend on these; concrete providers (the in-memory airline
provider, Open-Meteo weather, a real reservation system) are wired in by the
service factory.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional

from .response_models import (
    BoardingPass, BookingConfirmation, BookingRequest, CancelPassengerResult,
    ChangeFeeQuote, ChangeFlightResult, CheckedInPassenger, MealOption, RouteMap,
    SearchResult, SeatMap, Traveler, WeatherReading,
)


class DownstreamError(Exception):
    """A facade rejected or failed a request; the message is shown to the user"""


class NotFoundError(DownstreamError):
    pass


class BusinessRuleError(DownstreamError):
    pass


class SearchExpiredError(DownstreamError):
    pass


class ServiceUnavailableError(DownstreamError):
    pass


class SearchCapability(ABC):

    @abstractmethod
    def search(self, origin: str, destination: str, departure_date: date, passengers: int) -> SearchResult:
        pass

    @abstractmethod
    def route_map(self) -> RouteMap:
        pass


class BookingCapability(ABC):

    @abstractmethod
    def create(self, request: BookingRequest, user_id: Optional[str] = None) -> BookingConfirmation:
        """Create a booking against a previously issued search id."""
        pass

    @abstractmethod
    def get(self, pnr: str) -> Optional[BookingConfirmation]:
        pass


class ManageBookingCapability(ABC):

    @abstractmethod
    def cancel_passenger(self, pnr: str, passenger_name: str) -> CancelPassengerResult:
        pass

    @abstractmethod
    def calculate_change_fees(self, pnr: str, new_flight_number: str) -> ChangeFeeQuote:
        pass

    @abstractmethod
    def change_flight(self, pnr: str, new_flight_number: str,
                      passenger_name: Optional[str] = None) -> ChangeFlightResult:
        pass


class CheckInCapability(ABC):
    """Check-in must be idempotent: re-checking a passenger returns the same seat and group."""

    @abstractmethod
    def check_in(self, pnr: str, passenger_name: Optional[str] = None) -> List[CheckedInPassenger]:
        pass

    @abstractmethod
    def boarding_pass(self, pnr: str, passenger_name: str) -> BoardingPass:
        pass


class AncillaryCapability(ABC):

    @abstractmethod
    def seat_map(self, pnr: str) -> SeatMap:
        pass

    @abstractmethod
    def assign_seat(self, pnr: str, passenger_name: str, seat: Optional[str] = None,
                    preference: Optional[str] = None) -> CheckedInPassenger:
        pass

    @abstractmethod
    def meals(self, pnr: str) -> List[MealOption]:
        pass

    @abstractmethod
    def add_meal(self, pnr: str, passenger_name: str, meal_code: str) -> MealOption:
        pass

    @abstractmethod
    def add_baggage(self, pnr: str, passenger_name: str, weight_kg: int) -> Dict[str, object]:
        pass


class ProfileCapability(ABC):

    @abstractmethod
    def get_travelers(self, user_id: str) -> List[Traveler]:
        pass


class WeatherCapability(ABC):

    @abstractmethod
    def for_cities(self, codes: List[str]) -> Dict[str, WeatherReading]:
        """Readings keyed by uppercase airport code; unknown codes are omitted."""
        pass
