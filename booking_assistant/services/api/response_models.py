from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


# --- Enums for Type Safety & Clarity ---
class FareFamilyCode(Enum):
    FLY = "FLY"
    FLY_PLUS = "FLY_PLUS"
    FLY_MAX = "FLY_MAX"


class PassengerType(Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"
    INFANT = "INFANT"


class Gender(Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Title(Enum):
    MR = "MR"
    MS = "MS"
    MSTR = "MSTR"
    MISS = "MISS"


class DocumentType(Enum):
    PASSPORT = "PASSPORT"
    NATIONAL_ID = "NATIONAL_ID"
    IQAMA = "IQAMA"


# --- Search ---
@dataclass
class FareFamily:
    code: FareFamilyCode
    price: Decimal
    currency: str = "SAR"


@dataclass
class FlightOption:
    flight_number: str
    origin: str
    destination: str
    departure_time: datetime
    arrival_time: datetime
    duration_minutes: int
    fare_families: List[FareFamily] = field(default_factory=list)

    @property
    def lowest_price(self) -> Optional[Decimal]:
        if not self.fare_families:
            return None
        return min(f.price for f in self.fare_families)

    def fare_for(self, code: FareFamilyCode) -> Optional[FareFamily]:
        return next((f for f in self.fare_families if f.code == code), None)


@dataclass
class SearchResult:
    search_id: str
    origin: str
    destination: str
    departure_date: date
    flights: List[FlightOption] = field(default_factory=list)


@dataclass
class RouteMap:
    """Origin airport code -> destination airport codes served from it"""
    routes: Dict[str, List[str]] = field(default_factory=dict)

    def destinations_from(self, origin: str) -> List[str]:
        return list(self.routes.get(origin.upper(), []))


# --- Booking ---
@dataclass
class Passenger:
    type: PassengerType
    title: Title
    first_name: str
    last_name: str
    nationality: str
    date_of_birth: date
    document_id: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class BookingRequest:
    search_id: str
    flight_number: str
    fare_family: FareFamilyCode
    passengers: List[Passenger]
    contact_email: str


@dataclass
class BookingConfirmation:
    pnr: str
    booking_reference: str
    flight: FlightOption
    fare_family: FareFamilyCode
    passengers: List[Passenger]
    total_paid: Decimal
    currency: str = "SAR"
    contact_email: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


# --- Manage booking ---
@dataclass
class CancelPassengerResult:
    original_pnr: str
    new_pnr: str
    cancelled_passenger: str
    refund_amount: Decimal


@dataclass
class ChangeFeeQuote:
    pnr: str
    current_flight_number: str
    new_flight_number: str
    change_fee: Decimal
    price_difference: Decimal
    currency: str = "SAR"

    @property
    def total_due(self) -> Decimal:
        return self.change_fee + max(self.price_difference, Decimal("0"))


@dataclass
class ChangeFlightResult:
    pnr: str
    new_flight_number: str
    affected_passengers: List[str]
    amount_charged: Decimal


# --- Check-in & ancillaries ---
@dataclass
class CheckedInPassenger:
    name: str
    seat: str
    boarding_group: str


@dataclass
class BoardingPass:
    pnr: str
    passenger_name: str
    flight_number: str
    origin: str
    destination: str
    departure_time: datetime
    gate: str
    seat: str
    boarding_group: str
    barcode: str


@dataclass
class SeatMap:
    pnr: str
    flight_number: str
    available_seats: List[str]

    @property
    def window_seats(self) -> List[str]:
        return [s for s in self.available_seats if s.endswith(("A", "F"))]

    @property
    def aisle_seats(self) -> List[str]:
        return [s for s in self.available_seats if s.endswith(("C", "D"))]


@dataclass
class MealOption:
    code: str
    name: str
    price: Decimal
    is_halal: bool = False
    is_vegetarian: bool = False


# --- Profile ---
@dataclass
class TravelDocument:
    type: DocumentType
    number: str
    issuing_country: str
    expiry_date: date
    is_default: bool = False


@dataclass
class Traveler:
    id: str
    first_name: str
    last_name: str
    date_of_birth: date
    nationality: str
    gender: Gender
    email: Optional[str] = None
    phone: Optional[str] = None
    is_main_traveler: bool = False
    documents: List[TravelDocument] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# --- Weather ---
@dataclass
class WeatherReading:
    city_code: str
    city_name: str
    temperature: int
    condition: str
    description: str
