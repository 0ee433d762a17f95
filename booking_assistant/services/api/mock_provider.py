import hashlib
import logging
import math
import secrets
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from booking_assistant.services import reference_data
from .base import (
    AncillaryCapability, BookingCapability, BusinessRuleError, CheckInCapability,
    ManageBookingCapability, NotFoundError, SearchCapability, SearchExpiredError,
)
from .response_models import (
    BoardingPass, BookingConfirmation, BookingRequest, CancelPassengerResult, ChangeFeeQuote,
    ChangeFlightResult, CheckedInPassenger, FareFamily, FareFamilyCode, FlightOption, MealOption,
    Passenger, PassengerType, RouteMap, SearchResult, SeatMap,
)

logger = logging.getLogger(__name__)

CURRENCY = "SAR"
SEAT_LETTERS = "ABCDEF"
CABIN_ROWS = 30
PNR_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# (hour, minute, price multiplier) for the daily departures on every route
DEPARTURE_SLOTS = ((6, 0, Decimal("1.00")), (12, 30, Decimal("1.15")), (19, 45, Decimal("0.90")))

FARE_FAMILY_SUPPLEMENT = {
    FareFamilyCode.FLY: Decimal("0"),
    FareFamilyCode.FLY_PLUS: Decimal("150"),
    FareFamilyCode.FLY_MAX: Decimal("350"),
}
CHANGE_FEE = {
    FareFamilyCode.FLY: Decimal("150"),
    FareFamilyCode.FLY_PLUS: Decimal("75"),
    FareFamilyCode.FLY_MAX: Decimal("0"),
}
CANCELLATION_FEE = {
    FareFamilyCode.FLY: Decimal("200"),
    FareFamilyCode.FLY_PLUS: Decimal("100"),
    FareFamilyCode.FLY_MAX: Decimal("0"),
}
BOARDING_GROUP = {
    FareFamilyCode.FLY_MAX: "A",
    FareFamilyCode.FLY_PLUS: "B",
    FareFamilyCode.FLY: "C",
}
BAGGAGE_PRICES = {20: Decimal("75"), 25: Decimal("100"), 30: Decimal("125")}
INFANT_FARE_RATIO = Decimal("0.10")
MAX_SEARCHES = 500

MEALS = (
    MealOption("CHKN", "Grilled Chicken with Rice", Decimal("45"), is_halal=True),
    MealOption("BEEF", "Beef Pasta", Decimal("55"), is_halal=True),
    MealOption("VEGE", "Vegetable Curry", Decimal("40"), is_vegetarian=True),
    MealOption("FISH", "Grilled Fish Fillet", Decimal("60"), is_halal=True),
)


def _stable_hash(*parts: object) -> int:
    digest = hashlib.md5(":".join(str(p) for p in parts).encode()).hexdigest()
    return int(digest[:8], 16)


def _money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _name_key(name: str) -> str:
    return " ".join(name.lower().split())


def base_fare(origin: str, destination: str) -> Decimal:
    """Economy base fare for a route, symmetric in direction"""
    route = {origin, destination}
    if route == {"JED", "RUH"}:
        return Decimal("350")
    if route == {"JED", "DMM"}:
        return Decimal("450")
    if route == {"RUH", "DMM"}:
        return Decimal("280")
    if route in ({"RUH", "DXB"}, {"JED", "DXB"}):
        return Decimal("650")
    if route == {"DMM", "DXB"}:
        return Decimal("550")
    if route in ({"JED", "CAI"}, {"RUH", "CAI"}):
        return Decimal("850")
    if "MED" in route:
        return Decimal("400")
    if "GIZ" in route:
        return Decimal("380")
    if "BKK" in route or "MLE" in route:
        return Decimal("1450")
    if reference_data.is_domestic(origin, destination):
        return Decimal("420")
    return Decimal("700")


def _flight_minutes(origin: str, destination: str) -> int:
    a, b = reference_data.get_city(origin), reference_data.get_city(destination)
    if not a or not b:
        return 90
    lat1, lon1, lat2, lon2 = map(math.radians, (a.latitude, a.longitude, b.latitude, b.longitude))
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    km = 6371 * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return int(30 + km / 800 * 60)


@dataclass
class _SearchRecord:
    result: SearchResult
    passengers: int
    expires_at: datetime


@dataclass
class _BookingRecord:
    confirmation: BookingConfirmation
    meals: Dict[str, str]
    baggage: Dict[str, int]
    cancelled: bool = False


class MockAirlineProvider(SearchCapability, BookingCapability, ManageBookingCapability,
                          CheckInCapability, AncillaryCapability):
    """
    In-memory reservation system with a deterministic schedule.

    The same route and date always produce the same flights and fares, so
    tests and demos can refer to flight numbers returned by earlier searches.
    All mutation is guarded by one lock; calls are safe from worker threads.
    """

    def __init__(self, routes: Optional[Dict[str, List[str]]] = None, search_ttl_minutes: int = 30,
                 timezone: str = "Asia/Riyadh", clock: Optional[Callable[[], datetime]] = None,
                 max_searches: int = MAX_SEARCHES):
        self._routes = {k.upper(): [d.upper() for d in v] for k, v in (routes or reference_data.ROUTES).items()}
        self._search_ttl = timedelta(minutes=search_ttl_minutes)
        self._max_searches = max_searches
        self._tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._lock = threading.RLock()
        self._searches: Dict[str, _SearchRecord] = {}
        self._bookings: Dict[str, _BookingRecord] = {}
        self._checkins: Dict[Tuple[str, str], CheckedInPassenger] = {}
        self._seats: Dict[Tuple[str, str], str] = {}

    # =============================================================================
    # SEARCH
    # =============================================================================

    def route_map(self) -> RouteMap:
        return RouteMap(routes={k: list(v) for k, v in self._routes.items()})

    def search(self, origin: str, destination: str, departure_date: date, passengers: int) -> SearchResult:
        origin, destination = origin.upper(), destination.upper()
        if origin == destination:
            raise BusinessRuleError("Origin and destination must be different airports")
        if destination not in self._routes.get(origin, []):
            raise BusinessRuleError(
                f"We don't fly from {reference_data.city_name(origin)} ({origin}) to "
                f"{reference_data.city_name(destination)} ({destination})"
            )
        if departure_date < self._now().date():
            raise BusinessRuleError(f"Departure date {departure_date.isoformat()} is in the past")

        search_id = self._new_search_id(origin, destination, departure_date)
        result = SearchResult(
            search_id=search_id,
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            flights=self._schedule(origin, destination, departure_date),
        )
        with self._lock:
            self._prune_searches()
            self._searches[search_id] = _SearchRecord(result, passengers, self._now() + self._search_ttl)
        logger.info(f"Search {search_id}: {origin}->{destination} on {departure_date}, {len(result.flights)} flights")
        return result

    def _prune_searches(self):
        """Drop expired searches, then the oldest ones while the cache is full"""
        now = self._now()
        for search_id in [k for k, r in self._searches.items() if r.expires_at < now]:
            del self._searches[search_id]
        # insertion order is expiry order since every search gets the same TTL
        while self._searches and len(self._searches) >= self._max_searches:
            del self._searches[next(iter(self._searches))]

    def _schedule(self, origin: str, destination: str, departure_date: date) -> List[FlightOption]:
        base = base_fare(origin, destination)
        day_factor = Decimal(100 + (_stable_hash(origin, destination, departure_date) % 5) * 5) / Decimal(100)
        duration = _flight_minutes(origin, destination)
        route_seed = _stable_hash(origin, destination) % 80

        flights = []
        for index, (hour, minute, slot_factor) in enumerate(DEPARTURE_SLOTS):
            departure = datetime.combine(departure_date, time(hour, minute))
            price = _money(base * day_factor * slot_factor)
            flights.append(FlightOption(
                flight_number=f"F3{100 + route_seed * 10 + index * 2}",
                origin=origin,
                destination=destination,
                departure_time=departure,
                arrival_time=departure + timedelta(minutes=duration),
                duration_minutes=duration,
                fare_families=[
                    FareFamily(code, price + supplement, CURRENCY)
                    for code, supplement in FARE_FAMILY_SUPPLEMENT.items()
                ],
            ))
        return flights

    def _new_search_id(self, origin: str, destination: str, departure_date: date) -> str:
        search_hash = hashlib.md5(f"{origin}:{destination}:{departure_date}:{uuid.uuid4()}".encode()).hexdigest()[:12]
        return f"search_{search_hash}"

    # =============================================================================
    # BOOKING
    # =============================================================================

    def create(self, request: BookingRequest, user_id: Optional[str] = None) -> BookingConfirmation:
        with self._lock:
            record = self._searches.get(request.search_id)
            if record is None or record.expires_at < self._now():
                raise SearchExpiredError("Your flight search has expired. Please search for flights again.")

            flight_number = request.flight_number.upper()
            flight = next((f for f in record.result.flights if f.flight_number == flight_number), None)
            if flight is None:
                raise BusinessRuleError(f"Flight {flight_number} is not part of your last search results")
            if not request.passengers:
                raise BusinessRuleError("At least one passenger is required")

            fare = flight.fare_for(request.fare_family)
            total = sum((self._passenger_fare(fare.price, p) for p in request.passengers), Decimal("0"))

            pnr = self._new_pnr()
            confirmation = BookingConfirmation(
                pnr=pnr,
                booking_reference=f"BK{_stable_hash(pnr, request.search_id) % 10**8:08d}",
                flight=flight,
                fare_family=request.fare_family,
                passengers=list(request.passengers),
                total_paid=_money(total),
                currency=CURRENCY,
                contact_email=request.contact_email,
                user_id=user_id,
                created_at=self._now(),
            )
            self._bookings[pnr] = _BookingRecord(confirmation, meals={}, baggage={})

        logger.info(f"Booking {pnr} created for flight {flight_number} with {len(request.passengers)} passenger(s)")
        return confirmation

    def get(self, pnr: str) -> Optional[BookingConfirmation]:
        with self._lock:
            record = self._bookings.get(pnr.upper())
            return record.confirmation if record else None

    def _passenger_fare(self, price: Decimal, passenger: Passenger) -> Decimal:
        if passenger.type == PassengerType.INFANT:
            return price * INFANT_FARE_RATIO
        return price

    def _new_pnr(self) -> str:
        while True:
            pnr = "".join(secrets.choice(PNR_ALPHABET) for _ in range(6))
            if pnr not in self._bookings:
                return pnr

    def _require_booking(self, pnr: str) -> _BookingRecord:
        record = self._bookings.get(pnr.upper())
        if record is None:
            raise NotFoundError(f"Booking not found with PNR: {pnr.upper()}")
        if record.cancelled:
            raise BusinessRuleError(f"Booking {pnr.upper()} has been cancelled")
        return record

    def _find_passenger(self, booking: BookingConfirmation, passenger_name: str) -> Passenger:
        wanted = _name_key(passenger_name)
        exact = [p for p in booking.passengers if _name_key(p.full_name) == wanted]
        if exact:
            return exact[0]
        partial = [
            p for p in booking.passengers
            if _name_key(p.first_name) == wanted or _name_key(p.last_name) == wanted
        ]
        if len(partial) == 1:
            return partial[0]
        if len(partial) > 1:
            raise BusinessRuleError(
                f"More than one passenger matches '{passenger_name}' on booking {booking.pnr}. Please use the full name."
            )
        raise NotFoundError(f"No passenger named '{passenger_name}' on booking {booking.pnr}")

    # =============================================================================
    # MANAGE BOOKING
    # =============================================================================

    def cancel_passenger(self, pnr: str, passenger_name: str) -> CancelPassengerResult:
        with self._lock:
            record = self._require_booking(pnr)
            booking = record.confirmation
            passenger = self._find_passenger(booking, passenger_name)
            if len(booking.passengers) == 1:
                raise BusinessRuleError(
                    f"{passenger.full_name} is the only passenger on {booking.pnr}. Cancel the whole booking instead."
                )

            fare = booking.flight.fare_for(booking.fare_family).price
            paid = self._passenger_fare(fare, passenger)
            refund = max(paid - CANCELLATION_FEE[booking.fare_family], Decimal("0"))

            split = self._split_passenger(record, passenger, booking.flight)
            self._bookings[split.pnr] = _BookingRecord(
                replace(split, total_paid=Decimal("0")), meals={}, baggage={}, cancelled=True
            )
            self._release_passenger(booking.pnr, passenger)

        logger.info(f"Cancelled {passenger.full_name} from {booking.pnr} (split to {split.pnr})")
        return CancelPassengerResult(
            original_pnr=booking.pnr,
            new_pnr=split.pnr,
            cancelled_passenger=passenger.full_name,
            refund_amount=_money(refund),
        )

    def calculate_change_fees(self, pnr: str, new_flight_number: str) -> ChangeFeeQuote:
        with self._lock:
            booking = self._require_booking(pnr).confirmation
        return self._quote(booking, new_flight_number, booking.passengers)

    def change_flight(self, pnr: str, new_flight_number: str,
                      passenger_name: Optional[str] = None) -> ChangeFlightResult:
        with self._lock:
            record = self._require_booking(pnr)
            booking = record.confirmation

            movers = booking.passengers
            if passenger_name:
                movers = [self._find_passenger(booking, passenger_name)]

            quote = self._quote(booking, new_flight_number, movers)
            new_flight = self._flight_on_same_day(booking, quote.new_flight_number)

            if len(movers) == len(booking.passengers):
                record.confirmation = replace(booking, flight=new_flight)
                for p in movers:
                    self._release_passenger(booking.pnr, p, keep_booking=True)
                result_pnr = booking.pnr
            else:
                mover = movers[0]
                split = self._split_passenger(record, mover, new_flight)
                self._bookings[split.pnr] = _BookingRecord(split, meals={}, baggage={})
                self._release_passenger(booking.pnr, mover)
                result_pnr = split.pnr

        logger.info(f"Changed {pnr} to {quote.new_flight_number} for {len(movers)} passenger(s)")
        return ChangeFlightResult(
            pnr=result_pnr,
            new_flight_number=quote.new_flight_number,
            affected_passengers=[p.full_name for p in movers],
            amount_charged=quote.total_due,
        )

    def _quote(self, booking: BookingConfirmation, new_flight_number: str,
               passengers: List[Passenger]) -> ChangeFeeQuote:
        new_flight_number = new_flight_number.upper()
        if new_flight_number == booking.flight.flight_number:
            raise BusinessRuleError(f"Booking {booking.pnr} is already on flight {new_flight_number}")
        new_flight = self._flight_on_same_day(booking, new_flight_number)

        old_fare = booking.flight.fare_for(booking.fare_family).price
        new_fare = new_flight.fare_for(booking.fare_family).price
        paying = [p for p in passengers if p.type != PassengerType.INFANT]
        return ChangeFeeQuote(
            pnr=booking.pnr,
            current_flight_number=booking.flight.flight_number,
            new_flight_number=new_flight_number,
            change_fee=CHANGE_FEE[booking.fare_family] * len(paying),
            price_difference=(new_fare - old_fare) * len(paying),
            currency=CURRENCY,
        )

    def _flight_on_same_day(self, booking: BookingConfirmation, flight_number: str) -> FlightOption:
        current = booking.flight
        schedule = self._schedule(current.origin, current.destination, current.departure_time.date())
        flight = next((f for f in schedule if f.flight_number == flight_number.upper()), None)
        if flight is None:
            raise NotFoundError(
                f"Flight {flight_number.upper()} does not operate {current.origin}-{current.destination} "
                f"on {current.departure_time.date().isoformat()}"
            )
        return flight

    def _split_passenger(self, record: _BookingRecord, passenger: Passenger,
                         flight: FlightOption) -> BookingConfirmation:
        booking = record.confirmation
        record.confirmation = replace(booking, passengers=[p for p in booking.passengers if p is not passenger])
        new_pnr = self._new_pnr()
        return replace(booking, pnr=new_pnr, flight=flight, passengers=[passenger], created_at=self._now())

    def _release_passenger(self, pnr: str, passenger: Passenger, keep_booking: bool = False):
        key = (pnr.upper(), _name_key(passenger.full_name))
        self._checkins.pop(key, None)
        self._seats.pop(key, None)
        if not keep_booking:
            record = self._bookings.get(pnr.upper())
            if record:
                record.meals.pop(key[1], None)
                record.baggage.pop(key[1], None)

    # =============================================================================
    # CHECK-IN
    # =============================================================================

    def check_in(self, pnr: str, passenger_name: Optional[str] = None) -> List[CheckedInPassenger]:
        with self._lock:
            booking = self._require_booking(pnr).confirmation
            targets = [self._find_passenger(booking, passenger_name)] if passenger_name else booking.passengers
            targets = [p for p in targets if p.type != PassengerType.INFANT] or targets

            checked_in = []
            for passenger in targets:
                key = (booking.pnr, _name_key(passenger.full_name))
                existing = self._checkins.get(key)
                if existing is None:
                    seat = self._seats.get(key) or self._next_free_seat(booking)
                    self._seats[key] = seat
                    existing = CheckedInPassenger(
                        name=passenger.full_name,
                        seat=seat,
                        boarding_group=BOARDING_GROUP[booking.fare_family],
                    )
                    self._checkins[key] = existing
                checked_in.append(existing)
        return checked_in

    def boarding_pass(self, pnr: str, passenger_name: str) -> BoardingPass:
        with self._lock:
            booking = self._require_booking(pnr).confirmation
            passenger = self._find_passenger(booking, passenger_name)
            checked_in = self._checkins.get((booking.pnr, _name_key(passenger.full_name)))
        if checked_in is None:
            raise BusinessRuleError(f"{passenger.full_name} is not checked in yet. Please check in first.")

        flight = booking.flight
        return BoardingPass(
            pnr=booking.pnr,
            passenger_name=passenger.full_name,
            flight_number=flight.flight_number,
            origin=flight.origin,
            destination=flight.destination,
            departure_time=flight.departure_time,
            gate=f"B{_stable_hash(flight.flight_number, flight.departure_time.date()) % 20 + 1}",
            seat=checked_in.seat,
            boarding_group=checked_in.boarding_group,
            barcode=f"M1{booking.pnr}{passenger.last_name[:3].upper()}{checked_in.seat}",
        )

    # =============================================================================
    # ANCILLARIES
    # =============================================================================

    def seat_map(self, pnr: str) -> SeatMap:
        with self._lock:
            booking = self._require_booking(pnr).confirmation
            return SeatMap(pnr=booking.pnr, flight_number=booking.flight.flight_number,
                           available_seats=self._available_seats(booking))

    def assign_seat(self, pnr: str, passenger_name: str, seat: Optional[str] = None,
                    preference: Optional[str] = None) -> CheckedInPassenger:
        with self._lock:
            booking = self._require_booking(pnr).confirmation
            passenger = self._find_passenger(booking, passenger_name)
            key = (booking.pnr, _name_key(passenger.full_name))
            available = self._available_seats(booking)

            if seat:
                seat = seat.upper()
                if seat == self._seats.get(key):
                    available.append(seat)
                if seat not in available:
                    raise BusinessRuleError(f"Seat {seat} is not available on flight {booking.flight.flight_number}")
                chosen = seat
            else:
                letters = {"window": ("A", "F"), "aisle": ("C", "D")}.get(preference or "", ("B", "E"))
                chosen = next((s for s in available if s.endswith(letters)), None)
                if chosen is None:
                    raise BusinessRuleError(f"No {preference or 'middle'} seats left on flight {booking.flight.flight_number}")

            self._seats[key] = chosen
            group = BOARDING_GROUP[booking.fare_family]
            if key in self._checkins:
                self._checkins[key] = replace(self._checkins[key], seat=chosen)
        return CheckedInPassenger(name=passenger.full_name, seat=chosen, boarding_group=group)

    def meals(self, pnr: str) -> List[MealOption]:
        with self._lock:
            self._require_booking(pnr)
        return list(MEALS)

    def add_meal(self, pnr: str, passenger_name: str, meal_code: str) -> MealOption:
        meal = next((m for m in MEALS if m.code == meal_code.upper()), None)
        if meal is None:
            raise NotFoundError(f"Unknown meal code {meal_code.upper()}. Available: {', '.join(m.code for m in MEALS)}")
        with self._lock:
            record = self._require_booking(pnr)
            passenger = self._find_passenger(record.confirmation, passenger_name)
            record.meals[_name_key(passenger.full_name)] = meal.code
        return meal

    def add_baggage(self, pnr: str, passenger_name: str, weight_kg: int) -> Dict[str, object]:
        if weight_kg not in BAGGAGE_PRICES:
            raise BusinessRuleError(f"Baggage comes in {', '.join(str(w) for w in BAGGAGE_PRICES)} kg only")
        with self._lock:
            record = self._require_booking(pnr)
            passenger = self._find_passenger(record.confirmation, passenger_name)
            record.baggage[_name_key(passenger.full_name)] = weight_kg
        return {
            "passengerName": passenger.full_name,
            "baggageWeight": weight_kg,
            "price": BAGGAGE_PRICES[weight_kg],
            "currency": CURRENCY,
        }

    def _available_seats(self, booking: BookingConfirmation) -> List[str]:
        flight = booking.flight
        taken = {seat for (pnr, _), seat in self._seats.items()
                 if self._bookings.get(pnr) and self._bookings[pnr].confirmation.flight.flight_number == flight.flight_number}
        seats = []
        for row in range(1, CABIN_ROWS + 1):
            for letter in SEAT_LETTERS:
                seat = f"{row}{letter}"
                # roughly a third of the cabin is sold to other customers
                if _stable_hash(flight.flight_number, flight.departure_time.date(), seat) % 3 == 0:
                    continue
                if seat not in taken:
                    seats.append(seat)
        return seats

    def _next_free_seat(self, booking: BookingConfirmation) -> str:
        available = self._available_seats(booking)
        if not available:
            raise BusinessRuleError(f"Flight {booking.flight.flight_number} has no seats left for check-in")
        return available[0]

    def _now(self) -> datetime:
        return self._clock()
