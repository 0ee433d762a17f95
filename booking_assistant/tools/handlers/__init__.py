from .ancillaries import AncillaryToolHandlers
from .booking import BookingToolHandlers
from .checkin import CheckInToolHandlers
from .discovery import DiscoveryToolHandlers
from .flights import FlightToolHandlers
from .manage import ManageBookingToolHandlers

__all__ = [
    "AncillaryToolHandlers",
    "BookingToolHandlers",
    "CheckInToolHandlers",
    "DiscoveryToolHandlers",
    "FlightToolHandlers",
    "ManageBookingToolHandlers",
]
