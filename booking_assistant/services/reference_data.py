from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class City:
    code: str
    name: str
    country: str
    latitude: float
    longitude: float
    popularity: int  # higher ranks first
    travel_types: Tuple[str, ...] = field(default_factory=tuple)
    highlight: str = "Popular destination"


CITIES: Dict[str, City] = {
    city.code: city for city in (
        City("RUH", "Riyadh", "Saudi Arabia", 24.7136, 46.6753, 90, ("business", "family"), "Capital city, business hub"),
        City("JED", "Jeddah", "Saudi Arabia", 21.4858, 39.1925, 95, ("leisure", "family"), "Red Sea waterfront, historic Al-Balad"),
        City("DMM", "Dammam", "Saudi Arabia", 26.4367, 50.1039, 60, ("business",), "Eastern Province getaway"),
        City("MED", "Madinah", "Saudi Arabia", 24.5247, 39.5692, 85, ("family",), "Sacred city, spiritual journey"),
        City("AHB", "Abha", "Saudi Arabia", 18.2164, 42.5053, 55, ("adventure", "family"), "Cool mountain air and hiking"),
        City("GIZ", "Jazan", "Saudi Arabia", 16.9016, 42.5871, 40, ("leisure",), "Warm coastal weather"),
        City("TUU", "Tabuk", "Saudi Arabia", 28.3654, 36.6189, 45, ("adventure",), "Gateway to NEOM and desert canyons"),
        City("DXB", "Dubai", "UAE", 25.2048, 55.2708, 100, ("leisure", "business", "family"), "Shopping, beaches, adventure"),
        City("AUH", "Abu Dhabi", "UAE", 24.4539, 54.3773, 70, ("leisure", "family"), "Grand mosque and island resorts"),
        City("CAI", "Cairo", "Egypt", 30.0444, 31.2357, 80, ("leisure", "adventure"), "Ancient pyramids, rich history"),
        City("AMM", "Amman", "Jordan", 31.9454, 35.9284, 50, ("adventure", "leisure"), "Petra and the Dead Sea nearby"),
        City("IST", "Istanbul", "Turkey", 41.0082, 28.9784, 88, ("leisure", "business"), "Where Europe meets Asia"),
        City("BAH", "Bahrain", "Bahrain", 26.2285, 50.5860, 42, ("business", "leisure"), "Short hop across the causeway"),
        City("KWI", "Kuwait", "Kuwait", 29.3759, 47.9774, 38, ("business",), "Gulf business centre"),
        City("MCT", "Muscat", "Oman", 23.5880, 58.3829, 52, ("adventure", "leisure"), "Fjords, wadis and old forts"),
        City("BKK", "Bangkok", "Thailand", 13.7563, 100.5018, 75, ("leisure", "adventure"), "Street food and temples"),
        City("MLE", "Maldives", "Maldives", 4.1755, 73.5093, 65, ("leisure",), "Overwater villas, turquoise lagoons"),
    )
}

# Domestic network plus the international routes flown from each base.
ROUTES: Dict[str, List[str]] = {
    "RUH": ["JED", "DMM", "MED", "AHB", "GIZ", "TUU", "DXB", "CAI", "IST", "AMM", "BAH", "KWI", "MCT", "BKK", "MLE"],
    "JED": ["RUH", "DMM", "MED", "AHB", "GIZ", "TUU", "DXB", "AUH", "CAI", "IST", "AMM"],
    "DMM": ["RUH", "JED", "MED", "DXB", "CAI", "IST", "BAH", "KWI"],
    "MED": ["RUH", "JED", "DMM", "CAI", "IST"],
    "AHB": ["RUH", "JED", "DMM"],
    "GIZ": ["RUH", "JED"],
    "TUU": ["RUH", "JED", "CAI"],
    "DXB": ["RUH", "JED", "DMM"],
    "AUH": ["JED"],
    "CAI": ["RUH", "JED", "DMM", "MED", "TUU"],
    "AMM": ["RUH", "JED"],
    "IST": ["RUH", "JED", "DMM", "MED"],
    "BAH": ["RUH", "DMM"],
    "KWI": ["RUH", "DMM"],
    "MCT": ["RUH"],
    "BKK": ["RUH"],
    "MLE": ["RUH"],
}

# Typical temperatures used when the live weather backend is unreachable.
FALLBACK_WEATHER: Dict[str, Tuple[int, str]] = {
    "JED": (30, "sunny"), "DMM": (30, "sunny"), "DXB": (30, "sunny"), "BAH": (30, "sunny"),
    "KWI": (30, "sunny"), "MCT": (30, "sunny"), "MLE": (30, "sunny"), "BKK": (30, "sunny"),
    "RUH": (28, "sunny"), "MED": (28, "sunny"),
    "CAI": (24, "sunny"), "AMM": (24, "sunny"),
    "IST": (15, "partly_cloudy"),
    "AHB": (20, "sunny"),
}


def get_city(code: str) -> Optional[City]:
    return CITIES.get((code or "").upper())


def city_name(code: str) -> str:
    city = get_city(code)
    return city.name if city else (code or "").upper()


def country_for(code: str) -> str:
    city = get_city(code)
    return city.country if city else ""


def is_domestic(origin: str, destination: str) -> bool:
    return country_for(origin) == country_for(destination) != ""
