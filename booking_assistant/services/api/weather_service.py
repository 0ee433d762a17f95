import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

import requests

from booking_assistant.services import reference_data
from .base import WeatherCapability
from .response_models import WeatherReading

logger = logging.getLogger(__name__)

FALLBACK_DESCRIPTION = "Weather data temporarily unavailable"

_CONDITIONS = (
    ((0,), "sunny"),
    ((1, 2, 3), "partly_cloudy"),
    ((45, 48), "foggy"),
    ((51, 53, 55, 56, 57), "drizzle"),
    ((61, 63, 65, 66, 67, 80, 81, 82), "rainy"),
    ((71, 73, 75, 77, 85, 86), "snowy"),
    ((95, 96, 99), "stormy"),
)

_DESCRIPTIONS = {
    0: "Clear skies", 1: "Mainly clear", 2: "Partly cloudy", 3: "Overcast",
    45: "Foggy", 48: "Foggy",
    51: "Light drizzle", 53: "Moderate drizzle", 55: "Dense drizzle", 56: "Freezing drizzle", 57: "Freezing drizzle",
    61: "Slight rain", 63: "Moderate rain", 65: "Heavy rain", 66: "Freezing rain", 67: "Freezing rain",
    71: "Slight snow", 73: "Moderate snow", 75: "Heavy snow", 77: "Heavy snow",
    80: "Rain showers", 81: "Rain showers", 82: "Rain showers",
    85: "Snow showers", 86: "Snow showers",
    95: "Thunderstorm", 96: "Thunderstorm with hail", 99: "Thunderstorm with hail",
}


def weather_code_to_condition(code: int) -> str:
    """Map an Open-Meteo WMO weather code to a simple condition tag"""
    for codes, condition in _CONDITIONS:
        if code in codes:
            return condition
    return "cloudy"


def weather_code_to_description(code: int) -> str:
    return _DESCRIPTIONS.get(code, "Variable conditions")


def fallback_reading(code: str) -> Optional[WeatherReading]:
    """Typical-climate reading for a known city, None for unknown codes"""
    city = reference_data.get_city(code)
    if city is None:
        return None
    temperature, condition = reference_data.FALLBACK_WEATHER.get(city.code, (25, "sunny"))
    return WeatherReading(city.code, city.name, temperature, condition, FALLBACK_DESCRIPTION)


class OpenMeteoWeatherService(WeatherCapability):
    """Current weather from Open-Meteo (no API key). Failures degrade to typical-climate data."""

    def __init__(self, base_url: str = "https://api.open-meteo.com", timeout: int = 5, max_workers: int = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_workers = max_workers

    def get_weather(self, code: str) -> Optional[WeatherReading]:
        city = reference_data.get_city(code)
        if city is None:
            return None

        try:
            response = requests.get(
                f"{self.base_url}/v1/forecast",
                params={
                    "latitude": city.latitude,
                    "longitude": city.longitude,
                    "current": "temperature_2m,weather_code",
                    "timezone": "auto",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            current = response.json()["current"]
            weather_code = int(current["weather_code"])
            return WeatherReading(
                city_code=city.code,
                city_name=city.name,
                temperature=int(current["temperature_2m"]),
                condition=weather_code_to_condition(weather_code),
                description=weather_code_to_description(weather_code),
            )
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to fetch weather for {city.code}: {e}")
            return fallback_reading(city.code)

    def for_cities(self, codes: List[str]) -> Dict[str, WeatherReading]:
        wanted = list(dict.fromkeys(c.upper() for c in codes if c))
        if not wanted:
            return {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            readings = list(executor.map(self.get_weather, wanted))

        return {code: reading for code, reading in zip(wanted, readings) if reading is not None}
