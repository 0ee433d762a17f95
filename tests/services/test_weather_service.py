import pytest
from unittest.mock import MagicMock, patch

import requests

from booking_assistant.services.api.weather_service import (
    FALLBACK_DESCRIPTION, OpenMeteoWeatherService, fallback_reading,
    weather_code_to_condition, weather_code_to_description,
)


def open_meteo_response(temperature, code):
    response = MagicMock()
    response.json.return_value = {"current": {"temperature_2m": temperature, "weather_code": code}}
    return response


class TestWeatherCodes:

    @pytest.mark.parametrize("code,condition", [
        (0, "sunny"), (2, "partly_cloudy"), (45, "foggy"), (53, "drizzle"),
        (63, "rainy"), (81, "rainy"), (75, "snowy"), (95, "stormy"), (100, "cloudy"),
    ])
    def test_condition(self, code, condition):
        assert weather_code_to_condition(code) == condition

    def test_description(self):
        assert weather_code_to_description(0) == "Clear skies"
        assert weather_code_to_description(96) == "Thunderstorm with hail"
        assert weather_code_to_description(4) == "Variable conditions"

    def test_fallback_reading(self):
        assert fallback_reading("ist").temperature == 15
        assert fallback_reading("IST").condition == "partly_cloudy"
        # known city without a typical-climate entry
        tabuk = fallback_reading("TUU")
        assert (tabuk.temperature, tabuk.condition, tabuk.description) == (25, "sunny", FALLBACK_DESCRIPTION)
        assert fallback_reading("XYZ") is None


class TestOpenMeteoWeatherService:

    @pytest.fixture
    def service(self):
        return OpenMeteoWeatherService(base_url="https://weather.test/", timeout=3, max_workers=2)

    @patch("booking_assistant.services.api.weather_service.requests.get")
    def test_get_weather(self, mock_get, service):
        mock_get.return_value = open_meteo_response(31.7, 1)

        reading = service.get_weather("jed")

        assert reading.city_code == "JED"
        assert reading.city_name == "Jeddah"
        assert reading.temperature == 31
        assert reading.condition == "partly_cloudy"
        assert reading.description == "Mainly clear"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://weather.test/v1/forecast"
        assert kwargs["params"]["current"] == "temperature_2m,weather_code"
        assert kwargs["timeout"] == 3

    @patch("booking_assistant.services.api.weather_service.requests.get")
    def test_network_failure_uses_fallback(self, mock_get, service):
        mock_get.side_effect = requests.ConnectionError("boom")

        reading = service.get_weather("DXB")

        assert reading.temperature == 30
        assert reading.description == FALLBACK_DESCRIPTION

    @patch("booking_assistant.services.api.weather_service.requests.get")
    def test_malformed_body_uses_fallback(self, mock_get, service):
        response = MagicMock()
        response.json.return_value = {"unexpected": True}
        mock_get.return_value = response

        assert service.get_weather("CAI").description == FALLBACK_DESCRIPTION

    @patch("booking_assistant.services.api.weather_service.requests.get")
    def test_unknown_city_is_not_fetched(self, mock_get, service):
        assert service.get_weather("XYZ") is None
        mock_get.assert_not_called()

    @patch("booking_assistant.services.api.weather_service.requests.get")
    def test_for_cities(self, mock_get, service):
        mock_get.return_value = open_meteo_response(22, 0)

        readings = service.for_cities(["jed", "JED", "XYZ", "IST", ""])

        assert set(readings) == {"JED", "IST"}
        assert mock_get.call_count == 2
        assert service.for_cities([]) == {}
