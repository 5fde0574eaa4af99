"""
agent.tools.weather - Current weather lookup via the Open-Meteo API.

Two synchronous HTTP calls (geocoding, then forecast) run in the default
thread pool. No API key is needed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal

import requests
from pydantic import BaseModel, Field

from domain.exceptions import ToolExecutionError
from agent.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)

# WMO weather interpretation codes (subset used by Open-Meteo)
_WEATHER_CODES = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "depositing rime fog",
    51: "light drizzle",
    53: "drizzle",
    55: "dense drizzle",
    61: "light rain",
    63: "rain",
    65: "heavy rain",
    71: "light snow",
    73: "snow",
    75: "heavy snow",
    80: "rain showers",
    81: "heavy rain showers",
    82: "violent rain showers",
    95: "thunderstorm",
    96: "thunderstorm with hail",
    99: "thunderstorm with heavy hail",
}


class WeatherInput(BaseModel):
    """Input schema for the weather tool."""
    city: str = Field(description="City name, e.g. 'Paris' or 'Beijing'")
    units: Literal["celsius", "fahrenheit"] = Field(
        default="celsius", description="Temperature unit",
    )


class WeatherTool(BaseTool):
    """Fetch current weather conditions for a city."""

    name = "weather"
    description = (
        "Get the current weather (temperature, wind, humidity, conditions) "
        "for a city. Use when the user asks about weather or temperature."
    )

    def __init__(
        self,
        forecast_url: str = "https://api.open-meteo.com/v1/forecast",
        geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search",
        timeout: float = 10.0,
    ):
        self._forecast_url = forecast_url
        self._geocoding_url = geocoding_url
        self._timeout = timeout

    @property
    def options(self) -> dict[str, Any]:
        return {"forecast_url": self._forecast_url, "timeout": self._timeout}

    def get_schema(self) -> type[BaseModel]:
        return WeatherInput

    async def execute(self, city: str = "", units: str = "celsius", **kwargs) -> ToolResult:
        if not city.strip():
            raise ToolExecutionError("City name is required")

        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, self._lookup, city.strip(), units)

        symbol = "°F" if units == "fahrenheit" else "°C"
        output = (
            f"{report['location']}: {report['temperature']}{symbol}, "
            f"{report['conditions']}, wind {report['wind_speed']} km/h, "
            f"humidity {report['humidity']}%"
        )
        return ToolResult(output=output, data=report)

    def _lookup(self, city: str, units: str) -> dict[str, Any]:
        """Synchronous geocoding + forecast calls (runs in thread pool)."""
        places = self._get_json(
            self._geocoding_url, {"name": city, "count": 1, "format": "json"},
        ).get("results") or []
        if not places:
            raise ToolExecutionError(f"City not found: {city}")
        place = places[0]

        logger.info("Fetching weather for %s (%s, %s)",
                    place.get("name"), place.get("latitude"), place.get("longitude"))
        current = self._get_json(
            self._forecast_url,
            {
                "latitude": place["latitude"],
                "longitude": place["longitude"],
                "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code",
                "temperature_unit": units,
            },
        ).get("current")
        if not current:
            raise ToolExecutionError(f"No current weather data for {city}")

        location = ", ".join(p for p in (place.get("name"), place.get("country")) if p)
        return {
            "location": location,
            "temperature": current.get("temperature_2m"),
            "humidity": current.get("relative_humidity_2m"),
            "wind_speed": current.get("wind_speed_10m"),
            "conditions": _WEATHER_CODES.get(current.get("weather_code"), "unknown"),
            "units": units,
        }

    def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = requests.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout:
            raise ToolExecutionError(f"Weather service timed out after {self._timeout}s")
        except requests.exceptions.RequestException as e:
            raise ToolExecutionError(f"Weather service unreachable: {e}") from e

        if not response.ok:
            raise ToolExecutionError(
                f"Weather service returned HTTP {response.status_code}: {response.text[:200]}"
            )
        return response.json()
