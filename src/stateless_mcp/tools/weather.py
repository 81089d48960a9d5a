"""The ``get-weather`` tool — Open-Meteo geocoding followed by a forecast lookup."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from stateless_mcp.protocol.errors import ToolExecutionError
from stateless_mcp.protocol.models import CallToolResult
from stateless_mcp.tools.registry import ToolDescriptor

TOOL_NAME = "get-weather"

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

HOURLY_FIELDS = ("temperature_2m",)
CURRENT_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "wind_speed_10m",
    "precipitation",
    "rain",
    "showers",
    "cloud_cover",
    "apparent_temperature",
)


class WeatherInput(BaseModel):
    city: str = Field(..., description="The name of the city to get the weather for")


class WeatherLookup:
    """Resolves a city to coordinates and fetches its forecast.

    Instances are the ``get-weather`` handler.  Each call opens its own
    :class:`httpx.AsyncClient`, so concurrent lookups share nothing.
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        geocoding_url: str = GEOCODING_URL,
        forecast_url: str = FORECAST_URL,
    ) -> None:
        self._timeout = timeout
        self._geocoding_url = geocoding_url
        self._forecast_url = forecast_url

    async def __call__(self, arguments: WeatherInput) -> CallToolResult:
        city = arguments.city
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                matches = await self._geocode(client, city)
                if not matches:
                    return CallToolResult.from_text(f"City {city} not found.")

                first = matches[0]
                forecast = await self._forecast(client, first["latitude"], first["longitude"])
        except httpx.HTTPError as exc:
            raise ToolExecutionError(TOOL_NAME, str(exc) or exc.__class__.__name__) from exc
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ToolExecutionError(TOOL_NAME, f"unexpected response from weather service: {exc}") from exc

        return CallToolResult.from_structured(forecast, indent=2)

    async def _geocode(self, client: httpx.AsyncClient, city: str) -> list[dict[str, Any]]:
        response = await client.get(
            self._geocoding_url,
            params={"name": city, "count": 10, "language": "en", "format": "json"},
        )
        response.raise_for_status()
        data = response.json()
        # Open-Meteo omits "results" entirely when nothing matches.
        return list(data.get("results") or [])

    async def _forecast(
        self, client: httpx.AsyncClient, latitude: float, longitude: float
    ) -> dict[str, Any]:
        response = await client.get(
            self._forecast_url,
            params={
                "latitude": latitude,
                "longitude": longitude,
                "hourly": ",".join(HOURLY_FIELDS),
                "current": ",".join(CURRENT_FIELDS),
            },
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            msg = "forecast payload is not an object"
            raise TypeError(msg)
        return data


def make_weather_tool(
    *,
    timeout: float = 10.0,
    geocoding_url: str = GEOCODING_URL,
    forecast_url: str = FORECAST_URL,
) -> ToolDescriptor:
    """Build the ``get-weather`` descriptor with the given outbound settings."""
    return ToolDescriptor(
        name=TOOL_NAME,
        title="Tool to get the weather for a city",
        description="Tool to get the weather for a city",
        input_model=WeatherInput,
        handler=WeatherLookup(
            timeout=timeout,
            geocoding_url=geocoding_url,
            forecast_url=forecast_url,
        ),
    )
