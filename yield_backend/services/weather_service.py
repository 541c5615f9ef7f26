import httpx
from typing import Optional, Dict
from datetime import datetime
import logging
import os
from dotenv import load_dotenv

from yield_backend.models.prediction import Coordinates, WeatherObservation

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

FALLBACK_TEMPERATURE = 25.0
FALLBACK_RAINFALL = 50.0
FALLBACK_HUMIDITY = 70.0


class WeatherService:
    """Current weather from OpenWeatherMap, with a fixed fallback observation"""

    BASE_URL = "https://api.openweathermap.org/data/2.5"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("WEATHER_API_KEY", "")
        self.timeout = timeout
        self.transport = transport

        if not self.api_key:
            logger.warning("WEATHER_API_KEY not set. Weather will use fallback data.")

    async def get_weather(self, state: str, district: str, date: Optional[datetime] = None) -> WeatherObservation:
        """
        Current weather for "District, State".
        The date is informational only. Never raises: any failure returns
        the fallback observation.
        """
        try:
            if not self.api_key:
                raise ValueError("Weather API key not configured")

            location = f"{district}, {state}"
            logger.info(f"🌤️ Fetching weather data for {location} on {date}")

            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                params = {
                    "q": location,
                    "appid": self.api_key,
                    "units": "metric",
                }
                response = await client.get(f"{self.BASE_URL}/weather", params=params)
                response.raise_for_status()
                data = response.json()

            return self._parse_current_weather(data)

        except httpx.HTTPError as e:
            logger.error(f"Weather API error: {str(e)}")
            return self._get_fallback_weather(str(e))
        except Exception as e:
            logger.error(f"Unexpected error in weather lookup: {str(e)}")
            return self._get_fallback_weather(str(e))

    def _parse_current_weather(self, data: Dict) -> WeatherObservation:
        main = data["main"]
        coord = data["coord"]
        rain = data.get("rain") or {}

        return WeatherObservation(
            temperature=float(main["temp"]),
            rainfall=float(rain.get("1h") or rain.get("3h") or 0),
            humidity=float(main["humidity"]),
            coordinates=Coordinates(lat=float(coord["lat"]), lon=float(coord["lon"])),
            data_source="api",
            raw=data,
        )

    def _get_fallback_weather(self, reason: str) -> WeatherObservation:
        logger.info("Using fallback weather data")

        return WeatherObservation(
            temperature=FALLBACK_TEMPERATURE,
            rainfall=FALLBACK_RAINFALL,
            humidity=FALLBACK_HUMIDITY,
            coordinates=Coordinates(lat=0.0, lon=0.0),
            data_source="fallback",
            raw={"error": reason},
        )


# Singleton instance
weather_service = WeatherService()
