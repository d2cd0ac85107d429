"""
Geocoding Service - Resolve a declared address to expected coordinates

Best-effort: provider failures are reported on the result, never raised, so
an address submission is not blocked by an unavailable geocoder.
"""
from typing import NamedTuple, Optional

import httpx

from atams.logging import get_logger

logger = get_logger(__name__)


class GeocodeResult(NamedTuple):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    display_name: Optional[str] = None
    error: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.error is None and self.latitude is not None and self.longitude is not None


class GeocodingService:
    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    async def geocode(self, address: str) -> GeocodeResult:
        """
        Look up the first match for a free-text address

        Args:
            address: Single-line address, e.g. "12 Bode Thomas St, Surulere, Lagos"

        Returns:
            GeocodeResult: Coordinates on success, `error` set otherwise
        """
        params = {"q": address, "format": "json", "limit": 1}
        headers = {"User-Agent": self.user_agent}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params=params, headers=headers)
                response.raise_for_status()
                matches = response.json()

            if not matches:
                logger.warning(f"Geocoding returned no match for address: {address}")
                return GeocodeResult(error="Address not found")

            match = matches[0]
            return GeocodeResult(
                latitude=float(match["lat"]),
                longitude=float(match["lon"]),
                display_name=match.get("display_name"),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Geocoding request failed: {e}")
            return GeocodeResult(error=f"Geocoding request failed: {e}")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Geocoding response could not be parsed: {e}")
            return GeocodeResult(error=f"Invalid geocoding response: {e}")
