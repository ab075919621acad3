"""OpenStreetMap Nominatim geocoding: coordinates <-> place text."""
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.config import settings
from app.models.report import Coordinates

logger = logging.getLogger(__name__)

_LEADING_QUALIFIER_RE = re.compile(r"^(near|opposite|behind|next to|close to)\s+", re.IGNORECASE)


class GeocodingError(Exception):
    pass


@dataclass(frozen=True)
class GeocodeResult:
    coordinates: Coordinates
    display_name: str


def format_coordinates(coords: Coordinates) -> str:
    return f"{coords.latitude:.6f}, {coords.longitude:.6f}"


def clean_query(query: str) -> str:
    """Drop leading "near"/"opposite"/... which confuse the geocoder."""
    return _LEADING_QUALIFIER_RE.sub("", query).strip()


def _address_from_reverse(data: dict[str, Any]) -> Optional[str]:
    addr = data.get("address") or {}
    components = [
        addr.get("road"),
        addr.get("suburb"),
        addr.get("city") or addr.get("town") or addr.get("village"),
        addr.get("state_district"),
        addr.get("state"),
    ]
    parts = [c for c in components if c]
    return ", ".join(parts[:3]) or data.get("display_name")


class NominatimGeocoder:
    """Reverse and forward lookups against a Nominatim instance."""

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        viewbox: str | None = None,
        country_codes: str | None = None,
    ):
        self.base_url = (base_url or settings.nominatim_base_url).rstrip("/")
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout if timeout is not None else settings.geocoding_timeout_seconds
        self.viewbox = viewbox if viewbox is not None else settings.geocoding_viewbox
        self.country_codes = country_codes if country_codes is not None else settings.geocoding_country_codes

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept-Language": "en-US,en;q=0.9"}

    async def reverse_geocode_strict(self, coords: Coordinates) -> str:
        """Place text for coords. Raises GeocodingError when no label can be found."""
        params = {
            "format": "json",
            "lat": coords.latitude,
            "lon": coords.longitude,
            "zoom": 18,
            "addressdetails": 1,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(f"{self.base_url}/reverse", params=params, headers=self._headers())
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeocodingError(f"Reverse geocode failed: {e}") from e
        label = _address_from_reverse(data) if isinstance(data, dict) else None
        if not label:
            raise GeocodingError("Reverse geocode returned no address")
        return label

    async def reverse_geocode(self, coords: Coordinates) -> str:
        """Best effort: falls back to the numeric coordinate string."""
        try:
            return await self.reverse_geocode_strict(coords)
        except GeocodingError as e:
            logger.warning("%s", e)
            return format_coordinates(coords)

    async def forward_geocode(self, query: str) -> Optional[GeocodeResult]:
        """First match for query (biased to the configured viewbox), or None."""
        q = clean_query(query)
        if not q:
            return None
        params: dict[str, Any] = {
            "q": q,
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
            "bounded": 0,
        }
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        if self.viewbox:
            params["viewbox"] = self.viewbox
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(f"{self.base_url}/search", params=params, headers=self._headers())
                r.raise_for_status()
                data = r.json()
            if not data:
                return None
            first = data[0]
            return GeocodeResult(
                coordinates=Coordinates(latitude=float(first["lat"]), longitude=float(first["lon"])),
                display_name=first.get("display_name", q),
            )
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Forward geocode failed for %r: %s", q, e)
            return None
