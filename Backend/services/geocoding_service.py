# -*- coding: utf-8 -*-
"""
ReverseGeocodingService: turn coordinates into a short human-readable address.
- Tries providers in a fixed order: BigDataCloud → Nominatim → Google
- A provider that errors, times out or returns nothing is skipped
- Google is only tried when GOOGLE_GEOCODING_API_KEY is configured
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from app.config import settings
from app.core.geo import coordinates_label
from app.core.logging import get_logger

logger = get_logger()

BIGDATACLOUD_URL = "https://api.bigdatacloud.net/data/reverse-geocode-client"
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

PROVIDER_BIGDATACLOUD = "bigdatacloud"
PROVIDER_NOMINATIM = "nominatim"
PROVIDER_GOOGLE = "google"


@dataclass
class GeocodeResult:
    address: str
    provider: str


def _parse_bigdatacloud(data: Dict[str, Any]) -> Optional[str]:
    street = (data.get("streetName") or "").strip()
    number = str(data.get("streetNumber") or "").strip()
    locality = (data.get("locality") or "").strip()
    city = (data.get("city") or "").strip()

    if street and number:
        address = f"{street} {number}"
    elif street:
        address = street
    else:
        address = locality

    if city and city != address:
        address = f"{address}, {city}" if address else city
    return address or None


def _parse_nominatim(data: Dict[str, Any]) -> Optional[str]:
    display_name = (data.get("display_name") or "").strip()
    if not display_name:
        return None
    parts = [p.strip() for p in display_name.split(",") if p.strip()]
    return ", ".join(parts[:3]) or None


def _parse_google(data: Dict[str, Any]) -> Optional[str]:
    results = data.get("results") or []
    if not results:
        return None
    return (results[0].get("formatted_address") or "").strip() or None


class ReverseGeocodingService:
    """
    Reverse geocoding with provider fallback. Use as an async context manager
    or call aclose() when done.
    """

    def __init__(
        self,
        timeout_s: Optional[float] = None,
        *,
        language: Optional[str] = None,
        google_api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_s = timeout_s if timeout_s is not None else settings.GEOCODING_TIMEOUT_S
        self.language = language or settings.GEOCODING_LANGUAGE
        self.google_api_key = google_api_key if google_api_key is not None else settings.GOOGLE_GEOCODING_API_KEY
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s),
            headers={"User-Agent": settings.GEOCODING_USER_AGENT},
            transport=transport,
        )

    async def __aenter__(self) -> "ReverseGeocodingService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def _providers(self, lat: float, lng: float) -> List[Tuple[str, str, Dict[str, Any], Callable[[Dict[str, Any]], Optional[str]]]]:
        providers = [
            (
                PROVIDER_BIGDATACLOUD,
                BIGDATACLOUD_URL,
                {"latitude": lat, "longitude": lng, "localityLanguage": self.language},
                _parse_bigdatacloud,
            ),
            (
                PROVIDER_NOMINATIM,
                NOMINATIM_REVERSE_URL,
                {"format": "json", "lat": lat, "lon": lng, "accept-language": self.language},
                _parse_nominatim,
            ),
        ]
        if self.google_api_key:
            providers.append(
                (
                    PROVIDER_GOOGLE,
                    GOOGLE_GEOCODE_URL,
                    {"latlng": f"{lat},{lng}", "language": self.language, "key": self.google_api_key},
                    _parse_google,
                )
            )
        return providers

    async def _try_provider(
        self,
        provider: str,
        url: str,
        params: Dict[str, Any],
        parse: Callable[[Dict[str, Any]], Optional[str]],
    ) -> Optional[str]:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return parse(response.json())
        except httpx.HTTPStatusError as e:
            logger.warning(
                "reverse_geocoding_http_error",
                provider=provider,
                status_code=e.response.status_code,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "reverse_geocoding_timeout",
                provider=provider,
                timeout_s=self.timeout_s,
                error=str(e),
            )
        except httpx.HTTPError as e:
            logger.warning("reverse_geocoding_network_error", provider=provider, error=str(e))
        except ValueError as e:
            # invalid JSON body
            logger.warning("reverse_geocoding_bad_payload", provider=provider, error=str(e))
        return None

    async def reverse(self, lat: float, lng: float) -> Optional[GeocodeResult]:
        """
        Resolve (lat, lng) to an address.

        Returns:
            GeocodeResult from the first provider that produced an address,
            or None when every provider failed
        """
        providers = self._providers(lat, lng)
        for attempt, (provider, url, params, parse) in enumerate(providers):
            address = await self._try_provider(provider, url, params, parse)
            if address:
                if attempt > 0:
                    logger.info(
                        "reverse_geocoding_success_with_fallback",
                        provider=provider,
                        attempt=attempt + 1,
                    )
                return GeocodeResult(address=address, provider=provider)

        logger.warning(
            "reverse_geocoding_all_providers_failed",
            lat=lat,
            lng=lng,
            providers=[p[0] for p in providers],
        )
        return None

    async def address_or_label(self, lat: float, lng: float) -> str:
        result = await self.reverse(lat, lng)
        return result.address if result else coordinates_label(lat, lng)
