"""
Geonorge lookups: nearest address and containing municipality for a point.

Both lookups are best-effort. Any failure (HTTP status, transport error,
timeout, malformed JSON, empty result) resolves to None and is logged;
nothing is retried and nothing is raised to the caller.
"""

from typing import Any, Dict, Optional

import httpx

from shared.utils.config import settings
from shared.utils.helpers import as_text, safe_get
from shared.utils.logger import setup_logger, log_degraded
from unearthed.core.types import AddressLookupResult, MunicipalityLookupResult

logger = setup_logger(__name__)

# EUREF89 geographic; interchangeable with WGS84 at GPS precision
ETRS89 = "4258"


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class GeonorgeProvider:
    """
    Client for the two public Geonorge point lookups.

    Example:
        >>> async with GeonorgeProvider() as provider:
        ...     address = await provider.resolve_address(60.39, 5.32)
        ...     municipality = await provider.resolve_municipality(60.39, 5.32)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        address_url: Optional[str] = None,
        municipality_url: Optional[str] = None,
        timeout: Optional[float] = None,
        radius: Optional[int] = None,
    ):
        """
        Initialize Geonorge provider.

        Args:
            client: Pre-built client (tests inject one with a MockTransport)
            address_url: Address point-search endpoint
            municipality_url: Municipality point-lookup endpoint
            timeout: Request timeout in seconds (default: 15)
            radius: Address search radius in metres (default: 10 km)
        """
        self.address_url = address_url or settings.GEONORGE_ADDRESS_URL
        self.municipality_url = municipality_url or settings.GEONORGE_MUNICIPALITY_URL
        self.timeout = timeout or settings.LOOKUP_TIMEOUT_SECONDS
        self.radius = radius or settings.ADDRESS_SEARCH_RADIUS_M

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))

        logger.debug(
            f"GeonorgeProvider initialized: radius={self.radius}m, timeout={self.timeout}s"
        )

    async def __aenter__(self) -> "GeonorgeProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def resolve_address(self, lat: float, lon: float) -> Optional[AddressLookupResult]:
        """
        Nearest registered address within the search radius.

        Args:
            lat: Latitude (WGS84/ETRS89)
            lon: Longitude (WGS84/ETRS89)

        Returns:
            AddressLookupResult, or None when nothing was found or the lookup failed
        """
        params = {
            "lat": lat,
            "lon": lon,
            "radius": self.radius,
            "koordsys": ETRS89,
            "utkoordsys": ETRS89,
            "treffPerSide": settings.ADDRESS_RESULTS_PER_PAGE,
            "side": 0,
            "asciiKompatibel": "true",
        }
        data = await self._get_json("address lookup", self.address_url, params)
        if data is None:
            return None

        try:
            addresses = data.get("adresser") or []
            if not addresses:
                logger.info(f"No address within {self.radius}m of ({lat:.4f}, {lon:.4f})")
                return None

            nearest = addresses[0]
            result = AddressLookupResult(
                street_text=as_text(nearest.get("adressetekst")),
                postal_code=as_text(nearest.get("postnummer")),
                postal_place=as_text(nearest.get("poststed")),
                municipality_name=as_text(nearest.get("kommunenavn")),
                municipality_number=as_text(nearest.get("kommunenummer")),
                farm_number=as_text(nearest.get("gardsnummer")),
                holding_number=as_text(nearest.get("bruksnummer")),
                distance_meters=_to_float(nearest.get("meterDistanseTilPunkt")),
                point_lat=_to_float(safe_get(nearest, "representasjonspunkt", "lat")),
                point_lon=_to_float(safe_get(nearest, "representasjonspunkt", "lon")),
            )
        except Exception as e:
            log_degraded(logger, "resolving_location", "address lookup", e)
            return None

        logger.info(
            f"Address lookup: '{result.street_text}' "
            f"({result.distance_meters}m away, gnr/bnr {result.farm_number}/{result.holding_number})"
        )
        return result

    async def resolve_municipality(
        self, lat: float, lon: float
    ) -> Optional[MunicipalityLookupResult]:
        """
        County and municipality containing the point.

        Returns:
            MunicipalityLookupResult, or None on any failure
        """
        params = {"nord": lat, "ost": lon, "koordsys": ETRS89}
        data = await self._get_json("municipality lookup", self.municipality_url, params)
        if data is None:
            return None

        try:
            result = MunicipalityLookupResult(
                county_name=as_text(data.get("fylkesnavn")),
                county_number=as_text(data.get("fylkesnummer")),
                municipality_name=as_text(data.get("kommunenavn")),
                municipality_number=as_text(data.get("kommunenummer")),
            )
        except Exception as e:
            log_degraded(logger, "resolving_location", "municipality lookup", e)
            return None

        if not (result.county_name or result.municipality_name):
            log_degraded(logger, "resolving_location", "municipality lookup", "empty response")
            return None

        logger.info(f"Municipality lookup: {result.municipality_name}, {result.county_name}")
        return result

    async def _get_json(
        self, what: str, url: str, params: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """GET and decode a JSON object; None on any failure."""
        try:
            response = await self.client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            log_degraded(logger, "resolving_location", what, f"timed out after {self.timeout}s ({e})")
            return None
        except httpx.HTTPError as e:
            log_degraded(logger, "resolving_location", what, e)
            return None
        except ValueError as e:
            log_degraded(logger, "resolving_location", what, f"invalid JSON ({e})")
            return None
        except Exception as e:
            log_degraded(logger, "resolving_location", what, e)
            return None

        if not isinstance(data, dict):
            log_degraded(logger, "resolving_location", what, f"unexpected payload {type(data).__name__}")
            return None
        return data
