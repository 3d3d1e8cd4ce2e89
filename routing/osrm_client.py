#Purpose: HTTP client for the OSRM route service.
#Used to resolve the road distance of a transfer (pickup -> dropoff) once,
#before it is stored on the job and quoted.
#Handles the OSRM specifics: lon,lat ordering, the /route URL, non-Ok codes.
#No pricing and no job rules here.

import logging
from typing import Dict, List, Optional, Tuple

import requests

from common.settings import load_settings

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class OSRMError(Exception):
    """Raised when OSRM cannot be reached or answers with a non-Ok code."""
    pass


class OSRMClient:
    """
    Thin wrapper around the OSRM /route endpoint.
    Takes (lat, lon) pairs, sends (lon,lat), returns metres and seconds.
    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: Optional[float] = None):
        settings = load_settings()
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        self.timeout = timeout if timeout is not None else settings.osrm_timeout
        self.profile = profile #the mode of transportation (driving, walking, cycling)

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set OSRM_BASE_URL in the .env file.")

    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lat, lon in coords])

    def compute_route(self, coordinates: List[LatLon]) -> Dict[str, float]:
        """
        Calls the OSRM /route endpoint with the given coordinates.

        Returns:
            {
                "distance": float, # in meters
                "duration": float, # in seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"

        try:
            response = requests.get(
                url,
                params={"overview": "false"}, # we don't need the geometry of the route
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise OSRMError(f"OSRM request failed: {exc}") from exc

        if data.get("code") != "Ok":
            raise OSRMError(f"OSRM error: {data.get('message', 'Unknown error')}")

        route = data["routes"][0] #take the first route (OSRM may return alternatives)
        logger.debug("OSRM route %s -> %.0f m", url, route["distance"])
        return {
            "distance": route["distance"],
            "duration": route["duration"],
        }
