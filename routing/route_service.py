"""
Purpose: Resolve the road distance of a transfer in kilometres.
Jobs store `distance_km` once it is known; this is where it becomes known.
"""

from typing import Optional

from .osrm_client import LatLon, OSRMClient


def route_distance_km(osrm: OSRMClient, pickup: LatLon, dropoff: Optional[LatLon]) -> float:
    """
    Road distance pickup -> dropoff, in km rounded to 0.1.
    Hourly bookings have no dropoff and are priced on base fare alone (0 km).
    """
    if dropoff is None:
        return 0.0
    route = osrm.compute_route([pickup, dropoff])
    return round(route["distance"] / 1000.0, 1)
