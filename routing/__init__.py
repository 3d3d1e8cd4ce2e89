#Marks routing as a package.
#Re-exports the geofence and distance APIs so other modules import from routing
#without knowing internal file names.
#No business logic.

from .geofence import LatLon, ServiceZone, ZoneType, point_in_polygon, pickup_in_zones
from .osrm_client import OSRMClient, OSRMError
from .route_service import route_distance_km

__all__ = [
    "LatLon",
    "ServiceZone",
    "ZoneType",
    "point_in_polygon",
    "pickup_in_zones",
    "OSRMClient",
    "OSRMError",
    "route_distance_km",
]
