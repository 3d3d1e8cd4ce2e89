#Purpose: Polygon geofencing for driver service areas.
#Decides whether a job's pickup point falls inside the zones a driver declared.
#Typical responsibilities:
#ray-casting point-in-polygon test on (lat, lon) vertices
#zone validation (a polygon needs at least 3 vertices)
#"global" zones that match every point
#Output: plain booleans, consumed by the eligibility filter in drivers/selection.py.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence, Tuple

from common.errors import ValidationError

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]


class ZoneType(str, Enum):
    POLYGON = "polygon"
    GLOBAL = "global"


@dataclass(frozen=True)
class ServiceZone:
    """
    A named area a driver is willing to collect passengers in.
    The ring is implicitly closed: the last vertex connects back to the first.
    """
    name: str
    vertices: Tuple[LatLon, ...] = ()
    zone_type: ZoneType = ZoneType.POLYGON

    @classmethod
    def polygon(cls, name: str, vertices: Iterable[Sequence[float]]) -> ServiceZone:
        ring = tuple((float(lat), float(lon)) for lat, lon in vertices)
        if len(ring) < 3:
            raise ValidationError(f"Zone {name!r} needs at least 3 vertices, got {len(ring)}")
        return cls(name=name, vertices=ring, zone_type=ZoneType.POLYGON)

    @classmethod
    def global_zone(cls, name: str = "global") -> ServiceZone:
        return cls(name=name, zone_type=ZoneType.GLOBAL)

    def contains(self, point: LatLon) -> bool:
        if self.zone_type == ZoneType.GLOBAL:
            return True
        return point_in_polygon(point, self.vertices)


def point_in_polygon(point: LatLon, polygon: Sequence[LatLon]) -> bool:
    """
    Ray-casting parity test. A ray is cast from the point towards increasing
    longitude (x) at fixed latitude (y); the point is inside iff it crosses
    an odd number of edges.

    `(yi > y) != (yj > y)` is strict on one endpoint and not the other, so a
    vertex lying exactly on the ray is counted once and horizontal edges never
    count. Points exactly on an edge or vertex are boundary cases: they are
    classified consistently but not guaranteed to be inside.

    Fewer than 3 vertices never match.
    """
    if len(polygon) < 3:
        return False

    y, x = point
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        yi, xi = polygon[i]
        yj, xj = polygon[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def pickup_in_zones(point: LatLon, zones: Sequence[ServiceZone]) -> bool:
    """
    True if the point lies in at least one zone. An empty zone list means
    the driver has no geographic restriction.
    """
    if not zones:
        return True
    return any(zone.contains(point) for zone in zones)
