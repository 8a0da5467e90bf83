"""
Flat-earth geometry for urban-scale vehicle motion.

All motion math works in one degree space scaled by METERS_PER_DEGREE on
both axes. Bearings, steps and distances agree with each other, so moving
d metres toward a target shrinks the distance to it by exactly d. Status
and ETA estimates use true geodesic distance instead (geodesic_km).
"""

import math

from geopy.distance import geodesic

from fleetsim.core.vehicle import Position

METERS_PER_DEGREE = 111_000.0


def normalize_heading(heading_deg: float) -> float:
    """Map any angle to [0, 360). Non-finite input maps to 0."""
    if not math.isfinite(heading_deg):
        return 0.0
    h = heading_deg % 360.0
    # -1e-15 % 360 rounds to 360.0
    if h >= 360.0:
        h = 0.0
    return h


def flat_distance_m(a: Position, b: Position) -> float:
    """Straight-line distance in metres, flat-earth approximation."""
    dlat_m = (b.lat - a.lat) * METERS_PER_DEGREE
    dlng_m = (b.lng - a.lng) * METERS_PER_DEGREE
    return math.sqrt(dlat_m ** 2 + dlng_m ** 2)


def bearing_deg(origin: Position, target: Position) -> float:
    """Bearing from origin to target, atan2(dlng, dlat), in [0, 360).

    Coincident points give 0.
    """
    dlat = target.lat - origin.lat
    dlng = target.lng - origin.lng
    if dlat == 0.0 and dlng == 0.0:
        return 0.0
    return normalize_heading(math.degrees(math.atan2(dlng, dlat)))


def move_position(position: Position, distance_km: float, heading_deg: float) -> Position:
    """Step distance_km along heading_deg (equirectangular, no earth curvature)."""
    if distance_km <= 0:
        return position
    d_deg = distance_km * 1000.0 / METERS_PER_DEGREE
    h = math.radians(heading_deg)
    return Position(
        lat=position.lat + d_deg * math.cos(h),
        lng=position.lng + d_deg * math.sin(h),
    )


def closest_point_index(position: Position, points: list[Position]) -> int:
    """Index of the point nearest to position (first wins on ties). 0 if empty."""
    closest = 0
    best = math.inf
    for i, p in enumerate(points):
        d = flat_distance_m(position, p)
        if d < best:
            best = d
            closest = i
    return closest


def _clamp_lat(lat: float) -> float:
    return max(-90.0, min(90.0, lat))


def geodesic_km(a: Position, b: Position) -> float:
    """Ellipsoidal distance in kilometres. Latitudes are clamped to [-90, 90]."""
    return geodesic((_clamp_lat(a.lat), a.lng), (_clamp_lat(b.lat), b.lng)).km
