"""
Geodistance helpers: haversine distance and branch geofence evaluation.
"""
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from geoattend.models.branch import Branch

EARTH_RADIUS_METERS = 6371000.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points given in decimal degrees.

    Returns meters at full float precision (no rounding).
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Rounding can push a just outside [0, 1] for identical or antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


@dataclass(frozen=True)
class GeofenceResult:
    """Outcome of checking a coordinate against a branch. branch is None when no branch is configured."""

    branch: Optional[Branch]
    distance: Optional[float]
    within: bool

    @property
    def branch_id(self) -> Optional[int]:
        return self.branch.id if self.branch is not None else None


def distance_to_branch(lat: float, lng: float, branch: Branch) -> float:
    return haversine_distance(lat, lng, branch.latitude, branch.longitude)


def evaluate_geofence(lat: float, lng: float, branch: Optional[Branch]) -> GeofenceResult:
    """Inside iff distance <= radius (the boundary counts as inside)."""
    if branch is None:
        return GeofenceResult(branch=None, distance=None, within=False)
    distance = distance_to_branch(lat, lng, branch)
    return GeofenceResult(branch=branch, distance=distance, within=distance <= branch.radius)


def find_nearest_branch(lat: float, lng: float, branches: Iterable[Branch]) -> Optional[Branch]:
    """Nearest branch by distance, regardless of radius. None for an empty iterable."""
    nearest = None
    min_distance = math.inf
    for branch in branches:
        distance = distance_to_branch(lat, lng, branch)
        if distance < min_distance:
            min_distance = distance
            nearest = branch
    return nearest
