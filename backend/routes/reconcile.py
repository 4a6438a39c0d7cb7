from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from geo.types import GeoPoint
from routes.types import Route

SAME_ROUTE_TOLERANCE_DEG = 1e-6


@dataclass(frozen=True)
class ReconcileDiff:
    to_add: list[Route] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def _close(a: GeoPoint, b: GeoPoint, tol: float) -> bool:
    # Per-axis degrees, not a geodesic distance.
    return abs(a.lat - b.lat) < tol and abs(a.lng - b.lng) < tol


def is_same_route(
    candidate: Route, active: Route, *, tol: float = SAME_ROUTE_TOLERANCE_DEG
) -> bool:
    """
    True when both routes connect the same two endpoints, in either direction.
    """
    forward = _close(candidate.origin, active.origin, tol) and _close(
        candidate.destination, active.destination, tol
    )
    if forward:
        return True
    return _close(candidate.origin, active.destination, tol) and _close(
        candidate.destination, active.origin, tol
    )


def desired_public_routes(
    candidates: Iterable[Route], active: Route | None
) -> dict[str, Route]:
    out: dict[str, Route] = {}
    for route in candidates:
        if active is not None and is_same_route(route, active):
            continue
        # First occurrence wins when a fetch returns the same route twice.
        out.setdefault(route.key, route)
    return out


def reconcile(
    candidates: Iterable[Route],
    active: Route | None,
    rendered: Iterable[str],
) -> ReconcileDiff:
    """
    Minimal add/remove diff between the refetched public routes and what is on screen.

    `rendered` holds route keys currently drawn in the public namespace. Consumers
    must apply `to_remove` before `to_add`.
    """
    desired = desired_public_routes(candidates, active)
    rendered_keys = set(rendered)
    to_remove = sorted(k for k in rendered_keys if k not in desired)
    to_add = [r for k, r in desired.items() if k not in rendered_keys]
    return ReconcileDiff(to_add=to_add, to_remove=to_remove)
