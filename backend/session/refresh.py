from __future__ import annotations

import asyncio
import logging
from typing import Callable

from geo.path import PathMode, generate_path
from overlay.manager import OverlayLayerManager, OverlayNamespace, overlay_id
from overlay.styles import PUBLIC_STYLE, OverlayStyle
from routes.reconcile import ReconcileDiff, reconcile
from routes.store import RoutesStore
from routes.types import Route

logger = logging.getLogger(__name__)


class PublicRouteRefresher:
    """
    Refetch published routes and bring the public overlays in line with them.

    A failed fetch leaves whatever is on screen untouched; the next timer tick retries.
    The overlay lock is shared with the active-route switch so the two never
    interleave their surface mutations.
    """

    def __init__(
        self,
        store: RoutesStore,
        overlays: OverlayLayerManager,
        lock: asyncio.Lock,
        active_route: Callable[[], Route | None],
        *,
        limit: int | None = None,
        style: OverlayStyle = PUBLIC_STYLE,
    ) -> None:
        self._store = store
        self._overlays = overlays
        self._lock = lock
        self._active_route = active_route
        self._limit = limit
        self._style = style
        self.last_error: str | None = None
        self.cycles = 0

    def _fetch(self) -> list[Route]:
        return self._store.list_routes(order_by="recent", limit=self._limit)

    async def refresh(self) -> ReconcileDiff | None:
        try:
            candidates = await asyncio.to_thread(self._fetch)
        except Exception as e:
            self.last_error = str(e) or e.__class__.__name__
            logger.exception(
                "Public route refetch failed; keeping %d rendered routes",
                len(self._overlays.route_keys(OverlayNamespace.public)),
            )
            return None

        async with self._lock:
            try:
                diff = self.apply(candidates)
            except Exception as e:
                # Whatever was applied before the failure stays; the next cycle
                # reconciles against it.
                self.last_error = str(e) or e.__class__.__name__
                logger.exception("Applying public routes failed; retrying next cycle")
                return None
        self.last_error = None
        self.cycles += 1
        return diff

    def apply(self, candidates: list[Route]) -> ReconcileDiff:
        """
        Reconcile + apply against the current overlays. Callers hold the overlay lock.
        """
        rendered = self._overlays.route_keys(OverlayNamespace.public)
        diff = reconcile(candidates, self._active_route(), rendered)
        for key in diff.to_remove:
            self._overlays.remove_route(overlay_id(OverlayNamespace.public, key))
        for route in diff.to_add:
            path = generate_path(route.origin, route.destination, PathMode.cubic)
            self._overlays.add_route(
                overlay_id(OverlayNamespace.public, route.key), path, self._style
            )
        if not diff.is_empty:
            logger.info(
                "Public routes: +%d -%d (now %d)",
                len(diff.to_add),
                len(diff.to_remove),
                len(self._overlays.route_keys(OverlayNamespace.public)),
            )
        return diff

    async def run_forever(self, interval_s: float) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                logger.exception("Public route refresh cycle failed")
            await asyncio.sleep(interval_s)
