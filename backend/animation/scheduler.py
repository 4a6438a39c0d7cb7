from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from animation.clock import FrameClock
from geo.bearing import bearing
from geo.path import quadratic_point
from geo.types import GeoPoint
from routes.types import Route

logger = logging.getLogger(__name__)

LOOKAHEAD_T = 0.01


class SchedulerState(str, Enum):
    idle = "idle"
    running = "running"
    cancelled = "cancelled"


@dataclass(frozen=True)
class MarkerPose:
    point: GeoPoint
    bearing_deg: float
    progress: float


PoseCallback = Callable[[MarkerPose], None]


class _CancelToken:
    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False


def pose_at(route: Route, t: float) -> MarkerPose:
    """
    Marker position at progress t, headed towards a point slightly further along.
    """
    here = quadratic_point(route.origin, route.destination, t)
    ahead = quadratic_point(route.origin, route.destination, min(1.0, t + LOOKAHEAD_T))
    return MarkerPose(point=here, bearing_deg=bearing(here, ahead), progress=t)


class AnimationScheduler:
    """
    Loops a marker along the active route's arc, one pose per frame.

    One instance per active route. Restarting resets the phase to 0 instead of
    resuming where the previous run stopped.
    """

    def __init__(self, clock: FrameClock, on_pose: PoseCallback) -> None:
        self._clock = clock
        self._on_pose = on_pose
        self._state = SchedulerState.idle
        self._route: Route | None = None
        self._duration_ms = 0.0
        self._start_ts: float | None = None
        self._progress = 0.0
        self._token: _CancelToken | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def route(self) -> Route | None:
        return self._route

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def start_timestamp(self) -> float | None:
        return self._start_ts

    @property
    def has_pending_tick(self) -> bool:
        return (
            self._task is not None
            and not self._task.done()
            and self._token is not None
            and not self._token.cancelled
        )

    def start(self, route: Route, duration_ms: float) -> None:
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive, got {duration_ms}")
        if self.has_pending_tick:
            logger.warning(
                "Animation started again without cancel(); dropping the pending tick"
            )
        self._cancel_pending()

        self._route = route
        self._duration_ms = float(duration_ms)
        self._start_ts = None
        self._progress = 0.0
        self._state = SchedulerState.running

        token = _CancelToken()
        self._token = token
        self._task = asyncio.get_running_loop().create_task(
            self._run(token), name=f"animation:{route.key}"
        )

    def cancel(self) -> None:
        if self._state is SchedulerState.cancelled:
            return
        self._cancel_pending()
        self._state = SchedulerState.cancelled

    def _cancel_pending(self) -> None:
        if self._token is not None:
            self._token.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._token = None

    async def _run(self, token: _CancelToken) -> None:
        while not token.cancelled:
            now_ms = await self._clock.next_frame()
            if token.cancelled:
                break
            try:
                self.tick(now_ms)
            except Exception:
                logger.exception("Animation tick failed; stopping the animation")
                token.cancelled = True
                self._state = SchedulerState.cancelled

    def tick(self, now_ms: float) -> MarkerPose | None:
        """
        Advance to `now_ms` and emit the pose. Returns None when nothing is active.
        """
        route = self._route
        if route is None or self._state is not SchedulerState.running:
            return None
        if self._start_ts is None:
            self._start_ts = float(now_ms)
        elapsed = float(now_ms) - self._start_ts
        progress = (elapsed / self._duration_ms) % 1.0
        # A tiny negative elapsed time wraps to exactly 1.0.
        self._progress = progress if progress < 1.0 else 0.0
        pose = pose_at(route, self._progress)
        self._on_pose(pose)
        return pose
