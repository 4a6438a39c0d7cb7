from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import AsyncIterator

from animation.scheduler import MarkerPose
from session.controller import FlightMapController


class EventType(str, Enum):
    pose = "pose"
    done = "done"


def format_event(type: EventType, data: str):
    return f"event: {type.value}\ndata: {data}\n\n"


def pose_payload(pose: MarkerPose, route_key: str | None) -> dict:
    return {
        "routeKey": route_key,
        "lat": pose.point.lat,
        "lng": pose.point.lng,
        "bearing": pose.bearing_deg,
        "progress": pose.progress,
    }


async def stream_poses(
    controller: FlightMapController,
    *,
    max_frames: int = 120,
    idle_timeout_s: float = 1.0,
) -> AsyncIterator[str]:
    """
    SSE stream of marker poses for the active route.

    Slow consumers only ever see the latest pose (older ones are dropped). The stream
    ends after `max_frames`, when the active route goes away, or when no frame
    arrives within `idle_timeout_s`.
    """
    route = controller.active_route
    if route is None:
        yield format_event(EventType.done, json.dumps({"reason": "no_active_route"}))
        return

    q: asyncio.Queue[MarkerPose] = asyncio.Queue(maxsize=1)

    def on_pose(pose: MarkerPose) -> None:
        # keep only latest pose if queue is full
        if q.full():
            try:
                q.get_nowait()
            except asyncio.QueueEmpty:
                pass
        q.put_nowait(pose)

    unsubscribe = controller.add_pose_listener(on_pose)
    reason = "max_frames"
    try:
        sent = 0
        while sent < max_frames:
            if controller.active_route is not route:
                reason = "route_changed"
                break
            try:
                pose = await asyncio.wait_for(q.get(), timeout=idle_timeout_s)
            except asyncio.TimeoutError:
                reason = "idle"
                break
            if controller.active_route is not route:
                reason = "route_changed"
                break
            yield format_event(EventType.pose, json.dumps(pose_payload(pose, route.key)))
            sent += 1
    finally:
        unsubscribe()
    yield format_event(EventType.done, json.dumps({"reason": reason}))
