from __future__ import annotations

import asyncio
from typing import Protocol

DEFAULT_FPS = 60.0


class FrameClock(Protocol):
    """
    Source of frame timestamps (milliseconds, monotonic).

    `next_frame()` suspends until the next frame is due; it is the only suspension
    point of the animation loop.
    """

    async def next_frame(self) -> float: ...


class AsyncioFrameClock:
    def __init__(self, fps: float = DEFAULT_FPS) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = float(fps)

    async def next_frame(self) -> float:
        await asyncio.sleep(1.0 / self.fps)
        return asyncio.get_running_loop().time() * 1000.0
