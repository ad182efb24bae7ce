"""Command dispatcher.

Maps each request onto the devices:

    Shoot     capture N frames, then add N to the frame counter
    Reset     set the frame counter to 0
    Preview   live view frame from the camera
    Exposure  operational config -> capture + download -> restore
    Solve     operational config -> capture + download + plate solve -> restore

Blocking camera and file calls run in the default executor so the event
loop stays responsive. Multi-step camera sequences (Shoot, Exposure,
Solve, config Set) are serialized by an asyncio lock so one request never
observes another's temporary config. Preview, info and config Get only
take the camera's per-call lock and stay available during a long solve.

Failures propagate unchanged; there are no retries.
"""

from __future__ import annotations

import asyncio

from astrophi.devices.camera import Camera, CameraInfo
from astrophi.devices.commands import (
    Command,
    ConfigRequest,
    Exposure,
    GetConfig,
    Preview,
    Reset,
    SetConfig,
    Shoot,
    Solve,
)
from astrophi.devices.config_guard import OperationalConfig
from astrophi.devices.frame_counter import FrameCounter
from astrophi.devices.plate_solver import PlateSolver
from astrophi.drivers.config import DEFAULT_SHOT_INTERVAL_S
from astrophi.errors import InternalFault
from astrophi.observability import LogContext, get_logger
from astrophi.utils.executor import run_blocking

logger = get_logger(__name__)

__all__ = ["CommandDispatcher"]


class CommandDispatcher:
    """Routes commands and config requests to camera, counter and solver."""

    def __init__(
        self,
        camera: Camera,
        counter: FrameCounter,
        solver: PlateSolver,
        shot_interval_s: float = DEFAULT_SHOT_INTERVAL_S,
    ) -> None:
        """Wire the dispatcher to shared devices.

        Args:
            camera: Camera device (shared by all requests).
            counter: Persisted shot counter (shared by all requests).
            solver: Plate solver (shared by all requests).
            shot_interval_s: Pause between frames of a Shoot command.
        """
        self._camera = camera
        self._counter = counter
        self._solver = solver
        self._shot_interval_s = shot_interval_s
        self._sequence_lock = asyncio.Lock()

    async def dispatch(self, command: Command) -> bytes:
        """Execute a command.

        Args:
            command: One of Shoot, Reset, Preview, Exposure, Solve.

        Returns:
            Empty bytes for Shoot and Reset, image bytes otherwise.

        Raises:
            CameraFault, ParseFault, IOFault, InternalFault: Propagated
                from the layer that failed.
        """
        with LogContext(command=command.type):
            logger.info("Dispatching command", **command.model_dump(exclude={"type"}))

            if isinstance(command, Shoot):
                await self._shoot(command.count)
                return b""
            if isinstance(command, Reset):
                await run_blocking(self._counter.reset)
                return b""
            if isinstance(command, Preview):
                return await run_blocking(self._camera.take_preview)
            if isinstance(command, Exposure):
                return await self._exposure()
            if isinstance(command, Solve):
                return await self._solve()

            raise InternalFault(f"Unknown command: {command!r}")

    async def configure(self, request: ConfigRequest) -> str:
        """Read or write a whitelisted camera config object.

        Returns:
            ``"OK <object>:<value>"`` for Set, the raw value for Get.

        Raises:
            InternalFault: If the object is not settable.
            CameraFault: If the camera read or write fails.
        """
        if isinstance(request, SetConfig):
            async with self._sequence_lock:
                await run_blocking(
                    self._camera.set_setting, request.object, request.value
                )
            return f"OK {request.object}:{request.value}"
        if isinstance(request, GetConfig):
            return await run_blocking(self._camera.get_setting, request.object)

        raise InternalFault(f"Unknown config request: {request!r}")

    async def info(self) -> CameraInfo:
        """Snapshot the camera settings and the shot counter."""
        total_frames = await run_blocking(self._counter.snapshot)
        return await run_blocking(self._camera.info, total_frames)

    async def _shoot(self, count: int) -> None:
        if count == 0:
            logger.warning("Trying to shoot 0 frames")
            return

        async with self._sequence_lock:
            await run_blocking(self._camera.shoot, count, self._shot_interval_s)
            first = await run_blocking(self._counter.snapshot)
            total = await run_blocking(self._counter.add, count)

        logger.info("Shot frames %d - %d", first, total - 1, total_frames=total)

    async def _exposure(self) -> bytes:
        async with self._sequence_lock:
            async with OperationalConfig(self._camera):
                return await run_blocking(self._camera.take_exposure)

    async def _solve(self) -> bytes:
        async with self._sequence_lock:
            async with OperationalConfig(self._camera):
                image = await run_blocking(self._camera.take_exposure)
                return await self._solver.run(image)
