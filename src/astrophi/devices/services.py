"""Shared device services.

Owns the single instance of every stateful device the request handlers
share: the camera, the shot counter, the plate solver and the dispatcher
on top of them. Built once at startup and closed on shutdown.

Example:
    with build_services(DriverConfig()) as services:
        await services.dispatcher.dispatch(Shoot(count=1))
"""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType

from astrophi.devices.camera import Camera, Clock
from astrophi.devices.dispatcher import CommandDispatcher
from astrophi.devices.frame_counter import FrameCounter
from astrophi.devices.plate_solver import PlateSolver
from astrophi.drivers.cameras import CameraPort
from astrophi.drivers.config import DriverConfig, DriverFactory
from astrophi.observability import get_logger

logger = get_logger(__name__)

__all__ = ["Services", "build_services"]


@dataclass
class Services:
    """Container for the devices shared by all requests."""

    config: DriverConfig
    camera: Camera
    counter: FrameCounter
    solver: PlateSolver
    dispatcher: CommandDispatcher

    def close(self) -> None:
        """Release the camera."""
        logger.info("Closing camera", port=type(self.camera.port).__name__)
        self.camera.close()

    def __enter__(self) -> Services:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def build_services(
    config: DriverConfig,
    port: CameraPort | None = None,
    clock: Clock | None = None,
) -> Services:
    """Create the shared devices from configuration.

    The counter file is loaded first; an unreadable or corrupt counter
    aborts startup before the camera is touched.

    Args:
        config: Service configuration.
        port: Camera port to use instead of the one DriverFactory picks
            for ``config.mode``.
        clock: Time source for capture pacing.

    Returns:
        Services ready for use.

    Raises:
        ParseFault: If the counter file is corrupt.
        IOFault: If the counter file cannot be read or created.
    """
    counter = FrameCounter.initialize(config.counter_path)

    if port is None:
        port = DriverFactory(config).create_camera_port()
    camera = Camera(port, clock=clock)

    solver = PlateSolver(
        work_dir=config.work_dir,
        command=config.solve_command,
        args=config.solve_args,
        search_path=config.solve_search_path,
        timeout_s=config.solve_timeout_s,
    )
    dispatcher = CommandDispatcher(
        camera, counter, solver, shot_interval_s=config.shot_interval_s
    )

    logger.info(
        "Services ready",
        mode=config.mode.value,
        port=type(port).__name__,
        total_frames=counter.snapshot(),
    )
    return Services(
        config=config,
        camera=camera,
        counter=counter,
        solver=solver,
        dispatcher=dispatcher,
    )
