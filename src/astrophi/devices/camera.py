"""Logical camera device.

Wraps a CameraPort with the rules the service applies on top of the raw
driver:

- Every port call is serialized by a re-entrant lock. libgphoto2 handles
  are not safe for concurrent use and HTTP requests run concurrently.
- Only whitelisted config objects are reachable from clients.
- Multi-frame shooting with a pause between frames.
- CameraInfo snapshots parsed from the camera's string widgets.

Example:
    >>> camera = Camera(DigitalTwinCameraPort())
    >>> camera.set_setting("imageformat", "Smaller JPEG")
    >>> camera.info(total_frames=0).iso
    800
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from astrophi.drivers.cameras import CameraPort, CapturedFile
from astrophi.errors import InternalFault, ParseFault
from astrophi.observability import get_logger
from astrophi.utils.shutter import parse_shutter

logger = get_logger(__name__)

__all__ = [
    "Camera",
    "CameraInfo",
    "Clock",
    "SystemClock",
    "SETTABLE_OBJECTS",
]

T = TypeVar("T")

#: Config objects clients may read and write through ``/config``.
SETTABLE_OBJECTS: frozenset[str] = frozenset({"capturetarget", "imageformat"})


@runtime_checkable
class Clock(Protocol):  # pragma: no cover
    """Time source for pacing captures (injectable for tests)."""

    def sleep(self, seconds: float) -> None:
        """Block the calling thread for ``seconds``."""
        ...


class SystemClock:
    """Clock backed by time.sleep()."""

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds``; zero or negative returns immediately."""
        if seconds > 0:
            time.sleep(seconds)


@dataclass(frozen=True)
class CameraInfo:
    """Snapshot of the camera state returned by ``GET /info``.

    Attributes:
        iso: ISO sensitivity.
        aperture: F-number.
        exposure: Shutter speed in seconds.
        capturetarget: Where captures are stored ("Internal RAM",
            "Memory card").
        total_frames: Shot counter at snapshot time.
    """

    iso: int
    aperture: float
    exposure: float
    capturetarget: str
    total_frames: int

    def to_dict(self) -> dict[str, Any]:
        """Return the snapshot as a JSON-ready dict."""
        return asdict(self)


def _parse_int(name: str, text: str) -> int:
    try:
        return int(text.strip())
    except ValueError as e:
        raise ParseFault(f"invalid {name}: {text.strip()!r}") from e


def _parse_float(name: str, text: str) -> float:
    try:
        return float(text.strip())
    except ValueError as e:
        raise ParseFault(f"invalid {name}: {text.strip()!r}") from e


class Camera:
    """Thread-safe camera device over a CameraPort.

    All public methods are blocking; async callers run them in an
    executor. Methods doing several port calls hold the lock for the
    whole sequence.
    """

    def __init__(self, port: CameraPort, clock: Clock | None = None) -> None:
        """Create the device.

        Args:
            port: Driver implementing CameraPort.
            clock: Time source for capture pacing. Defaults to SystemClock.
        """
        self._port = port
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        """Return a debug representation showing the port."""
        return f"Camera(port={self._port!r})"

    @property
    def port(self) -> CameraPort:
        """Underlying driver."""
        return self._port

    def _call(self, fn: Callable[[], T]) -> T:
        with self._lock:
            return fn()

    # -------------------------------------------------------------------------
    # Raw config access
    # -------------------------------------------------------------------------

    def detect(self) -> str:
        """Detect the camera and return its model name."""
        return self._call(self._port.detect)

    def get_config(self, name: str) -> str:
        """Read any config widget (no whitelist)."""
        return self._call(lambda: self._port.get_config(name))

    def set_config(self, name: str, value: str) -> None:
        """Write any config widget (no whitelist)."""
        self._call(lambda: self._port.set_config(name, value))

    # -------------------------------------------------------------------------
    # Client-facing settings
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_settable(name: str) -> None:
        if name not in SETTABLE_OBJECTS:
            raise InternalFault(f"Unsupported config object: {name}")

    def get_setting(self, name: str) -> str:
        """Read a whitelisted config object.

        Raises:
            InternalFault: If ``name`` is not in SETTABLE_OBJECTS.
            CameraFault: If the read fails.
        """
        self._check_settable(name)
        value = self.get_config(name)
        logger.info("Config GET", object=name, value=value)
        return value

    def set_setting(self, name: str, value: str) -> None:
        """Write a whitelisted config object.

        Raises:
            InternalFault: If ``name`` is not in SETTABLE_OBJECTS.
            CameraFault: If the camera rejects the value.
        """
        self._check_settable(name)
        self.set_config(name, value)
        logger.info("Config SET", object=name, value=value)

    # -------------------------------------------------------------------------
    # Info
    # -------------------------------------------------------------------------

    def info(self, total_frames: int) -> CameraInfo:
        """Read and parse the current exposure settings.

        Args:
            total_frames: Shot counter value to include in the snapshot.

        Returns:
            CameraInfo built from the iso, shutterspeed, aperture and
            capturetarget widgets.

        Raises:
            CameraFault: If a widget read fails.
            ParseFault: If a widget holds a non-numeric value (e.g. ISO
                "Auto", shutter "bulb").
        """
        with self._lock:
            iso = _parse_int("iso", self._port.get_config("iso"))
            exposure = parse_shutter(self._port.get_config("shutterspeed"))
            aperture = _parse_float("aperture", self._port.get_config("aperture"))
            capturetarget = self._port.get_config("capturetarget")

        logger.debug(
            "Parsed camera info",
            iso=iso,
            exposure=exposure,
            aperture=aperture,
            capturetarget=capturetarget,
        )
        return CameraInfo(
            iso=iso,
            aperture=aperture,
            exposure=exposure,
            capturetarget=capturetarget,
            total_frames=total_frames,
        )

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    def shoot(self, count: int, interval_s: float = 0.0) -> list[CapturedFile]:
        """Capture ``count`` frames, pausing ``interval_s`` after each.

        Frames stay on the camera's capture target; nothing is downloaded.

        Raises:
            CameraFault: On the first failed capture. Frames already shot
                stay on the camera.
        """
        files: list[CapturedFile] = []
        with self._lock:
            for _ in range(count):
                file = self._port.capture()
                logger.info("Captured image", folder=file.folder, name=file.name)
                files.append(file)
                self._clock.sleep(interval_s)
        return files

    def take_exposure(self) -> bytes:
        """Capture one frame and download it.

        Returns:
            The image bytes in the camera's current image format.
        """
        with self._lock:
            file = self._port.capture()
            data = self._port.download(file)
        logger.info("Exposure taken", name=file.name, size=len(data))
        return data

    def take_preview(self) -> bytes:
        """Capture a live view frame."""
        data = self._call(self._port.capture_preview)
        logger.info("Preview image taken", size=len(data))
        return data

    def close(self) -> None:
        """Release the camera."""
        self._call(self._port.close)
