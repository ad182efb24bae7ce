"""Camera driver module.

Provides tethered camera control through libgphoto2 (real hardware) and a
digital twin for development without a camera attached.

Protocols:
    CameraPort: Detect, config read/write, capture, download, preview

Implementations:
    GPhotoCameraPort: Real cameras via the gphoto2 Python binding
        (import from ``astrophi.drivers.cameras.gphoto``)
    DigitalTwinCameraPort: Simulated camera with in-memory config

Types:
    CapturedFile: Location of a captured image on the camera
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from astrophi.drivers.cameras.types import CapturedFile
from astrophi.drivers.cameras.twin import (
    DEFAULT_CONFIG,
    DigitalTwinCameraPort,
    DigitalTwinConfig,
)

__all__ = [
    # Protocol
    "CameraPort",
    "CapturedFile",
    # Digital twin implementation
    "DigitalTwinCameraPort",
    "DigitalTwinConfig",
    "DEFAULT_CONFIG",
]


@runtime_checkable
class CameraPort(Protocol):  # pragma: no cover
    """Protocol for a tethered camera connection.

    Implemented by GPhotoCameraPort and DigitalTwinCameraPort. Every
    method raises ``astrophi.errors.CameraFault`` on device failure;
    no other exception type escapes an implementation.

    Implementations are not required to be thread-safe. The device layer
    (``astrophi.devices.camera.Camera``) serializes all calls.
    """

    def detect(self) -> str:
        """Detect the attached camera.

        Returns:
            Camera model name (e.g. "Canon EOS 600D").

        Raises:
            CameraFault: If no camera is attached or it cannot be opened.
        """
        ...

    def get_config(self, name: str) -> str:
        """Read the current choice of a named config widget.

        Args:
            name: Widget name, e.g. "iso", "shutterspeed", "capturetarget".

        Returns:
            The current choice as the camera reports it ("800", "1/200").

        Raises:
            CameraFault: If the widget does not exist or the read fails.
        """
        ...

    def set_config(self, name: str, value: str) -> None:
        """Write a named config widget.

        Args:
            name: Widget name.
            value: New choice, one of the widget's choices.

        Raises:
            CameraFault: If the value is rejected or the write fails.
        """
        ...

    def capture(self) -> CapturedFile:
        """Trigger a capture and return where the image was stored.

        Raises:
            CameraFault: If the capture fails.
        """
        ...

    def download(self, file: CapturedFile) -> bytes:
        """Download a captured image.

        Args:
            file: Location returned by capture().

        Returns:
            Raw file bytes as stored on the camera.

        Raises:
            CameraFault: If the file cannot be read.
        """
        ...

    def capture_preview(self) -> bytes:
        """Capture a live view frame.

        Returns:
            JPEG bytes of the preview frame.

        Raises:
            CameraFault: If live view is unavailable or the capture fails.
        """
        ...

    def close(self) -> None:
        """Release the camera. Safe to call multiple times."""
        ...
