"""gphoto2 Camera Port - Real Hardware Implementation.

Wraps the python-gphoto2 binding to drive a USB-tethered DSLR following
the CameraPort protocol. All libgphoto2 errors are translated into
CameraFault; nothing from the binding leaks past this module.

The connection is opened lazily on first use and cached. After any
failure the connection is dropped, so the next call re-detects the
camera (handles unplug/replug and camera sleep).

Example:
    from astrophi.drivers.cameras.gphoto import GPhotoCameraPort

    port = GPhotoCameraPort()
    print(port.detect())                 # "Canon EOS 600D"
    print(port.get_config("iso"))        # "800"
    jpeg = port.download(port.capture())
    port.close()
"""

from __future__ import annotations

from collections.abc import Callable
from types import ModuleType
from typing import Any, TypeVar

import gphoto2 as gp

from astrophi.drivers.cameras.types import CapturedFile
from astrophi.errors import CameraFault
from astrophi.observability import get_logger

logger = get_logger(__name__)

__all__ = ["GPhotoCameraPort"]

T = TypeVar("T")


class GPhotoCameraPort:
    """CameraPort backed by libgphoto2.

    Not thread-safe: libgphoto2 camera handles must not be used
    concurrently. The device layer serializes every call.
    """

    def __init__(self, gp_module: ModuleType | Any | None = None) -> None:
        """Create the port without touching the USB bus.

        Args:
            gp_module: Optional replacement for the ``gphoto2`` module,
                used by tests to inject a fake binding. None uses the
                real module.
        """
        self._gp = gp_module if gp_module is not None else gp
        self._camera: Any | None = None

    def __repr__(self) -> str:
        """Return a debug representation with connection state."""
        state = "open" if self._camera is not None else "closed"
        return f"GPhotoCameraPort({state})"

    def _open(self) -> Any:
        """Return the cached camera handle, autodetecting if needed."""
        if self._camera is None:
            camera = self._gp.Camera()
            camera.init()
            self._camera = camera
            logger.info("Camera opened")
        return self._camera

    def _call(self, operation: str, fn: Callable[[Any], T]) -> T:
        """Run ``fn`` against the open camera, mapping binding errors.

        Args:
            operation: Name used in logs and the fault detail.
            fn: Callable receiving the camera handle.

        Returns:
            Whatever ``fn`` returns.

        Raises:
            CameraFault: If libgphoto2 reports an error. The connection
                is dropped before raising.
        """
        try:
            return fn(self._open())
        except self._gp.GPhoto2Error as e:
            logger.error("gphoto2 call failed", operation=operation, error=str(e))
            self.close()
            raise CameraFault(f"{operation}: {e}") from e

    def detect(self) -> str:
        """Open the camera and return its model name."""
        return self._call("detect", lambda cam: str(cam.get_abilities().model))

    def get_config(self, name: str) -> str:
        """Read the current value of a config widget."""
        return self._call(
            "get_config", lambda cam: str(cam.get_single_config(name).get_value())
        )

    def set_config(self, name: str, value: str) -> None:
        """Write a config widget value.

        The binding validates ``value`` against the widget's choices and
        raises GPhoto2Error for unknown choices.
        """

        def _set(cam: Any) -> None:
            widget = cam.get_single_config(name)
            widget.set_value(value)
            cam.set_single_config(name, widget)

        self._call("set_config", _set)

    def capture(self) -> CapturedFile:
        """Trigger the shutter and return the stored file location."""

        def _capture(cam: Any) -> CapturedFile:
            path = cam.capture(self._gp.GP_CAPTURE_IMAGE)
            return CapturedFile(folder=str(path.folder), name=str(path.name))

        return self._call("capture", _capture)

    def download(self, file: CapturedFile) -> bytes:
        """Download a captured file's bytes."""

        def _download(cam: Any) -> bytes:
            camera_file = cam.file_get(
                file.folder, file.name, self._gp.GP_FILE_TYPE_NORMAL
            )
            return bytes(memoryview(camera_file.get_data_and_size()))

        return self._call("download", _download)

    def capture_preview(self) -> bytes:
        """Capture a live view frame as JPEG bytes."""
        return self._call(
            "capture_preview",
            lambda cam: bytes(memoryview(cam.capture_preview().get_data_and_size())),
        )

    def close(self) -> None:
        """Release the camera. Errors during exit are logged, not raised."""
        camera, self._camera = self._camera, None
        if camera is None:
            return
        try:
            camera.exit()
        except self._gp.GPhoto2Error as e:
            logger.warning("Error closing camera", error=str(e))
