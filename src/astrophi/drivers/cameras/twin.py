"""Digital Twin Camera Port - Simulated Hardware for Testing.

Provides simulated tethered camera responses for development and testing
without a physical camera. Follows the CameraPort protocol for drop-in
replacement of GPhotoCameraPort.

Behavior:
    Config: Widgets are held in memory and return what was last written.
    Capture: Renders a synthetic star field JPEG and stores it under a
        sequential file name ("IMG_0001.JPG", ...) until downloaded.
    Preview: Renders a smaller synthetic frame.
    Faults: Operations listed in DigitalTwinConfig.fail_operations raise
        CameraFault, for exercising error paths.

Example:
    from astrophi.drivers.cameras.twin import DigitalTwinCameraPort

    port = DigitalTwinCameraPort()
    port.set_config("imageformat", "Smaller JPEG")
    jpeg = port.download(port.capture())
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import cv2
import numpy as np

from astrophi.drivers.cameras.types import CapturedFile
from astrophi.errors import CameraFault
from astrophi.observability import get_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = get_logger(__name__)

__all__ = [
    "DigitalTwinCameraPort",
    "DigitalTwinConfig",
    "DEFAULT_CONFIG",
]

#: Widget values of a simulated DSLR at power-on.
DEFAULT_CONFIG: Mapping[str, str] = MappingProxyType(
    {
        "iso": "800",
        "shutterspeed": "1/200",
        "aperture": "5.6",
        "capturetarget": "Memory card",
        "imageformat": "RAW",
    }
)

_TWIN_MODEL = "Digital Twin DSLR"
_TWIN_FOLDER = "/store_00010001/DCIM/100TWIN"
_STAR_COUNT = 150
_DEFAULT_JPEG_QUALITY = 90


@dataclass
class DigitalTwinConfig:
    """Configuration for the simulated camera.

    Attributes:
        width: Width of captured frames in pixels.
        height: Height of captured frames in pixels.
        preview_scale: Preview frame size relative to a full capture.
        initial_config: Widget values at startup.
        fail_operations: Port method names that raise CameraFault
            ("detect", "get_config", "set_config", "capture", "download",
            "capture_preview").
        seed: Seed for the synthetic star field.
    """

    width: int = 640
    height: int = 480
    preview_scale: float = 0.5
    initial_config: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CONFIG)
    fail_operations: frozenset[str] = frozenset()
    seed: int = 42


class DigitalTwinCameraPort:
    """Simulated camera implementing the CameraPort protocol.

    Holds widget values in a dict and captured frames until downloaded.
    Not thread-safe on its own; the device layer serializes access.
    """

    def __init__(self, config: DigitalTwinConfig | None = None) -> None:
        """Create a simulated camera.

        Args:
            config: Frame size, initial widget values and fault injection.
                None uses DigitalTwinConfig() defaults.
        """
        self._config = config or DigitalTwinConfig()
        self._widgets: dict[str, str] = dict(self._config.initial_config)
        self._stored: dict[CapturedFile, bytes] = {}
        self._capture_count = 0
        self._rng = np.random.default_rng(self._config.seed)
        self._closed = False

    def __repr__(self) -> str:
        """Return a debug representation with capture count."""
        return (
            f"DigitalTwinCameraPort(captures={self._capture_count}, "
            f"stored={len(self._stored)})"
        )

    @property
    def widgets(self) -> Mapping[str, str]:
        """Read-only view of the current widget values."""
        return MappingProxyType(self._widgets)

    @property
    def capture_count(self) -> int:
        """Number of successful captures since creation."""
        return self._capture_count

    def _check(self, operation: str) -> None:
        if operation in self._config.fail_operations:
            raise CameraFault(f"Simulated {operation} failure")

    def detect(self) -> str:
        """Return the simulated model name."""
        self._check("detect")
        self._closed = False
        return _TWIN_MODEL

    def get_config(self, name: str) -> str:
        """Return the stored value of a widget.

        Raises:
            CameraFault: If the widget is unknown or a fault is injected.
        """
        self._check("get_config")
        try:
            return self._widgets[name]
        except KeyError:
            raise CameraFault(f"Unknown config widget: {name}") from None

    def set_config(self, name: str, value: str) -> None:
        """Store a widget value. Any value is accepted for known widgets."""
        self._check("set_config")
        if name not in self._widgets:
            raise CameraFault(f"Unknown config widget: {name}")
        self._widgets[name] = value

    def capture(self) -> CapturedFile:
        """Render a synthetic frame and store it under the next file name."""
        self._check("capture")
        self._capture_count += 1
        file = CapturedFile(_TWIN_FOLDER, f"IMG_{self._capture_count:04d}.JPG")
        self._stored[file] = self._render(
            self._config.width,
            self._config.height,
            f"{file.name} {self._widgets.get('imageformat', '')}",
        )
        logger.debug("Twin captured image", folder=file.folder, name=file.name)
        return file

    def download(self, file: CapturedFile) -> bytes:
        """Return the bytes of a previously captured frame.

        Raises:
            CameraFault: If the file was never captured.
        """
        self._check("download")
        try:
            return self._stored[file]
        except KeyError:
            raise CameraFault(f"File not found on camera: {file.name}") from None

    def capture_preview(self) -> bytes:
        """Render a reduced-size live view frame."""
        self._check("capture_preview")
        scale = self._config.preview_scale
        return self._render(
            max(1, int(self._config.width * scale)),
            max(1, int(self._config.height * scale)),
            "LIVE VIEW",
        )

    def close(self) -> None:
        """Drop stored frames. Safe to call multiple times."""
        self._stored.clear()
        self._closed = True

    def _render(self, width: int, height: int, label: str) -> bytes:
        """Draw a random star field with a label and encode it as JPEG."""
        img: NDArray[Any] = np.zeros((height, width, 3), dtype=np.uint8)

        xs = self._rng.integers(0, width, _STAR_COUNT)
        ys = self._rng.integers(0, height, _STAR_COUNT)
        radii = self._rng.integers(1, 4, _STAR_COUNT)
        for x, y, r in zip(xs, ys, radii, strict=True):
            cv2.circle(img, (int(x), int(y)), int(r), (255, 255, 255), -1)

        cv2.putText(
            img,
            f"DIGITAL TWIN - {label}",
            (10, 30),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (0, 200, 0),
            1,
        )

        ok, jpeg = cv2.imencode(
            ".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, _DEFAULT_JPEG_QUALITY]
        )
        if not ok:
            raise CameraFault("JPEG encoding failed")
        return jpeg.tobytes()
