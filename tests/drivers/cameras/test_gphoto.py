"""Unit tests for the gphoto2 camera port.

The python-gphoto2 binding is replaced by a MagicMock module injected
through the ``gp_module`` argument, so no camera or USB access is needed.
GPhoto2Error must be a real exception class for ``except`` to work.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from astrophi.drivers.cameras import CameraPort, CapturedFile
from astrophi.drivers.cameras.gphoto import GPhotoCameraPort
from astrophi.errors import CameraFault


class FakeGPhoto2Error(Exception):
    """Stand-in for gphoto2.GPhoto2Error."""


@pytest.fixture
def gp() -> MagicMock:
    """Fake gphoto2 module whose Camera() returns one mock handle."""
    module = MagicMock()
    module.GPhoto2Error = FakeGPhoto2Error
    module.GP_CAPTURE_IMAGE = 0
    module.GP_FILE_TYPE_NORMAL = 1
    module.Camera.return_value = MagicMock(name="camera")
    return module


@pytest.fixture
def port(gp: MagicMock) -> GPhotoCameraPort:
    return GPhotoCameraPort(gp_module=gp)


class TestConnection:
    """Tests for lazy open, caching and close."""

    def test_implements_camera_port(self, port: GPhotoCameraPort) -> None:
        assert isinstance(port, CameraPort)

    def test_construction_does_not_open(self, gp: MagicMock) -> None:
        """Creating the port never touches the USB bus."""
        GPhotoCameraPort(gp_module=gp)
        gp.Camera.assert_not_called()

    def test_opens_once_and_caches(self, port: GPhotoCameraPort, gp: MagicMock) -> None:
        """The camera is initialized on first use and reused afterwards."""
        port.get_config("iso")
        port.get_config("aperture")
        gp.Camera.assert_called_once()
        gp.Camera.return_value.init.assert_called_once()

    def test_close_exits_and_reopens_later(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        port.detect()
        port.close()
        gp.Camera.return_value.exit.assert_called_once()
        port.detect()
        assert gp.Camera.call_count == 2

    def test_close_without_open_is_noop(self, port: GPhotoCameraPort, gp) -> None:
        port.close()
        gp.Camera.return_value.exit.assert_not_called()

    def test_close_error_is_logged(
        self, port: GPhotoCameraPort, gp: MagicMock, log_records: list
    ) -> None:
        """A failing exit() is reported as a warning, not raised."""
        gp.Camera.return_value.exit.side_effect = FakeGPhoto2Error("busy")
        port.detect()
        port.close()
        assert any(r.getMessage() == "Error closing camera" for r in log_records)


class TestOperations:
    """Tests for the CameraPort operations."""

    def test_detect_returns_model(self, port: GPhotoCameraPort, gp: MagicMock) -> None:
        gp.Camera.return_value.get_abilities.return_value = SimpleNamespace(
            model="Canon EOS 600D"
        )
        assert port.detect() == "Canon EOS 600D"

    def test_get_config_reads_widget(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        camera = gp.Camera.return_value
        camera.get_single_config.return_value.get_value.return_value = "1/200"
        assert port.get_config("shutterspeed") == "1/200"
        camera.get_single_config.assert_called_with("shutterspeed")

    def test_set_config_writes_widget(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        """Verifies set_config round-trips the widget through the camera.

        Arrangement:
        Mock camera returning a mock widget.

        Action:
        Sets imageformat to "Smaller JPEG".

        Assertion Strategy:
        - The widget received set_value("Smaller JPEG").
        - The same widget was written back with set_single_config.
        """
        camera = gp.Camera.return_value
        widget = camera.get_single_config.return_value
        port.set_config("imageformat", "Smaller JPEG")
        widget.set_value.assert_called_once_with("Smaller JPEG")
        camera.set_single_config.assert_called_once_with("imageformat", widget)

    def test_capture_returns_location(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        gp.Camera.return_value.capture.return_value = SimpleNamespace(
            folder="/store_00020001/DCIM/100CANON", name="IMG_0042.JPG"
        )
        assert port.capture() == CapturedFile(
            "/store_00020001/DCIM/100CANON", "IMG_0042.JPG"
        )
        gp.Camera.return_value.capture.assert_called_once_with(gp.GP_CAPTURE_IMAGE)

    def test_download_returns_bytes(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        camera = gp.Camera.return_value
        camera.file_get.return_value.get_data_and_size.return_value = b"\xff\xd8data"
        data = port.download(CapturedFile("/store", "IMG_0001.JPG"))
        assert data == b"\xff\xd8data"
        camera.file_get.assert_called_once_with(
            "/store", "IMG_0001.JPG", gp.GP_FILE_TYPE_NORMAL
        )

    def test_capture_preview_returns_bytes(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        camera = gp.Camera.return_value
        camera.capture_preview.return_value.get_data_and_size.return_value = b"live"
        assert port.capture_preview() == b"live"


class TestErrorMapping:
    """Tests for GPhoto2Error translation."""

    def test_error_becomes_camera_fault(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        """Verifies binding errors never leak past the port.

        Arrangement:
        capture() raises the binding's error type.

        Action:
        Calls capture().

        Assertion Strategy:
        - CameraFault is raised with the operation name and error text.
        - The original error is chained as __cause__.
        - The connection was dropped (exit called).
        """
        camera = gp.Camera.return_value
        camera.capture.side_effect = FakeGPhoto2Error("[-53] Could not claim the USB device")

        with pytest.raises(CameraFault) as exc_info:
            port.capture()

        assert exc_info.value.detail == "capture: [-53] Could not claim the USB device"
        assert isinstance(exc_info.value.__cause__, FakeGPhoto2Error)
        camera.exit.assert_called_once()

    def test_reconnects_after_failure(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        """The next call after a failure opens a new connection."""
        gp.Camera.return_value.init.side_effect = [FakeGPhoto2Error("no camera"), None]
        with pytest.raises(CameraFault, match="detect: no camera"):
            port.detect()
        port.detect()
        assert gp.Camera.call_count == 2

    def test_invalid_choice_is_camera_fault(
        self, port: GPhotoCameraPort, gp: MagicMock
    ) -> None:
        widget = gp.Camera.return_value.get_single_config.return_value
        widget.set_value.side_effect = FakeGPhoto2Error("[-2] Bad parameters")
        with pytest.raises(CameraFault, match="set_config"):
            port.set_config("imageformat", "Nonsense")
