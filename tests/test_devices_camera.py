"""Tests for the Camera device over the digital twin."""

import threading

import pytest

from astrophi.devices import SETTABLE_OBJECTS, Camera, CameraInfo
from astrophi.drivers.cameras import (
    CameraPort,
    DigitalTwinCameraPort,
    DigitalTwinConfig,
)
from astrophi.errors import CameraFault, InternalFault, ParseFault


def _twin(**widgets: str) -> DigitalTwinCameraPort:
    config = {
        "iso": "800",
        "shutterspeed": "1/200",
        "aperture": "5.6",
        "capturetarget": "Memory card",
        "imageformat": "RAW",
    }
    config.update(widgets)
    return DigitalTwinCameraPort(
        DigitalTwinConfig(width=32, height=24, initial_config=config)
    )


class TestSettings:
    """Tests for the whitelisted get_setting()/set_setting()."""

    def test_whitelist_contents(self) -> None:
        """Only capturetarget and imageformat are reachable from clients."""
        assert SETTABLE_OBJECTS == {"capturetarget", "imageformat"}

    def test_set_then_get_round_trip(self, camera: Camera) -> None:
        """A value written through set_setting reads back unchanged."""
        camera.set_setting("imageformat", "Smaller JPEG")
        assert camera.get_setting("imageformat") == "Smaller JPEG"

    @pytest.mark.parametrize("name", ["iso", "shutterspeed", "bogus"])
    def test_unsupported_object_rejected(
        self, camera: Camera, twin_port: DigitalTwinCameraPort, name: str
    ) -> None:
        """Verifies non-whitelisted objects never reach the port.

        Arrangement:
        Twin camera with known widget values.

        Action:
        Attempts set_setting and get_setting on a non-whitelisted name.

        Assertion Strategy:
        - Both raise InternalFault naming the object.
        - The twin's widgets are unchanged.
        """
        before = dict(twin_port.widgets)
        with pytest.raises(InternalFault, match=f"Unsupported config object: {name}"):
            camera.set_setting(name, "1600")
        with pytest.raises(InternalFault):
            camera.get_setting(name)
        assert dict(twin_port.widgets) == before

    def test_set_setting_logs(self, camera: Camera, log_records: list) -> None:
        """Config writes are logged with object and value as structured data."""
        camera.set_setting("capturetarget", "Internal RAM")
        record = next(r for r in log_records if r.getMessage() == "Config SET")
        assert record.structured_data["object"] == "capturetarget"
        assert record.structured_data["value"] == "Internal RAM"


class TestInfo:
    """Tests for Camera.info()."""

    def test_parses_widgets(self) -> None:
        """Numeric widgets are parsed and the counter value passed through."""
        camera = Camera(_twin())
        info = camera.info(total_frames=12)
        assert info == CameraInfo(
            iso=800,
            aperture=5.6,
            exposure=0.005,
            capturetarget="Memory card",
            total_frames=12,
        )

    def test_to_dict_keys(self) -> None:
        """to_dict() has exactly the JSON keys /info returns."""
        data = Camera(_twin(shutterspeed="30")).info(total_frames=0).to_dict()
        assert set(data) == {
            "iso",
            "aperture",
            "exposure",
            "capturetarget",
            "total_frames",
        }
        assert data["exposure"] == 30.0

    @pytest.mark.parametrize(
        "widgets",
        [{"iso": "Auto"}, {"shutterspeed": "bulb"}, {"aperture": "implicit auto"}],
    )
    def test_non_numeric_widget_raises_parse_fault(self, widgets: dict) -> None:
        """Auto ISO, bulb shutter and the like cannot be reported."""
        with pytest.raises(ParseFault):
            Camera(_twin(**widgets)).info(total_frames=0)

    def test_port_failure_raises_camera_fault(self) -> None:
        """A failing widget read surfaces as CameraFault."""
        port = DigitalTwinCameraPort(
            DigitalTwinConfig(fail_operations=frozenset({"get_config"}))
        )
        with pytest.raises(CameraFault):
            Camera(port).info(total_frames=0)


class TestCapture:
    """Tests for shoot(), take_exposure() and take_preview()."""

    def test_shoot_captures_and_paces(
        self, camera: Camera, twin_port: DigitalTwinCameraPort, clock
    ) -> None:
        """Verifies shoot() captures count frames with a pause after each.

        Arrangement:
        Twin camera with a recording clock.

        Action:
        Shoots 3 frames with a 0.1 s interval.

        Assertion Strategy:
        - Three sequentially named files are returned.
        - The twin counted 3 captures.
        - The clock recorded three 0.1 s sleeps.
        """
        files = camera.shoot(3, interval_s=0.1)
        assert [f.name for f in files] == ["IMG_0001.JPG", "IMG_0002.JPG", "IMG_0003.JPG"]
        assert twin_port.capture_count == 3
        assert clock.sleeps == [0.1, 0.1, 0.1]

    def test_shoot_stops_at_first_failure(self, clock) -> None:
        """A failing capture aborts the sequence with CameraFault."""
        port = DigitalTwinCameraPort(
            DigitalTwinConfig(fail_operations=frozenset({"capture"}))
        )
        with pytest.raises(CameraFault):
            Camera(port, clock=clock).shoot(5)
        assert clock.sleeps == []

    def test_take_exposure_returns_jpeg(self, camera: Camera) -> None:
        """take_exposure() captures and downloads a JPEG."""
        data = camera.take_exposure()
        assert data[:2] == b"\xff\xd8"

    def test_take_preview_returns_jpeg(self, camera: Camera) -> None:
        """Preview frames are JPEG bytes."""
        assert camera.take_preview()[:2] == b"\xff\xd8"

    def test_download_failure_raises(self, clock) -> None:
        """A failed download surfaces as CameraFault."""
        port = DigitalTwinCameraPort(
            DigitalTwinConfig(fail_operations=frozenset({"download"}))
        )
        with pytest.raises(CameraFault):
            Camera(port, clock=clock).take_exposure()


class _OverlapTrackingPort:
    """CameraPort recording overlapping calls."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def _enter(self) -> None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)

    def _exit(self) -> None:
        with self._guard:
            self.active -= 1

    def detect(self) -> str:
        return "tracked"

    def get_config(self, name: str) -> str:
        self._enter()
        try:
            threading.Event().wait(0.01)
            return "1"
        finally:
            self._exit()

    def set_config(self, name: str, value: str) -> None:
        self.get_config(name)

    def capture(self):
        raise NotImplementedError

    def download(self, file) -> bytes:
        raise NotImplementedError

    def capture_preview(self) -> bytes:
        self.get_config("preview")
        return b""

    def close(self) -> None:
        pass


def test_port_calls_never_overlap() -> None:
    """Concurrent threads never run two port calls at the same time."""
    port = _OverlapTrackingPort()
    assert isinstance(port, CameraPort)
    camera = Camera(port)

    threads = [
        threading.Thread(target=camera.get_setting, args=("imageformat",)),
        threading.Thread(target=camera.set_setting, args=("capturetarget", "x")),
        threading.Thread(target=camera.take_preview),
        threading.Thread(target=camera.get_config, args=("iso",)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert port.max_active == 1
