"""Pytest configuration and fixtures for astrophi tests.

Provides digital twin cameras, a recording clock, a counter in a temp
directory and a log capture for the 'astrophi' logger, which does not
propagate to the root logger and so is invisible to caplog.
"""

import logging
from pathlib import Path

import pytest

from astrophi.devices import Camera, FrameCounter
from astrophi.drivers.cameras import DigitalTwinCameraPort, DigitalTwinConfig
from astrophi.observability.logging import ROOT_LOGGER_NAME


class FakeClock:
    """Clock recording requested sleeps instead of sleeping."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def log_records():
    """Capture records emitted on the 'astrophi' logger tree.

    Yields:
        List that receives every LogRecord emitted while the test runs.
    """
    handler = _ListHandler()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        yield handler.records
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)


@pytest.fixture
def clock() -> FakeClock:
    """Recording clock so Shoot never really sleeps."""
    return FakeClock()


@pytest.fixture
def twin_port() -> DigitalTwinCameraPort:
    """Digital twin camera with small frames."""
    return DigitalTwinCameraPort(DigitalTwinConfig(width=64, height=48))


@pytest.fixture
def camera(twin_port: DigitalTwinCameraPort, clock: FakeClock) -> Camera:
    """Camera device over the digital twin."""
    return Camera(twin_port, clock=clock)


@pytest.fixture
def counter_path(tmp_path: Path) -> Path:
    """Location of the shot counter file (not created)."""
    return tmp_path / "astrophi_temp"


@pytest.fixture
def counter(counter_path: Path) -> FrameCounter:
    """Freshly initialized counter at 0."""
    return FrameCounter.initialize(counter_path)


@pytest.fixture
def make_script():
    """Factory writing executable shell scripts.

    Returns:
        Callable (path, body) -> path writing ``#!/bin/sh`` plus body.
    """

    def _make(path: Path, body: str) -> Path:
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(0o755)
        return path

    return _make
