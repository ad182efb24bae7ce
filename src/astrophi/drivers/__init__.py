"""Hardware drivers for the tethered camera.

Supports two modes:
- HARDWARE: Real camera through libgphoto2
- DIGITAL_TWIN: Simulated camera for testing without hardware

Select the mode through DriverConfig:
    from astrophi.drivers import DriverConfig, DriverFactory, DriverMode
    port = DriverFactory(DriverConfig(mode=DriverMode.HARDWARE)).create_camera_port()
"""

from astrophi.drivers import config
from astrophi.drivers.config import (
    DriverConfig,
    DriverFactory,
    DriverMode,
)

__all__ = [
    "config",
    "DriverMode",
    "DriverConfig",
    "DriverFactory",
]
