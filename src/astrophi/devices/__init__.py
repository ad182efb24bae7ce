"""Logical device layer - camera, counter, solver and command dispatch."""

from astrophi.devices.camera import (
    SETTABLE_OBJECTS,
    Camera,
    CameraInfo,
    Clock,
    SystemClock,
)
from astrophi.devices.commands import (
    Command,
    CommandRequest,
    ConfigRequest,
    ConfigRequestBody,
    Exposure,
    GetConfig,
    Preview,
    Reset,
    SetConfig,
    Shoot,
    Solve,
)
from astrophi.devices.config_guard import (
    OPERATIONAL_VALUES,
    OperationalConfig,
    SavedConfigPair,
)
from astrophi.devices.dispatcher import CommandDispatcher
from astrophi.devices.frame_counter import FrameCounter
from astrophi.devices.plate_solver import PlateSolver
from astrophi.devices.services import Services, build_services

__all__ = [
    # Camera
    "Camera",
    "CameraInfo",
    "SETTABLE_OBJECTS",
    # Clock (shared)
    "Clock",
    "SystemClock",
    # Commands
    "Command",
    "CommandRequest",
    "ConfigRequest",
    "ConfigRequestBody",
    "Exposure",
    "GetConfig",
    "Preview",
    "Reset",
    "SetConfig",
    "Shoot",
    "Solve",
    # Config guard
    "OperationalConfig",
    "SavedConfigPair",
    "OPERATIONAL_VALUES",
    # Devices
    "CommandDispatcher",
    "FrameCounter",
    "PlateSolver",
    # Services
    "Services",
    "build_services",
]
