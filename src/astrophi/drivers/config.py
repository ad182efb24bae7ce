"""Driver configuration and factory.

Supports switching between the real gphoto2 camera and the digital twin
for testing and development without a camera attached. Also carries the
service settings (state file locations, plate-solve tool) that the
server's command-line options map onto.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from astrophi.drivers.cameras import CameraPort, DigitalTwinCameraPort

# =============================================================================
# Constants
# =============================================================================

#: Counter file relative to the working directory.
DEFAULT_COUNTER_FILE = "astrophi_temp"

#: External astrometry tool and its fixed arguments. The image path is
#: appended after these.
DEFAULT_SOLVE_COMMAND = "solve-field"
DEFAULT_SOLVE_ARGS: tuple[str, ...] = ("--overwrite", "--downsample", "2")

#: PATH handed to the solver so it resolves independently of the
#: service's own environment.
DEFAULT_SOLVE_SEARCH_PATH = (
    "/usr/local/bin:/usr/bin:/bin:/usr/local/sbin:/usr/sbin:/sbin"
    ":/usr/local/astrometry/bin"
)

DEFAULT_SOLVE_TIMEOUT_S = 180.0

#: Pause between consecutive captures of a Shoot command.
DEFAULT_SHOT_INTERVAL_S = 0.1


class DriverMode(Enum):
    """Driver mode selection."""

    HARDWARE = "hardware"  # gphoto2 camera over USB
    DIGITAL_TWIN = "digital_twin"  # Simulated camera for testing


@dataclass
class DriverConfig:
    """Configuration for driver selection and service state.

    Attributes:
        mode: HARDWARE for a real camera, DIGITAL_TWIN for simulation.
        counter_path: File holding the persisted shot counter.
        work_dir: Directory for the plate-solve working and result files.
        solve_command: Executable name of the astrometry tool.
        solve_args: Fixed arguments placed before the image path.
        solve_search_path: PATH value for the solver process.
        solve_timeout_s: Wall-clock deadline for one solve.
        shot_interval_s: Pause between captures of a Shoot command.
        log_file: Service log file, served by ``GET /logs``. None disables
            file logging.
    """

    mode: DriverMode = DriverMode.DIGITAL_TWIN

    # Persisted state
    counter_path: Path = field(default_factory=lambda: Path(DEFAULT_COUNTER_FILE))
    work_dir: Path = field(default_factory=Path.cwd)

    # Plate solving
    solve_command: str = DEFAULT_SOLVE_COMMAND
    solve_args: tuple[str, ...] = DEFAULT_SOLVE_ARGS
    solve_search_path: str = DEFAULT_SOLVE_SEARCH_PATH
    solve_timeout_s: float = DEFAULT_SOLVE_TIMEOUT_S

    # Shooting
    shot_interval_s: float = DEFAULT_SHOT_INTERVAL_S

    # Logging
    log_file: Path | None = None


class DriverFactory:
    """Factory for creating the camera port based on configuration.

    Example:
        >>> factory = DriverFactory()  # Digital twin mode
        >>> port = factory.create_camera_port()
        >>> factory = DriverFactory(DriverConfig(mode=DriverMode.HARDWARE))
        >>> port = factory.create_camera_port()  # GPhotoCameraPort
    """

    def __init__(self, config: DriverConfig | None = None):
        """Store the configuration used by create_* methods.

        Args:
            config: Driver configuration. None uses DriverConfig() defaults
                (digital twin).
        """
        self.config = config or DriverConfig()

    def create_camera_port(self) -> CameraPort:
        """Create the camera port for the configured mode.

        Returns:
            GPhotoCameraPort in HARDWARE mode, DigitalTwinCameraPort in
            DIGITAL_TWIN mode.

        Raises:
            ImportError: If the gphoto2 binding (libgphoto2) is not
                installed in HARDWARE mode.
        """
        if self.config.mode == DriverMode.HARDWARE:
            # Deferred so digital twin mode works without libgphoto2
            from astrophi.drivers.cameras.gphoto import GPhotoCameraPort

            return GPhotoCameraPort()
        return DigitalTwinCameraPort()
