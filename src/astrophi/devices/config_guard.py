"""Scoped switch to the operational camera config.

Exposures and plate solves need the camera to keep captures in internal
RAM and to shoot small JPEGs, whatever the user configured. The
OperationalConfig async context manager:

1. reads the current ``capturetarget`` and ``imageformat`` (a failure here
   propagates before anything is changed),
2. switches both to the operational values,
3. runs the body of the ``async with`` block,
4. restores both saved values on every exit path: success, exception,
   or task cancellation.

A restoration failure is logged at ERROR and never replaces the outcome
of the body: a successful body still returns its result, and a failing
body still raises its own exception.

Example:
    async with OperationalConfig(camera) as saved:
        jpeg = await run_blocking(camera.take_exposure)
    # camera config is back to ``saved``
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType, TracebackType

from astrophi.devices.camera import Camera
from astrophi.errors import AstroPhiError
from astrophi.observability import get_logger
from astrophi.utils.executor import run_blocking

logger = get_logger(__name__)

__all__ = [
    "OperationalConfig",
    "SavedConfigPair",
    "OPERATIONAL_VALUES",
]

#: Values the camera is switched to for downloads and plate solving.
OPERATIONAL_VALUES: Mapping[str, str] = MappingProxyType(
    {
        "capturetarget": "Internal RAM",
        "imageformat": "Smaller JPEG",
    }
)


@dataclass(frozen=True)
class SavedConfigPair:
    """User config captured before switching to the operational values."""

    capturetarget: str
    imageformat: str

    def get(self, name: str) -> str:
        """Return the saved value of ``name``."""
        return str(getattr(self, name))


class OperationalConfig:
    """Async context manager saving, switching and restoring camera config."""

    def __init__(self, camera: Camera) -> None:
        """Prepare a guard for one request.

        Args:
            camera: Device whose config is switched. Entering the guard
                performs camera I/O; constructing it does not.
        """
        self._camera = camera
        self._saved: SavedConfigPair | None = None

    async def __aenter__(self) -> SavedConfigPair:
        """Save the user config and switch to the operational values.

        Returns:
            The saved values.

        Raises:
            CameraFault: If a read fails (nothing changed) or a write
                fails (values already switched are restored first).
        """
        saved = SavedConfigPair(
            capturetarget=await run_blocking(self._camera.get_config, "capturetarget"),
            imageformat=await run_blocking(self._camera.get_config, "imageformat"),
        )
        logger.info(
            "Saved camera config",
            capturetarget=saved.capturetarget,
            imageformat=saved.imageformat,
        )

        switched: list[str] = []
        try:
            for name, value in OPERATIONAL_VALUES.items():
                await run_blocking(self._camera.set_config, name, value)
                switched.append(name)
        except BaseException:
            await asyncio.shield(self._restore(saved, switched))
            raise

        self._saved = saved
        return saved

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Restore the saved config. Never suppresses the body's exception."""
        saved, self._saved = self._saved, None
        if saved is None:
            return
        # Shielded so a cancelled request still finishes restoring
        await asyncio.shield(self._restore(saved, list(OPERATIONAL_VALUES)))

    async def _restore(self, saved: SavedConfigPair, names: list[str]) -> None:
        """Write each saved value back, logging failures individually."""
        for name in names:
            value = saved.get(name)
            try:
                await run_blocking(self._camera.set_config, name, value)
            except AstroPhiError as e:
                logger.error(
                    "Failed to restore camera config",
                    object=name,
                    value=value,
                    error=e.detail,
                )
            else:
                logger.info("Restored camera config", object=name, value=value)
