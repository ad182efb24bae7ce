"""Request models for ``/command`` and ``/config``.

Both are tagged unions discriminated by a ``type`` field:

    {"type": "Shoot", "count": 3}
    {"type": "Reset"}
    {"type": "Preview"}
    {"type": "Exposure"}
    {"type": "Solve"}

    {"type": "Set", "object": "imageformat", "value": "RAW"}
    {"type": "Get", "object": "capturetarget"}

``object`` is deliberately a free string: an unsupported object name is
rejected by the camera device as an internal error, not by validation.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, RootModel

__all__ = [
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
]

# Counter and frame counts are unsigned 32-bit on the wire
_MAX_COUNT = 2**32 - 1


class Shoot(BaseModel):
    """Capture ``count`` frames to the camera's capture target."""

    type: Literal["Shoot"] = "Shoot"
    count: int = Field(..., ge=0, le=_MAX_COUNT, description="Frames to shoot")


class Reset(BaseModel):
    """Reset the shot counter to zero."""

    type: Literal["Reset"] = "Reset"


class Preview(BaseModel):
    """Return a live view frame."""

    type: Literal["Preview"] = "Preview"


class Exposure(BaseModel):
    """Capture and return a single small JPEG."""

    type: Literal["Exposure"] = "Exposure"


class Solve(BaseModel):
    """Capture a frame and return the plate-solve result image."""

    type: Literal["Solve"] = "Solve"


Command = Annotated[
    Shoot | Reset | Preview | Exposure | Solve,
    Field(discriminator="type"),
]


class CommandRequest(RootModel[Command]):
    """Body of ``POST /command``."""


class SetConfig(BaseModel):
    """Write a camera config object."""

    type: Literal["Set"] = "Set"
    object: str
    value: str


class GetConfig(BaseModel):
    """Read a camera config object."""

    type: Literal["Get"] = "Get"
    object: str


ConfigRequest = Annotated[SetConfig | GetConfig, Field(discriminator="type")]


class ConfigRequestBody(RootModel[ConfigRequest]):
    """Body of ``POST /config``."""
