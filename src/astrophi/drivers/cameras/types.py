"""Shared types for camera drivers."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["CapturedFile"]


@dataclass(frozen=True)
class CapturedFile:
    """Image stored on the camera after a capture.

    Attributes:
        folder: Camera filesystem folder (e.g. "/store_00010001/DCIM/100CANON").
        name: File name inside the folder (e.g. "IMG_0042.JPG").
    """

    folder: str
    name: str
