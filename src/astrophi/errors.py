"""Failure kinds reported by the AstroPhi service.

Every failure that reaches the HTTP boundary is one of four kinds. The
web layer turns any of them into a 500 response carrying ``detail`` as a
short plain-text diagnostic; internal structures never leak to clients.

Kinds:
    CameraFault: Detection, config read/write, capture or download failed.
    ParseFault: A numeric string from the camera or a file was malformed.
    IOFault: Reading or writing the counter, working or result file failed.
    InternalFault: Unsupported config object, failed or timed-out solve.
"""

from __future__ import annotations

__all__ = [
    "AstroPhiError",
    "CameraFault",
    "ParseFault",
    "IOFault",
    "InternalFault",
]


class AstroPhiError(Exception):
    """Base exception for AstroPhi operations."""

    default_detail = "AstroPhi internal error"

    def __init__(self, detail: str | None = None) -> None:
        """Create an error with a short client-facing diagnostic.

        Args:
            detail: Text returned in the error response body. Falls back
                to the class ``default_detail`` when omitted.
        """
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class CameraFault(AstroPhiError):
    """Raised when the camera port fails."""

    default_detail = "Camera error"


class ParseFault(AstroPhiError):
    """Raised when a numeric value cannot be parsed."""

    default_detail = "Parse error"


class IOFault(AstroPhiError):
    """Raised when a file operation fails."""

    default_detail = "IO error"

    @classmethod
    def from_os_error(cls, exc: OSError) -> IOFault:
        """Build an IOFault from an OSError without leaking file paths.

        Uses the OS error description (e.g. "No such file or directory")
        and falls back to the exception class name when the error carries
        no strerror.

        Args:
            exc: The original OSError.

        Returns:
            IOFault with a short detail string. Chain with ``from exc``.

        Example:
            >>> try:
            ...     Path("missing").read_bytes()
            ... except OSError as e:
            ...     raise IOFault.from_os_error(e) from e
        """
        return cls(exc.strerror or type(exc).__name__)


class InternalFault(AstroPhiError):
    """Raised for unsupported requests and failed plate solves."""
