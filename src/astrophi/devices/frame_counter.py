"""Persisted shot counter.

Counts frames shot since the last reset, across service restarts. The
value lives in a single text file holding its decimal representation,
fully rewritten on every change.

Write ordering: the file is written first and the in-memory value is
updated only after the write succeeds. A failed write raises IOFault and
leaves the counter unchanged, so memory and disk never disagree.

Example:
    >>> counter = FrameCounter.initialize(Path("astrophi_temp"))
    >>> counter.add(3)
    3
    >>> counter.reset()
    >>> counter.snapshot()
    0
"""

from __future__ import annotations

import threading
from pathlib import Path

from astrophi.errors import InternalFault, IOFault, ParseFault
from astrophi.observability import get_logger

logger = get_logger(__name__)

__all__ = ["FrameCounter"]


class FrameCounter:
    """Thread-safe shot counter backed by a text file.

    Construct once at startup with initialize() and share the instance
    with every request path.
    """

    def __init__(self, path: Path, total: int = 0) -> None:
        """Wrap an already-loaded counter value.

        Prefer initialize(), which reads or creates the file.

        Args:
            path: Backing file.
            total: Current value, matching the file contents.
        """
        self._path = path
        self._total = total
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"FrameCounter(path={str(self._path)!r}, total={self._total})"

    @property
    def path(self) -> Path:
        """Backing file path."""
        return self._path

    @classmethod
    def initialize(cls, path: Path | str) -> FrameCounter:
        """Load the counter from ``path``, creating it with 0 if missing.

        Args:
            path: Counter file location.

        Returns:
            FrameCounter holding the persisted value.

        Raises:
            ParseFault: If the file does not hold a non-negative integer.
            IOFault: If the file cannot be read or created.
        """
        path = Path(path)
        try:
            if not path.exists():
                logger.info("Creating counter file", path=str(path))
                path.write_text("0", encoding="ascii")
                return cls(path, 0)

            logger.info("Reading counter file", path=str(path))
            contents = path.read_text(encoding="ascii").strip()
        except OSError as e:
            raise IOFault.from_os_error(e) from e
        except UnicodeDecodeError as e:
            raise ParseFault("counter file is not ASCII") from e

        if not contents.isdigit():
            raise ParseFault(f"invalid counter value: {contents!r}")

        total = int(contents)
        logger.info("Total frames read", total_frames=total)
        return cls(path, total)

    def snapshot(self) -> int:
        """Return the current total without modifying it."""
        with self._lock:
            return self._total

    def add(self, count: int) -> int:
        """Add ``count`` frames and persist the new total.

        Args:
            count: Frames shot. Zero is a no-op that skips the file write.

        Returns:
            The new total.

        Raises:
            InternalFault: If count is negative.
            IOFault: If the file write fails. The total is unchanged.
        """
        if count < 0:
            raise InternalFault(f"negative frame count: {count}")

        with self._lock:
            if count == 0:
                return self._total
            new_total = self._total + count
            self._write(new_total)
            self._total = new_total
            return new_total

    def reset(self) -> None:
        """Set the total to zero and persist it.

        Raises:
            IOFault: If the file write fails. The total is unchanged.
        """
        with self._lock:
            self._write(0)
            self._total = 0
        logger.info("Reset counter file", path=str(self._path))

    def _write(self, value: int) -> None:
        """Truncate and rewrite the backing file (lock must be held)."""
        try:
            self._path.write_text(str(value), encoding="ascii")
        except OSError as e:
            logger.error("Counter write failed", path=str(self._path), error=str(e))
            raise IOFault.from_os_error(e) from e
