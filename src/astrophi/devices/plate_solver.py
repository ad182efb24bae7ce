"""Plate solving through astrometry.net's ``solve-field``.

Writes the captured JPEG to a fixed working file, runs the solver on it
with a wall-clock deadline and returns the annotated result image the
solver writes next to it.

The solver runs as an asyncio subprocess, so waiting for it never blocks
the event loop; previews and info requests keep working during a solve.
It starts in a new session, so it leads its own process group. On timeout,
or if the awaiting task is cancelled, that group is killed and the solver
reaped before the call returns. No solver process, nor any helper it
forked, outlives its call.

Files (both in ``work_dir``, overwritten by every solve):
    solve.jpg: Input image.
    solve-ngc.png: Result image with identified objects, written by
        solve-field.

Example:
    solver = PlateSolver(work_dir=Path("/var/lib/astrophi"))
    png = await solver.run(jpeg_bytes)
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Mapping, Sequence
from pathlib import Path

from astrophi.drivers.config import (
    DEFAULT_SOLVE_ARGS,
    DEFAULT_SOLVE_COMMAND,
    DEFAULT_SOLVE_SEARCH_PATH,
    DEFAULT_SOLVE_TIMEOUT_S,
)
from astrophi.errors import InternalFault, IOFault
from astrophi.observability import get_logger
from astrophi.utils.executor import run_blocking

logger = get_logger(__name__)

__all__ = ["PlateSolver", "INPUT_FILE", "RESULT_FILE"]

INPUT_FILE = "solve.jpg"
RESULT_FILE = "solve-ngc.png"


class PlateSolver:
    """Runs the external solver under a deadline.

    One instance is shared by all requests. The working files are fixed
    names, so callers must not run two solves at once; the dispatcher
    serializes solves.
    """

    def __init__(
        self,
        work_dir: Path,
        command: str = DEFAULT_SOLVE_COMMAND,
        args: Sequence[str] = DEFAULT_SOLVE_ARGS,
        search_path: str = DEFAULT_SOLVE_SEARCH_PATH,
        timeout_s: float = DEFAULT_SOLVE_TIMEOUT_S,
    ) -> None:
        """Configure the solver invocation.

        Args:
            work_dir: Directory holding the working and result files. The
                solver runs with this as its current directory.
            command: Solver executable, resolved through ``search_path``.
            args: Fixed arguments placed before the input file name.
            search_path: PATH for the solver process. The rest of the
                environment is inherited.
            timeout_s: Deadline in seconds before the solver is killed.
        """
        self._work_dir = Path(work_dir)
        self._command = command
        self._args = tuple(args)
        self._search_path = search_path
        self._timeout_s = timeout_s

    def __repr__(self) -> str:
        """Return a debug representation."""
        return (
            f"PlateSolver(command={self._command!r}, "
            f"work_dir={str(self._work_dir)!r}, timeout_s={self._timeout_s})"
        )

    @property
    def input_path(self) -> Path:
        """Working file the captured image is written to."""
        return self._work_dir / INPUT_FILE

    @property
    def result_path(self) -> Path:
        """Result image written by the solver."""
        return self._work_dir / RESULT_FILE

    def _environment(self) -> Mapping[str, str]:
        return {**os.environ, "PATH": self._search_path}

    async def run(self, image: bytes) -> bytes:
        """Solve ``image`` and return the solver's result image.

        Args:
            image: JPEG bytes of the captured frame.

        Returns:
            Contents of the result image.

        Raises:
            IOFault: If the working file cannot be written, the solver
                cannot be launched, or the result file is missing.
            InternalFault: If the solver exits non-zero, is killed by a
                signal, or exceeds the deadline.
        """
        try:
            await run_blocking(self.input_path.write_bytes, image)
        except OSError as e:
            raise IOFault.from_os_error(e) from e

        # A result left over from an earlier solve must not be returned
        try:
            await run_blocking(self.result_path.unlink, True)
        except OSError as e:
            raise IOFault.from_os_error(e) from e

        logger.info("Running astrometry", command=self._command, size=len(image))
        returncode = await self._run_solver()

        if returncode != 0:
            logger.error("Astrometry failed", returncode=returncode)
            raise InternalFault(f"plate solve failed (exit code {returncode})")

        try:
            result = await run_blocking(self.result_path.read_bytes)
        except OSError as e:
            raise IOFault.from_os_error(e) from e

        logger.info("Solved plate", size=len(result))
        return result

    async def _run_solver(self) -> int:
        """Spawn the solver and wait for it within the deadline.

        Returns:
            The process exit code (negative if killed by a signal).

        Raises:
            IOFault: If the process cannot be started.
            InternalFault: If the deadline elapses. The process group has
                been killed and the solver reaped.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._command,
                *self._args,
                INPUT_FILE,
                cwd=self._work_dir,
                env=self._environment(),
                stdin=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("Could not start solver", command=self._command, error=str(e))
            raise IOFault.from_os_error(e) from e

        try:
            return await asyncio.wait_for(process.wait(), timeout=self._timeout_s)
        except TimeoutError:
            logger.error(
                "Astrometry timed out", pid=process.pid, timeout_s=self._timeout_s
            )
            await self._kill(process)
            raise InternalFault("plate solve timed out") from None
        except asyncio.CancelledError:
            await self._kill(process)
            raise

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill the solver's process group and reap the solver."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass  # the whole group has already exited
        await asyncio.shield(process.wait())
