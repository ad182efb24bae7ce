"""Tests for the blocking-call bridge."""

import threading

from astrophi.observability import LogContext, get_logger
from astrophi.utils.executor import run_blocking


class TestRunBlocking:
    """Tests for run_blocking()."""

    async def test_runs_off_the_event_loop_thread(self) -> None:
        assert await run_blocking(threading.get_ident) != threading.get_ident()

    async def test_passes_arguments_and_returns_result(self) -> None:
        assert await run_blocking(divmod, 7, 2) == (3, 1)

    async def test_log_context_reaches_worker(self, log_records: list) -> None:
        """Verifies records logged inside the worker keep the caller's context.

        Arrangement:
        LogContext tagging command=Reset around the call.

        Action:
        Logs from the executor thread through run_blocking.

        Assertion Strategy:
        - The worker's record carries command=Reset in structured_data.
        """
        logger = get_logger("astrophi.test.executor")
        with LogContext(command="Reset"):
            await run_blocking(logger.info, "in worker")

        record = next(r for r in log_records if r.getMessage() == "in worker")
        assert record.structured_data["command"] == "Reset"
