"""Cooperative cancellation and pause/resume for a pipeline run."""

import asyncio


class ExecutionControl:
    """Token the caller holds to steer a running task.

    Checked by the executor only between steps: a generation call already
    in flight is allowed to finish or fail.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._resumed = asyncio.Event()
        self._resumed.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def cancel(self) -> None:
        """Stop the run before its next step starts."""
        self._cancelled = True
        # Release a run parked on pause so it can observe the cancellation
        self._resumed.set()

    def pause(self) -> None:
        """Hold the run before its next step starts."""
        if not self._cancelled:
            self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    async def wait_until_resumed(self) -> None:
        await self._resumed.wait()
