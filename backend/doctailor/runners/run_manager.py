import asyncio
import logging
from typing import Any, Coroutine, Dict, List

logger = logging.getLogger(__name__)


class RunAlreadyActive(RuntimeError):
    pass


class RunManager:
    """Detached tailoring runs on the current event loop, keyed by processing id.

    The launcher gets control back immediately; the run reports only through
    its Processing record. Strong references are held until a task finishes
    so it is not garbage collected mid-flight.
    """

    def __init__(self):
        self._tasks: Dict[int, "asyncio.Task[None]"] = {}

    def is_running(self, processing_id: int) -> bool:
        task = self._tasks.get(processing_id)
        return task is not None and not task.done()

    def active(self) -> List[int]:
        return [pid for pid, t in self._tasks.items() if not t.done()]

    def launch(self, processing_id: int, run: Coroutine[Any, Any, None]) -> "asyncio.Task[None]":
        if self.is_running(processing_id):
            run.close()
            raise RunAlreadyActive(f"processing {processing_id} already has a run in flight")
        task = asyncio.get_running_loop().create_task(run, name=f"tailor-run-{processing_id}")
        self._tasks[processing_id] = task
        task.add_done_callback(lambda t: self._finished(processing_id, t))
        logger.info(f"Launched run for processing {processing_id}")
        return task

    def _finished(self, processing_id: int, task: "asyncio.Task[None]"):
        if self._tasks.get(processing_id) is task:
            del self._tasks[processing_id]
        if task.cancelled():
            logger.warning(f"Run for processing {processing_id} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Run for processing {processing_id} crashed: {exc!r}")

    async def wait_all(self):
        """Wait for every in-flight run; used at shutdown and in tests."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
