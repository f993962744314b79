"""
Client-side polling of a document's processing status.

The poller fetches ``/status`` immediately and then once per interval until
the run reaches a terminal state, the server reports an error message, or
``max_retries`` consecutive fetches fail. ``stop()`` tears it down; no
callback fires after that.
"""
import asyncio
import logging
from typing import Callable, Optional

import httpx

from .client import TailorClient
from .schemas import ProcessingStatus

logger = logging.getLogger(__name__)

POLL_INTERVAL = 2.0
COMPLETION_DELAY = 1.0
MAX_RETRIES = 3

STATUS_CHECK_FAILED = "Failed to check processing status"
PROCESSING_FAILED = "Failed to process document"


class StatusPoller:
    def __init__(
        self,
        client: TailorClient,
        document_id: int,
        on_complete: Callable[[], None],
        on_error: Optional[Callable[[str], None]] = None,
        on_update: Optional[Callable[[int, str], None]] = None,
        interval: float = POLL_INTERVAL,
        completion_delay: float = COMPLETION_DELAY,
        max_retries: int = MAX_RETRIES,
    ):
        self.client = client
        self.document_id = document_id
        self.on_complete = on_complete
        self.on_error = on_error
        self.on_update = on_update
        self.interval = interval
        self.completion_delay = completion_delay
        self.max_retries = max_retries

        self.progress = 0
        self.status = ProcessingStatus.PROCESSING.value
        self.error: Optional[str] = None
        self.retries = 0

        self._polling = False
        self._torn_down = False
        self._task: Optional[asyncio.Task] = None
        self._completion: Optional[asyncio.TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._polling

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError("poller already started")
        self._polling = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def stop(self):
        """Tear down: cancel the loop and any pending completion callback."""
        self._torn_down = True
        self._polling = False
        if self._completion is not None:
            self._completion.cancel()
            self._completion = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self):
        """Wait until polling has stopped."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self):
        while self._polling:
            await self.check_status()
            if not self._polling:
                break
            await asyncio.sleep(self.interval)

    def _halt(self):
        self._polling = False
        self.retries = 0

    def _report_error(self, message: str):
        if self.on_error is not None and not self._torn_down:
            self.on_error(message)

    def _fire_complete(self):
        self._completion = None
        if not self._torn_down:
            self.on_complete()

    async def check_status(self):
        try:
            result = await self.client.get_processing_status(self.document_id)
        except httpx.HTTPError as e:
            self.retries += 1
            logger.warning(f"Failed to check processing status ({self.retries}/{self.max_retries}): {e}")
            if self.retries >= self.max_retries:
                self._polling = False
                self.status = ProcessingStatus.FAILED.value
                self.error = STATUS_CHECK_FAILED
                self._report_error(STATUS_CHECK_FAILED)
            return

        if self._torn_down:
            return

        self.progress = result.get("progress", self.progress)
        self.status = result.get("status", self.status)
        if self.on_update is not None:
            self.on_update(self.progress, self.status)

        error_message = result.get("errorMessage")
        if error_message is not None:
            self.error = error_message
        if self.status == ProcessingStatus.COMPLETED.value:
            self._halt()
            self._completion = asyncio.get_running_loop().call_later(self.completion_delay, self._fire_complete)
        elif self.status == ProcessingStatus.FAILED.value:
            self._halt()
            self.error = error_message or PROCESSING_FAILED
            self._report_error(self.error)
        elif error_message is not None:
            self._halt()
            self._report_error(error_message)
