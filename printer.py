"""Async print job runner for the ESC/POS thermal printer.

Jobs are documents. They go through a single asyncio queue and are delivered
one at a time, each as one contiguous write, so two documents never interleave
on the wire. When the device is unavailable the job is simulated: the document
is rendered as text into the log instead of failing.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

import config
from directives import Document
from encoder import encode_document
from formatter import format_task, format_task_list, format_test_page, render_text
from models import TaskSnapshot
from transport import Transport

logger = logging.getLogger(__name__)


class JobStatus(str, enum.Enum):
    PRINTED = "printed"
    SIMULATED = "simulated"
    FAILED = "failed"


@dataclass(frozen=True)
class JobOutcome:
    status: JobStatus
    reason: Optional[str] = None

    @classmethod
    def printed(cls) -> "JobOutcome":
        return cls(JobStatus.PRINTED)

    @classmethod
    def simulated(cls, reason: Optional[str] = None) -> "JobOutcome":
        return cls(JobStatus.SIMULATED, reason)

    @classmethod
    def failed(cls, reason: str) -> "JobOutcome":
        return cls(JobStatus.FAILED, reason)


class PrintJobRunner:
    """Serializes documents onto one transport (see ``transport.SerialTransport``)."""

    def __init__(
        self,
        transport: Transport,
        *,
        encoding: Optional[str] = None,
        timeout: Optional[float] = None,
        simulate: Optional[bool] = None,
    ) -> None:
        self.transport = transport
        self._encoding = encoding or config.PRINTER_ENCODING
        self._timeout = timeout if timeout is not None else config.PRINT_TIMEOUT_SECONDS
        self._simulate = config.MOCK_PRINTER if simulate is None else simulate
        # Queue holds (document, future) pairs; the worker resolves the future
        self.queue: asyncio.Queue[Tuple[Document, asyncio.Future]] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        # Device work of a timed-out job that is still holding the transport
        self._abandoned: Optional[asyncio.Future] = None

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._process_queue())

    async def stop(self) -> None:
        """Finish queued jobs, then stop the worker."""
        if self._worker is None:
            return
        await self.queue.join()
        await self._settle_abandoned()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def submit(self, document: Document) -> JobOutcome:
        """Queue a document and wait for its outcome. Never raises for device errors."""
        self.start()
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        await self.queue.put((tuple(document), future))
        return await future

    def status(self) -> dict[str, object]:
        return {
            "state": self.transport.state.value,
            "error": self.transport.last_error,
            "queued": self.queue.qsize(),
            "simulate": self._simulate,
        }

    def _simulated(self, document: Document, reason: str) -> JobOutcome:
        logger.info("Printed (mock, %s):\n%s", reason, render_text(document))
        return JobOutcome.simulated(reason)

    def _deliver(self, data: bytes) -> Optional[JobOutcome]:
        """Blocking part of a job (runs in executor). None means no device."""
        self.transport.poll()
        if not self.transport.is_connected and not self.transport.connect():
            return None
        if self.transport.write(data):
            return JobOutcome.printed()
        return JobOutcome.failed(self.transport.last_error or "write failed")

    async def _settle_abandoned(self) -> None:
        """Wait until a timed-out job has released the transport."""
        if self._abandoned is None:
            return
        logger.debug("Waiting for the previous timed-out job to release the printer")
        await self._abandoned
        self._abandoned = None

    async def _run_job(self, document: Document) -> JobOutcome:
        if self._simulate:
            return self._simulated(document, "simulation mode")

        # The timeout budget covers this job's device work only
        await self._settle_abandoned()
        loop = asyncio.get_running_loop()
        data = encode_document(document, self._encoding)
        delivery = loop.run_in_executor(None, self._deliver, data)
        try:
            outcome = await asyncio.wait_for(asyncio.shield(delivery), timeout=self._timeout)
        except asyncio.TimeoutError:
            reason = f"printer did not respond within {self._timeout:g}s"
            logger.error("Print job timed out after %.1fs", self._timeout)
            # handle_error blocks on the transport lock until the stuck write returns
            abort = loop.run_in_executor(None, self.transport.handle_error, TimeoutError(reason))
            self._abandoned = asyncio.gather(delivery, abort, return_exceptions=True)
            return JobOutcome.failed(reason)

        if outcome is None:
            return self._simulated(document, self.transport.last_error or "printer not connected")
        if outcome.status is JobStatus.PRINTED:
            logger.info("Printed %d bytes", len(data))
        else:
            logger.error("Print job failed: %s", outcome.reason)
        return outcome

    async def _process_queue(self) -> None:
        """Process print queue continuously, one job at a time."""
        while True:
            document, future = await self.queue.get()
            try:
                outcome = await self._run_job(document)
            except Exception as e:
                logger.error("Queue processing failed for document: %s", e, exc_info=True)
                outcome = JobOutcome.failed(str(e))
            finally:
                self.queue.task_done()
            if not future.done():
                future.set_result(outcome)


async def print_single_task(
    runner: PrintJobRunner, task: TaskSnapshot, now: Optional[datetime] = None
) -> JobOutcome:
    return await runner.submit(format_task(task, now, line_width=config.LINE_WIDTH))


async def print_task_list(
    runner: PrintJobRunner,
    tasks: Sequence[TaskSnapshot],
    title: str = "TASK LIST",
    now: Optional[datetime] = None,
) -> JobOutcome:
    if not tasks:
        logger.info("No tasks to print")
        return JobOutcome.simulated("no tasks to print")
    return await runner.submit(format_task_list(tasks, title, now, line_width=config.LINE_WIDTH))


async def print_test_page(runner: PrintJobRunner, now: Optional[datetime] = None) -> JobOutcome:
    return await runner.submit(format_test_page(now, line_width=config.LINE_WIDTH))
