from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from typing import Optional

from waterlevel.file_toucher.file_toucher import FileToucher
from waterlevel.generator.signal import iter_samples, sample_count
from waterlevel.logger import logger
from waterlevel.queues.base import QueueClient
from waterlevel.services.processor import process_message
from waterlevel.services.publisher import publish_sample
from waterlevel.tables.aio import AsyncTableService


@dataclass
class RunSummary:
    published: int = 0
    processed: int = 0
    skipped: int = 0
    stopped: bool = False


class Runner:
    """
    One harness run: recreate the table, create and clear the queue, then push every generated
    sample and drain the queue into the table after each push.
    """

    def __init__(
        self,
        queue: QueueClient,
        tables: AsyncTableService,
        table_name: str,
        duration_days: float,
        poll_timeout_s: float = 1.0,
        receive_batch: int = 32,
        file_toucher: Optional[FileToucher] = None,
    ):
        self.queue = queue
        self.tables = tables
        self.table_name = table_name
        self.duration_days = duration_days
        self.poll_timeout_s = poll_timeout_s
        self.receive_batch = receive_batch
        self.file_toucher = file_toucher or FileToucher()
        self._stop = False
        self._previous_handlers = {}

    def _setup_signals(self) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[sig] = signal.signal(sig, self._handle_stop)

    def _restore_signals(self) -> None:
        while self._previous_handlers:
            sig, handler = self._previous_handlers.popitem()
            signal.signal(sig, handler)

    def _handle_stop(self, *_):
        self._stop = True
        logger.info("Shutdown signal received, stopping main loop...")

    def stop(self) -> None:
        self._stop = True

    async def _prepare(self) -> None:
        # Empty test table
        await self.tables.delete_table_if_exists(self.table_name)
        await self.tables.create_table(self.table_name)

        self.queue.create()
        self.queue.clear()

    async def _drain(self, summary: RunSummary) -> None:
        for payload, meta in self.queue.receive(self.receive_batch, timeout_s=self.poll_timeout_s):
            entity = await process_message(payload, meta, self.tables, self.table_name)
            if entity is None:
                summary.skipped += 1
            else:
                summary.processed += 1

    async def run_async(self) -> RunSummary:
        # Validates duration_days before touching any backend
        total = sample_count(self.duration_days)
        summary = RunSummary()

        await self._prepare()
        logger.bind(queue=self.queue.name, table=self.table_name, samples=total).info("Runner started")

        for sample in iter_samples(self.duration_days):
            if self._stop:
                summary.stopped = True
                break
            self.file_toucher.update()
            publish_sample(self.queue, sample)
            summary.published += 1
            await self._drain(summary)

        logger.bind(
            published=summary.published,
            processed=summary.processed,
            skipped=summary.skipped,
            stopped=summary.stopped,
        ).info(
            f"Done: published={summary.published} processed={summary.processed} "
            f"skipped={summary.skipped} stopped={summary.stopped}"
        )
        return summary

    def run(self) -> RunSummary:
        self._setup_signals()
        self.queue.connect()
        try:
            return asyncio.run(self.run_async())
        finally:
            try:
                self.queue.close()
            except Exception:
                logger.exception("Error closing queue client")
            self._restore_signals()
            logger.info("Runner stopped.")
