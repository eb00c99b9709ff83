"""
Bounded worker pool that fans out one probe per server
"""

import logging
import queue
import threading
from typing import Iterable, Iterator, List, Optional

from .config import ProbeConfig
from .models import ProbeResult, ProbeStatus, ServerRecord
from .prober import CANCELLED_MESSAGE, Prober

logger = logging.getLogger(__name__)

# Marks the end of the result stream
_END = object()


class ProbeScheduler:
    """
    Runs probes concurrently, never more than ``concurrency_limit`` at once

    A dispatcher thread takes one semaphore slot per server and starts a
    worker thread for it; the worker gives the slot back when its probe
    finishes. When every worker has finished the dispatcher closes the
    result stream, so consumers can simply read until the stream ends.
    Results come out in completion order, not input order.
    """

    def __init__(self, config: ProbeConfig,
                 prober: Optional[Prober] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.config = config
        self.prober = prober or Prober(config)
        self.cancel_event = cancel_event or threading.Event()
        self.semaphore = threading.BoundedSemaphore(config.concurrency_limit)
        self.results: "queue.Queue" = queue.Queue()

        self._lock = threading.Lock()
        self.in_flight = 0
        self.peak_in_flight = 0
        self.dispatched = 0
        self._started = False

    def cancel(self):
        """Stop pending retries and skip servers not yet dispatched"""
        if not self.cancel_event.is_set():
            logger.warning("Cancellation requested, pending retries will be skipped")
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def run(self, records: Iterable[ServerRecord]) -> Iterator[ProbeResult]:
        """
        Start probing and return the result stream

        The stream is single-pass and yields exactly one result per record.

        Args:
            records: Servers to probe

        Returns:
            Iterator over results in completion order
        """
        if self._started:
            raise RuntimeError("ProbeScheduler.run() can only be called once")
        self._started = True

        records = list(records)
        logger.info(f"Probing {len(records)} servers "
                     f"(concurrency: {self.config.concurrency_limit}, "
                     f"attempts: {self.config.total_attempts}, "
                     f"timeout: {self.config.connect_timeout:g}s)")

        dispatcher = threading.Thread(
            target=self._dispatch,
            args=(records,),
            name="probe-dispatcher",
            daemon=True,
        )
        dispatcher.start()
        return self._drain()

    def _drain(self) -> Iterator[ProbeResult]:
        while True:
            item = self.results.get()
            if item is _END:
                return
            yield item

    def _dispatch(self, records: List[ServerRecord]):
        workers: List[threading.Thread] = []
        try:
            for record in records:
                # Blocks only this thread until a slot frees up
                self.semaphore.acquire()

                if self.cancel_event.is_set():
                    self.semaphore.release()
                    self.results.put(self._skipped_result(record))
                    continue

                worker = threading.Thread(
                    target=self._work,
                    args=(record,),
                    name=f"probe-{record.server_id}",
                    daemon=True,
                )
                try:
                    worker.start()
                except RuntimeError as e:
                    self.semaphore.release()
                    logger.error(f"Cannot start probe thread for {record.address}: {e}")
                    self.results.put(self._error_result(record, f"cannot start probe: {e}"))
                    continue

                workers.append(worker)
                self.dispatched += 1
        finally:
            for worker in workers:
                worker.join()
            logger.debug(f"All {len(workers)} probes finished, peak concurrency "
                         f"{self.peak_in_flight}")
            self.results.put(_END)

    def _work(self, record: ServerRecord):
        with self._lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

        try:
            result = self.prober.probe(self.cancel_event, record)
        except Exception as e:
            logger.exception(f"Unexpected error probing {record.address}")
            result = self._error_result(record, f"internal error: {e}")
        finally:
            with self._lock:
                self.in_flight -= 1
            self.semaphore.release()

        self.results.put(result)

    @staticmethod
    def _skipped_result(record: ServerRecord) -> ProbeResult:
        return ProbeResult(
            record=record,
            success=False,
            status=ProbeStatus.CANCELLED,
            error=CANCELLED_MESSAGE,
        )

    @staticmethod
    def _error_result(record: ServerRecord, message: str) -> ProbeResult:
        return ProbeResult(
            record=record,
            success=False,
            status=ProbeStatus.ERROR,
            error=message,
        )
