"""
TCP reachability probe with timeout and retries
"""

import logging
import socket
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from .config import ProbeConfig
from .errors import ResolutionError
from .models import ProbeResult, ProbeStatus, ServerRecord
from .resolver import Resolver

logger = logging.getLogger(__name__)

ConnectFunc = Callable[[str, int, float], socket.socket]

CANCELLED_MESSAGE = "cancelled"


def tcp_connect(ip: str, port: int, timeout: float) -> socket.socket:
    """Open a TCP connection, raising OSError on failure"""
    return socket.create_connection((ip, port), timeout=timeout)


class Prober:
    """Runs the retry policy for a single server"""

    def __init__(self, config: ProbeConfig,
                 resolver: Optional[Resolver] = None,
                 connect: Optional[ConnectFunc] = None):
        self.config = config
        self.resolver = resolver or Resolver()
        self.connect = connect or tcp_connect

    def probe(self, cancel_event: threading.Event, record: ServerRecord) -> ProbeResult:
        """
        Check whether a TCP connection to the server can be opened

        Every attempt resolves the host again and connects with
        ``connect_timeout``. Attempts after the first wait ``retry_delay``
        first; if the cancel event fires during that wait the probe stops
        with a cancelled result.

        Args:
            cancel_event: Run-wide cancellation signal
            record: Server to probe

        Returns:
            Result for this server
        """
        probed_at = datetime.now()
        total_attempts = self.config.total_attempts

        elapsed = 0.0
        last_status = ProbeStatus.CONNECT_FAILED
        last_error: Optional[str] = None
        resolved_ip: Optional[str] = None

        for attempt in range(total_attempts):
            if attempt > 0 and cancel_event.wait(self.config.retry_delay):
                logger.debug(f"Probe of {record.address} cancelled before attempt {attempt + 1}")
                return ProbeResult(
                    record=record,
                    success=False,
                    status=ProbeStatus.CANCELLED,
                    error=CANCELLED_MESSAGE,
                    probed_at=probed_at,
                    elapsed=elapsed,
                    attempts=attempt,
                    resolved_ip=resolved_ip,
                )

            try:
                resolved_ip = self.resolver.resolve(record.server_host)
            except ResolutionError as e:
                last_status = ProbeStatus.RESOLUTION_FAILED
                last_error = str(e)
                logger.debug(f"Attempt {attempt + 1}/{total_attempts} for {record.address}: {e}")
                continue

            start = time.perf_counter()
            try:
                conn = self.connect(resolved_ip, record.server_port, self.config.connect_timeout)
            except socket.timeout:
                elapsed = time.perf_counter() - start
                last_status = ProbeStatus.TIMEOUT
                last_error = f"connection timed out after {self.config.connect_timeout:g}s"
            except OSError as e:
                elapsed = time.perf_counter() - start
                last_status = ProbeStatus.CONNECT_FAILED
                last_error = e.strerror or str(e)
            else:
                elapsed = time.perf_counter() - start
                conn.close()
                logger.debug(f"Connected to {record.address} ({resolved_ip}) in {elapsed:.3f}s")
                return ProbeResult(
                    record=record,
                    success=True,
                    status=ProbeStatus.SUCCESS,
                    probed_at=probed_at,
                    elapsed=elapsed,
                    attempts=attempt + 1,
                    resolved_ip=resolved_ip,
                )

            logger.debug(f"Attempt {attempt + 1}/{total_attempts} for {record.address} "
                         f"failed: {last_error}")

        return ProbeResult(
            record=record,
            success=False,
            status=last_status,
            error=last_error,
            probed_at=probed_at,
            elapsed=elapsed,
            attempts=total_attempts,
            resolved_ip=resolved_ip,
        )
