"""
Result sink: writes probe results to the console and the run log, tallies them
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO

from .errors import SinkWriteError
from .models import ProbeResult, ProbeStatus, RunSummary

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def make_log_path(log_dir: str, now: Optional[datetime] = None) -> Path:
    """Per-run log file name, e.g. connectinfo_2024-01-31_235959.log"""
    now = now or datetime.now()
    return Path(log_dir) / f"connectinfo_{now.strftime('%Y-%m-%d_%H%M%S')}.log"


def format_status(result: ProbeResult) -> str:
    if result.success:
        return "success"
    if result.status is ProbeStatus.CANCELLED:
        return "cancelled"
    return f"failure ({result.error or result.status.value})"


def format_result(result: ProbeResult) -> str:
    """One log line for a result"""
    record = result.record
    return (f"[{result.probed_at.strftime(TIMESTAMP_FORMAT)}] "
            f"server_id={record.server_id} app={record.app_name} "
            f"host={record.server_host} port={record.server_port} "
            f"elapsed={result.elapsed:.3f}s status={format_status(result)}")


def format_summary(summary: RunSummary) -> str:
    lines = [
        "",
        "=" * 60,
        "CONNECTIVITY CHECK SUMMARY",
        "=" * 60,
        f"Total:      {summary.total}",
        f"Succeeded:  {summary.succeeded}",
        f"Failed:     {summary.failed}",
    ]
    if summary.cancelled:
        lines.append(f"Cancelled:  {summary.cancelled}")
    lines.extend([
        f"Duration:   {summary.duration:.3f}s",
        f"Log file:   {summary.log_file or '-'}",
        "=" * 60,
    ])
    return "\n".join(lines)


class ResultSink:
    """
    Drains the result stream

    Each result is written to the console and to the log file. If the log
    file cannot be opened or written the error is reported once and the
    sink keeps going with the console and the in-memory results.
    """

    def __init__(self, log_path: Optional[Path],
                 console: Optional[TextIO] = None,
                 colors: Optional[Dict[str, str]] = None):
        self.log_path = Path(log_path) if log_path else None
        self.console = console or sys.stdout
        self.colors = colors or {}
        self.results: List[ProbeResult] = []
        self.write_errors: List[SinkWriteError] = []
        self.succeeded = 0
        self.failed = 0
        self.cancelled = 0
        self._file: Optional[TextIO] = None

    def __enter__(self) -> "ResultSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def degraded(self) -> bool:
        return bool(self.write_errors)

    def open(self):
        if self.log_path is None:
            return
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self._create_fresh(self.log_path)
        except OSError as e:
            self._report_write_error(e)

    def _create_fresh(self, path: Path) -> TextIO:
        """Create a new log file, never reusing one from an earlier run"""
        candidate = path
        suffix = 1
        while True:
            try:
                f = open(candidate, 'x', encoding='utf-8')
            except FileExistsError:
                if candidate.is_dir():
                    raise
                candidate = path.with_name(f"{path.stem}_{suffix}{path.suffix}")
                suffix += 1
                continue
            self.log_path = candidate
            return f

    def close(self):
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                self._report_write_error(e)
            self._file = None

    def _report_write_error(self, cause: OSError):
        error = SinkWriteError(str(self.log_path), cause)
        self.write_errors.append(error)
        logger.error(f"{error}; results continue on the console only")
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                logger.debug("Closing the broken log file failed too", exc_info=True)
            self._file = None

    def _write_file(self, text: str):
        if self._file is None:
            return
        try:
            self._file.write(text + "\n")
            self._file.flush()
        except OSError as e:
            self._report_write_error(e)

    def _write_console(self, text: str, color: str = ""):
        reset = self.colors.get('reset', '') if color else ''
        print(f"{color}{text}{reset}", file=self.console, flush=True)

    def record(self, result: ProbeResult):
        """Count, echo and log a single result"""
        self.results.append(result)
        if result.success:
            self.succeeded += 1
            color = self.colors.get('green', '')
        else:
            self.failed += 1
            if result.status is ProbeStatus.CANCELLED:
                self.cancelled += 1
                color = self.colors.get('yellow', '')
            else:
                color = self.colors.get('red', '')

        line = format_result(result)
        self._write_console(line, color)
        self._write_file(line)

    def consume(self, results: Iterable[ProbeResult],
                started: Optional[float] = None) -> RunSummary:
        """
        Read results until the stream ends

        Args:
            results: Result stream
            started: ``time.perf_counter()`` value at run start (optional)

        Returns:
            Totals for the run
        """
        started = started if started is not None else time.perf_counter()
        for result in results:
            self.record(result)
        return self.summary(time.perf_counter() - started)

    def summary(self, duration: float) -> RunSummary:
        return RunSummary(
            total=len(self.results),
            succeeded=self.succeeded,
            failed=self.failed,
            cancelled=self.cancelled,
            duration=duration,
            log_file=str(self.log_path) if self.log_path else None,
        )

    def write_summary(self, summary: RunSummary):
        text = format_summary(summary)
        self._write_console(text, self.colors.get('bold', ''))
        self._write_file(text)

    def save_raw_results(self, summary: RunSummary, filepath: str) -> bool:
        """
        Dump all results as JSON

        Args:
            summary: Run totals
            filepath: Target file

        Returns:
            True if the file was written
        """
        document = {
            "metadata": {
                "generated_at": datetime.now().isoformat(),
            },
            "summary": summary.to_dict(),
            "results": [result.to_dict() for result in self.results],
        }

        try:
            path = Path(filepath)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Cannot save raw results to {filepath}: {e}")
            return False

        logger.info(f"Raw results saved to {filepath}")
        return True
