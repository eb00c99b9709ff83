"""
Data models for the connectivity checker
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ProbeStatus(Enum):
    """Outcome of a probe"""
    SUCCESS = "success"
    CONNECT_FAILED = "connect_failed"
    TIMEOUT = "timeout"
    RESOLUTION_FAILED = "resolution_failed"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass(frozen=True)
class ServerRecord:
    """One application server to probe"""
    app_name: str
    server_id: int
    server_host: str
    server_port: int

    def __post_init__(self):
        if not self.server_host:
            raise ValueError(f"Server {self.server_id} ({self.app_name}) has no host")
        if self.server_port <= 0 or self.server_port > 65535:
            raise ValueError(f"Invalid port for server {self.server_id}: {self.server_port}")

    @property
    def address(self) -> str:
        return f"{self.server_host}:{self.server_port}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app_name": self.app_name,
            "server_id": self.server_id,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


@dataclass(frozen=True)
class ProbeResult:
    """Final result of probing one server, retries included"""
    record: ServerRecord
    success: bool
    status: ProbeStatus
    error: Optional[str] = None
    probed_at: datetime = field(default_factory=datetime.now)
    elapsed: float = 0.0
    attempts: int = 0
    resolved_ip: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.status is ProbeStatus.CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON friendly dictionary"""
        return {
            **self.record.to_dict(),
            "success": self.success,
            "status": self.status.value,
            "error": self.error,
            "probed_at": self.probed_at.isoformat(),
            "elapsed_seconds": round(self.elapsed, 6),
            "attempts": self.attempts,
            "resolved_ip": self.resolved_ip,
        }


@dataclass
class RunSummary:
    """Totals for a whole run"""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    duration: float = 0.0
    log_file: Optional[str] = None

    @property
    def success_rate(self) -> float:
        """Percentage of reachable servers"""
        if self.total == 0:
            return 0.0
        return (self.succeeded / self.total) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "success_rate": round(self.success_rate, 1),
            "duration_seconds": round(self.duration, 3),
            "log_file": self.log_file,
        }
