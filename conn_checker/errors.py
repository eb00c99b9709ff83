"""
Exceptions for the connectivity checker
"""

from typing import Optional


class ConnCheckerError(Exception):
    """Base class for all checker errors"""


class ConfigError(ConnCheckerError):
    """Fatal configuration problem, raised before any probing starts"""


class ConfigFileError(ConnCheckerError):
    """A single server config file could not be parsed"""

    def __init__(self, path: str, reason: str, line_number: Optional[int] = None):
        self.path = path
        self.reason = reason
        self.line_number = line_number
        location = f"{path}:{line_number}" if line_number else path
        super().__init__(f"{location}: {reason}")


class ResolutionError(ConnCheckerError):
    """DNS lookup failed or returned no address"""

    def __init__(self, host: str, reason: str):
        self.host = host
        self.reason = reason
        super().__init__(f"DNS resolution failed for {host}: {reason}")


class SinkWriteError(ConnCheckerError):
    """Writing a result line to the log file failed"""

    def __init__(self, destination: str, cause: OSError):
        self.destination = destination
        self.cause = cause
        super().__init__(f"Cannot write to {destination}: {cause}")
