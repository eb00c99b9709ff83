"""
Batch TCP connectivity checker for application servers
"""

__version__ = "1.0.0"
__author__ = "Network Automation Team"

from .config import ProbeConfig, SettingsLoader
from .loader import ConfigParser, parse_configs
from .models import ServerRecord, ProbeResult, ProbeStatus, RunSummary
from .prober import Prober
from .reporter import ResultSink
from .resolver import Resolver
from .scheduler import ProbeScheduler

__all__ = [
    'ProbeConfig',
    'SettingsLoader',
    'ConfigParser',
    'parse_configs',
    'ServerRecord',
    'ProbeResult',
    'ProbeStatus',
    'RunSummary',
    'Prober',
    'ResultSink',
    'Resolver',
    'ProbeScheduler',
]
