"""
Command line entry point for the connectivity checker
"""

import argparse
import logging
import signal
import sys
import threading
import time
from typing import Any, Dict, List, Optional

from .config import ProbeConfig, SettingsLoader
from .errors import ConfigError
from .loader import parse_configs
from .reporter import ResultSink, make_log_path
from .scheduler import ProbeScheduler
from .utils import get_color_codes, print_banner, setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='conn-checker',
        description='Batch TCP connectivity check for application servers',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  conn-checker ./servers
  conn-checker ./servers --workers 50 --timeout 2 --retries 2
  conn-checker ./servers -s settings.yaml --raw-results results.json
        """
    )

    parser.add_argument(
        'config_dir',
        help='Directory with server .conf files'
    )

    parser.add_argument(
        '--settings', '-s',
        help='YAML or JSON settings file'
    )

    parser.add_argument(
        '--timeout', '-t',
        type=float,
        help='Connect timeout in seconds (default: 5)'
    )

    parser.add_argument(
        '--retries', '-r',
        type=int,
        help='Total connection attempts per server (default: 3)'
    )

    parser.add_argument(
        '--retry-delay',
        type=float,
        help='Delay between attempts in seconds (default: 1)'
    )

    parser.add_argument(
        '--workers', '-w',
        type=int,
        help='Maximum concurrent probes (default: 10)'
    )

    parser.add_argument(
        '--deadline',
        type=float,
        help='Stop retrying after this many seconds'
    )

    parser.add_argument(
        '--log-dir',
        help='Directory for the run log (default: current directory)'
    )

    parser.add_argument(
        '--raw-results',
        metavar='FILE',
        help='Also save all results as JSON'
    )

    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable coloured output'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output (DEBUG level)'
    )

    return parser.parse_args(argv)


def collect_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map CLI options onto ProbeConfig fields"""
    overrides = {
        'connect_timeout': args.timeout,
        'retry_count': args.retries,
        'retry_delay': args.retry_delay,
        'concurrency_limit': args.workers,
        'deadline': args.deadline,
        'log_dir': args.log_dir,
    }

    if args.raw_results:
        overrides['save_raw_results'] = True
        overrides['raw_results_file'] = args.raw_results
    if args.no_color:
        overrides['show_colors'] = False
    if args.verbose:
        overrides['log_level'] = 'DEBUG'

    return overrides


class _InterruptHandler:
    """Turns the first Ctrl-C into a cancellation, the second one aborts"""

    def __init__(self, scheduler: ProbeScheduler):
        self.scheduler = scheduler
        self.interrupted = False
        self._previous = None

    def __enter__(self) -> "_InterruptHandler":
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)

    def _handle(self, signum, frame):
        self.interrupted = True
        signal.signal(signal.SIGINT, signal.default_int_handler)
        print("\nInterrupted, finishing in-flight probes (Ctrl-C again to abort)",
              file=sys.stderr)
        self.scheduler.cancel()


def run(config_dir: str, config: ProbeConfig) -> int:
    """
    Probe every server found in config_dir

    Args:
        config_dir: Directory with .conf files
        config: Probe policy

    Returns:
        Process exit code
    """
    colors = get_color_codes(config.show_colors)
    print_banner(colors)

    try:
        records = parse_configs(config_dir)
    except ConfigError as e:
        print(f"Failed to parse configs: {e}")
        return EXIT_ERROR

    print(f"Checking connectivity of {len(records)} servers...")

    scheduler = ProbeScheduler(config)
    deadline_timer = None
    if config.deadline:
        deadline_timer = threading.Timer(config.deadline, scheduler.cancel)
        deadline_timer.daemon = True
        deadline_timer.start()

    try:
        with _InterruptHandler(scheduler) as interrupt, \
                ResultSink(make_log_path(config.log_dir), colors=colors) as sink:
            started = time.perf_counter()
            summary = sink.consume(scheduler.run(records), started)
            sink.write_summary(summary)

            if config.save_raw_results:
                sink.save_raw_results(summary, config.raw_results_file)
    finally:
        if deadline_timer is not None:
            deadline_timer.cancel()

    logger.debug(f"Peak concurrency: {scheduler.peak_in_flight}")

    if interrupt.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point"""
    args = parse_arguments(argv)
    setup_logging('DEBUG' if args.verbose else 'INFO')

    try:
        config = SettingsLoader.load(args.settings, collect_overrides(args))
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}")
        return EXIT_ERROR

    setup_logging(config.log_level)

    try:
        return run(args.config_dir, config)
    except KeyboardInterrupt:
        print("\n\nCheck aborted by user")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
