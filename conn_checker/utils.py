"""
Helper utilities: logging setup, console colours, banner
"""

import logging
import sys
from typing import Dict

import colorama
from colorama import Fore, Style


def setup_logging(log_level: str = "INFO"):
    """
    Configure the root logger

    Diagnostics go to stderr so that stdout carries only the result lines
    and the summary.

    Args:
        log_level: Level name, e.g. "INFO" or "DEBUG"
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(log_format, date_format))
    console_handler.setLevel(level)

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)


def get_color_codes(enabled: bool = True) -> Dict[str, str]:
    """
    Terminal colour codes

    Args:
        enabled: Return empty strings when False

    Returns:
        Mapping of colour name to escape sequence
    """
    colors = {
        'reset': Style.RESET_ALL,
        'bold': Style.BRIGHT,
        'red': Fore.RED,
        'green': Fore.GREEN,
        'yellow': Fore.YELLOW,
        'cyan': Fore.CYAN,
    }

    if not enabled:
        return {k: '' for k in colors}

    # Translates ANSI codes on Windows consoles
    colorama.just_fix_windows_console()
    return colors


def print_banner(colors: Dict[str, str]):
    banner = """
╔══════════════════════════════════════════════════════╗
║              TCP CONNECTIVITY CHECKER                ║
║       Batch reachability probe for app servers       ║
╚══════════════════════════════════════════════════════╝
"""
    print(f"{colors['cyan']}{banner}{colors['reset']}")
