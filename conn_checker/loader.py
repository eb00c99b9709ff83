"""
Loading server records from a directory of .conf files

File format, one ``key: value`` pair per line::

    # billing cluster
    appName: "billing"
    serverID: 101
    serverIP: "10.0.0.15"
    serverPort: 8080

A record is complete once ``serverPort`` is read. Quotes and a trailing
comma around keys and values are ignored, so JSON-like fragments work too.
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

from .errors import ConfigError, ConfigFileError
from .models import ServerRecord

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".conf"


class ConfigParser:
    """Parser for server config files"""

    KNOWN_KEYS = ("appName", "serverID", "serverIP", "serverPort")

    @staticmethod
    def _clean(token: str) -> str:
        return token.strip().rstrip(",").strip().strip('"').strip()

    @classmethod
    def parse_file(cls, file_path: Union[str, Path]) -> List[ServerRecord]:
        """
        Parse one config file

        Args:
            file_path: Path to the .conf file

        Returns:
            Records in file order

        Raises:
            ConfigFileError: the file is unreadable or malformed
        """
        path = Path(file_path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                lines = f.readlines()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigFileError(str(path), f"cannot read file: {e}") from e

        records = []
        current: Dict[str, Union[str, int]] = {}

        for line_number, raw in enumerate(lines, 1):
            line = raw.strip()

            # Skip blank lines and comments
            if not line or line.startswith('#'):
                continue

            if ':' not in line:
                continue

            key, value = line.split(':', 1)
            key = cls._clean(key)
            value = cls._clean(value)

            if key not in cls.KNOWN_KEYS:
                continue

            if key == "appName":
                current["app_name"] = value
            elif key == "serverIP":
                current["server_host"] = value
            elif key == "serverID":
                current["server_id"] = cls._parse_int(path, line_number, key, value)
            elif key == "serverPort":
                current["server_port"] = cls._parse_int(path, line_number, key, value)
                records.append(cls._build_record(path, line_number, current))
                current = {}

        if current:
            logger.warning(f"{path}: incomplete server entry at end of file "
                           f"(no serverPort), ignored")

        return records

    @staticmethod
    def _parse_int(path: Path, line_number: int, key: str, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            raise ConfigFileError(str(path), f"{key} is not an integer: {value!r}", line_number)

    @staticmethod
    def _build_record(path: Path, line_number: int, fields: Dict) -> ServerRecord:
        if not fields.get("app_name"):
            raise ConfigFileError(str(path), "server entry is missing appName", line_number)
        if "server_id" not in fields:
            raise ConfigFileError(str(path), "server entry is missing serverID", line_number)

        try:
            return ServerRecord(
                app_name=fields["app_name"],
                server_id=fields["server_id"],
                server_host=fields.get("server_host", ""),
                server_port=fields["server_port"],
            )
        except ValueError as e:
            raise ConfigFileError(str(path), str(e), line_number)

    @classmethod
    def parse_directory(cls, directory: Union[str, Path]) -> List[ServerRecord]:
        """
        Parse every .conf file in a directory

        Malformed files are skipped with a warning.

        Args:
            directory: Directory with config files

        Returns:
            Union of all records from valid files

        Raises:
            ConfigError: the directory is unreadable or has no valid records
        """
        folder = Path(directory)
        try:
            entries = sorted(folder.iterdir())
        except OSError as e:
            raise ConfigError(f"Cannot read config directory {folder}: {e}") from e

        all_records: List[ServerRecord] = []
        for entry in entries:
            if not entry.is_file() or entry.suffix != CONFIG_SUFFIX:
                continue

            try:
                records = cls.parse_file(entry)
            except ConfigFileError as e:
                logger.warning(f"Skipping config file: {e}")
                continue

            logger.debug(f"Loaded {len(records)} servers from {entry}")
            all_records.extend(records)

        if not all_records:
            raise ConfigError(f"No valid server configs found in {folder}")

        logger.info(f"Loaded {len(all_records)} servers from {folder}")
        return all_records


def parse_configs(directory: Union[str, Path]) -> List[ServerRecord]:
    """Load all server records from a config directory"""
    return ConfigParser.parse_directory(directory)
