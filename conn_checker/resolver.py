"""
Host name resolution
"""

import ipaddress
import logging
import socket
from typing import Callable, List, Optional

from .errors import ResolutionError

logger = logging.getLogger(__name__)

LookupFunc = Callable[[str], List[str]]


def is_ip_address(host: str) -> bool:
    """True if host is a numeric IPv4 or IPv6 address"""
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def system_lookup(host: str) -> List[str]:
    """Forward lookup through the system resolver, in resolver order"""
    infos = socket.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


class Resolver:
    """Turns a host name into an IP address"""

    def __init__(self, lookup: Optional[LookupFunc] = None):
        self.lookup = lookup or system_lookup

    def resolve(self, host: str) -> str:
        """
        Resolve a host to a single IP address

        Numeric addresses are returned unchanged without a lookup. For names
        the first address of the answer is used; which one comes first
        depends on the resolver and may change between runs.

        Args:
            host: IP address or DNS name

        Returns:
            IP address as a string

        Raises:
            ResolutionError: lookup failed or returned nothing
        """
        host = host.strip()
        if is_ip_address(host):
            return host

        try:
            addresses = self.lookup(host)
        except (OSError, ValueError) as e:
            # ValueError covers bad IDNA names and embedded NUL bytes
            raise ResolutionError(host, str(e)) from e

        if not addresses:
            raise ResolutionError(host, "no addresses returned")

        logger.debug(f"Resolved {host} -> {addresses[0]} ({len(addresses)} candidates)")
        return addresses[0]
