import ipaddress
import logging
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class RequestPermissions:
    """Networks a console may be rendered for."""

    def __init__(self, networks: Iterable[str] = ("127.0.0.0/8", "::1")):
        """
        Initialize permissions.

        Raises:
            ValueError: If a network cannot be parsed
        """
        self.networks: List[Network] = [
            ipaddress.ip_network(network, strict=False) for network in networks
        ]

    def include(self, remote_ip: Optional[str]) -> bool:
        if not remote_ip:
            return False
        try:
            address = ipaddress.ip_address(remote_ip)
        except ValueError:
            return False
        return any(address in network for network in self.networks)

    def permitted(self, remote_ip: Optional[str], allow_all: bool = False) -> bool:
        """Check remote_ip, logging every refusal."""
        if allow_all or self.include(remote_ip):
            return True
        logger.info(f"Cannot render console from {remote_ip}! Allowed networks: {self}")
        return False

    def __str__(self) -> str:
        return ", ".join(str(network) for network in self.networks)
