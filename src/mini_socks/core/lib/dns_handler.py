"""DNS resolution for domain-name targets using dnspython.

Only used when nameservers are configured; otherwise the socket layer resolves
names with the system resolver.
"""

import ipaddress
from typing import TYPE_CHECKING, NoReturn, cast

import dns.exception
import dns.resolver
from loguru import logger

from mini_socks.core.exceptions import DNSResolutionError

if TYPE_CHECKING:
    from dns.resolver import Resolver

# DNS resolver constants
DEFAULT_TIMEOUT = 1.0  # seconds
DEFAULT_LIFETIME = 3.0  # seconds


def is_ipv4_literal(host: str) -> bool:
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        return False
    return True


class DNSResolver:
    """A-record resolver bound to an explicit list of nameservers."""

    def __init__(self, nameservers: list[str] | tuple[str, ...]) -> None:
        """Initialize the resolver.

        Args:
            nameservers: IP addresses of the DNS servers to query, in order
        """
        if not nameservers:
            msg = "at least one nameserver is required"
            raise ValueError(msg)
        self.nameservers = list(nameservers)
        self.resolver = self._make_resolver(self.nameservers)

    @staticmethod
    def _make_resolver(nameservers: list[str]) -> "Resolver":
        resolver = cast("Resolver", dns.resolver.Resolver(configure=False))
        resolver.timeout = DEFAULT_TIMEOUT
        resolver.lifetime = DEFAULT_LIFETIME
        resolver.nameservers = nameservers
        return resolver

    def _query(self, resolver: "Resolver", domain: str) -> str | None:
        try:
            answer = resolver.resolve(domain, "A")
        except dns.exception.DNSException as e:
            logger.debug(f"Resolver {resolver.nameservers} failed for {domain}: {e}")
            return None
        return str(answer[0])

    def _try_each_nameserver(self, domain: str) -> str | None:
        """Query the nameservers one at a time."""
        for nameserver in self.nameservers:
            if ip := self._query(self._make_resolver([nameserver]), domain):
                return ip
        return None

    def _raise_dns_error(self, msg: str) -> NoReturn:
        raise DNSResolutionError(msg)

    def resolve(self, domain: str) -> str:
        """Resolve domain name to an IPv4 address.

        Args:
            domain: Domain name to resolve

        Returns:
            str: Resolved IPv4 address

        Raises:
            DNSResolutionError: If resolution fails
        """
        if is_ipv4_literal(domain):
            return domain

        if ip := self._query(self.resolver, domain):
            return ip

        if len(self.nameservers) > 1 and (ip := self._try_each_nameserver(domain)):
            return ip

        self._raise_dns_error(f"Could not resolve {domain} using {', '.join(self.nameservers)}")
