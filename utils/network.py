#!/usr/bin/env python3
"""
Network utilities: shared httpx client and SSRF protection
"""

import asyncio
import ipaddress
import logging
import socket
from typing import List, Optional, Union
from urllib.parse import urlparse

import httpx

from utils.errors import ValidationError

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# SSRF Protection - blocked networks
BLOCKED_NETWORKS = [
    ipaddress.IPv4Network('0.0.0.0/8'),        # "this" network
    ipaddress.IPv4Network('127.0.0.0/8'),      # localhost
    ipaddress.IPv4Network('10.0.0.0/8'),       # private
    ipaddress.IPv4Network('172.16.0.0/12'),    # private
    ipaddress.IPv4Network('192.168.0.0/16'),   # private
    ipaddress.IPv4Network('169.254.0.0/16'),   # link-local
    ipaddress.IPv4Network('224.0.0.0/4'),      # multicast
    ipaddress.IPv6Network('::/128'),           # unspecified
    ipaddress.IPv6Network('::1/128'),          # localhost
    ipaddress.IPv6Network('fc00::/7'),         # private
    ipaddress.IPv6Network('fe80::/10'),        # link-local
    ipaddress.IPv6Network('ff00::/8'),         # multicast
]


class SSRFError(ValidationError):
    """Raised when SSRF protection blocks a request"""
    kind = 'ssrf'


def blocked_network(ip: IPAddress) -> Optional[Union[ipaddress.IPv4Network, ipaddress.IPv6Network]]:
    """Network from BLOCKED_NETWORKS containing the address, IPv4-mapped IPv6 unwrapped"""
    if ip.version == 6 and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    for network in BLOCKED_NETWORKS:
        if ip.version == network.version and ip in network:
            return network
    return None


def _check_address(ip: IPAddress) -> None:
    network = blocked_network(ip)
    if network is not None:
        raise SSRFError(f"Адрес {ip} находится в закрытой сети {network}")


async def resolve_host(hostname: str) -> List[str]:
    """All addresses the hostname resolves to, without blocking the event loop"""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    return sorted({info[4][0] for info in infos})


async def check_ssrf_protection(url: str) -> None:
    """
    Check if URL is safe from SSRF attacks

    Every address the hostname resolves to must be outside BLOCKED_NETWORKS.

    Args:
        url: URL to check

    Raises:
        SSRFError: If URL is blocked by SSRF protection
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise SSRFError(f"Некорректный URL: {e}")

    if parsed.scheme not in ('http', 'https'):
        raise SSRFError(f"Недопустимая схема URL: {parsed.scheme or 'нет'}")

    if not hostname:
        raise SSRFError("В URL отсутствует имя хоста")

    try:
        _check_address(ipaddress.ip_address(hostname))
        return
    except ValueError:
        pass

    try:
        addresses = await resolve_host(hostname)
    except (socket.gaierror, UnicodeError):
        # Resolution will fail again in the fetch itself and be reported there
        logger.warning(f"DNS resolution failed for {hostname}")
        return

    for address in addresses:
        # scope id of link-local IPv6 answers is not part of the address
        _check_address(ipaddress.ip_address(address.split('%', 1)[0]))


class NetworkSession:
    """Shared httpx client for page fetches and provider calls"""

    def __init__(self, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._timeout = httpx.Timeout(timeout)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create shared client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close client"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
