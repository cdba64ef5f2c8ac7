# enigma/utils/network.py
import ipaddress
from typing import Iterable, List, Optional, Union

from aiohttp import web

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

MAPPED_IPV4_PREFIX = "::ffff:"
LOCALHOST_NAMES = frozenset({"localhost"})


def normalize_address(address: str) -> str:
    """Strips whitespace and the IPv6-mapped IPv4 prefix (::ffff:1.2.3.4 -> 1.2.3.4)."""
    cleaned = address.strip()
    if cleaned.lower().startswith(MAPPED_IPV4_PREFIX):
        cleaned = cleaned[len(MAPPED_IPV4_PREFIX):]
    return cleaned


def parse_networks(cidrs: Iterable[str]) -> List[IPNetwork]:
    return [ipaddress.ip_network(cidr, strict=False) for cidr in cidrs]


def is_trusted(address: str, networks: Iterable[IPNetwork]) -> bool:
    """True for localhost and addresses inside any of the given networks."""
    if address.lower() in LOCALHOST_NAMES:
        return True
    return in_networks(address, networks)


def in_networks(address: str, networks: Iterable[IPNetwork]) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(ip.version == net.version and ip in net for net in networks)


def client_address(request: web.Request, trusted_proxies: Iterable[IPNetwork] = ()) -> Optional[str]:
    """
    Real client address of an HTTP request.

    Proxy headers (first X-Forwarded-For hop, then X-Real-IP) are only
    honoured when the peer itself is a trusted proxy; anyone else could
    forge them. Otherwise the peer address is returned.
    """
    peer = normalize_address(request.remote) if request.remote else None
    if peer is None or not in_networks(peer, trusted_proxies):
        return peer

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return normalize_address(first)

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return normalize_address(real_ip)

    return peer
