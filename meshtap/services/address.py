"""
Peer address codec.

The proxy sends IP addresses as integers: IPv4 as one 32-bit value, IPv6 as
two big-endian 64-bit halves. These helpers turn them back into text.
"""

from __future__ import annotations

import ipaddress

from meshtap.schemas.tap import IpAddress, TcpAddress


def ip_address_bytes(ip: IpAddress | None) -> bytes:
    """Packed address: 16 bytes for IPv6, 4 for a nonzero IPv4, else empty."""
    if ip is None:
        return b''
    if ip.ipv6 is not None:
        return ip.ipv6.first.to_bytes(8, 'big') + ip.ipv6.last.to_bytes(8, 'big')
    if ip.ipv4 != 0:
        return ip.ipv4.to_bytes(4, 'big')
    return b''


def ip_to_string(ip: IpAddress | None) -> str:
    """Canonical IPv4/IPv6 text, or '' for an unknown address."""
    packed = ip_address_bytes(ip)
    if not packed:
        return ''
    return str(ipaddress.ip_address(packed))


def address_to_string(address: TcpAddress | None) -> str:
    """
    Format a TCP address as ``host:port``.

    IPv6 hosts are bracketed (``[::1]:8080``). An address without a known IP
    renders as the empty string.
    """
    if address is None:
        return ''
    host = ip_to_string(address.ip)
    if not host:
        return ''
    if ':' in host:
        return f'[{host}]:{address.port}'
    return f'{host}:{address.port}'
