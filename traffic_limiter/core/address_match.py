"""Exemption matching for client addresses.

An exemption entry is a single address, a CIDR range or a trailing-wildcard
pattern such as ``192.168.*.*``. Matching fails closed: an entry that does not
parse, or a containment test that cannot be answered, never exempts a client.
Origins that are not IP addresses at all (hostnames, synthetic tokens in test
setups) fall back to literal comparison.

Each parse step returns ``None`` instead of raising, and ``matches`` combines
the three optional outcomes explicitly.
"""

from __future__ import annotations

import ipaddress
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network

IPAddress = IPv4Address | IPv6Address
IPNetwork = IPv4Network | IPv6Network

_WILDCARD = "*"


def parse_address(raw: str | None) -> IPAddress | None:
    """Parse a single IPv4/IPv6 address, or return None."""

    if not raw:
        return None
    try:
        return ipaddress.ip_address(raw)
    except ValueError:
        return None


def _parse_pattern(expression: str) -> IPNetwork | None:
    """Parse ``10.0.*.*`` style patterns (wildcards only in trailing groups)."""

    if ":" in expression:
        separator, group_bits, groups_total = ":", 16, 8
    else:
        separator, group_bits, groups_total = ".", 8, 4

    groups = expression.split(separator)
    if len(groups) != groups_total:
        return None

    wildcards = 0
    for group in reversed(groups):
        if group != _WILDCARD:
            break
        wildcards += 1
    if wildcards == 0 or _WILDCARD in groups[: groups_total - wildcards]:
        return None

    base = separator.join(groups[: groups_total - wildcards] + ["0"] * wildcards)
    prefix = (groups_total - wildcards) * group_bits
    try:
        return ipaddress.ip_network(f"{base}/{prefix}", strict=False)
    except ValueError:
        return None


def parse_range(expression: str | None) -> IPNetwork | None:
    """Parse a single address, a CIDR range or a wildcard pattern.

    Host bits in CIDR notation are tolerated (``10.1.2.3/8`` means ``10.0.0.0/8``).
    """

    if not expression:
        return None
    if _WILDCARD in expression:
        return _parse_pattern(expression)
    try:
        return ipaddress.ip_network(expression, strict=False)
    except ValueError:
        return None


def contains(network: IPNetwork, address: IPAddress) -> bool | None:
    """Test containment; None when the question has no answer (mixed families)."""

    if network.version != address.version:
        return None
    return address in network


def matches(raw_address: str | None, range_expression: str | None) -> bool:
    """Return True when ``raw_address`` is covered by ``range_expression``.

    Args:
        raw_address: Client address as read from the request context.
        range_expression: One exemption entry; surrounding whitespace is ignored.

    Returns:
        True only for a literal match of a non-IP origin, or for an IP origin
        contained in a valid range.
    """

    expression = (range_expression or "").strip()
    address = parse_address(raw_address)

    if address is None:
        return raw_address == expression

    network = parse_range(expression)
    if network is None:
        return False

    return contains(network, address) is True
