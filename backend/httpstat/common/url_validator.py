"""
URL Validator

Validates measurement targets and provides SSRF (Server-Side Request Forgery)
checks for addresses the service is about to connect to.
"""

import ipaddress
import logging
from urllib.parse import urlparse

from httpstat.common.errors import ValidationError

logger = logging.getLogger(__name__)

# Private IP ranges that may be blocked
PRIVATE_IP_RANGES = [
    ipaddress.ip_network("0.0.0.0/8"),        # "This" network
    ipaddress.ip_network("127.0.0.0/8"),      # Loopback
    ipaddress.ip_network("10.0.0.0/8"),       # Class A private
    ipaddress.ip_network("172.16.0.0/12"),    # Class B private
    ipaddress.ip_network("192.168.0.0/16"),   # Class C private
    ipaddress.ip_network("169.254.0.0/16"),   # Link-local
    ipaddress.ip_network("::/128"),           # IPv6 unspecified
    ipaddress.ip_network("::1/128"),          # IPv6 loopback
    ipaddress.ip_network("fc00::/7"),         # IPv6 private
    ipaddress.ip_network("fe80::/10"),        # IPv6 link-local
]


def is_ip_literal(host: str) -> bool:
    """
    Check whether a host is an IP address rather than a name

    Accepts bracketed IPv6 literals as they appear in URLs.

    Args:
        host: Hostname or address

    Returns:
        bool: True if no DNS lookup is needed for this host
    """
    try:
        ipaddress.ip_address(host.strip("[]"))
        return True
    except ValueError:
        return False


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private/internal

    Args:
        ip_str: IP address string

    Returns:
        bool: True if the IP is private
    """
    try:
        ip = ipaddress.ip_address(ip_str.strip("[]"))
        # ::ffff:a.b.c.d reaches the IPv4 host a.b.c.d
        if ip.version == 6 and ip.ipv4_mapped is not None:
            ip = ip.ipv4_mapped
        for network in PRIVATE_IP_RANGES:
            if ip in network:
                return True
        return False
    except ValueError:
        return False


def ensure_public_address(address: str) -> str:
    """
    Reject a private address

    Args:
        address: Resolved or literal IP address

    Returns:
        str: The address, unchanged

    Raises:
        ValidationError: If the address is private
    """
    if is_private_ip(address):
        logger.warning("Address validation failed: private IP '%s' detected", address)
        raise ValidationError(
            message="Private IP addresses are not allowed",
            code="private_ip_not_allowed",
            details={"address": address},
        )
    return address


def validate_target_url(url: str, block_private: bool = False) -> str:
    """
    Validate a measurement target URL

    Only literal addresses are checked here. Names are checked after
    resolution by the tracing network backend, so that validation does not
    perform (and warm the cache for) the DNS lookup being measured.

    Args:
        url: The URL to validate
        block_private: If True, reject private IP literals

    Returns:
        str: The validated URL

    Raises:
        ValidationError: If the URL is invalid or not allowed
    """
    if not url:
        raise ValidationError(details={"reason": "URL cannot be empty"})

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise ValidationError(details={"reason": str(e)})

    if parsed.scheme not in ("http", "https"):
        raise ValidationError(
            code="invalid_url_scheme",
            details={"scheme": parsed.scheme},
        )

    if not hostname:
        raise ValidationError(
            code="invalid_url_hostname",
            details={"reason": "URL must contain a valid hostname"},
        )

    if block_private and is_ip_literal(hostname):
        ensure_public_address(hostname)

    return url
