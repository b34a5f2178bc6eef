from __future__ import annotations

import ipaddress
import secrets
from functools import lru_cache

from fastapi import Request

INTERNAL_TOKEN_HEADER = "X-Internal-Token"

IpNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def is_valid_internal_token(*, expected_token: str, received_token: str | None) -> bool:
    if not expected_token or not received_token:
        return False
    return secrets.compare_digest(expected_token, received_token)


def is_internal_request_authenticated(request: Request, *, expected_token: str) -> bool:
    return is_valid_internal_token(
        expected_token=expected_token,
        received_token=request.headers.get(INTERNAL_TOKEN_HEADER),
    )


def _parse_network(entry: str) -> IpNetwork | None:
    try:
        if "/" in entry:
            return ipaddress.ip_network(entry, strict=False)
        host = ipaddress.ip_address(entry)
    except ValueError:
        return None
    return ipaddress.ip_network(f"{entry}/{host.max_prefixlen}", strict=False)


@lru_cache(maxsize=32)
def _parse_allowlist(allowlist: str) -> tuple[IpNetwork, ...]:
    networks = (_parse_network(raw.strip()) for raw in allowlist.split(",") if raw.strip())
    return tuple(network for network in networks if network is not None)


def _parse_ip(value: str | None) -> str | None:
    candidate = (value or "").strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def is_client_ip_allowed(*, client_ip: str | None, allowlist: str) -> bool:
    parsed = _parse_ip(client_ip)
    if parsed is None:
        return False
    address = ipaddress.ip_address(parsed)
    return any(address in network for network in _parse_allowlist(allowlist))


def extract_client_ip(request: Request, *, trusted_proxies: str = "") -> str | None:
    client_host = _parse_ip(request.client.host if request.client is not None else None)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for and is_client_ip_allowed(client_ip=client_host, allowlist=trusted_proxies):
        return _parse_ip(forwarded_for.split(",", maxsplit=1)[0])
    return client_host
