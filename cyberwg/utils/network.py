#!/usr/bin/env python3
#
# cyberwg/utils/network.py
# Copyright (C) 2025-2026 Gill-Bates http://github.com/Gill-Bates
#

"""Network utility functions."""

from __future__ import annotations

import re
from collections.abc import Iterable

__all__ = [
    "AddressPoolExhausted",
    "address_base",
    "next_client_address",
]

# First host handed out to clients; .1 belongs to the server
FIRST_CLIENT_HOST = 2
LAST_CLIENT_HOST = 254

_HOST_OCTET_RE = re.compile(r"\.(\d+)/\d+$")


class AddressPoolExhausted(Exception):
    """Raised when every host of the address template is taken."""


def address_base(template: str) -> str:
    """Strip the trailing ``.x`` placeholder from an address template."""
    if template.endswith(".x"):
        return template[:-2]
    return template


def _used_host_numbers(addresses: Iterable[str]) -> set[int]:
    used: set[int] = set()
    for address in addresses:
        m = _HOST_OCTET_RE.search(address or "")
        if m:
            used.add(int(m.group(1)))
    return used


def next_client_address(template: str, addresses: Iterable[str]) -> str:
    """Return the first free ``base.n/32`` for ``n`` from 2 upward.

    Only the last octet of existing addresses is compared, so addresses from a
    different prefix still block their host number.

    Raises:
        AddressPoolExhausted: If hosts 2..254 are all in use.
    """
    base = address_base(template)
    used = _used_host_numbers(addresses)

    for host in range(FIRST_CLIENT_HOST, LAST_CLIENT_HOST + 1):
        if host not in used:
            return f"{base}.{host}/32"

    raise AddressPoolExhausted(f"No free address left in {base}.0/24")
