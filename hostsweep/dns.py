# -*- coding: utf-8 -*-

"""
Best-effort DNS pre-check. Hosts are resolved one after another before any
HTTP probing starts.
"""

import asyncio
import socket
from typing import Callable, Dict, List, Optional, Sequence

import aiodns

DNS_TIMEOUT = 2.0

ProgressCallback = Callable[[int, int, int, int], None]


class Resolver:
    def __init__(self, nameservers: Optional[Sequence[str]] = None, timeout: float = DNS_TIMEOUT,
                 resolver: Optional[aiodns.DNSResolver] = None):
        self.resolver = resolver or aiodns.DNSResolver(
            nameservers=list(nameservers) if nameservers else None,
            timeout=timeout, tries=1
        )

    async def resolve_rr(self, host: str, rtype: str) -> List[str]:
        try:
            ans = await self.resolver.query(host, rtype)
        except (aiodns.error.DNSError, OSError, UnicodeError):
            return []
        return [a.host for a in ans or [] if getattr(a, "host", None)]

    async def fallback(self, host: str) -> List[str]:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, None, family=socket.AF_INET, type=socket.SOCK_STREAM)
        except (OSError, UnicodeError):
            return []
        return [infos[0][4][0]] if infos else []

    async def resolve(self, host: str) -> List[str]:
        """A + AAAA records, or a single system lookup when both come back empty."""
        ips = await self.resolve_rr(host, "A") + await self.resolve_rr(host, "AAAA")
        if not ips:
            ips = await self.fallback(host)
        return list(dict.fromkeys(ips))

    async def resolve_all(self, hosts: Sequence[str], on_progress: Optional[ProgressCallback] = None,
                          on_unresolved: Optional[Callable[[str], None]] = None) -> Dict[str, str]:
        """
        Resolve `hosts` sequentially. Returns host -> ';'-joined addresses for
        the hosts that resolved; the rest are passed to `on_unresolved`.
        """
        ip_map: Dict[str, str] = {}
        total = len(hosts)
        for i, host in enumerate(hosts, 1):
            ips = await self.resolve(host)
            if ips:
                ip_map[host] = ";".join(ips)
            elif on_unresolved:
                on_unresolved(host)
            if on_progress:
                on_progress(i, total, len(ip_map), i - len(ip_map))
        return ip_map
