"""
DNS pre-check against a stubbed aiodns resolver.
"""

import pytest

from hostsweep.dns import Resolver

RECORDS = {
    ("www.example.com", "A"): ["93.184.216.34", "93.184.216.34"],
    ("www.example.com", "AAAA"): ["2606:2800:220:1::"],
    ("api.example.com", "A"): ["10.0.0.1"],
}


@pytest.mark.asyncio
async def test_resolve_merges_a_and_aaaa(stub_resolver):
    resolver = stub_resolver(RECORDS)
    assert await resolver.resolve("www.example.com") == ["93.184.216.34", "2606:2800:220:1::"]
    assert await resolver.resolve("nope.example.com") == []


@pytest.mark.asyncio
async def test_resolve_all_reports_progress_and_unresolved(stub_resolver):
    resolver = stub_resolver(RECORDS)
    progress = []
    unresolved = []
    hosts = ["www.example.com", "ghost.example.com", "api.example.com"]

    ip_map = await resolver.resolve_all(hosts, lambda *a: progress.append(a), unresolved.append)

    assert ip_map == {"www.example.com": "93.184.216.34;2606:2800:220:1::", "api.example.com": "10.0.0.1"}
    assert unresolved == ["ghost.example.com"]
    assert progress == [(1, 3, 1, 0), (2, 3, 1, 1), (3, 3, 2, 1)]


@pytest.mark.asyncio
async def test_resolve_is_sequential_per_host(stub_resolver):
    resolver = stub_resolver(RECORDS)
    await resolver.resolve_all(["www.example.com", "api.example.com"])
    assert resolver.resolver.queries == [
        ("www.example.com", "A"), ("www.example.com", "AAAA"),
        ("api.example.com", "A"), ("api.example.com", "AAAA"),
    ]


@pytest.mark.asyncio
async def test_fallback_lookup_when_records_are_empty(fake_dns):
    resolver = Resolver(resolver=fake_dns({}))
    assert await resolver.resolve("localhost") == ["127.0.0.1"]


@pytest.mark.asyncio
async def test_fallback_failure_gives_empty(fake_dns):
    resolver = Resolver(resolver=fake_dns({}))
    assert await resolver.resolve("no-such-host.invalid") == []
