"""Pytest configuration and shared fixtures for hostsweep."""
import asyncio
import socket

import aiodns
import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from hostsweep.dns import Resolver
from hostsweep.targets import Target


def make_app(state):
    async def index(request):
        return web.Response(
            text="<html><head><TITLE>\n Hello &amp; Welcome </TITLE></head>"
                 "<body>This network is a Walled Garden.</body></html>",
            content_type="text/html",
            headers={"Server": "test-server", "X-Portal": "yes"},
        )

    async def redirect(request):
        return web.Response(status=302, headers={"Location": "http://captive.example.net/login"})

    async def missing(request):
        return web.Response(status=404, text="not here")

    async def plain(request):
        return web.Response(text="<title>not html</title>", content_type="text/plain")

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text="late")

    async def track(request):
        state["active"] += 1
        state["max_active"] = max(state["max_active"], state["active"])
        try:
            await asyncio.sleep(0.1)
        finally:
            state["active"] -= 1
        return web.Response(text="ok")

    async def echo(request):
        state["methods"].append(request.method)
        state["bodies"].append(await request.text())
        state["ranges"].append(request.headers.get("Range", ""))
        return web.Response(text="echo")

    app = web.Application()
    app.router.add_get("/", index)
    app.router.add_get("/redirect", redirect)
    app.router.add_get("/missing", missing)
    app.router.add_get("/plain", plain)
    app.router.add_get("/slow", slow)
    app.router.add_get("/track", track)
    app.router.add_route("*", "/echo", echo)
    return app


@pytest.fixture
def server_state():
    return {"active": 0, "max_active": 0, "methods": [], "bodies": [], "ranges": []}


@pytest_asyncio.fixture
async def http_server(server_state):
    server = test_utils.TestServer(make_app(server_state))
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def target_for():
    def build(server, path="/", host="127.0.0.1", protocol="http", ip=""):
        return Target(host=host, protocol=protocol, port=80 if protocol == "http" else 443,
                      url=str(server.make_url(path)), ip=ip)
    return build


@pytest.fixture
def closed_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeAnswer:
    def __init__(self, host):
        self.host = host


class FakeDNS:
    """Stands in for aiodns.DNSResolver; records maps (host, rtype) -> [addresses]."""

    def __init__(self, records):
        self.records = records
        self.queries = []

    async def query(self, host, rtype):
        self.queries.append((host, rtype))
        if (host, rtype) in self.records:
            return [FakeAnswer(ip) for ip in self.records[(host, rtype)]]
        raise aiodns.error.DNSError(4, "Domain name not found")


class StubResolver(Resolver):
    """Resolver over FakeDNS with the system fallback switched off."""

    def __init__(self, records):
        super().__init__(resolver=FakeDNS(records))

    async def fallback(self, host):
        return []


@pytest.fixture
def fake_dns():
    return FakeDNS


@pytest.fixture
def stub_resolver():
    return StubResolver
