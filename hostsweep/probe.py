# -*- coding: utf-8 -*-

"""
Bounded-concurrency HTTP prober.

One control coroutine owns a FIFO queue of pending targets and a set of at
most `concurrency` in-flight exchanges. Completed exchanges are classified and
handed to exactly one of on_result / on_fail, always from the control
coroutine, so result sinks never see concurrent writes.
"""

import asyncio
import socket
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Callable, Deque, Dict, Iterable, Optional, Tuple

import aiohttp

from hostsweep.classify import (HeaderMap, build_notes, extract_title, is_live_status, last_header_block,
                                parse_headers)
from hostsweep.config import CONNECT_TIMEOUT, HTTP_TOTAL_TIMEOUT, MAX_BODY_SIZE, USER_AGENT
from hostsweep.output import now_local
from hostsweep.targets import Target

POLL_INTERVAL = 0.1
NO_RESPONSE = "NO_RESPONSE"


@dataclass
class ProbeOptions:
    concurrency: int = 50
    method: str = "GET"
    timeout: float = HTTP_TOTAL_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT
    user_agent: str = USER_AGENT
    post_data: str = ""
    capture_body: bool = False
    max_body_size: int = MAX_BODY_SIZE
    use_range: bool = False
    header_patterns: Tuple[str, ...] = ()
    body_patterns: Tuple[str, ...] = ()
    body_pattern_mode: str = "skip"
    live_codes: Tuple[int, ...] = ()
    count_live_mode: str = "responsive"

    def effective(self) -> "ProbeOptions":
        """HEAD cannot see bodies: with body patterns and mode 'upgrade' it becomes a capturing GET."""
        opts = ProbeOptions(**asdict(self))
        opts.concurrency = max(1, int(opts.concurrency))
        opts.method = opts.method.upper()
        opts.max_body_size = max(1024, int(opts.max_body_size))
        if opts.method == "HEAD" and opts.body_patterns and opts.body_pattern_mode.lower() == "upgrade":
            opts.method = "GET"
            opts.capture_body = True
        return opts


@dataclass
class ProbeResult:
    host: str
    protocol: str
    port: int
    ip: str
    status_code: int
    response_time_ms: int
    content_length: int
    server: str
    title: str
    redirect_url: str
    notes: str
    is_live: bool

    def as_row(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class FailureRecord:
    host: str
    protocol: str
    port: object
    error: str
    status_code: object = 0
    timestamp: str = field(default_factory=now_local)

    def as_row(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class ProbeCounters:
    total: int = 0
    processed: int = 0
    live: int = 0
    failed: int = 0


@dataclass
class Exchange:
    """Raw outcome of one HTTP transaction, before classification."""
    status: int = 0
    head: str = ""
    body: bytes = b""
    elapsed: float = 0.0
    peer_ip: str = ""
    error: str = ""


ResultCallback = Callable[[ProbeResult], None]
FailCallback = Callable[[FailureRecord], None]
ProgressCallback = Callable[[int, int, int, int], None]


# ------------------------------ Transport errors --------------------------------

def describe_error(exc: BaseException, target: Target) -> str:
    if isinstance(exc, (asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
        return "Operation timed out"
    if isinstance(exc, aiohttp.ClientSSLError):
        return f"SSL error: {exc}"
    if isinstance(exc, aiohttp.ClientConnectorError):
        os_error = getattr(exc, "os_error", None)
        if isinstance(os_error, socket.gaierror):
            return "Could not resolve host"
        reason = getattr(os_error, "strerror", None) or str(os_error or exc)
        return f"Failed to connect to {target.host} port {target.port}: {reason}"
    if isinstance(exc, aiohttp.ServerDisconnectedError):
        return "Empty reply from server"
    if isinstance(exc, (socket.gaierror, UnicodeError)):
        # idna rejects empty or over-long labels before any lookup happens
        return "Could not resolve host"
    return str(exc) or exc.__class__.__name__


def response_head(resp: aiohttp.ClientResponse) -> str:
    version = resp.version
    status_line = f"HTTP/{version.major}.{version.minor} {resp.status} {resp.reason or ''}".rstrip() \
        if version else f"HTTP {resp.status}"
    lines = [status_line]
    for name, value in resp.raw_headers:
        lines.append(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
    return "\r\n".join(lines) + "\r\n\r\n"


def _peer_ip(resp: aiohttp.ClientResponse) -> str:
    try:
        peer = resp.connection.transport.get_extra_info("peername")
        return peer[0] if peer else ""
    except AttributeError:
        return ""


# --------------------------------- Prober ---------------------------------------

class Prober:
    def __init__(self, options: Optional[ProbeOptions] = None):
        self.options = (options or ProbeOptions()).effective()

    def _session(self) -> aiohttp.ClientSession:
        opts = self.options
        timeout = aiohttp.ClientTimeout(total=opts.timeout, connect=opts.connect_timeout)
        connector = aiohttp.TCPConnector(
            ssl=False,
            limit=opts.concurrency,
            resolver=aiohttp.ThreadedResolver(),
        )
        return aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            headers={"User-Agent": opts.user_agent},
            auto_decompress=True,
        )

    async def exchange(self, session: aiohttp.ClientSession, target: Target) -> Exchange:
        opts = self.options
        headers = {}
        if opts.use_range and opts.capture_body and opts.method == "GET":
            headers["Range"] = f"bytes=0-{opts.max_body_size - 1}"
        data = opts.post_data.encode() if opts.method == "POST" and opts.post_data else None
        start = time.monotonic()
        try:
            async with session.request(opts.method, target.url, allow_redirects=False,
                                       headers=headers, data=data) as r:
                peer = _peer_ip(r)
                head = response_head(r)
                body = b"" if opts.method == "HEAD" else await r.read()
                return Exchange(status=r.status, head=head, body=body,
                                elapsed=time.monotonic() - start, peer_ip=peer)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            return Exchange(elapsed=time.monotonic() - start, error=describe_error(e, target))

    def classify(self, target: Target, ex: Exchange):
        """Turn an Exchange into either a ProbeResult or a FailureRecord."""
        opts = self.options
        if ex.error or ex.status == 0:
            return FailureRecord(
                host=target.host, protocol=target.protocol, port=target.port,
                error=ex.error or NO_RESPONSE, status_code=ex.status,
            )

        headers: HeaderMap = parse_headers(last_header_block(ex.head))
        redirect_url = headers.first("location")
        try:
            content_length = int(headers.first("content-length"))
        except ValueError:
            content_length = len(ex.body)

        title = ""
        if opts.capture_body and ex.body and "text/html" in headers.first("content-type").lower():
            title = extract_title(ex.body, opts.max_body_size)

        body_patterns = opts.body_patterns if opts.method != "HEAD" else ()
        return ProbeResult(
            host=target.host,
            protocol=target.protocol,
            port=target.port,
            ip=target.ip or ex.peer_ip,
            status_code=ex.status,
            response_time_ms=int(round(ex.elapsed * 1000)),
            content_length=content_length,
            server=headers.first("server"),
            title=title,
            redirect_url=redirect_url,
            notes=build_notes(headers, ex.body, redirect_url, opts.header_patterns, body_patterns),
            is_live=is_live_status(ex.status, opts.live_codes),
        )

    async def probe(self, targets: Iterable[Target], on_result: ResultCallback, on_fail: FailCallback,
                    on_progress: Optional[ProgressCallback] = None) -> ProbeCounters:
        opts = self.options
        queue: Deque[Target] = deque(targets)
        counters = ProbeCounters(total=len(queue))
        in_flight: Dict[asyncio.Task, Target] = {}

        async with self._session() as session:
            try:
                while queue or in_flight:
                    while len(in_flight) < opts.concurrency and queue:
                        target = queue.popleft()
                        in_flight[asyncio.ensure_future(self.exchange(session, target))] = target

                    done, _ = await asyncio.wait(in_flight, timeout=POLL_INTERVAL,
                                                 return_when=asyncio.FIRST_COMPLETED)
                    for task in done:
                        target = in_flight.pop(task)
                        self._dispatch(self.classify(target, task.result()), counters,
                                       on_result, on_fail, on_progress)
            finally:
                # only non-empty when a callback or an unexpected error broke the loop
                for task in in_flight:
                    task.cancel()
                if in_flight:
                    await asyncio.gather(*in_flight, return_exceptions=True)
        return counters

    def _dispatch(self, outcome, counters: ProbeCounters, on_result: ResultCallback, on_fail: FailCallback,
                  on_progress: Optional[ProgressCallback]) -> None:
        if isinstance(outcome, FailureRecord):
            counters.failed += 1
            on_fail(outcome)
        else:
            if self.options.count_live_mode != "is_live" or outcome.is_live:
                counters.live += 1
            on_result(outcome)
        counters.processed += 1
        if on_progress:
            on_progress(counters.processed, counters.total, counters.live, counters.failed)
