"""
Prober behaviour against a local aiohttp test server.
"""

import pytest

from hostsweep.probe import FailureRecord, ProbeOptions, ProbeResult, Prober
from hostsweep.targets import Target, build_targets


async def run(prober, targets):
    results, failures, progress = [], [], []
    counters = await prober.probe(targets, results.append, failures.append, lambda *a: progress.append(a))
    return results, failures, progress, counters


@pytest.mark.asyncio
async def test_get_result_fields(http_server, target_for):
    prober = Prober(ProbeOptions(method="GET", capture_body=True, header_patterns=("x-portal",),
                                 body_patterns=("walled garden",)))
    results, failures, _, _ = await run(prober, [target_for(http_server, "/", ip="10.1.1.1")])

    assert failures == []
    [r] = results
    assert isinstance(r, ProbeResult)
    assert r.status_code == 200
    assert r.server == "test-server"
    assert r.title == "Hello & Welcome"
    assert r.ip == "10.1.1.1"
    assert r.is_live
    assert r.content_length > 0
    assert r.response_time_ms >= 0
    assert r.notes == "header_matches=x-portal;body_matches=walled garden"


@pytest.mark.asyncio
async def test_peer_address_used_when_target_has_no_ip(http_server, target_for):
    results, _, _, _ = await run(Prober(ProbeOptions()), [target_for(http_server, "/")])
    assert results[0].ip in ("127.0.0.1", "")


@pytest.mark.asyncio
async def test_redirects_are_observed_not_followed(http_server, target_for):
    results, _, _, _ = await run(Prober(ProbeOptions(method="GET")), [target_for(http_server, "/redirect")])
    [r] = results
    assert r.status_code == 302
    assert r.redirect_url == "http://captive.example.net/login"
    assert r.notes == "redirect_hint=captive_portal"
    assert r.is_live


@pytest.mark.asyncio
async def test_title_needs_html_and_body_capture(http_server, target_for):
    results, _, _, _ = await run(Prober(ProbeOptions(capture_body=True)), [target_for(http_server, "/plain")])
    assert results[0].title == ""
    results, _, _, _ = await run(Prober(ProbeOptions(capture_body=False)), [target_for(http_server, "/")])
    assert results[0].title == ""


@pytest.mark.asyncio
async def test_live_codes_and_count_modes(http_server, target_for):
    targets = [target_for(http_server, p) for p in ("/", "/redirect", "/missing")]

    prober = Prober(ProbeOptions(live_codes=(200, 301), count_live_mode="is_live"))
    results, failures, _, counters = await run(prober, targets)
    live = {r.status_code: r.is_live for r in results}
    assert live == {200: True, 302: False, 404: False}
    assert failures == []
    assert counters.live == 1

    prober = Prober(ProbeOptions(count_live_mode="responsive"))
    results, _, _, counters = await run(prober, targets)
    assert {r.status_code: r.is_live for r in results} == {200: True, 302: True, 404: False}
    assert counters.live == 3


@pytest.mark.asyncio
async def test_head_upgrades_to_get_for_body_patterns(http_server, target_for, server_state):
    prober = Prober(ProbeOptions(method="HEAD", body_patterns=("walled garden",), body_pattern_mode="upgrade"))
    assert prober.options.method == "GET"
    assert prober.options.capture_body
    results, _, _, _ = await run(prober, [target_for(http_server, "/echo")])
    assert server_state["methods"] == ["GET"]

    results, _, _, _ = await run(prober, [target_for(http_server, "/")])
    assert results[0].notes == "body_matches=walled garden"


@pytest.mark.asyncio
async def test_head_skip_mode_does_not_match_body(http_server, target_for, server_state):
    prober = Prober(ProbeOptions(method="HEAD", body_patterns=("walled garden",), body_pattern_mode="skip"))
    assert prober.options.method == "HEAD"
    results, _, _, _ = await run(prober, [target_for(http_server, "/"), target_for(http_server, "/echo")])
    assert all("body_matches" not in r.notes for r in results)
    assert server_state["methods"] == ["HEAD"]


@pytest.mark.asyncio
async def test_post_sends_body(http_server, target_for, server_state):
    prober = Prober(ProbeOptions(method="POST", post_data="a=1&b=2"))
    results, _, _, _ = await run(prober, [target_for(http_server, "/echo")])
    assert results[0].status_code == 200
    assert server_state["methods"] == ["POST"]
    assert server_state["bodies"] == ["a=1&b=2"]


@pytest.mark.asyncio
async def test_unresolvable_host_goes_to_fail_path():
    target = Target(host="no-such-host.invalid", protocol="http", port=80, url="http://no-such-host.invalid/")
    results, failures, progress, counters = await run(Prober(ProbeOptions(timeout=30, connect_timeout=30)), [target])
    assert results == []
    [f] = failures
    assert isinstance(f, FailureRecord)
    assert f.error == "Could not resolve host"
    assert (f.host, f.protocol, f.port, f.status_code) == ("no-such-host.invalid", "http", 80, 0)
    assert f.timestamp
    assert progress == [(1, 1, 0, 1)]
    assert counters.failed == 1


@pytest.mark.asyncio
async def test_refused_connection_goes_to_fail_path(closed_port):
    url = f"http://127.0.0.1:{closed_port}/"
    target = Target(host="127.0.0.1", protocol="http", port=80, url=url)
    results, failures, _, _ = await run(Prober(ProbeOptions(timeout=5, connect_timeout=2)), [target])
    assert results == []
    assert failures[0].error.startswith("Failed to connect to 127.0.0.1 port 80")


@pytest.mark.asyncio
async def test_timeout_goes_to_fail_path(http_server, target_for):
    prober = Prober(ProbeOptions(timeout=0.5, connect_timeout=0.5))
    results, failures, _, _ = await run(prober, [target_for(http_server, "/slow")])
    assert results == []
    assert failures[0].error == "Operation timed out"


@pytest.mark.asyncio
async def test_every_target_gets_exactly_one_outcome(http_server, target_for, closed_port):
    targets = [target_for(http_server, p) for p in ("/", "/redirect", "/missing", "/plain")]
    targets.append(Target(host="127.0.0.1", protocol="http", port=80, url=f"http://127.0.0.1:{closed_port}/"))
    targets = targets * 3

    results, failures, progress, counters = await run(Prober(ProbeOptions(concurrency=4)), targets)

    assert len(results) + len(failures) == len(targets)
    assert len(failures) == 3
    assert counters.processed == counters.total == len(targets)
    assert [p[0] for p in progress] == list(range(1, len(targets) + 1))
    assert progress[-1] == (15, 15, counters.live, 3)


@pytest.mark.asyncio
async def test_in_flight_never_exceeds_concurrency(http_server, target_for, server_state):
    targets = [target_for(http_server, "/track") for _ in range(8)]
    results, failures, _, _ = await run(Prober(ProbeOptions(concurrency=2)), targets)
    assert len(results) == 8 and failures == []
    assert 1 <= server_state["max_active"] <= 2


@pytest.mark.asyncio
async def test_empty_target_list():
    results, failures, progress, counters = await run(Prober(), [])
    assert (results, failures, progress) == ([], [], [])
    assert counters.total == counters.processed == 0


@pytest.mark.asyncio
async def test_range_header_only_for_capturing_get(http_server, target_for, server_state):
    prober = Prober(ProbeOptions(method="GET", capture_body=True, use_range=True, max_body_size=4096))
    await run(prober, [target_for(http_server, "/echo")])
    prober = Prober(ProbeOptions(method="GET", capture_body=False, use_range=True))
    await run(prober, [target_for(http_server, "/echo")])
    assert server_state["ranges"] == ["bytes=0-4095", ""]


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_host", ["x" * 70 + ".example.com", "a..b.example.com"])
async def test_unencodable_host_is_a_failure_not_a_crash(http_server, target_for, bad_host):
    targets = build_targets([bad_host], ["http"]) + [target_for(http_server, "/")]
    results, failures, _, counters = await run(Prober(ProbeOptions(concurrency=1)), targets)
    assert len(results) + len(failures) == len(targets)
    assert [r.status_code for r in results] == [200]
    assert failures[0].host == bad_host
    assert failures[0].error == "Could not resolve host"
    assert counters.processed == 2
