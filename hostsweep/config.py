# -*- coding: utf-8 -*-

"""
Scan configuration: defaults, option parsing helpers, and the frozen
ScanConfig record consumed by the scan pipeline.
"""

import argparse
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from hostsweep.errors import ConfigError

# ----------------------------- Config & Defaults ------------------------------

HTTP_TOTAL_TIMEOUT = 8.0
CONNECT_TIMEOUT = 5.0
MAX_BODY_SIZE = 20000
USER_AGENT = "hostsweep/edu"

SUBDOMAIN_THREADS = 50
ZERO_RATE_THREADS = 100

DEFAULT_WORDLIST = os.path.join(os.path.dirname(os.path.abspath(__file__)), "wordlists", "subdomains.txt")
DEFAULT_LIVE_CODES = (200, 204, 301, 302, 303, 307, 308, 401, 403)

FORMATS = ("csv", "json", "txt")
METHODS = ("GET", "HEAD", "POST")
PROTOCOLS = ("http", "https")
BODY_PATTERN_MODES = ("skip", "upgrade")

FINGERPRINT_HEADERS = ("x-zero-rated", "x-freebasics", "x-captive-portal", "x-portal")
FINGERPRINT_BODY = ("free basics", "zero rated", "captive portal", "walled garden")

MODE_ALIASES = {
    "subdomain": "subdomain",
    "subdomains": "subdomain",
    "zero-rate": "zero-rate",
    "zerorate": "zero-rate",
    "zero_rate": "zero-rate",
}

_TRUE = ("1", "true", "yes", "y", "on")
_FALSE = ("0", "false", "no", "n", "off")


@dataclass(frozen=True)
class ScanConfig:
    mode: str
    concurrency: int
    method: str
    count_live_mode: str
    live_codes: Tuple[int, ...] = ()
    domain: str = ""
    domains_file: str = ""
    hosts_file: str = ""
    wordlist: str = DEFAULT_WORDLIST
    permutations: bool = True
    protocols: Tuple[str, ...] = PROTOCOLS
    timeout: float = HTTP_TOTAL_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT
    post_data: str = ""
    dns: bool = True
    nameservers: Tuple[str, ...] = ()
    output_format: str = "csv"
    output: str = ""
    append: bool = False
    resume: str = ""
    fail_log: str = ""
    header_patterns: Tuple[str, ...] = ()
    body_patterns: Tuple[str, ...] = ()
    body_pattern_mode: str = "skip"
    show_progress: bool = True
    show_each: bool = False
    show_warning: bool = True
    interactive: bool = False


def subdomain_defaults() -> ScanConfig:
    return ScanConfig(
        mode="subdomain",
        concurrency=SUBDOMAIN_THREADS,
        method="GET",
        count_live_mode="is_live",
        live_codes=DEFAULT_LIVE_CODES,
    )


def zero_rate_defaults() -> ScanConfig:
    return ScanConfig(
        mode="zero-rate",
        concurrency=ZERO_RATE_THREADS,
        method="HEAD",
        count_live_mode="responsive",
    )


# --------------------------------- Parsing -------------------------------------

def to_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    value = str(value).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def parse_list(value: Any) -> List[str]:
    """Comma separated string (or iterable) -> trimmed, non-empty, unique items."""
    if value is None or value == "":
        return []
    items = value if isinstance(value, (list, tuple)) else str(value).split(",")
    out: List[str] = []
    for item in items:
        item = str(item).strip()
        if item and item not in out:
            out.append(item)
    return out


def parse_protocols(value: Any, default: Iterable[str] = PROTOCOLS) -> Tuple[str, ...]:
    if value is None or value == "":
        return tuple(default)
    if isinstance(value, str) and value.strip().lower() == "both":
        return PROTOCOLS
    out = []
    for proto in parse_list(value):
        proto = proto.lower()
        if proto in PROTOCOLS and proto not in out:
            out.append(proto)
    return tuple(out) or tuple(default)


def parse_live_codes(value: Any) -> Tuple[int, ...]:
    codes = []
    for item in parse_list(value):
        try:
            codes.append(int(item))
        except ValueError:
            continue
    return tuple(codes)


def normalize_mode(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return MODE_ALIASES.get(str(value).strip().lower())


def resolve_mode(args: argparse.Namespace) -> Optional[str]:
    mode = normalize_mode(getattr(args, "mode", None))
    if mode:
        return mode
    if getattr(args, "subdomain", False):
        return "subdomain"
    if getattr(args, "zero_rate", False):
        return "zero-rate"
    return None


# ------------------------------ Config building ---------------------------------

def config_from_args(args: argparse.Namespace) -> ScanConfig:
    """
    Turn parsed CLI options into a ScanConfig. Options left at None keep the
    mode's defaults. Pure: touches neither the filesystem nor the network.
    """
    mode = resolve_mode(args)
    if mode is None:
        raise ConfigError(f"Unknown mode: {getattr(args, 'mode', None)!r}")
    base = subdomain_defaults() if mode == "subdomain" else zero_rate_defaults()
    o: Dict[str, Any] = {}

    def given(name: str) -> bool:
        return getattr(args, name, None) is not None

    for name in ("domain", "domains_file", "hosts_file", "wordlist", "output", "resume", "fail_log", "post_data"):
        if given(name):
            o[name] = str(getattr(args, name))

    if given("protocols"):
        o["protocols"] = parse_protocols(args.protocols, base.protocols)
    if given("threads"):
        o["concurrency"] = max(1, int(args.threads))
    if given("timeout"):
        o["timeout"] = max(1.0, float(args.timeout))
    if given("connect_timeout"):
        o["connect_timeout"] = max(1.0, float(args.connect_timeout))
    if given("permutations"):
        o["permutations"] = to_bool(args.permutations, True)
    if given("dns"):
        o["dns"] = to_bool(args.dns, True)
    if given("append"):
        o["append"] = to_bool(args.append, False)
    if given("nameservers"):
        o["nameservers"] = tuple(parse_list(args.nameservers))

    if given("format"):
        fmt = str(args.format).strip().lower()
        if fmt not in FORMATS:
            raise ConfigError(f"Unsupported output format: {args.format} (use csv, json or txt)")
        o["output_format"] = fmt

    if given("method"):
        method = str(args.method).strip().upper()
        if method not in METHODS:
            raise ConfigError(f"Unsupported method: {args.method} (use GET, HEAD or POST)")
        o["method"] = method

    if given("live_codes"):
        codes = parse_live_codes(args.live_codes)
        if codes:
            o["live_codes"] = codes

    if given("fingerprints") and str(args.fingerprints).strip().lower() == "default":
        o["header_patterns"] = FINGERPRINT_HEADERS
        o["body_patterns"] = FINGERPRINT_BODY
    if given("header_patterns"):
        o["header_patterns"] = tuple(parse_list(args.header_patterns))
    if given("body_patterns"):
        o["body_patterns"] = tuple(parse_list(args.body_patterns))

    if given("body_pattern_mode"):
        bpm = str(args.body_pattern_mode).strip().lower()
        if bpm not in BODY_PATTERN_MODES:
            raise ConfigError(f"Unsupported body pattern mode: {args.body_pattern_mode} (use skip or upgrade)")
        o["body_pattern_mode"] = bpm

    for name in ("show_progress", "show_each", "show_warning", "interactive"):
        if given(name):
            o[name] = to_bool(getattr(args, name), getattr(base, name))

    return replace(base, **o)
