# -*- coding: utf-8 -*-

"""
Response classification: header parsing, titles, liveness and
fingerprint notes.
"""

import html
import re
from typing import Dict, Iterable, List, Optional, Sequence

TITLE_RX = re.compile(rb"<title[^>]*>(.*?)</title>", re.I | re.S)
HEADER_BLOCK_SPLIT_RX = re.compile(r"\r\n\r\n|\n\n|\r\r")
LINE_SPLIT_RX = re.compile(r"\r\n|\n|\r")


class HeaderMap:
    """Case-insensitive header multi-map: name -> ordered list of values."""

    def __init__(self) -> None:
        self._store: Dict[str, List[str]] = {}

    def add(self, name: str, value: str) -> None:
        name = name.strip().lower()
        if not name:
            return
        self._store.setdefault(name, []).append(value.strip())

    def get_all(self, name: str) -> List[str]:
        return list(self._store.get(name.lower(), []))

    def first(self, name: str, default: str = "") -> str:
        values = self._store.get(name.lower())
        return values[0] if values else default

    def items(self):
        return self._store.items()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def as_text(self) -> str:
        return "".join(f"{name}: {'; '.join(values)}\n" for name, values in self._store.items())


def last_header_block(raw: str) -> str:
    # Proxies and interim responses leave several blocks; the final one counts.
    blocks = [b for b in HEADER_BLOCK_SPLIT_RX.split(raw.strip()) if b.strip()]
    return blocks[-1] if blocks else raw


def parse_headers(raw: str) -> HeaderMap:
    headers = HeaderMap()
    for line in LINE_SPLIT_RX.split(raw.strip()):
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        headers.add(name, value)
    return headers


def extract_title(body: bytes, limit: int = 20000) -> str:
    if not body:
        return ""
    m = TITLE_RX.search(body[:limit])
    if not m:
        return ""
    return html.unescape(m.group(1).decode("utf-8", "ignore").strip())


def match_patterns(haystack: str, patterns: Iterable[str]) -> List[str]:
    haystack = haystack.lower()
    found = []
    for pattern in patterns:
        pattern = str(pattern).strip()
        if pattern and pattern.lower() in haystack:
            found.append(pattern)
    return found


def is_live_status(status: int, live_codes: Optional[Sequence[int]] = None) -> bool:
    if live_codes:
        return status in live_codes
    return 200 <= status < 400


def build_notes(headers: HeaderMap, body: bytes, redirect_url: str,
                header_patterns: Sequence[str] = (), body_patterns: Sequence[str] = ()) -> str:
    notes = []
    if header_patterns:
        hits = match_patterns(headers.as_text(), header_patterns)
        if hits:
            notes.append("header_matches=" + "|".join(hits))
    if body_patterns and body:
        hits = match_patterns(body.decode("utf-8", "ignore"), body_patterns)
        if hits:
            notes.append("body_matches=" + "|".join(hits))
    if redirect_url and "captive" in redirect_url.lower():
        notes.append("redirect_hint=captive_portal")
    return ";".join(notes)
