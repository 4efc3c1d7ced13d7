# -*- coding: utf-8 -*-

"""
Resume support: read keys back out of a previous result file and drop
targets that were already probed.
"""

import csv
import json
import os
from typing import Iterable, Iterator, List, Mapping, Optional, Sequence, Set

from hostsweep.targets import Target, make_key

KEY_FIELDS = ("host", "protocol", "port")


def infer_format(path: str, fallback: str) -> str:
    ext = os.path.splitext(path)[1].lower().lstrip(".")
    return ext if ext in ("csv", "json", "txt") else fallback.lower()


def _key_from(row: Mapping[str, object]) -> Optional[str]:
    host = str(row.get("host") or "").strip()
    if not host:
        return None
    return make_key(host, row.get("protocol") or "", row.get("port") if row.get("port") is not None else "")


def _csv_keys(path: str) -> Set[str]:
    keys: Set[str] = set()
    with open(path, "r", newline="", encoding="utf-8", errors="ignore") as f:
        try:
            for row in csv.DictReader(f):
                key = _key_from(row)
                if key:
                    keys.add(key)
        except csv.Error:
            # keep what was read before the damaged part
            pass
    return keys


def _json_rows(text: str) -> Iterator[object]:
    """
    Decode array elements one at a time, so a file cut off before its
    closing ']' still yields every complete row.
    """
    decoder = json.JSONDecoder()
    if not text.lstrip().startswith("["):
        return
    pos = text.index("[") + 1
    end = len(text)
    while pos < end:
        while pos < end and text[pos] in " \t\r\n,":
            pos += 1
        if pos >= end or text[pos] == "]":
            return
        try:
            row, pos = decoder.raw_decode(text, pos)
        except ValueError:
            return
        yield row


def _json_keys(path: str) -> Set[str]:
    keys: Set[str] = set()
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        text = f.read()
    for row in _json_rows(text):
        if not isinstance(row, dict):
            continue
        key = _key_from(row)
        if key:
            keys.add(key)
    return keys


def _txt_keys(path: str) -> Set[str]:
    keys: Set[str] = set()
    columns: Sequence[str] = KEY_FIELDS
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        for line in f:
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            if line.startswith("#"):
                header = [c.strip() for c in line.lstrip("#").split("\t")]
                if "host" in header:
                    columns = header
                continue
            parts = line.split("\t")
            key = _key_from(dict(zip(columns, parts)))
            if key:
                keys.add(key)
    return keys


def load_resume_keys(path: str, fmt: str = "csv") -> Set[str]:
    """
    Keys ('host|protocol|port', lower-cased) found in a previous result file.
    Missing files and unreadable rows are skipped rather than treated as errors.
    """
    if not path or not os.path.isfile(path):
        return set()
    readers = {"csv": _csv_keys, "json": _json_keys, "txt": _txt_keys}
    reader = readers.get(infer_format(path, fmt))
    if reader is None:
        return set()
    try:
        return reader(path)
    except OSError:
        return set()


def filter_targets(targets: Iterable[Target], keys: Set[str]) -> List[Target]:
    if not keys:
        return list(targets)
    return [t for t in targets if t.key not in keys]
