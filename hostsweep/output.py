# -*- coding: utf-8 -*-

"""
Streaming result writers (csv / txt / json) and the failure log.
"""

import csv
import json
import os
import re
from datetime import datetime
from typing import IO, Any, List, Mapping, Optional, Sequence, Tuple

from hostsweep.errors import OutputError

SUBDOMAIN_COLUMNS = [
    "host", "ip", "protocol", "port", "status_code", "response_time_ms", "server", "title", "redirect_url",
]
ZERO_RATE_COLUMNS = [
    "host", "protocol", "port", "status_code", "response_time_ms", "content_length", "server", "title",
    "redirect_url", "notes",
]
FAIL_COLUMNS = ["timestamp", "host", "protocol", "port", "error", "status_code"]


def now_local() -> str:
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


# ------------------------------- Paths ----------------------------------------

def default_output_path(prefix: str, name: str, fmt: str, when: Optional[datetime] = None) -> str:
    safe = re.sub(r"[^a-zA-Z0-9._-]+", "_", name)
    stamp = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return os.path.join("results", f"{prefix}_{safe}_{stamp}.{fmt}")


def ensure_directory(path: str) -> None:
    directory = os.path.dirname(path)
    if directory and directory != ".":
        os.makedirs(directory, exist_ok=True)


def prepare_output_path(path: str, fmt: str, append: bool) -> Tuple[str, bool]:
    """
    JSON arrays cannot be appended to in place: an existing JSON target is
    redirected to '<name>_new.json' and written fresh.
    """
    if fmt.lower() == "json" and append and os.path.exists(path):
        stem = re.sub(r"\.json$", "", path, flags=re.I)
        return f"{stem}_new.json", False
    return path, append


def _open(path: str, mode: str, what: str) -> IO[str]:
    try:
        ensure_directory(path)
        return open(path, mode, newline="", encoding="utf-8")
    except OSError as e:
        raise OutputError(f"Could not open {what}: {path} ({e.strerror or e})") from e


# ------------------------------- Output ----------------------------------------

class ResultWriter:
    """
    Append-only record sink. Rows are projected onto `columns`, so the column
    order on disk never depends on the order of keys in a row. JSON output is
    always written fresh; pass the path through prepare_output_path first.
    """

    def __init__(self, path: str, fmt: str, columns: Sequence[str], append: bool = False):
        self.path = path
        self.format = fmt.lower()
        if self.format not in ("csv", "json", "txt"):
            raise OutputError(f"Unsupported output format: {fmt}")
        self.columns: List[str] = list(columns)
        self.count = 0
        fresh = not append or not os.path.exists(path) or os.path.getsize(path) == 0
        self._fh = _open(path, "a" if append and self.format != "json" else "w", "output file")
        self._csv = csv.writer(self._fh) if self.format == "csv" else None
        self._first = True
        self._closed = False
        if self.format == "json":
            self._fh.write("[")
        elif fresh:
            self._write_header()

    def _write_header(self) -> None:
        if self._csv is not None:
            self._csv.writerow(self.columns)
        else:
            self._fh.write("# " + "\t".join(self.columns) + "\n")

    def _project(self, row: Mapping[str, Any]) -> List[Any]:
        return [row.get(c, "") for c in self.columns]

    def write(self, row: Mapping[str, Any]) -> None:
        if self.format == "csv":
            self._csv.writerow(self._project(row))
        elif self.format == "txt":
            cells = [str(v).replace("\t", " ").replace("\r", " ").replace("\n", " ") for v in self._project(row)]
            self._fh.write("\t".join(cells) + "\n")
        else:
            obj = {c: row.get(c, "") for c in self.columns}
            if not self._first:
                self._fh.write(",")
            self._fh.write(json.dumps(obj, ensure_ascii=False))
            self._first = False
        self._fh.flush()
        self.count += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self.format == "json":
                self._fh.write("]")
        finally:
            self._fh.close()

    def __enter__(self) -> "ResultWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FailLogger:
    def __init__(self, path: str):
        self.path = path
        self.count = 0
        is_new = not os.path.exists(path)
        self._fh = _open(path, "a", "fail log")
        self._csv = csv.writer(self._fh)
        if is_new:
            self._csv.writerow(FAIL_COLUMNS)
            self._fh.flush()

    def log(self, row: Mapping[str, Any]) -> None:
        self._csv.writerow([
            row.get("timestamp") or now_local(),
            row.get("host", ""),
            row.get("protocol", ""),
            row.get("port", ""),
            row.get("error", ""),
            row.get("status_code", ""),
        ])
        self._fh.flush()
        self.count += 1

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def __enter__(self) -> "FailLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
