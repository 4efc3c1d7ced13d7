# -*- coding: utf-8 -*-


class HostsweepError(Exception):
    """Base class for errors that abort a scan run."""


class ConfigError(HostsweepError):
    """Bad or empty input: invalid domain, empty wordlist, nothing to scan."""


class OutputError(HostsweepError):
    """A result file or fail log could not be opened."""
