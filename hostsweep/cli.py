#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
hostsweep command line.

Usage examples:
  hostsweep --mode=subdomain --domain=example.com --wordlist=words.txt
  hostsweep --mode=zero-rate --hosts=hosts.txt --fingerprints=default --body-pattern-mode=upgrade
  hostsweep --mode=zero-rate --domain=example.com,example.org --dns=0 --format=json
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.prompt import Confirm, IntPrompt, Prompt

from hostsweep.config import (DEFAULT_WORDLIST, FINGERPRINT_BODY, FINGERPRINT_HEADERS, ScanConfig,
                              config_from_args, resolve_mode, to_bool)
from hostsweep.errors import HostsweepError
from hostsweep.output import default_output_path
from hostsweep.scan import ScanReport, ScanRunner
from hostsweep.targets import normalize_domain
from hostsweep import ui

EPILOG = "Safety: This tool is for educational and authorized testing only."


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostsweep",
        description="hostsweep (async) – Subdomain & Zero-Rate Host Sweeps",
        epilog=EPILOG,
    )
    parser.add_argument("--mode", help="Scan mode {subdomain | zero-rate}")
    parser.add_argument("--subdomain", action="store_true", help="Shorthand for --mode=subdomain")
    parser.add_argument("--zero-rate", dest="zero_rate", action="store_true", help="Shorthand for --mode=zero-rate")

    common = parser.add_argument_group("common options")
    common.add_argument("--protocols", help="Protocols to scan: http, https, both or a comma list (default: both)")
    common.add_argument("--threads", type=int, help="Concurrent requests (default: 50 subdomain, 100 zero-rate)")
    common.add_argument("--timeout", type=float, help="Request timeout in seconds (default: 8)")
    common.add_argument("--connect-timeout", dest="connect_timeout", type=float,
                        help="Connect timeout in seconds (default: 5)")
    common.add_argument("--output", help="Output file path (default: results/<mode>_<name>_<time>.<format>)")
    common.add_argument("--format", help="Output format {csv | json | txt} (default: csv)")
    common.add_argument("--append", nargs="?", const="1", help="Append to an existing csv/txt output file")
    common.add_argument("--resume", help="Resume using a previous results file")
    common.add_argument("--fail-log", dest="fail_log", help="Log failed requests to this csv file")
    common.add_argument("--nameservers", help="Comma separated DNS servers for the pre-check")
    common.add_argument("--show-progress", dest="show_progress", help="Show progress bars 1|0 (default: 1)")
    common.add_argument("--show-each", dest="show_each", help="Print every result 1|0 (default: 0)")
    common.add_argument("--show-warning", dest="show_warning", help="Print the safety warning 1|0 (default: 1)")
    common.add_argument("--interactive", nargs="?", const="1", help="Prompt for options not given on the command line")

    sub = parser.add_argument_group("subdomain scan options")
    sub.add_argument("--domain", help="Root domain (zero-rate: comma separated list allowed)")
    sub.add_argument("--wordlist", help="Subdomain wordlist file (default: built-in list)")
    sub.add_argument("--permutations", help="Add common subdomain variations 1|0 (default: 1)")
    sub.add_argument("--live-codes", dest="live_codes", help="Override live HTTP status codes, e.g. 200,301")

    zr = parser.add_argument_group("zero-rate scan options")
    zr.add_argument("--hosts", dest="hosts_file", help="Hostnames list (one per line)")
    zr.add_argument("--domains", dest="domains_file", help="Root domain list file (used with --wordlist)")
    zr.add_argument("--method", help="HTTP method {GET | HEAD | POST} (default: HEAD)")
    zr.add_argument("--post-data", dest="post_data", help="POST body (when method=POST)")
    zr.add_argument("--dns", help="DNS pre-check 1|0 (default: 1)")
    zr.add_argument("--fingerprints", help="'default' enables built-in header/body patterns")
    zr.add_argument("--header-patterns", dest="header_patterns", help="Custom header patterns (comma separated)")
    zr.add_argument("--body-patterns", dest="body_patterns", help="Custom body patterns (comma separated)")
    zr.add_argument("--body-pattern-mode", dest="body_pattern_mode",
                    help="If method=HEAD: skip body patterns or upgrade to GET {skip | upgrade}")
    return parser


# ------------------------------ Interactive --------------------------------------

def _ask_protocols(args: argparse.Namespace) -> None:
    if args.protocols is None:
        choice = Prompt.ask("Protocols: 1) HTTP 2) HTTPS 3) BOTH", choices=["1", "2", "3"], default="3")
        args.protocols = {"1": "http", "2": "https"}.get(choice, "both")


def prompt_subdomain(args: argparse.Namespace) -> None:
    if not args.domain:
        args.domain = Prompt.ask("Enter root domain (e.g., example.com)")
    _ask_protocols(args)
    if args.wordlist is None and not Confirm.ask("Use default subdomain wordlist?", default=True):
        args.wordlist = Prompt.ask("Enter custom wordlist path", default=DEFAULT_WORDLIST)
    if args.permutations is None:
        args.permutations = Confirm.ask("Add common subdomain permutations?", default=True)
    if args.threads is None:
        args.threads = IntPrompt.ask("Threads (10, 25, 50, 100, 200 or custom)", default=50)
    if args.format is None:
        args.format = Prompt.ask("Output format", choices=["csv", "json", "txt"], default="csv")
    name = normalize_domain(args.domain or "")
    if args.output is None:
        args.output = Prompt.ask("Output file path", default=default_output_path("subdomains", name, args.format))
    if args.resume is None and Confirm.ask("Resume from previous results file?", default=False):
        args.resume = Prompt.ask("Resume file path")
    if args.fail_log is None and Confirm.ask("Log failed requests to a file?", default=False):
        args.fail_log = Prompt.ask("Fail log path", default=default_output_path("subdomains_failures", name, "csv"))


def prompt_zero_rate(args: argparse.Namespace) -> None:
    if not (args.hosts_file or args.domain or args.domains_file):
        choice = Prompt.ask("Input: 1) Host list file 2) Root domain(s) + wordlist", choices=["1", "2"], default="1")
        if choice == "1":
            args.hosts_file = Prompt.ask("Host list file path")
        else:
            args.domain = Prompt.ask("Root domain(s) (comma separated)")
            if args.wordlist is None:
                args.wordlist = Prompt.ask("Wordlist path", default=DEFAULT_WORDLIST)
    if args.dns is None:
        args.dns = Confirm.ask("DNS pre-check (recommended)", default=True)
    _ask_protocols(args)
    if args.method is None:
        args.method = Prompt.ask("Method", choices=["GET", "HEAD", "POST"], default="HEAD")
    if str(args.method).upper() == "POST" and args.post_data is None:
        args.post_data = Prompt.ask("POST body (can be empty)", default="")
    if args.threads is None:
        args.threads = IntPrompt.ask("Threads (10, 25, 50, 100, 200 or custom)", default=100)
    if not (args.fingerprints or args.header_patterns or args.body_patterns):
        if Confirm.ask("Enable zero-rate fingerprint checks?", default=False):
            args.header_patterns = ",".join(FINGERPRINT_HEADERS)
            args.body_patterns = ",".join(FINGERPRINT_BODY)
    wants_body = args.body_patterns or str(args.fingerprints or "").lower() == "default"
    if str(args.method).upper() == "HEAD" and wants_body and args.body_pattern_mode is None:
        upgrade = Confirm.ask("Body checks need GET. Upgrade to GET?", default=False)
        args.body_pattern_mode = "upgrade" if upgrade else "skip"
    if args.format is None:
        args.format = Prompt.ask("Output format", choices=["csv", "json", "txt"], default="csv")
    if args.output is None:
        args.output = Prompt.ask("Output file path", default=default_output_path("zero_rate", "hosts", args.format))
    if args.resume is None and Confirm.ask("Resume from previous results file?", default=False):
        args.resume = Prompt.ask("Resume file path")
    if args.fail_log is None and Confirm.ask("Log failed requests to a file?", default=True):
        args.fail_log = Prompt.ask("Fail log path", default=default_output_path("zero_rate_failures", "hosts", "csv"))


# --------------------------------- Main ------------------------------------------

def report(config: ScanConfig, result: ScanReport) -> None:
    label = "Subdomain scan" if config.mode == "subdomain" else "Zero-rate scan"
    c = result.counters
    ui.print_summary(label, c.total, c.processed, c.live, c.failed, result.written, result.output_path,
                     result.fail_log, result.fail_logged)
    if result.resumed:
        ui.info(f"Skipped {result.resumed} targets already present in {config.resume}")
    ui.console.print(f"[green]✓[/] {label} complete. Results: [cyan]{result.output_path}[/]")


async def run(config: ScanConfig) -> ScanReport:
    return await ScanRunner(config).run()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    mode = resolve_mode(args)
    if mode is None:
        parser.print_help()
        return 2
    if to_bool(args.interactive, False):
        if mode == "subdomain":
            prompt_subdomain(args)
        else:
            prompt_zero_rate(args)

    try:
        config = config_from_args(args)
        ui.print_banner("hostsweep", "Subdomain & Zero-Rate Host Sweeps")
        result = asyncio.run(run(config))
    except HostsweepError as e:
        ui.error(str(e))
        return 1
    except KeyboardInterrupt:
        ui.console.print("\n[yellow]Interrupted by user.[/]")
        return 130

    report(config, result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
