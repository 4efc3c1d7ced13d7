# -*- coding: utf-8 -*-

"""
Scan runners for the two modes.

subdomain  root domain + wordlist (+ permutations) -> DNS -> probe, live hits only
zero-rate  host list or domains + wordlist -> optional DNS -> probe, fingerprint notes
"""

import os
from contextlib import ExitStack
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from hostsweep.config import ScanConfig, parse_list
from hostsweep.dns import Resolver
from hostsweep.errors import ConfigError
from hostsweep.output import (SUBDOMAIN_COLUMNS, ZERO_RATE_COLUMNS, FailLogger, ResultWriter, default_output_path,
                              prepare_output_path)
from hostsweep.probe import FailureRecord, ProbeCounters, ProbeOptions, ProbeResult, Prober
from hostsweep.resume import filter_targets, load_resume_keys
from hostsweep.targets import (Target, build_subdomain_candidates, build_targets, dedupe, is_valid_domain,
                               normalize_domain, normalize_host, read_wordlist, with_permutations)
from hostsweep import ui


@dataclass
class ScanReport:
    mode: str
    hosts: int
    resolved: int
    targets: int
    resumed: int
    output_path: str
    fail_log: str
    counters: ProbeCounters
    written: int = 0
    fail_logged: int = 0


# ------------------------------ Target building ---------------------------------

def subdomain_hosts(config: ScanConfig) -> Tuple[str, List[str]]:
    domain = normalize_domain(config.domain)
    if not is_valid_domain(domain):
        raise ConfigError(f"Invalid domain: {config.domain!r}")
    words = read_wordlist(config.wordlist)
    if not words:
        raise ConfigError(f"Wordlist empty or not found: {config.wordlist}")
    if config.permutations:
        words = with_permutations(words)
    hosts = build_subdomain_candidates(domain, words)
    if not hosts:
        raise ConfigError("No subdomains generated.")
    return domain, hosts


def zero_rate_hosts(config: ScanConfig) -> List[str]:
    hosts: List[str] = []
    if config.hosts_file:
        hosts = read_wordlist(config.hosts_file)
    elif config.domain or config.domains_file:
        if config.domains_file and os.path.isfile(config.domains_file):
            domains = read_wordlist(config.domains_file)
        else:
            domains = parse_list(config.domain)
        domains = [d for d in (normalize_domain(d) for d in domains) if is_valid_domain(d)]
        words = read_wordlist(config.wordlist)
        for domain in domains:
            hosts.extend(build_subdomain_candidates(domain, words))
    hosts = dedupe(normalize_host(h) for h in hosts if normalize_host(h))
    if not hosts:
        raise ConfigError("No hosts to scan. Provide --hosts or --domain/--domains with --wordlist.")
    return hosts


def probe_options(config: ScanConfig) -> ProbeOptions:
    if config.mode == "subdomain":
        return ProbeOptions(
            concurrency=config.concurrency,
            method="GET",
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            capture_body=True,
            live_codes=config.live_codes,
            count_live_mode=config.count_live_mode,
        )
    return ProbeOptions(
        concurrency=config.concurrency,
        method=config.method,
        timeout=config.timeout,
        connect_timeout=config.connect_timeout,
        post_data=config.post_data,
        capture_body=bool(config.body_patterns) or config.method == "GET",
        header_patterns=config.header_patterns,
        body_patterns=config.body_patterns,
        body_pattern_mode=config.body_pattern_mode,
        live_codes=config.live_codes,
        count_live_mode=config.count_live_mode,
    )


# --------------------------------- Runner --------------------------------------

class ScanRunner:
    def __init__(self, config: ScanConfig, resolver: Optional[Resolver] = None):
        self.config = config
        self._resolver = resolver

    @property
    def resolver(self) -> Resolver:
        if self._resolver is None:
            self._resolver = Resolver(nameservers=self.config.nameservers or None)
        return self._resolver

    async def run(self) -> ScanReport:
        if self.config.mode == "subdomain":
            return await self.run_subdomain()
        if self.config.mode == "zero-rate":
            return await self.run_zero_rate()
        raise ConfigError(f"Unknown mode: {self.config.mode!r}")

    async def run_subdomain(self) -> ScanReport:
        cfg = self.config
        domain, hosts = subdomain_hosts(cfg)
        if cfg.show_warning:
            ui.print_safety_warning("Subdomain Scan Mode")
        ui.info(f"Generated {len(hosts)} subdomain candidates. Resolving DNS...")
        output = cfg.output or default_output_path("subdomains", domain, cfg.output_format)

        with ExitStack() as stack:
            fail_logger = stack.enter_context(FailLogger(cfg.fail_log)) if cfg.fail_log else None
            ip_map = await self._resolve(hosts, fail_logger)
            if not ip_map:
                raise ConfigError("No subdomains resolved.")
            targets = build_targets(list(ip_map), cfg.protocols, ip_map)
            return await self._probe(stack, targets, SUBDOMAIN_COLUMNS, output, fail_logger,
                                     hosts=len(hosts), resolved=len(ip_map))

    async def run_zero_rate(self) -> ScanReport:
        cfg = self.config
        hosts = zero_rate_hosts(cfg)
        if cfg.show_warning:
            ui.print_safety_warning("Zero Rate Host Scan Mode")
        output = cfg.output or default_output_path("zero_rate", "hosts", cfg.output_format)

        with ExitStack() as stack:
            fail_logger = stack.enter_context(FailLogger(cfg.fail_log)) if cfg.fail_log else None
            ip_map = {}
            probe_hosts = hosts
            if cfg.dns:
                ui.info(f"DNS pre-check enabled. Resolving {len(hosts)} hosts...")
                ip_map = await self._resolve(hosts, fail_logger)
                probe_hosts = list(ip_map)
                if not probe_hosts:
                    raise ConfigError("No hosts resolved.")
            targets = build_targets(probe_hosts, cfg.protocols, ip_map)
            return await self._probe(stack, targets, ZERO_RATE_COLUMNS, output, fail_logger,
                                     hosts=len(hosts), resolved=len(ip_map) if cfg.dns else len(hosts))

    async def _resolve(self, hosts: Sequence[str], fail_logger: Optional[FailLogger]):
        def unresolved(host: str) -> None:
            fail_logger.log(FailureRecord(host=host, protocol="dns", port="", error="DNS_NO_RECORD",
                                          status_code="").as_row())

        with ui.ProgressReporter("[cyan]Resolving DNS...", ok_label="Resolved", fail_label="Unresolved",
                                 enabled=self.config.show_progress, every=25) as progress:
            return await self.resolver.resolve_all(hosts, progress, unresolved if fail_logger else None)

    async def _probe(self, stack: ExitStack, targets: List[Target], columns: Sequence[str], output: str,
                     fail_logger: Optional[FailLogger], hosts: int, resolved: int) -> ScanReport:
        cfg = self.config
        planned = len(targets)
        if cfg.resume:
            targets = filter_targets(targets, load_resume_keys(cfg.resume, cfg.output_format))
        if not targets:
            raise ConfigError("Nothing left to scan (resume file already contains these targets).")

        path, append = prepare_output_path(output, cfg.output_format, cfg.append)
        writer = stack.enter_context(ResultWriter(path, cfg.output_format, columns, append))
        only_live = cfg.mode == "subdomain" and bool(cfg.live_codes)

        def on_result(result: ProbeResult) -> None:
            if only_live and not result.is_live:
                return
            writer.write(result.as_row())
            if cfg.show_each:
                extra = result.server if cfg.mode == "subdomain" else f"{result.response_time_ms}ms"
                ui.print_hit(result.host, result.protocol, result.status_code, extra)

        def on_fail(record: FailureRecord) -> None:
            if fail_logger:
                fail_logger.log(record.as_row())

        ui.info(f"Probing {len(targets)} targets with {cfg.concurrency} concurrent requests...")
        with ui.ProgressReporter("[green]HTTP probing...", enabled=cfg.show_progress) as progress:
            counters = await Prober(probe_options(cfg)).probe(targets, on_result, on_fail, progress)

        return ScanReport(
            mode=cfg.mode,
            hosts=hosts,
            resolved=resolved,
            targets=len(targets),
            resumed=planned - len(targets),
            output_path=path,
            fail_log=cfg.fail_log,
            counters=counters,
            written=writer.count,
            fail_logged=fail_logger.count if fail_logger else 0,
        )
