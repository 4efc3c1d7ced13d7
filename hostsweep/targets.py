# -*- coding: utf-8 -*-

"""
Candidate hosts and probe targets.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

DEFAULT_SUBDOMAIN_WORDS = [
    "www", "www1", "www2", "admin", "administrator", "api", "apis", "app", "apps",
    "assets", "beta", "blog", "cdn", "chat", "cms", "cpanel", "db", "demo", "dev",
    "devops", "docs", "download", "downloads", "edge", "files", "forum", "ftp",
    "git", "gitlab", "github", "help", "images", "img", "imap", "internal",
    "intranet", "jenkins", "jira", "lab", "mail", "mail2", "media", "mobile",
    "monitor", "mx", "ns1", "ns2", "ns3", "ns4", "portal", "prod", "qa", "sso",
    "smtp", "stage", "staging", "static", "status", "store", "support", "test",
    "test1", "test2", "uat", "vpn", "web", "webmail", "wiki",
]

PORTS = {"http": 80, "https": 443}

LABEL_RX = re.compile(r"^[a-z0-9](?:[a-z0-9\-]{0,61}[a-z0-9])?$")


@dataclass(frozen=True)
class Target:
    host: str
    protocol: str
    port: int
    url: str
    ip: str = ""

    @property
    def key(self) -> str:
        return make_key(self.host, self.protocol, self.port)


# --------------------------------- Utilities ---------------------------------

def normalize_host(host: str) -> str:
    return host.strip().rstrip(".").lower()


def make_key(host: str, protocol: str, port) -> str:
    return f"{normalize_host(str(host))}|{str(protocol).strip().lower()}|{str(port).strip()}"


def normalize_domain(text: str) -> str:
    domain = text.strip()
    domain = re.sub(r"^https?://", "", domain, flags=re.I)
    domain = re.sub(r"/.*$", "", domain)
    return domain.strip().rstrip(".").lower()


def is_valid_domain(domain: str) -> bool:
    if not domain or "." not in domain or len(domain) > 253:
        return False
    return all(LABEL_RX.match(label) for label in domain.split("."))


def dedupe(items: Iterable[str]) -> List[str]:
    # dict keeps first-seen order
    return list(dict.fromkeys(items))


# ------------------------------ Wordlists --------------------------------------

def read_wordlist(path: str) -> List[str]:
    """
    Read a wordlist or host list: one entry per line, '#' and ';' start
    comments. Entries are lower-cased and dot-trimmed. A missing or unreadable
    file gives an empty list.
    """
    words: List[str] = []
    try:
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or line.startswith(";"):
                    continue
                line = line.lower().strip(".")
                if line:
                    words.append(line)
    except OSError:
        return []
    return dedupe(words)


def with_permutations(words: Iterable[str]) -> List[str]:
    return dedupe(list(words) + DEFAULT_SUBDOMAIN_WORDS)


# ------------------------------ Candidates --------------------------------------

def build_subdomain_candidates(domain: str, words: Iterable[str]) -> List[str]:
    hosts: List[str] = []
    for word in words:
        word = str(word).strip()
        if word in ("", "@", "*"):
            continue
        word = word.strip(".").lower()
        if not word:
            continue
        if "." in word and (word == domain or word.endswith("." + domain)):
            host = word
        else:
            host = f"{word}.{domain}"
        hosts.append(normalize_host(host))
    return dedupe(hosts)


def build_targets(hosts: Iterable[str], protocols: Iterable[str],
                  ip_map: Optional[Dict[str, str]] = None) -> List[Target]:
    ip_map = ip_map or {}
    protocols = [p.lower() for p in protocols]
    targets: List[Target] = []
    for host in hosts:
        host = normalize_host(host)
        for proto in protocols:
            targets.append(Target(
                host=host,
                protocol=proto,
                port=PORTS.get(proto, 80),
                url=f"{proto}://{host}/",
                ip=ip_map.get(host, ""),
            ))
    return targets
