"""Pattern library — compiled detectors for PII and secrets in log lines.

Every pattern here is tuned against the noise typical of infrastructure
logs (timestamps, GUIDs, file names, WMI paths).  None of them nest
unbounded quantifiers, so a multi-megabyte line with no matches still
scans in linear time.
"""

from __future__ import annotations
import re
from typing import Iterable

from .types import Detector, PiiCategory

# Category -> short code used inside tokens, e.g. [IP4-1A2B3C]
TYPE_CODES: dict[PiiCategory, str] = {
    PiiCategory.IPV4: "IP4",
    PiiCategory.IPV6: "IP6",
    PiiCategory.EMAIL: "EMAIL",
    PiiCategory.CREDIT_CARD: "CC",
    PiiCategory.SSN: "SSN",
    PiiCategory.PHONE_NUMBER: "PHN",
    PiiCategory.IBAN: "IBAN",
    PiiCategory.HOSTNAME: "HOST",
    PiiCategory.FQDN: "FQDN",
    PiiCategory.DOMAIN_USER: "USR",
    PiiCategory.USERNAME: "USR",
    PiiCategory.CERTIFICATE_THUMBPRINT: "CERT",
    PiiCategory.BEARER_TOKEN: "TOKEN",
    PiiCategory.CONNECTION_STRING_SECRET: "SEC",
    PiiCategory.API_KEY: "KEY",
}

_OCTET = r"(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)"
_HEXTET = r"[0-9A-Fa-f]{1,4}"

# File extensions that make "name.ext" look like an FQDN
_FILE_EXTENSIONS = (
    "zip|exe|dll|log|lo_|txt|png|jpg|gif|core|cs|json|xml|config|ini|msi|cab|sys|"
    "bat|cmd|ps1|psm1|vbs|js|html?|csv|ya?ml|md|tmp|bak|dat|db|mdf|ldf|cer|pfx|mof|sql"
)

_PATTERNS: dict[PiiCategory, re.Pattern] = {
    # Dotted quad, not part of a longer dotted or numeric run
    PiiCategory.IPV4: re.compile(
        rf"(?<![\d.]){_OCTET}(?:\.{_OCTET}){{3}}(?!\.?\d)"
    ),

    # Full and "::"-compressed forms, optional %scope.  Timestamps are
    # rejected afterwards by is_plausible_ipv6().
    PiiCategory.IPV6: re.compile(
        r"(?<![\w:.])"
        r"(?:"
        rf"(?:{_HEXTET}:){{7}}{_HEXTET}"
        rf"|(?:{_HEXTET}:){{1,7}}:(?:{_HEXTET}(?::{_HEXTET}){{0,6}})?"
        rf"|::(?:{_HEXTET}(?::{_HEXTET}){{0,6}})?"
        r")"
        r"(?:%[0-9A-Za-z]+)?"
        r"(?![\w:])"
    ),

    # TLD optional: intranet addresses like admin@internal are still PII
    PiiCategory.EMAIL: re.compile(
        r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?"
        r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]*[A-Za-z0-9])?)*\b"
    ),

    # 13-16 digits with optional separators; refuses to start or end next to
    # word chars or hyphens so UUID segments and long IDs are left alone
    PiiCategory.CREDIT_CARD: re.compile(
        r"(?<![\w\-])(?:\d[ \-]?){12,15}\d(?![\w\-])"
    ),

    PiiCategory.SSN: re.compile(
        r"\b\d{3}-\d{2}-\d{4}\b"
    ),

    PiiCategory.PHONE_NUMBER: re.compile(
        # Turkish mobile: +90 5xx xxx xx xx / 05xx xxx xx xx
        r"(?<![\w+\-])(?:\+90[ \-]?|0)5\d{2}[ \-]?\d{3}[ \-]?\d{2}[ \-]?\d{2}(?![\w\-])"
        # Generic: optional country code, 3-3-4 digits
        r"|(?<![\w+\-])(?:\+?\d{1,3}[ \-.]?)?(?:\(\d{3}\)|\d{3})[ \-.]?\d{3}[ \-.]?\d{4}(?![\w\-])"
    ),

    PiiCategory.IBAN: re.compile(
        r"\b[A-Z]{2}\d{2}[A-Z0-9]{4}\d{7}[A-Z0-9]{0,16}\b"
    ),

    PiiCategory.CERTIFICATE_THUMBPRINT: re.compile(
        r"\b[0-9A-Fa-f]{40}\b"
    ),

    PiiCategory.BEARER_TOKEN: re.compile(
        r"\bBearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE
    ),

    PiiCategory.CONNECTION_STRING_SECRET: re.compile(
        r"\b(?:Password|Pwd|User\s?ID|Uid)\s*=\s*(?P<value>[^;]+)", re.IGNORECASE
    ),

    PiiCategory.API_KEY: re.compile(
        r"\b(?:x-)?api[\-_]?key[\"']?\s*[:=]\s*[\"']?(?P<value>[^\s;,\"'&]+)", re.IGNORECASE
    ),

    # NetBIOS-shaped names (<= 15 chars) carrying an uppercase server marker
    PiiCategory.HOSTNAME: re.compile(
        r"(?<![A-Za-z0-9\-])(?=[A-Za-z0-9\-]{3,15}(?![A-Za-z0-9\-]))"
        r"[A-Za-z0-9\-]*(?:SW|SRV|SERVER)[A-Za-z0-9\-]*"
    ),

    PiiCategory.FQDN: re.compile(
        r"\b(?!\d+\.\d+\.\d+\.\d+\b)"
        r"(?:[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?\.)+"
        rf"(?!(?:{_FILE_EXTENSIONS})\b)[A-Za-z]{{2,63}}\b",
        re.IGNORECASE,
    ),

    PiiCategory.DOMAIN_USER: re.compile(
        r"\b[A-Za-z0-9\-]{2,15}\\{1,2}[A-Za-z0-9._\-]{2,30}\b"
    ),

    PiiCategory.USERNAME: re.compile(
        r"(?:(?<=[\s\"'\\])|^)[A-Za-z0-9\-]{2,15}\\[A-Za-z0-9._\-]{2,30}(?=[\s\"'\\\]]|$)"
    ),
}

# Identifier-shaped categories: run last, filtered through ALLOWLIST
IDENTIFIER_CATEGORIES: tuple[PiiCategory, ...] = (
    PiiCategory.HOSTNAME,
    PiiCategory.FQDN,
    PiiCategory.DOMAIN_USER,
    PiiCategory.USERNAME,
)

# Order of the generic category pass.  Secrets first so their values are
# claimed before looser numeric patterns look at them.
CATEGORY_ORDER: tuple[PiiCategory, ...] = (
    PiiCategory.BEARER_TOKEN,
    PiiCategory.CONNECTION_STRING_SECRET,
    PiiCategory.API_KEY,
    PiiCategory.EMAIL,
    PiiCategory.IPV4,
    PiiCategory.CREDIT_CARD,
    PiiCategory.SSN,
    PiiCategory.IBAN,
    PiiCategory.CERTIFICATE_THUMBPRINT,
    PiiCategory.PHONE_NUMBER,
)

# Benign infrastructure words.  An identifier match containing any of these
# (as a path/user segment) is left unmasked.
ALLOWLIST: frozenset[str] = frozenset(w.lower() for w in (
    "Bin", "Setup", "System", "System32", "SysWOW64", "Microsoft", "Windows",
    "CCM", "CCMSetup", "SMS", "Site", "Code", "Server", "Program", "Files",
    "ProgramData", "Logs", "Log", "Temp", "Tmp", "Users", "Inbox", "Inboxes",
    "Root", "Cache", "Client", "Software", "Policy", "Services", "Common",
    "Update", "Updates", "Config", "Data", "Drivers", "Etc", "Servers",
    "LocalSystem", "Network", "Service", "NT", "Authority", "Builtin",
    "Administrators", "Default", "Public", "AppData", "Roaming", "Sources",
))

# Token shapes already produced by the rewriter
TOKEN_RE = re.compile(r"\[[A-Z0-9]{2,6}-[0-9A-F]{6}\]")

_SPLIT_RE = re.compile(r"[\s\\/_]+")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


def build_detectors(categories: Iterable[PiiCategory]) -> list[Detector]:
    """Return detectors for the requested categories, in catalogue order."""
    wanted = set(categories)
    return [
        Detector(category=cat, pattern=pattern, code=TYPE_CODES[cat])
        for cat, pattern in _PATTERNS.items()
        if cat in wanted
    ]


def is_plausible_ipv6(value: str) -> bool:
    """Reject IPv6-shaped text that is really a time of day or too short."""
    address = value.split("%", 1)[0]
    if len(address) <= 5 or ":" not in address:
        return False
    parts = address.split(":")
    if len(parts) == 3 and all(len(p) <= 2 and p.isdigit() for p in parts):
        return False  # HH:MM:SS
    return True


def is_allowlisted(value: str) -> bool:
    """True if any path/user segment of ``value`` is a benign system word."""
    for part in _SPLIT_RE.split(value):
        cleaned = _NON_ALNUM_RE.sub("", part).lower()
        if cleaned and cleaned in ALLOWLIST:
            return True
    return False
