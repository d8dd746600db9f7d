"""Core types."""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum


class PiiCategory(str, Enum):
    """Kinds of sensitive values the pattern library knows about."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    EMAIL = "email"
    CREDIT_CARD = "credit_card"
    SSN = "ssn"
    PHONE_NUMBER = "phone_number"
    IBAN = "iban"
    HOSTNAME = "hostname"          # NetBIOS name, e.g. PRODSRV01
    FQDN = "fqdn"                  # e.g. server01.corp.local
    DOMAIN_USER = "domain_user"    # DOMAIN\user
    USERNAME = "username"
    CERTIFICATE_THUMBPRINT = "certificate_thumbprint"  # SHA-1, 40 hex chars
    BEARER_TOKEN = "bearer_token"
    CONNECTION_STRING_SECRET = "connection_string_secret"
    API_KEY = "api_key"

    @classmethod
    def parse(cls, name: str) -> "PiiCategory":
        """Look up a category by value or member name, ignoring case and dashes."""
        key = name.strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"unknown PII category: {name!r}")


@dataclass(frozen=True, slots=True)
class Detector:
    """A compiled pattern bound to the category and token code it produces.

    If ``pattern`` has a named group ``value`` only that group is replaced,
    everything else in the match is kept as-is.
    """
    category: PiiCategory
    pattern: re.Pattern
    code: str              # 2-5 chars, e.g. "IP4", "EMAIL"


@dataclass(slots=True)
class ProcessingResult:
    """Outcome of sanitizing one file."""
    input_path: str
    output_path: str
    success: bool = True
    error: str | None = None


@dataclass(slots=True)
class BatchResult:
    """Aggregated outcome of a directory run."""
    results: list[ProcessingResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> list[ProcessingResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[ProcessingResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        lines = [f"{len(self.succeeded)} succeeded, {len(self.failed)} failed"]
        for r in self.failed:
            lines.append(f"  {r.input_path}: {r.error}")
        return "\n".join(lines)
