"""Content rewriter — ordered, multi-pass masking of a single line.

Stages run in a fixed order, each taking and returning text:

    ipv6 -> wmi_site_codes -> ldap_domain -> key_values -> ldap_names
         -> site_code_phrase -> categories -> identifiers -> ipv6_suffix_cleanup

Structural stages (WMI paths, LDAP, key/value fields) go first so they
claim their substrings before the generic detectors can mis-tag a field
value, e.g. a server name that also looks like an FQDN.  The allowlisted
identifier stage goes last because it inspects the raw matched text.

Every stage uses the same precondition: text that already holds a token
(or contains ``[``) is never masked again.  That keeps rewrite() idempotent.
"""

from __future__ import annotations
import re
from typing import Callable, Iterable

from .patterns import (
    CATEGORY_ORDER,
    IDENTIFIER_CATEGORIES,
    TOKEN_RE,
    is_allowlisted,
    is_plausible_ipv6,
)
from .tokens import TokenGenerator
from .types import Detector, PiiCategory

DOMAIN_PLACEHOLDER = "[DOMAIN]"
SITE_CODE_PLACEHOLDER = "[SITE-CODE]"

# \\SERVER\SMS_ABC\inbox, root\sms\site_ABC
_WMI_SITE_RE = re.compile(
    r"(?<![A-Za-z0-9])(?P<prefix>(?:SMS|site)_)(?P<value>[A-Za-z0-9]{3})(?![A-Za-z0-9])",
    re.IGNORECASE,
)

_LDAP_DC_RE = re.compile(
    r"(?<![A-Za-z0-9])DC=(?P<value>[^,;=\s\[\]\"'\\/+]+)",
    re.IGNORECASE,
)

_LDAP_NAME_RE = re.compile(
    r"(?<![A-Za-z0-9])(?:CN|OU|DC)=(?P<value>[^,;=\s\[\]\"'\\/+]+)",
    re.IGNORECASE,
)

# [SiteCode]=[ABC], DatabaseName = CM_ABC, "Server": "sql01", Data Source=sql01\INST
_KEY_VALUE_RE = re.compile(
    r"(?<![\w\[\"'])"
    r"(?P<key>[\[\"']?"
    r"(?P<name>SiteCode|Site|DatabaseName|Database|Catalog|SQLServerName|Server|Source)"
    r"[\]\"']?\s*[:=]\s*)"
    r"(?P<open>[\[\"']?)(?P<value>[A-Za-z0-9_.$\\\-]+)(?P<close>[\]\"']?)",
    re.IGNORECASE,
)

_KEY_PREFIXES: dict[str, str] = {
    "sitecode": "SITE",
    "site": "SITE",
    "databasename": "DB",
    "database": "DB",
    "catalog": "DB",
    "sqlservername": "SRV",
    "server": "SRV",
    "source": "SRV",
}

_SITE_PHRASE_RE = re.compile(
    r"(?i:\bsite\s+code(?:\s+is)?)\s*[:=]?\s*(?P<value>[A-Z0-9]{3})\b"
)

# Scope id / port left dangling behind an IPv6 token
_IPV6_SUFFIX_RE = re.compile(
    r"(?P<token>\[IP6-[0-9A-F]{6}\])(?:%[0-9A-Za-z.\-]+)?(?::\d{1,5}(?!\d))?"
)

_Replacer = Callable[[re.Match, str], "str | None"]


class ContentRewriter:
    """Applies the ordered masking stages to one line of text."""

    def __init__(self, detectors: Iterable[Detector], tokens: TokenGenerator) -> None:
        self._tokens = tokens
        by_category = {d.category: d for d in detectors}
        self._ipv6 = by_category.get(PiiCategory.IPV6)
        self._categories = [by_category[c] for c in CATEGORY_ORDER if c in by_category]
        self._identifiers = [by_category[c] for c in IDENTIFIER_CATEGORIES if c in by_category]

        guards = [TOKEN_RE.pattern, re.escape(DOMAIN_PLACEHOLDER), re.escape(SITE_CODE_PLACEHOLDER)]
        # Only a bracketed placeholder can't collide with ordinary log text
        placeholder = tokens.placeholder
        if placeholder.startswith("[") and placeholder.endswith("]"):
            guards.append(re.escape(placeholder))
        self._protected_re = re.compile("|".join(guards))

        stages: list[tuple[str, Callable[[str], str]]] = []
        if self._ipv6 is not None:
            stages.append(("ipv6", self._mask_ipv6))
        stages += [
            ("wmi_site_codes", self._mask_wmi_site_codes),
            ("ldap_domain", self._mask_ldap_domain),
            ("key_values", self._mask_key_values),
            ("ldap_names", self._mask_ldap_names),
            ("site_code_phrase", self._mask_site_code_phrase),
            ("categories", self._mask_categories),
            ("identifiers", self._mask_identifiers),
        ]
        if self._ipv6 is not None:
            stages.append(("ipv6_suffix_cleanup", self._strip_ipv6_suffix))
        self.stages: tuple[tuple[str, Callable[[str], str]], ...] = tuple(stages)

    def rewrite(self, text: str) -> str:
        if not text or text.isspace():
            return text
        for _name, stage in self.stages:
            text = stage(text)
        return text

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _mask_ipv6(self, text: str) -> str:
        code = self._ipv6.code

        def repl(m: re.Match, value: str) -> str | None:
            if not is_plausible_ipv6(value):
                return None
            return self._tokens.mask(code, value)

        return self._substitute(self._ipv6.pattern, text, repl)

    def _mask_wmi_site_codes(self, text: str) -> str:
        return self._substitute(
            _WMI_SITE_RE, text, lambda m, value: self._tokens.keyed_token("SITE", value)
        )

    def _mask_ldap_domain(self, text: str) -> str:
        return self._substitute(_LDAP_DC_RE, text, lambda m, value: DOMAIN_PLACEHOLDER)

    def _mask_key_values(self, text: str) -> str:
        def repl(m: re.Match, value: str) -> str | None:
            prefix = _KEY_PREFIXES[m.group("name").lower()]
            token = self._tokens.keyed_token(prefix, value)
            opening, closing = m.group("open"), m.group("close")
            if opening == "[" and closing == "]":
                opening = closing = ""  # [ABC] -> [SITE-XXXXXX], not [[SITE-XXXXXX]]
            return m.group("key") + opening + token + closing

        return self._substitute(_KEY_VALUE_RE, text, repl, whole_match=True)

    def _mask_ldap_names(self, text: str) -> str:
        return self._substitute(
            _LDAP_NAME_RE, text, lambda m, value: self._tokens.keyed_token("DN", value)
        )

    def _mask_site_code_phrase(self, text: str) -> str:
        return self._substitute(_SITE_PHRASE_RE, text, lambda m, value: SITE_CODE_PLACEHOLDER)

    def _mask_categories(self, text: str) -> str:
        for detector in self._categories:
            text = self._substitute(
                detector.pattern, text,
                lambda m, value, code=detector.code: self._tokens.mask(code, value),
            )
        return text

    def _mask_identifiers(self, text: str) -> str:
        def repl(m: re.Match, value: str, code: str) -> str | None:
            if is_allowlisted(value):
                return None
            return self._tokens.mask(code, value)

        for detector in self._identifiers:
            text = self._substitute(
                detector.pattern, text,
                lambda m, value, code=detector.code: repl(m, value, code),
            )
        return text

    def _strip_ipv6_suffix(self, text: str) -> str:
        return _IPV6_SUFFIX_RE.sub(r"\g<token>", text)

    # ------------------------------------------------------------------
    # Shared substitution with the "already tokenized" guard
    # ------------------------------------------------------------------

    def _substitute(
        self,
        pattern: re.Pattern,
        text: str,
        replace: _Replacer,
        *,
        whole_match: bool = False,
    ) -> str:
        """Run ``pattern`` over ``text``, masking the ``value`` group (or the
        whole match when the pattern has none).

        ``replace`` gets the match and the target text and returns the
        replacement for the target, or None to leave the match alone.  With
        ``whole_match`` the returned string replaces the entire match.
        """
        protected = [m.span() for m in self._protected_re.finditer(text)]
        has_value = "value" in pattern.groupindex

        def _sub(m: re.Match) -> str:
            original = m.group(0)
            start, end = m.span("value") if has_value else m.span()
            if start == end:
                return original
            target = text[start:end]
            if "[" in target or any(start < e and end > s for s, e in protected):
                return original
            replacement = replace(m, target)
            if replacement is None:
                return original
            if whole_match:
                return replacement
            offset = m.start()
            return original[:start - offset] + replacement + original[end - offset:]

        return pattern.sub(_sub, text)
