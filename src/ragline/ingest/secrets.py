"""SecretScanner — credential-pattern gate run before chunking.

The rule set is policy, not algorithm: :data:`DEFAULT_RULES` covers the
common credential shapes, :data:`STRICT_RULES` adds a noisy high-entropy
rule, and callers can pass any list of :class:`SecretRule`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 4


@dataclass(frozen=True, slots=True)
class SecretRule:
    """A named credential pattern."""

    name: str
    pattern: re.Pattern[str]

    @classmethod
    def compile(cls, name: str, regex: str, flags: int = 0) -> SecretRule:
        return cls(name=name, pattern=re.compile(regex, flags))


@dataclass(frozen=True, slots=True)
class SecretMatch:
    """A single rule hit.  ``preview`` is redacted; the secret itself is never kept."""

    rule: str
    preview: str
    position: int


@dataclass(frozen=True, slots=True)
class SecretScanResult:
    detected: bool
    matches: list[SecretMatch] = field(default_factory=list)

    @property
    def rules(self) -> list[str]:
        """Distinct rule names that matched, in first-hit order."""
        return list(dict.fromkeys(m.rule for m in self.matches))

    def describe(self) -> str:
        return f"Contains {len(self.matches)} potential secret(s): {', '.join(self.rules)}"


_NO_MATCH = SecretScanResult(detected=False)

DEFAULT_RULES: list[SecretRule] = [
    SecretRule.compile(
        "api-key-assignment",
        r"""(api[_-]?key|apikey|api[_-]?secret)[\w-]*\s*[:=]\s*['"]?[\w\-]{16,}['"]?""",
        re.IGNORECASE,
    ),
    SecretRule.compile(
        "secret-assignment",
        r"""(?<![a-z])(secret|token|password|passwd|pwd)[\w-]*\s*[:=]\s*"""
        # Unquoted values must carry a digit and must not be a dotted attribute path.
        r"""(?:(['"])[^\s'"]{8,}\2"""
        r"""|(?![A-Za-z_]\w*(?:\.[A-Za-z_]\w*)+\s*$)(?=[^\s'"]*\d)"""
        r"""[^\s'"(){}\[\]$<]{8,}\s*$)""",
        re.IGNORECASE | re.MULTILINE,
    ),
    SecretRule.compile("aws-access-key-id", r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b"),
    SecretRule.compile(
        "aws-secret-access-key",
        r"""aws[_-]?secret[_-]?access[_-]?key\s*[:=]\s*['"]?[^\s'"$<{][^\s'"]*""",
        re.IGNORECASE,
    ),
    SecretRule.compile(
        "private-key",
        r"-----BEGIN (?:RSA |DSA |EC |OPENSSH |ENCRYPTED |PGP )?PRIVATE KEY(?: BLOCK)?-----",
    ),
    SecretRule.compile(
        "connection-string-password",
        r"\b(?:jdbc:[a-z0-9]+|postgres(?:ql)?|mysql|mariadb|mongodb(?:\+srv)?|redis|amqps?)"
        r"://[^\s:/@]+:[^\s@/]+@",
        re.IGNORECASE,
    ),
    SecretRule.compile("github-token", r"\bgh[pousr]_[A-Za-z0-9_]{36,}"),
    SecretRule.compile("bearer-token", r"\bbearer\s+[A-Za-z0-9\-._~+/]{20,}=*", re.IGNORECASE),
    SecretRule.compile("openai-api-key", r"\bsk-(?:proj-)?[A-Za-z0-9_-]{32,}"),
    SecretRule.compile("slack-token", r"\bxox[pboars]-[0-9A-Za-z-]{10,}"),
    SecretRule.compile("google-api-key", r"\bAIza[0-9A-Za-z\-_]{35}"),
]

STRICT_RULES: list[SecretRule] = [
    *DEFAULT_RULES,
    SecretRule.compile(
        "high-entropy-base64",
        r"(?<![A-Za-z0-9])[A-Za-z0-9+/]{40,}={0,2}(?![A-Za-z0-9])",
    ),
]

SENSITIVE_EXTENSIONS = {
    ".pem", ".key", ".p12", ".pfx", ".jks", ".keystore",
    ".cer", ".crt", ".der", ".csr",
}

_SENSITIVE_NAME_PATTERNS = [
    re.compile(r"^\.(env|secret|credential|password|auth)", re.IGNORECASE),
    re.compile(r"^(id_rsa|id_dsa|id_ecdsa|id_ed25519)$", re.IGNORECASE),
    re.compile(r"^\.?(npmrc|pypirc|netrc)$", re.IGNORECASE),
    re.compile(r"^credentials(\..*)?$", re.IGNORECASE),
    re.compile(r"^secrets?\..*$", re.IGNORECASE),
]

# Templates checked into repos on purpose.
_SAFE_NAME_SUFFIXES = (".example", ".sample", ".template", ".dist")


def is_sensitive_filename(path: str | PurePath) -> bool:
    """Return True if *path* names key material or a credentials file."""
    name = PurePath(path).name
    lowered = name.lower()
    if lowered.endswith(_SAFE_NAME_SUFFIXES):
        return False
    if PurePath(lowered).suffix in SENSITIVE_EXTENSIONS:
        return True
    return any(p.search(name) for p in _SENSITIVE_NAME_PATTERNS)


class SecretScanner:
    """Matches text against a configurable list of :class:`SecretRule`."""

    def __init__(self, rules: list[SecretRule] | None = None) -> None:
        self._rules = list(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> list[SecretRule]:
        return list(self._rules)

    def with_rules(self, *extra: SecretRule) -> SecretScanner:
        """Return a scanner using this scanner's rules plus *extra*."""
        return SecretScanner([*self._rules, *extra])

    def scan(self, text: str, path: str | None = None) -> SecretScanResult:
        """Scan *text* for credential-like patterns.

        Never raises: a failing rule is logged and treated as no match so a
        detector bug cannot block ingestion.
        """
        try:
            matches = [
                SecretMatch(
                    rule=rule.name,
                    preview=_redact(m.group(0)),
                    position=m.start(),
                )
                for rule in self._rules
                for m in rule.pattern.finditer(text)
            ]
        except Exception:
            logger.warning("Secret scan failed for %s", path or "<text>", exc_info=True)
            return _NO_MATCH

        if not matches:
            return _NO_MATCH

        result = SecretScanResult(detected=True, matches=matches)
        logger.warning(
            "Detected %d potential secret(s) in %s: %s",
            len(matches),
            path or "<text>",
            ", ".join(result.rules),
        )
        return result


def _redact(value: str) -> str:
    return value[:_PREVIEW_CHARS] + "***"
