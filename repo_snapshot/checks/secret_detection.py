"""Secret detection via regex pattern matching and entropy scoring."""

import os
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from repo_snapshot.entropy import shannon_entropy
from repo_snapshot.models import DEFAULT_ENTROPY_THRESHOLD, Finding, Severity
from repo_snapshot.redaction import redact

CHECK_NAME = "secrets"

# (pattern_id, regex). Matched case-insensitively, one line at a time.
SECRET_PATTERNS = [
    ("AWS_KEY", re.compile(r"AWS[_A-Z]*KEY[=:][A-Za-z0-9/+=]{16,}", re.IGNORECASE)),
    ("API_KEY", re.compile(r"API[_-]?KEY[=:][A-Za-z0-9/+=]{16,}", re.IGNORECASE)),
    ("SECRET", re.compile(r"SECRET[=:][A-Za-z0-9/+=]{16,}", re.IGNORECASE)),
    ("PASSWORD", re.compile(r"PASSWORD[=:][A-Za-z0-9/+=]{8,}", re.IGNORECASE)),
    ("TOKEN", re.compile(r"TOKEN[=:][A-Za-z0-9/+=]{16,}", re.IGNORECASE)),
    ("DATABASE_URL", re.compile(r"DATABASE_URL[=:].+", re.IGNORECASE)),
    ("JWT_SECRET", re.compile(r"JWT[_-]?SECRET[=:][A-Za-z0-9/+=]{16,}", re.IGNORECASE)),
]

TOKEN_PATTERN = re.compile(r"\b[A-Za-z0-9/+=]{16,}\b")

MAX_FILE_BYTES = 5 * 1024 * 1024
MAX_LINE_CHARS = 10_000


@dataclass(frozen=True)
class PatternMatch:
    pattern_id: str
    line_number: int
    text: str


def _read_lines(filepath: str) -> Optional[List[str]]:
    try:
        if os.path.getsize(filepath) > MAX_FILE_BYTES:
            return None
        with open(filepath, "r", encoding="utf-8", errors="ignore") as f:
            return [line.rstrip("\r\n")[:MAX_LINE_CHARS] for line in f]
    except (OSError, UnicodeDecodeError):
        return None


def match_lines(lines: Iterable[str], patterns=SECRET_PATTERNS) -> List[PatternMatch]:
    matches: List[PatternMatch] = []
    for line_num, line in enumerate(lines, start=1):
        for pattern_id, pattern in patterns:
            m = pattern.search(line)
            if m:
                matches.append(PatternMatch(pattern_id, line_num, m.group(0)))
    return matches


def match_file(filepath: str, patterns=SECRET_PATTERNS) -> List[PatternMatch]:
    """Apply every pattern to each line of a file. Unreadable files yield nothing."""
    lines = _read_lines(filepath)
    if lines is None:
        return []
    return match_lines(lines, patterns)


def extract_tokens(text: str) -> List[str]:
    return TOKEN_PATTERN.findall(text)


def _is_hidden(part: str) -> bool:
    return part.startswith(".") and part not in (".", "..")


def resolve_files(files: Sequence[str] = (), root: str = ".") -> List[str]:
    """Use an explicit file list verbatim, otherwise walk ``root``.

    The walk skips any directory whose name starts with a dot.
    """
    if files:
        return list(files)

    found: List[str] = []
    for dirpath, dirs, filenames in os.walk(root):
        dirs[:] = sorted(d for d in dirs if not _is_hidden(d))
        for filename in sorted(filenames):
            filepath = os.path.join(dirpath, filename)
            if os.path.isfile(filepath):
                found.append(filepath)
    return found


def _display_path(filepath: str, root: str) -> str:
    """Path relative to the scan root when the file lies under it."""
    try:
        rel = os.path.relpath(filepath, root)
    except ValueError:
        return filepath
    if rel.startswith(".."):
        return os.path.normpath(filepath)
    return rel


def discover(
    files: Sequence[str] = (),
    entropy_threshold: float = DEFAULT_ENTROPY_THRESHOLD,
    root: str = ".",
) -> List[Finding]:
    findings: List[Finding] = []

    for filepath in resolve_files(files, root):
        lines = _read_lines(filepath)
        if lines is None:
            continue
        display = _display_path(filepath, root)

        for match in match_lines(lines):
            findings.append(Finding(
                check_name=CHECK_NAME,
                severity=Severity.CRITICAL,
                message=f"Found potential secret in {display}:{match.line_number}",
                file_path=display,
                line_number=match.line_number,
                detail=f"Pattern matched: {match.pattern_id}; content: {redact(match.text)}",
            ))

        for line_num, line in enumerate(lines, start=1):
            for token in extract_tokens(line):
                entropy = shannon_entropy(token)
                if entropy > entropy_threshold:
                    findings.append(Finding(
                        check_name=CHECK_NAME,
                        severity=Severity.CRITICAL,
                        message=f"Found high-entropy string in {display}",
                        file_path=display,
                        line_number=line_num,
                        detail=(
                            f"Entropy: {entropy:.4f} (threshold: {entropy_threshold}); "
                            f"content: {redact(token)}"
                        ),
                    ))

    return findings


def run(ctx) -> List[Finding]:
    config = ctx.config
    ctx.console.note("Scanning for potential secrets...")
    findings = discover(config.files, config.entropy_threshold, config.scan_path)
    if findings:
        ctx.console.note(f"Found {len(findings)} potential secret(s)")
    else:
        ctx.console.ok("No secrets found")
    return findings
