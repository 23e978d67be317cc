from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

VERSION = "1.0.0"
DEFAULT_ENTROPY_THRESHOLD = 4.0


class ConfigError(ValueError):
    """Invalid run configuration. Raised before any check starts."""


class Severity(Enum):
    INFORMATIONAL = "informational"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(f"Invalid severity: {value}") from None


_RANKS = {
    Severity.INFORMATIONAL: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


def severity_rank(severity: Severity) -> int:
    return severity.rank


def is_reportable(severity: Severity, threshold: Severity) -> bool:
    return severity.rank >= threshold.rank


def is_error(severity: Severity) -> bool:
    """High and critical findings count towards the exit status."""
    return severity.rank >= Severity.HIGH.rank


@dataclass(frozen=True)
class Finding:
    check_name: str
    severity: Severity
    message: str
    file_path: Optional[str] = None
    line_number: Optional[int] = None
    detail: str = ""


@dataclass(frozen=True)
class ScanConfig:
    severity: Severity = Severity.HIGH
    skip: FrozenSet[str] = field(default_factory=frozenset)
    only: FrozenSet[str] = field(default_factory=frozenset)
    parallel: bool = False
    verbosity: int = 1
    sarif_path: Optional[str] = None
    entropy_threshold: float = DEFAULT_ENTROPY_THRESHOLD
    files: Tuple[str, ...] = ()
    scan_path: str = "."
    log_file: Optional[str] = None
