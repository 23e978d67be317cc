"""Console output, optionally mirrored to a log file."""

import threading
from typing import List, Optional

from repo_snapshot.models import Finding, Severity

SEVERITY_TAGS = {
    Severity.CRITICAL: "CRIT",
    Severity.HIGH: "ERROR",
    Severity.MEDIUM: "WARN",
    Severity.LOW: "WARN",
    Severity.INFORMATIONAL: "INFO",
}


def format_line(tag: str, message: str) -> str:
    return f"[{tag}]".ljust(8) + message


class Console:
    def __init__(self, verbosity: int = 1, log_file: Optional[str] = None) -> None:
        self.verbosity = verbosity
        self.log_file = log_file
        self._lock = threading.Lock()
        if log_file:
            # Start every run with a fresh log
            open(log_file, "w", encoding="utf-8").close()

    def _emit(self, line: str) -> None:
        with self._lock:
            print(line, flush=True)
            if self.log_file:
                with open(self.log_file, "a", encoding="utf-8") as f:
                    f.write(line + "\n")

    def note(self, message: str) -> None:
        if self.verbosity >= 1:
            self._emit(message)

    def ok(self, message: str) -> None:
        if self.verbosity >= 1:
            self._emit(format_line("OK", message))

    def warn(self, message: str) -> None:
        if self.verbosity >= 1:
            self._emit(format_line("WARN", message))

    def error(self, message: str) -> None:
        if self.verbosity >= 1:
            self._emit(format_line("ERROR", message))

    def info(self, message: str) -> None:
        if self.verbosity >= 2:
            self._emit(format_line("INFO", message))

    def finding(self, finding: Finding) -> None:
        if self.verbosity < 1:
            return
        if finding.severity == Severity.INFORMATIONAL:
            # Informational findings follow the INFO verbosity rule
            self.info(finding.message)
        else:
            self._emit(format_line(SEVERITY_TAGS[finding.severity], finding.message))
        if finding.detail:
            self.info(finding.detail)

    def summary(self, findings: List[Finding], tally: int, errors: List[str]) -> None:
        if self.verbosity < 1:
            return
        counts = {s: 0 for s in Severity}
        for f in findings:
            counts[f.severity] += 1

        lines = [
            "",
            "=" * 50,
            "Scan Summary",
            "=" * 50,
            f"  Critical:      {counts[Severity.CRITICAL]}",
            f"  High:          {counts[Severity.HIGH]}",
            f"  Medium:        {counts[Severity.MEDIUM]}",
            f"  Low:           {counts[Severity.LOW]}",
            f"  Informational: {counts[Severity.INFORMATIONAL]}",
            f"  Total:         {len(findings)}",
            f"  Errors:        {tally}",
        ]
        if errors:
            lines.append(f"  Check failures: {len(errors)}")
        lines.append("=" * 50)
        for line in lines:
            self._emit(line)
