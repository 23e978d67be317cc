"""Process-wide finding collection shared by all running checks."""

import threading
from typing import List

from repo_snapshot.models import Finding, is_error


class AggregateResult:
    """Ordered, thread-safe collection of accepted findings.

    The error tally is updated under the same lock as the append, so it
    always equals the number of high/critical findings collected.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._findings: List[Finding] = []
        self._high_severity_count = 0

    def submit(self, finding: Finding) -> None:
        with self._lock:
            self._findings.append(finding)
            if is_error(finding.severity):
                self._high_severity_count += 1

    def tally(self) -> int:
        with self._lock:
            return self._high_severity_count

    def has_errors(self) -> bool:
        return self.tally() > 0

    @property
    def findings(self) -> List[Finding]:
        with self._lock:
            return list(self._findings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._findings)
