"""SARIF v2.1.0 report writer.

The report is rewritten in full on every appended result, through a
temporary file in the same directory followed by ``os.replace``, so a
reader only ever sees a complete JSON document.
"""

import json
import os
import tempfile
import threading
from typing import Optional

from repo_snapshot.models import VERSION, Finding, Severity

SARIF_SCHEMA = "https://docs.oasis-open.org/sarif/sarif/v2.1.0/sarif-v2.1.0.html"
TOOL_NAME = "snapshot"

LEVEL_MAP = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFORMATIONAL: "note",
}


def sarif_level(severity: Severity) -> str:
    return LEVEL_MAP.get(severity, "note")


class SarifReporter:
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._document: Optional[dict] = None

    @property
    def enabled(self) -> bool:
        return bool(self.path)

    def init(self) -> None:
        """Create an empty report skeleton. No-op without a path."""
        if not self.enabled:
            return
        with self._lock:
            self._document = {
                "version": "2.1.0",
                "$schema": SARIF_SCHEMA,
                "runs": [{
                    "tool": {"driver": {"name": TOOL_NAME, "version": VERSION, "rules": []}},
                    "results": [],
                }],
            }
            self._write()

    def add_result(
        self,
        level: str,
        message: str,
        file_path: Optional[str] = None,
        line: Optional[int] = None,
        rule_id: str = "",
    ) -> None:
        if not self.enabled:
            return

        result = {
            "level": level,
            "message": {"text": message},
            "locations": [{
                "physicalLocation": {
                    "artifactLocation": {"uri": file_path or "."},
                    "region": {"startLine": line if line and line > 0 else 1},
                },
            }],
        }
        if rule_id:
            result["ruleId"] = rule_id

        with self._lock:
            if self._document is None:
                self._document = self._load()
            self._document["runs"][0]["results"].append(result)
            self._write()

    def add_finding(self, finding: Finding) -> None:
        message = finding.message
        if finding.detail:
            message = f"{message} ({finding.detail})"
        self.add_result(
            sarif_level(finding.severity),
            message,
            finding.file_path,
            finding.line_number,
            rule_id=finding.check_name,
        )

    def _load(self) -> dict:
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".sarif-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._document, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
