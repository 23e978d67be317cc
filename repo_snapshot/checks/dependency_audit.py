"""Dependency vulnerability checks against the OSV.dev database."""

import json
import os
import time
import urllib.error
import urllib.request
from typing import List, Sequence, Tuple

from repo_snapshot import git
from repo_snapshot.models import Finding, Severity

CHECK_NAME = "deps"

OSV_BATCH_URL = "https://api.osv.dev/v1/querybatch"
OSV_BATCH_SIZE = 1000
MAX_RETRIES = 3
RETRY_DELAY = 2
REQUEST_TIMEOUT = 30

LOCKFILE_NAMES = ("package-lock.json", "go.sum", "Pipfile.lock")

# (ecosystem, name, version)
Package = Tuple[str, str, str]


class LookupFailed(Exception):
    """The vulnerability database could not be queried."""


class VulnerabilityLookup:
    """Counts how many of the given packages have known vulnerabilities."""

    def count_vulnerable(self, packages: Sequence[Package]) -> int:
        raise NotImplementedError


class OsvLookup(VulnerabilityLookup):
    def __init__(self, url: str = OSV_BATCH_URL, retries: int = MAX_RETRIES, delay: float = RETRY_DELAY):
        self.url = url
        self.retries = retries
        self.delay = delay

    def count_vulnerable(self, packages: Sequence[Package]) -> int:
        vulnerable = 0
        for start in range(0, len(packages), OSV_BATCH_SIZE):
            batch = packages[start:start + OSV_BATCH_SIZE]
            queries = [
                {"package": {"ecosystem": eco, "name": name}, "version": version}
                for eco, name, version in batch
            ]
            data = self._post({"queries": queries})
            if not isinstance(data, dict):
                raise LookupFailed(f"unexpected response: {type(data).__name__}")
            for result in data.get("results") or []:
                if isinstance(result, dict) and result.get("vulns"):
                    vulnerable += 1
        return vulnerable

    def _post(self, payload: dict) -> dict:
        body = json.dumps(payload).encode("utf-8")
        last_error = None
        for attempt in range(1, self.retries + 1):
            req = urllib.request.Request(
                self.url,
                data=body,
                headers={"Content-Type": "application/json"},
            )
            try:
                with urllib.request.urlopen(req, timeout=REQUEST_TIMEOUT) as resp:
                    return json.loads(resp.read().decode("utf-8"))
            except (urllib.error.URLError, OSError, ValueError) as e:
                last_error = e
                if attempt < self.retries:
                    time.sleep(self.delay)
        raise LookupFailed(str(last_error))


def _load_object(content: str) -> dict:
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"expected '{key}' to be an object")
    return value


def parse_package_lock(content: str) -> List[Package]:
    data = _load_object(content)
    packages: List[Package] = []

    # lockfileVersion 2/3
    for path, info in _section(data, "packages").items():
        if not path or not isinstance(info, dict):
            continue
        name = info.get("name") or path.split("node_modules/")[-1]
        version = info.get("version")
        if version:
            packages.append(("npm", name, version))
    if packages:
        return packages

    # lockfileVersion 1
    def walk(deps: dict) -> None:
        for name, info in deps.items():
            if not isinstance(info, dict):
                continue
            if info.get("version"):
                packages.append(("npm", name, info["version"]))
            walk(_section(info, "dependencies"))

    walk(_section(data, "dependencies"))
    return packages


def parse_pipfile_lock(content: str) -> List[Package]:
    data = _load_object(content)
    packages: List[Package] = []
    for section in ("default", "develop"):
        for name, info in _section(data, section).items():
            version = info.get("version", "") if isinstance(info, dict) else ""
            if isinstance(version, str) and version:
                packages.append(("PyPI", name, version.lstrip("=")))
    return packages


def parse_go_sum(content: str) -> List[Package]:
    packages: List[Package] = []
    seen = set()
    for line in content.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        module, version = parts[0], parts[1]
        if version.endswith("/go.mod"):
            version = version[: -len("/go.mod")]
        key = (module, version)
        if key not in seen:
            seen.add(key)
            packages.append(("Go", module, version))
    return packages


PARSERS = {
    "package-lock.json": parse_package_lock,
    "Pipfile.lock": parse_pipfile_lock,
    "go.sum": parse_go_sum,
}


def parse_lockfile(filepath: str) -> List[Package]:
    parser = PARSERS[os.path.basename(filepath)]
    with open(filepath, "r", encoding="utf-8", errors="ignore") as f:
        return parser(f.read())


def find_lockfiles(scan_path: str) -> List[str]:
    return [
        path for path in git.tracked_files(scan_path)
        if os.path.basename(path) in LOCKFILE_NAMES
    ]


def run(ctx) -> List[Finding]:
    findings: List[Finding] = []
    scan_path = ctx.config.scan_path
    ctx.console.note("Checking dependencies via OSV.dev...")

    lockfiles = find_lockfiles(scan_path)
    if not lockfiles:
        ctx.console.ok("No lockfiles")
        return findings

    lookup = ctx.vulnerability_lookup or OsvLookup()
    for lockfile in lockfiles:
        try:
            packages = parse_lockfile(os.path.join(scan_path, lockfile))
        except (OSError, ValueError) as e:
            findings.append(Finding(
                check_name=CHECK_NAME,
                severity=Severity.LOW,
                message=f"{lockfile}: could not be parsed ({e.__class__.__name__})",
                file_path=lockfile,
            ))
            continue

        try:
            count = lookup.count_vulnerable(packages) if packages else 0
        except LookupFailed as e:
            findings.append(Finding(
                check_name=CHECK_NAME,
                severity=Severity.LOW,
                message=f"{lockfile}: vulnerability lookup failed",
                file_path=lockfile,
                detail=str(e),
            ))
            continue

        if count > 0:
            findings.append(Finding(
                check_name=CHECK_NAME,
                severity=Severity.MEDIUM,
                message=f"{lockfile}: {count} vulnerable packages",
                file_path=lockfile,
                detail=f"{count} vulns",
            ))
        else:
            ctx.console.ok(f"{lockfile} - no known vulns")

    return findings
