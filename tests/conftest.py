"""Shared fixtures for the snapshot scanner test suite."""

import pytest

from repo_snapshot.checks.branch_protection import BranchProtectionChecker
from repo_snapshot.checks.dependency_audit import VulnerabilityLookup
from repo_snapshot.checks.iac_audit import IacLinter
from repo_snapshot.config import build_config
from repo_snapshot.console import Console
from repo_snapshot.models import Finding, Severity
from repo_snapshot.orchestrator import ScanContext
from repo_snapshot.sarif import SarifReporter


# ---------------------------------------------------------------------------
# Fakes for external collaborators
# ---------------------------------------------------------------------------

class FakeLookup(VulnerabilityLookup):
    def __init__(self, count=0):
        self.count = count
        self.calls = []

    def count_vulnerable(self, packages):
        self.calls.append(list(packages))
        return self.count


class FakeLinter(IacLinter):
    def __init__(self, terraform_clean=True, kubernetes_clean=True):
        self.terraform_clean = terraform_clean
        self.kubernetes_clean = kubernetes_clean
        self.manifests = None

    def lint_terraform(self, scan_path):
        return self.terraform_clean

    def lint_kubernetes(self, scan_path, manifests):
        self.manifests = list(manifests)
        return self.kubernetes_clean


class FakeBranchChecker(BranchProtectionChecker):
    def __init__(self, protected=True):
        self.protected = protected

    def is_protected(self, repo_name, branch):
        return self.protected


@pytest.fixture
def make_context(tmp_path):
    """Build a ScanContext over ``tmp_path`` with fake collaborators."""

    def _make(**overrides):
        sarif_path = overrides.pop("sarif_path", None)
        collaborators = {
            "vulnerability_lookup": overrides.pop("vulnerability_lookup", FakeLookup()),
            "iac_linter": overrides.pop("iac_linter", FakeLinter()),
            "branch_checker": overrides.pop("branch_checker", FakeBranchChecker()),
        }
        overrides.setdefault("scan_path", str(tmp_path))
        config = build_config(sarif_path=sarif_path, **overrides)
        sarif = SarifReporter(config.sarif_path)
        sarif.init()
        return ScanContext(
            config=config,
            console=Console(config.verbosity),
            sarif=sarif,
            **collaborators,
        )

    return _make


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_findings():
    return [
        Finding(
            check_name="secrets",
            severity=Severity.CRITICAL,
            message="Found potential secret in config.py:5",
            file_path="config.py",
            line_number=5,
            detail="Pattern matched: API_KEY; content: API_****",
        ),
        Finding(
            check_name="deps",
            severity=Severity.MEDIUM,
            message="package-lock.json: 2 vulnerable packages",
            file_path="package-lock.json",
        ),
        Finding(
            check_name="iac",
            severity=Severity.LOW,
            message="Optional command 'tfsec' not found",
        ),
    ]
