"""Check registry and orchestration.

Selects the enabled checks, runs them one after another or all at once on
a thread pool, and routes every finding through the severity filter into
the shared aggregate, the console and the SARIF report.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from repo_snapshot.aggregator import AggregateResult
from repo_snapshot.checks import branch_protection, dependency_audit, iac_audit, secret_detection
from repo_snapshot.console import Console
from repo_snapshot.models import Finding, ScanConfig, Severity, is_error, is_reportable
from repo_snapshot.sarif import SarifReporter


@dataclass(frozen=True)
class CheckDescriptor:
    name: str
    run: Callable[["ScanContext"], List[Finding]]


CHECKS: List[CheckDescriptor] = [
    CheckDescriptor("secrets", secret_detection.run),
    CheckDescriptor("deps", dependency_audit.run),
    CheckDescriptor("iac", iac_audit.run),
    CheckDescriptor("branch", branch_protection.run),
]

CHECK_NAMES = [c.name for c in CHECKS]


def should_run(name: str, config: ScanConfig) -> bool:
    """Inclusion filter first, then exclusion. Exclusion wins on overlap."""
    if config.only and name not in config.only:
        return False
    if config.skip and name in config.skip:
        return False
    return True


@dataclass
class ScanContext:
    config: ScanConfig
    console: Console
    aggregate: AggregateResult = field(default_factory=AggregateResult)
    sarif: SarifReporter = field(default_factory=SarifReporter)
    vulnerability_lookup: Optional[Any] = None
    iac_linter: Optional[Any] = None
    branch_checker: Optional[Any] = None

    def report(self, finding: Finding) -> bool:
        """Surface a finding if it meets the severity threshold.

        Returns True when the finding was accepted.
        """
        if not is_reportable(finding.severity, self.config.severity):
            return False
        self.aggregate.submit(finding)
        self.console.finding(finding)
        self.sarif.add_finding(finding)
        return True


@dataclass
class ScanOutcome:
    exit_code: int
    checks_run: List[str] = field(default_factory=list)
    failed_checks: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def select_checks(config: ScanConfig, checks: Sequence[CheckDescriptor] = CHECKS) -> List[CheckDescriptor]:
    return [c for c in checks if should_run(c.name, config)]


def _run_check(check: CheckDescriptor, ctx: ScanContext, errors: List[str]) -> bool:
    """Run one check and report its findings. Returns True if it failed."""
    ctx.console.note(f"Running {check.name} check...")
    try:
        findings = check.run(ctx)
    except Exception as e:
        error_msg = f"Error in {check.name} check: {e}"
        errors.append(error_msg)
        ctx.report(Finding(check_name=check.name, severity=Severity.HIGH, message=error_msg))
        return True

    failed = False
    for finding in findings:
        if ctx.report(finding) and is_error(finding.severity):
            failed = True
    return failed


def run_checks(ctx: ScanContext, checks: Sequence[CheckDescriptor] = CHECKS) -> ScanOutcome:
    selected = select_checks(ctx.config, checks)
    outcome = ScanOutcome(exit_code=0, checks_run=[c.name for c in selected])

    if ctx.config.parallel and selected:
        with ThreadPoolExecutor(max_workers=len(selected)) as pool:
            futures = [
                (check, pool.submit(_run_check, check, ctx, outcome.errors))
                for check in selected
            ]
            results = [(check, future.result()) for check, future in futures]
    else:
        results = [(check, _run_check(check, ctx, outcome.errors)) for check in selected]

    outcome.failed_checks = [check.name for check, failed in results if failed]
    outcome.exit_code = 1 if ctx.aggregate.has_errors() else 0
    return outcome
