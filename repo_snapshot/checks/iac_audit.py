"""Infrastructure-as-code checks via tfsec and kube-linter."""

import os
import re
import shutil
import subprocess
from typing import List, Sequence

from repo_snapshot import git
from repo_snapshot.models import Finding, Severity

CHECK_NAME = "iac"
COMMAND_TIMEOUT = 120

WORKLOAD_KIND = re.compile(r"^kind:.*(Deployment|StatefulSet|DaemonSet)", re.MULTILINE)


class ToolMissing(Exception):
    def __init__(self, command: str):
        super().__init__(command)
        self.command = command


class IacLinter:
    """Runs the external analyzers. Each method returns True when clean."""

    def lint_terraform(self, scan_path: str) -> bool:
        raise NotImplementedError

    def lint_kubernetes(self, scan_path: str, manifests: Sequence[str]) -> bool:
        raise NotImplementedError


class CommandIacLinter(IacLinter):
    def _run(self, args: List[str], cwd: str) -> bool:
        if not shutil.which(args[0]):
            raise ToolMissing(args[0])
        result = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT,
        )
        return result.returncode == 0

    def lint_terraform(self, scan_path: str) -> bool:
        return self._run(["tfsec", ".", "--soft-fail"], scan_path)

    def lint_kubernetes(self, scan_path: str, manifests: Sequence[str]) -> bool:
        return self._run(["kube-linter", "lint", *manifests], scan_path)


def find_workload_manifests(scan_path: str) -> List[str]:
    """Tracked YAML files declaring a Deployment, StatefulSet or DaemonSet."""
    manifests = []
    yaml_files = [p for p in git.tracked_files(scan_path) if p.endswith((".yaml", ".yml"))]
    for path in yaml_files:
        try:
            with open(os.path.join(scan_path, path), "r", encoding="utf-8", errors="ignore") as f:
                if WORKLOAD_KIND.search(f.read()):
                    manifests.append(path)
        except OSError:
            continue
    return manifests


def _missing_tool(command: str) -> Finding:
    return Finding(
        check_name=CHECK_NAME,
        severity=Severity.LOW,
        message=f"Optional command '{command}' not found",
    )


def _timed_out(command: str) -> Finding:
    return Finding(
        check_name=CHECK_NAME,
        severity=Severity.LOW,
        message=f"{command} timed out after {COMMAND_TIMEOUT}s",
    )


def run(ctx) -> List[Finding]:
    findings: List[Finding] = []
    scan_path = ctx.config.scan_path
    linter = ctx.iac_linter or CommandIacLinter()
    ctx.console.note("Scanning IaC (Terraform & Kubernetes)...")

    try:
        if not linter.lint_terraform(scan_path):
            findings.append(Finding(
                check_name=CHECK_NAME,
                severity=Severity.MEDIUM,
                message="tfsec issues",
            ))
    except ToolMissing as e:
        findings.append(_missing_tool(e.command))
    except subprocess.TimeoutExpired:
        findings.append(_timed_out("tfsec"))

    manifests = find_workload_manifests(scan_path)
    if not manifests:
        ctx.console.info("No Kubernetes workload manifests")
        return findings

    try:
        if not linter.lint_kubernetes(scan_path, manifests):
            findings.append(Finding(
                check_name=CHECK_NAME,
                severity=Severity.MEDIUM,
                message="kube-linter issues",
                detail=", ".join(manifests),
            ))
    except ToolMissing as e:
        findings.append(_missing_tool(e.command))
    except subprocess.TimeoutExpired:
        findings.append(_timed_out("kube-linter"))

    return findings
