"""Branch protection verification through the GitHub API."""

import os
from typing import List

from github import Github, GithubException

from repo_snapshot import git
from repo_snapshot.models import Finding, Severity

CHECK_NAME = "branch"


class BranchProtectionChecker:
    def is_protected(self, repo_name: str, branch: str) -> bool:
        raise NotImplementedError


class GithubBranchProtection(BranchProtectionChecker):
    def __init__(self, token: str):
        self.token = token

    def is_protected(self, repo_name: str, branch: str) -> bool:
        gh = Github(self.token)
        return bool(gh.get_repo(repo_name).get_branch(branch).protected)


def _warning(message: str) -> Finding:
    return Finding(check_name=CHECK_NAME, severity=Severity.LOW, message=message)


def run(ctx) -> List[Finding]:
    findings: List[Finding] = []
    scan_path = ctx.config.scan_path
    ctx.console.note("Verifying branch protection...")

    checker = ctx.branch_checker
    if checker is None:
        token = os.environ.get("GITHUB_TOKEN", "")
        if not token:
            findings.append(_warning("GITHUB_TOKEN not set"))
            return findings
        checker = GithubBranchProtection(token)

    repo_name = os.environ.get("GITHUB_REPOSITORY", "") or git.remote_repository(scan_path)
    if not repo_name:
        findings.append(_warning("Could not determine GitHub repository"))
        return findings

    branch = git.current_branch(scan_path)
    if not branch:
        findings.append(_warning("Could not determine current branch"))
        return findings

    try:
        protected = checker.is_protected(repo_name, branch)
    except GithubException as e:
        findings.append(_warning(f"Branch protection lookup failed for {repo_name}: HTTP {e.status}"))
        return findings
    except OSError as e:
        # requests' connection errors derive from OSError
        findings.append(_warning(f"Branch protection lookup failed for {repo_name}: {e.__class__.__name__}"))
        return findings

    if protected:
        ctx.console.ok(f"Branch protection enabled on {branch}")
    else:
        findings.append(Finding(
            check_name=CHECK_NAME,
            severity=Severity.CRITICAL,
            message=f"Branch {branch} is NOT protected",
            file_path=".",
        ))
    return findings
