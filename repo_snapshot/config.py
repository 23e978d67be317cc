"""Builds the immutable ScanConfig and rejects invalid combinations."""

from typing import Iterable, List, Optional, Sequence, Tuple

from repo_snapshot.models import DEFAULT_ENTROPY_THRESHOLD, ConfigError, ScanConfig, Severity

ALL_CHECKS = "all"


def parse_check_list(value: Optional[str], known: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split a comma-separated check list into (selected, unknown) names.

    ``all`` expands to every known check. Unknown names stay in the
    selection so an ``--only`` naming nothing real selects nothing.
    """
    selected: List[str] = []
    unknown: List[str] = []
    if not value:
        return selected, unknown

    for name in (c.strip().lower() for c in value.split(",")):
        if not name:
            continue
        if name == ALL_CHECKS:
            names = list(known)
        else:
            names = [name]
            if name not in known and name not in unknown:
                unknown.append(name)
        for n in names:
            if n not in selected:
                selected.append(n)
    return selected, unknown


def parse_entropy_threshold(value) -> float:
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid entropy threshold: {value}") from None
    if threshold < 0 or threshold != threshold:
        raise ConfigError(f"Invalid entropy threshold: {value}")
    return threshold


def build_config(
    severity: str = "high",
    skip: Iterable[str] = (),
    only: Iterable[str] = (),
    parallel: bool = False,
    verbosity: int = 1,
    sarif_path: Optional[str] = None,
    entropy_threshold=DEFAULT_ENTROPY_THRESHOLD,
    files: Iterable[str] = (),
    scan_path: str = ".",
    log_file: Optional[str] = None,
) -> ScanConfig:
    skip_set = frozenset(skip)
    only_set = frozenset(only)

    conflicts = sorted(skip_set & only_set)
    if conflicts:
        raise ConfigError(
            f"Check(s) both included and excluded: {', '.join(conflicts)}"
        )

    return ScanConfig(
        severity=Severity.parse(severity),
        skip=skip_set,
        only=only_set,
        parallel=parallel,
        verbosity=verbosity,
        sarif_path=sarif_path or None,
        entropy_threshold=parse_entropy_threshold(entropy_threshold),
        files=tuple(files),
        scan_path=scan_path,
        log_file=log_file or None,
    )
