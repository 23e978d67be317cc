"""Repository security snapshot.

Scans a checked-out tree for secrets, vulnerable dependencies, IaC
misconfigurations and unprotected branches. Exits non-zero if any
high or critical finding is reported.
"""

import argparse
import os
import sys
from typing import List, Optional

from repo_snapshot.config import build_config, parse_check_list
from repo_snapshot.console import Console
from repo_snapshot.models import DEFAULT_ENTROPY_THRESHOLD, VERSION, ConfigError, Severity
from repo_snapshot.orchestrator import CHECK_NAMES, ScanContext, run_checks
from repo_snapshot.sarif import SarifReporter

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snapshot",
        description="A lightweight security scanner for Git repositories.",
    )
    parser.add_argument("files", nargs="*", metavar="FILES",
                        help="Files to scan for secrets (default: the whole tree)")
    parser.add_argument("--version", action="version", version=f"snapshot v{VERSION}")
    parser.add_argument("--sarif", metavar="FILE", help="Write results in SARIF format")
    parser.add_argument("--skip", metavar="CHECKS",
                        help=f"Comma-separated checks to skip ({', '.join(CHECK_NAMES)}, all)")
    parser.add_argument("--only", metavar="CHECKS", help="Comma-separated checks to run")
    parser.add_argument("--severity", metavar="LEVEL", default=Severity.HIGH.value,
                        help="Minimum severity to report (%s)" % "|".join(s.value for s in Severity))
    parser.add_argument("--entropy-threshold", metavar="BITS", default=DEFAULT_ENTROPY_THRESHOLD,
                        help="Entropy (bits/char) above which a token is reported")
    parser.add_argument("--parallel", action="store_true", help="Run checks concurrently")
    parser.add_argument("--path", default=os.getcwd(), help="Repository root to scan")
    parser.add_argument("--log-file", metavar="FILE", help="Mirror console output to a file")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--quiet", dest="verbosity", action="store_const", const=0,
                           help="Reduce output verbosity")
    verbosity.add_argument("--verbose", dest="verbosity", action="store_const", const=2,
                           help="Increase output verbosity")
    parser.set_defaults(verbosity=1)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    skip, unknown_skip = parse_check_list(args.skip, CHECK_NAMES)
    only, unknown_only = parse_check_list(args.only, CHECK_NAMES)

    try:
        config = build_config(
            severity=args.severity,
            skip=skip,
            only=only,
            parallel=args.parallel,
            verbosity=args.verbosity,
            sarif_path=args.sarif,
            entropy_threshold=args.entropy_threshold,
            files=args.files,
            scan_path=args.path,
            log_file=args.log_file,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        console = Console(config.verbosity, config.log_file)
        sarif = SarifReporter(config.sarif_path)
        sarif.init()
    except OSError as e:
        print(f"Error: cannot write output file: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    for name in unknown_skip + unknown_only:
        console.warn(f"Unknown check: {name}")

    ctx = ScanContext(config=config, console=console, sarif=sarif)
    outcome = run_checks(ctx)

    console.summary(ctx.aggregate.findings, ctx.aggregate.tally(), outcome.errors)
    if outcome.exit_code == 0:
        console.note("Snapshot complete - no high-severity findings.")
    else:
        console.note("Snapshot finished with issues.")
    return outcome.exit_code


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
