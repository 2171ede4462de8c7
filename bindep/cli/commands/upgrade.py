"""
Upgrade command implementation.

Reinstalls binaries whose installed version differs from the registry.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors
from bindep.status import upgrade, upgrade_all

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    """
    Run the upgrade command.

    Args:
        args: Parsed command-line arguments with:
            - name: Binary to upgrade (None for all)

    Returns:
        Exit code (0 for success, 1 if any upgrade failed)
    """
    manager = build_manager(args)

    if args.name:
        upgrade(manager, args.name, verbose=args.verbose)
        return 0

    summary = upgrade_all(manager, verbose=args.verbose)
    print(
        f"{summary.upgraded} upgraded, {summary.skipped} up to date, "
        f"{summary.failed} failed"
    )
    for name, message in summary.failures.items():
        print(f"  {name}: {message}")
    return 0 if summary.ok else 1
