"""
Check command implementation.

Compares pinned versions with the latest upstream GitHub releases.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors
from bindep.status import check, format_check_table

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    """
    Run the check command.

    Returns:
        Exit code (1 if any release lookup failed; newer releases alone do
        not fail the command)
    """
    manager = build_manager(args)

    if args.name:
        checks = [check(manager, args.name)]
    else:
        checks = check(manager)

    print(format_check_table(checks))

    updates = [c.name for c in checks if c.update_available]
    if updates:
        logger.info(f"Newer releases available for: {', '.join(updates)}")

    return 1 if any(c.error for c in checks) else 0
