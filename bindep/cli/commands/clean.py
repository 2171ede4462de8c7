"""
Clean command implementation.

Deletes the whole install root.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    """
    Run the clean command.

    Asks for confirmation unless --yes is given.

    Returns:
        Exit code (0 for success or when aborted by the user)
    """
    manager = build_manager(args)
    root = manager.install_root.resolve()

    if not args.yes:
        answer = input(f"Delete {root} and everything in it? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            return 0

    if not manager.clean():
        logger.info(f"Nothing to clean at {root}")
    return 0
