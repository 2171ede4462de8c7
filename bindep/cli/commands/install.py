"""
Install command implementation.

Installs one binary, or ensures every configured binary.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with:
            - name: Binary to install (None for all)
            - force: Reinstall even if current

    Returns:
        Exit code (0 for success, 1 on failure)
    """
    manager = build_manager(args)

    if args.name:
        manager.install(args.name, verbose=args.verbose, force=args.force)
        print(manager.get(args.name))
        return 0

    if args.force:
        for entry in manager.list():
            manager.install(entry.name, verbose=args.verbose, force=True)
    else:
        manager.ensure(verbose=args.verbose)
    return 0
