"""
Remove command implementation.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    """Remove an installed binary; succeeds when it is not installed."""
    manager = build_manager(args)
    manager.remove(args.name)
    return 0
