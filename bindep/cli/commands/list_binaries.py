"""
List command implementation.

Prints the binaries declared in the registry.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    manager = build_manager(args)
    entries = manager.list()

    if not entries:
        print("No binaries configured")
        return 0

    width = max(len(entry.name) for entry in entries)
    for entry in entries:
        print(f"{entry.name.ljust(width)}  {entry.version:<12} {entry.source.value:<18} {entry.repo}")
    return 0
