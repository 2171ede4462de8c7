"""
Status command implementation.

Shows configured versus installed versions.
"""

import logging

from bindep.cli.utils import build_manager, handles_errors
from bindep.status import BinaryStatus, format_bytes, format_status_table, status

logger = logging.getLogger(__name__)


@handles_errors
def run(args) -> int:
    """
    Run the status command.

    Returns:
        Exit code (0 when every inspected binary is installed and current)
    """
    manager = build_manager(args)

    if args.name:
        result = status(manager, args.name)
        _print_details(result, manager.entry(args.name).description)
        statuses = [result]
    else:
        statuses = status(manager)
        print(format_status_table(statuses))

    healthy = all(s.up_to_date and not s.error for s in statuses)
    return 0 if healthy else 1


def _print_details(result: BinaryStatus, description: str) -> None:
    print(f"Name:        {result.name}")
    if description:
        print(f"Description: {description}")
    print(f"Source:      {result.source}")
    print(f"Configured:  {result.configured_version}")
    print(f"Installed:   {result.installed_version or 'not installed'}")
    print(f"Up to date:  {'yes' if result.up_to_date else 'no'}")
    print(f"Path:        {result.path}")
    if result.installed:
        print(f"Size:        {format_bytes(result.size)}")
        print(f"Modified:    {result.mod_time:%Y-%m-%d %H:%M:%S}")
    if result.error:
        print(f"Error:       {result.error}")
