"""
Path command implementation.
"""

from bindep.cli.utils import build_manager, handles_errors


@handles_errors
def run(args) -> int:
    """Print the install path of a binary (installed or not)."""
    manager = build_manager(args)
    print(manager.get(args.name))
    return 0
