"""
Shared utilities for CLI commands.

Provides manager construction from the global flags and consistent error
reporting, so every command handles configuration and failures the same way.
"""

import functools
import logging

from bindep.config.settings import Settings
from bindep.core.exceptions import BinDepError
from bindep.manager import BinaryManager

logger = logging.getLogger(__name__)


def build_manager(args) -> BinaryManager:
    """
    Create a BinaryManager from the global CLI flags and the environment.

    Raises:
        ConfigError: If settings or the registry are invalid
    """
    settings = Settings.from_env().with_overrides(
        install_root=getattr(args, "root", None),
        config_path=getattr(args, "config", None),
    )
    return BinaryManager.from_config(settings=settings)


def handles_errors(func):
    """
    Decorator turning BinDepError into exit code 1 with a logged message.

    Example:
        @handles_errors
        def run(args) -> int:
            ...
    """

    @functools.wraps(func)
    def wrapper(args) -> int:
        try:
            return func(args)
        except BinDepError as e:
            logger.error(f"Error: {e}")
            if getattr(args, "verbose", False):
                logger.debug("Traceback:", exc_info=True)
            return 1

    return wrapper
