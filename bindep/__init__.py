"""
bindep - platform-aware binary dependency manager.

Declares third-party tools in a registry, installs the right build for the
running (or a simulated) OS and architecture, and tracks installed versions.

Example:
    >>> from bindep import BinaryManager
    >>> manager = BinaryManager.from_config()
    >>> manager.ensure()
    >>> print(manager.get("task"))
"""

__version__ = "0.3.0"

from bindep.config.registry import (
    AcquisitionType,
    AssetRule,
    BinaryEntry,
    load_registry,
)
from bindep.config.settings import Settings
from bindep.core.cancellation import CancellationToken
from bindep.core.exceptions import (
    BinDepError,
    BinaryNotFoundError,
    ConfigError,
    InstallError,
    InvalidInputError,
)
from bindep.core.platform import PlatformInfo, platform_override
from bindep.manager import BinaryManager
from bindep.status import (
    BinaryStatus,
    UpgradeSummary,
    status,
    upgrade,
    upgrade_all,
)

__all__ = [
    "__version__",
    "AcquisitionType",
    "AssetRule",
    "BinaryEntry",
    "load_registry",
    "Settings",
    "CancellationToken",
    "BinDepError",
    "BinaryNotFoundError",
    "ConfigError",
    "InstallError",
    "InvalidInputError",
    "PlatformInfo",
    "platform_override",
    "BinaryManager",
    "BinaryStatus",
    "UpgradeSummary",
    "status",
    "upgrade",
    "upgrade_all",
]
