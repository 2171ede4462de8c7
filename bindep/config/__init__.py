"""Configuration module for bindep.

This module provides the binary registry (YAML/JSON documents describing
managed tools) and the runtime settings read from the environment.
"""

from bindep.config.registry import (
    AcquisitionType,
    AssetRule,
    BinaryEntry,
    LATEST,
    VALIDATION_MATRIX,
    load_registry,
    parse_registry,
    validate_registry,
)
from bindep.config.settings import Settings

__all__ = [
    "AcquisitionType",
    "AssetRule",
    "BinaryEntry",
    "LATEST",
    "VALIDATION_MATRIX",
    "load_registry",
    "parse_registry",
    "validate_registry",
    "Settings",
]
