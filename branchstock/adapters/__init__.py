"""
Branchstock Adapters.

Loading of the configured catalog/location protocol implementations.
"""

from branchstock.adapters.loader import (
    get_catalog_validator,
    get_location_registry,
    reset_adapters,
)

__all__ = [
    "get_catalog_validator",
    "get_location_registry",
    "reset_adapters",
]
