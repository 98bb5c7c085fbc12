"""
Branchstock Protocols.

Defines interfaces for external system integration.
"""

from branchstock.protocols.catalog import CatalogValidator
from branchstock.protocols.locations import LocationRegistry

__all__ = [
    "CatalogValidator",
    "LocationRegistry",
]
