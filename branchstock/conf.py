"""
Branchstock configuration.

Usage in settings.py:
    BRANCHSTOCK = {
        "CATALOG_VALIDATOR": "catalog.adapters.CatalogItemValidator",
        "LOCATION_REGISTRY": "locations.adapters.LocationDirectory",
        "TRANSFER_TTL_HOURS": 24,
        "URGENT_TRANSFER_TTL_HOURS": 4,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class BranchstockSettings:
    """Branchstock configuration settings."""

    # Catalog validation backend (dotted path)
    CATALOG_VALIDATOR: str = "branchstock.adapters.noop.NoopCatalogValidator"

    # Location registry backend (dotted path)
    LOCATION_REGISTRY: str = "branchstock.adapters.noop.NoopLocationRegistry"

    # Validate product/variant refs via the catalog backend before writing
    VALIDATE_INPUT_ITEMS: bool = True

    # Validate location ids via the registry backend before writing
    VALIDATE_LOCATIONS: bool = True

    # Pending transfer lifetime per priority, in hours (0 = no expiration)
    TRANSFER_TTL_HOURS: int = 24
    URGENT_TRANSFER_TTL_HOURS: int = 4

    # transfer_number = f"{PREFIX}-{n:06d}"
    TRANSFER_NUMBER_PREFIX: str = "TRF"

    # Batch size for expire_due processing
    EXPIRED_BATCH_SIZE: int = 200

    # Default page size for list_movements
    MOVEMENTS_PAGE_SIZE: int = 50

    # Attempts for operations failing with ConcurrencyConflictError
    CONFLICT_MAX_RETRIES: int = 3


def get_branchstock_settings() -> BranchstockSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BRANCHSTOCK", {})
    return BranchstockSettings(**{
        k: v for k, v in user_settings.items()
        if k in BranchstockSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_branchstock_settings(), name)


branchstock_settings = _LazySettings()
