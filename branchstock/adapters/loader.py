"""
Adapter loading — resolves the configured catalog/location backends.

Usage:
    from branchstock.adapters import get_location_registry

    registry = get_location_registry()
    names = registry.location_names(business_id, [1, 2])

Settings:
    BRANCHSTOCK = {
        "CATALOG_VALIDATOR": "catalog.adapters.CatalogItemValidator",
        "LOCATION_REGISTRY": "locations.adapters.LocationDirectory",
    }

A blank or unimportable path raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from branchstock.conf import branchstock_settings
from branchstock.protocols.catalog import CatalogValidator
from branchstock.protocols.locations import LocationRegistry

logger = logging.getLogger(__name__)


# Cached adapter instances, keyed by setting name
_lock = threading.Lock()
_instances: dict[str, object] = {}


def _load(setting: str, protocol: type):
    instance = _instances.get(setting)
    if instance is None:
        with _lock:
            instance = _instances.get(setting)
            if instance is None:  # double-checked
                path = getattr(branchstock_settings, setting)

                if not path:
                    raise ImproperlyConfigured(
                        f"BRANCHSTOCK['{setting}'] must be configured."
                    )

                try:
                    adapter_class = import_string(path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import {setting} '{path}': {e}"
                    ) from e

                instance = adapter_class()
                if not isinstance(instance, protocol):
                    raise ImproperlyConfigured(
                        f"{path} does not implement {protocol.__name__}"
                    )
                _instances[setting] = instance
                logger.debug("Loaded %s: %s", setting, path)

    return instance


def get_catalog_validator() -> CatalogValidator:
    """
    Return the configured catalog validator.

    Raises:
        ImproperlyConfigured: If CATALOG_VALIDATOR is blank or import fails
    """
    return _load("CATALOG_VALIDATOR", CatalogValidator)


def get_location_registry() -> LocationRegistry:
    """
    Return the configured location registry.

    Raises:
        ImproperlyConfigured: If LOCATION_REGISTRY is blank or import fails
    """
    return _load("LOCATION_REGISTRY", LocationRegistry)


def reset_adapters() -> None:
    """Reset the cached adapters. Useful for testing."""
    with _lock:
        _instances.clear()
