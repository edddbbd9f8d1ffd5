"""
CatalogLib - Catalog records and API client

This module provides the minifig and part record models and the async
Rebrickable client that supplies them.
"""

from MC_Libs.CatalogLib.catalog_models import (
    PartColor,
    CatalogPart,
    MinifigPart,
    Minifig,
)
from MC_Libs.CatalogLib.rebrickable_client import (
    CatalogAPIError,
    Page,
    RebrickableClient,
)

__all__ = [
    "PartColor",
    "CatalogPart",
    "MinifigPart",
    "Minifig",
    "CatalogAPIError",
    "Page",
    "RebrickableClient",
]
