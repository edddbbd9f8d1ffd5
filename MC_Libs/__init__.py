"""
MC_Libs - Minifig Composer Library Modules

This package contains core functionality for the Minifig Composer project,
organized into specialized sub-packages:

- BgRemovalLib: Background removal pipeline and cached removal engine
- ComposerLib: Layered part composition, dragging and export
- CatalogLib: Catalog records and the Rebrickable API client
- CollectionStoreLib: Builder session and collection persistence
- ImageProxyLib: Cross-origin image proxy endpoint
"""

__version__ = "0.1.0"
