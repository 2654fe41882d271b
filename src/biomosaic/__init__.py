"""`biomosaic` - Biome mosaics from satellite scene rasters.

Subpackages:
- raster: Raster operations, projection fallback, grid-crop collaborator
- pipeline: Stage runner and the fixed mosaic pipeline
- contracts: Fail-fast stage invariants
- schemas: Layered pydantic configuration
"""

__version__ = "0.1.0"
