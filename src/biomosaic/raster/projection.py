"""Source-CRS fallback for rasters with an unresolvable geographic CRS.

Some scenes (Cerrado imagery in particular) are delivered with a generic
geographic CRS named "unknown". Warping them without an explicit source
CRS silently assumes the wrong datum. The resolver recognises that
descriptor and supplies a configured fallback (SIRGAS 2000, EPSG:4674,
by default) as the source CRS override for the reprojection stage.

The fallback is configuration, not a constant: applying it to a raster
whose true CRS differs would corrupt geolocation.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Union

from biomosaic.raster.raster_utils import SceneRaster

__all__ = ['ProjectionResolver', 'DEFAULT_UNKNOWN_PATTERNS']

logger = logging.getLogger(__name__)

DEFAULT_UNKNOWN_PATTERNS = (
    r'GEOGCRS\["unknown",',
    r'GEOGCS\["unknown",',
)


class ProjectionResolver:
    """Decides whether a raster needs an explicit source CRS for warping.

    Parameters
    ----------
    fallback_crs : str or None
        CRS to force as warp source when the embedded CRS is an unknown
        geographic system. None disables the fallback entirely.
    unknown_patterns : iterable of str
        Regular expressions matched against the WKT descriptor.

    Examples
    --------
    >>> resolver = ProjectionResolver("EPSG:4674")
    >>> resolver.resolve_descriptor('GEOGCRS["unknown",DATUM[...]]')
    'EPSG:4674'
    >>> resolver.resolve_descriptor('GEOGCRS["WGS 84",DATUM[...]]') is None
    True
    """

    def __init__(self, fallback_crs: Optional[str] = "EPSG:4674",
                 unknown_patterns: Iterable[str] = DEFAULT_UNKNOWN_PATTERNS):
        self.fallback_crs = fallback_crs
        self._patterns = [re.compile(p) for p in unknown_patterns]

    @classmethod
    def from_config(cls, config) -> "ProjectionResolver":
        """Build from InternalConfig.projection."""
        return cls(
            fallback_crs=config.projection.fallback_crs,
            unknown_patterns=config.projection.unknown_crs_patterns,
        )

    def is_unknown(self, descriptor: Optional[str]) -> bool:
        """True if the descriptor names an unresolvable geographic CRS."""
        if not descriptor:
            return False
        return any(p.search(descriptor) for p in self._patterns)

    def resolve_descriptor(self, descriptor: Optional[str]) -> Optional[str]:
        """Pure decision on a WKT descriptor. Returns the override or None."""
        if self.fallback_crs and self.is_unknown(descriptor):
            return self.fallback_crs
        return None

    def resolve(self, raster: Union[SceneRaster, Path, str]) -> Optional[str]:
        """Return the source-CRS override for a raster, or None.

        Logs one warning naming the file when the fallback is applied.

        Parameters
        ----------
        raster : SceneRaster, Path or str
            Raster to inspect. Paths are opened to read the header.

        Raises
        ------
        MetadataError
            If a path is given and its header cannot be read.
        """
        if not isinstance(raster, SceneRaster):
            raster = SceneRaster.from_path(raster)

        override = self.resolve_descriptor(raster.crs_descriptor)
        if override is not None:
            logger.warning(
                "Unknown projection for %s: forcing %s as input projection",
                raster.path.name, override
            )
        return override
