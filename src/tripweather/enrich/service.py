"""
Remote geospatial query service boundary.
File: src/tripweather/enrich/service.py

The samplers only ever talk to a ``GeoQueryService``.  Four operations are
needed from a provider:

1. ``initialize``    – authenticate / open a session
2. ``filter_images`` – restrict an image collection to a point and date range
3. ``reduce_mean``   – spatial mean over the point at a given scale
4. ``retrieve``      – synchronously materialise a lazy server‑side object

``EarthEngineService`` implements them with the Earth Engine Python client.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import ee


def epoch_millis(when: datetime) -> int:
    """Milliseconds since the Unix epoch; naive datetimes are taken as UTC."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return int(round(when.timestamp() * 1000))


class GeoQueryService:
    """Abstract point‑query oracle over gridded image collections."""

    def initialize(self) -> None:
        raise NotImplementedError

    def filter_images(
        self,
        collection_id: str,
        bands: List[str],
        lat: float,
        lon: float,
        start: datetime,
        end: datetime,
    ) -> Any:
        raise NotImplementedError

    def reduce_mean(self, images: Any, lat: float, lon: float, scale: float) -> Dict[str, Optional[float]]:
        raise NotImplementedError

    def retrieve(self, obj: Any) -> Any:
        raise NotImplementedError

    def image_count(self, images: Any) -> int:
        """Number of images left after filtering."""
        raise NotImplementedError


class EarthEngineService(GeoQueryService):
    """``GeoQueryService`` backed by Google Earth Engine."""

    def __init__(self, project: Optional[str] = None, authenticate: bool = True):
        self.project = project
        self.authenticate = authenticate
        self._initialized = False

    # ------------------------------------------------------------------ session
    def initialize(self) -> None:
        if self._initialized:
            return
        if self.authenticate:
            # interactive on first use, cached credentials afterwards
            ee.Authenticate()
        ee.Initialize(project=self.project)
        self._initialized = True
        print(f"✅ Earth Engine session initialised (project={self.project})")

    # ------------------------------------------------------------------ queries
    def filter_images(self, collection_id, bands, lat, lon, start, end):
        point = ee.Geometry.Point([lon, lat])
        return (
            ee.ImageCollection(collection_id)
            .filterBounds(point)
            .filterDate(ee.Date(epoch_millis(start)), ee.Date(epoch_millis(end)))
            .select(bands)
        )

    def reduce_mean(self, images, lat, lon, scale):
        point = ee.Geometry.Point([lon, lat])
        reduced = images.mean().reduceRegion(
            reducer=ee.Reducer.mean(),
            geometry=point,
            scale=scale,
        )
        return self.retrieve(reduced)

    def retrieve(self, obj):
        return obj.getInfo()

    def image_count(self, images) -> int:
        return int(self.retrieve(images.size()))
