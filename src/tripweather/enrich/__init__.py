"""
Enrichment package initialization.
File: src/tripweather/enrich/__init__.py

from tripweather.enrich import LocationEnricher, EarthEngineService
"""

from .service import GeoQueryService, EarthEngineService

from .samplers import (
    VariableSpec,
    SampleResult,
    PointSampler,
    TEMPERATURE,
    WIND,
    AEROSOL,
    DEFAULT_SPECS,
    spec_by_name,
)

from .query_cache import QueryCache
from .enricher import LocationEnricher

__all__ = [
    # Service boundary
    'GeoQueryService',
    'EarthEngineService',

    # Sampling
    'VariableSpec',
    'SampleResult',
    'PointSampler',
    'QueryCache',
    'LocationEnricher',
    'spec_by_name',

    # Variable specs
    'TEMPERATURE',
    'WIND',
    'AEROSOL',
    'DEFAULT_SPECS',
]
