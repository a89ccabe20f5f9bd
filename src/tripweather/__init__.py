"""
Trip weather enrichment and analysis.
File: src/tripweather/__init__.py

from tripweather import PipelineConfig, run_pipeline
"""

from .config import PipelineConfig
from .data_utils import (
    load_locations,
    load_trips,
    add_calendar_fields,
    join_locations_to_trips,
    derive_trip_metrics,
    group_by_trip,
    write_checkpoint,
    read_checkpoint,
)
from .pipeline import run_pipeline, STAGES

__all__ = [
    'PipelineConfig',
    'run_pipeline',
    'STAGES',

    # Table operations
    'load_locations',
    'load_trips',
    'add_calendar_fields',
    'join_locations_to_trips',
    'derive_trip_metrics',
    'group_by_trip',
    'write_checkpoint',
    'read_checkpoint',
]
