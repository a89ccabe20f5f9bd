"""
Point‑in‑time environmental samplers.
File: src/tripweather/enrich/samplers.py

One ``VariableSpec`` per environmental variable describes which collection to
query, over which time window and spatial scale, and how raw band values turn
into output columns.  ``PointSampler`` runs a single query through a
``GeoQueryService`` and never raises: failures come back as a ``SampleResult``
with ``status == "error"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

import numpy as np

import tripweather.schema as S
from tripweather.utils.units import (
    kelvin_to_celsius,
    celsius_to_fahrenheit,
    wind_speed_ms,
    ms_to_mph,
)
from .service import GeoQueryService


@dataclass(frozen=True)
class VariableSpec:
    """How to sample one environmental variable."""
    name: str
    collection_id: str
    bands: List[str]
    window: timedelta               # half‑width, centred on the fix time
    scale_m: float                  # reduction resolution in metres
    columns: List[str]
    convert: Callable[[Dict[str, float]], Dict[str, float]]
    no_data: Dict[str, float] = field(default_factory=dict)

    def missing(self) -> Dict[str, float]:
        return {col: np.nan for col in self.columns}

    def empty(self) -> Dict[str, float]:
        """Values returned when the window holds no images."""
        values = self.missing()
        values.update(self.no_data)
        return values

    def time_window(self, when: datetime):
        return when - self.window, when + self.window


@dataclass
class SampleResult:
    values: Dict[str, float]
    status: str
    image_count: int = 0


# ────────────────────────────────────────────────────────────────────────────
# Conversions from band values
# ────────────────────────────────────────────────────────────────────────────

def _convert_temperature(bands: Dict[str, float]) -> Dict[str, float]:
    celsius = kelvin_to_celsius(bands["temperature_2m"])
    return {S.TEMP_C: celsius, S.TEMP_F: celsius_to_fahrenheit(celsius)}


def _convert_wind(bands: Dict[str, float]) -> Dict[str, float]:
    speed = wind_speed_ms(bands["u_component_of_wind_10m"], bands["v_component_of_wind_10m"])
    return {S.WIND_MS: speed, S.WIND_MPH: ms_to_mph(speed)}


def _convert_aerosol(bands: Dict[str, float]) -> Dict[str, float]:
    return {S.AEROSOL: bands["absorbing_aerosol_index"]}


TEMPERATURE = VariableSpec(
    name="temperature",
    collection_id="ECMWF/ERA5_LAND/HOURLY",
    bands=["temperature_2m"],
    window=timedelta(hours=1),
    scale_m=1000,
    columns=[S.TEMP_C, S.TEMP_F],
    convert=_convert_temperature,
)

WIND = VariableSpec(
    name="wind",
    collection_id="ECMWF/ERA5_LAND/HOURLY",
    bands=["u_component_of_wind_10m", "v_component_of_wind_10m"],
    window=timedelta(hours=1),
    scale_m=1000,
    columns=[S.WIND_MS, S.WIND_MPH],
    convert=_convert_wind,
    no_data={S.WIND_MS: 0.0, S.WIND_MPH: 0.0},
)

# Sentinel‑5P revisits roughly daily, hence the wider window and coarser scale
AEROSOL = VariableSpec(
    name="aerosol",
    collection_id="COPERNICUS/S5P/OFFL/L3_AER_AI",
    bands=["absorbing_aerosol_index"],
    window=timedelta(hours=24),
    scale_m=7000,
    columns=[S.AEROSOL],
    convert=_convert_aerosol,
)

DEFAULT_SPECS = [TEMPERATURE, WIND, AEROSOL]


class PointSampler:
    """Runs one point/time query for a ``VariableSpec``."""

    def __init__(self, service: GeoQueryService, verbose: bool = True):
        self.service = service
        self.verbose = verbose

    def sample(self, spec: VariableSpec, lat: float, lon: float, when: datetime) -> SampleResult:
        start, end = spec.time_window(when)
        try:
            images = self.service.filter_images(spec.collection_id, spec.bands, lat, lon, start, end)
            count = self.service.image_count(images)
            if self.verbose:
                print(f"   {spec.name}: lat={lat}, lon={lon}, "
                      f"window={start.isoformat()} → {end.isoformat()}, images={count}")
            if count == 0:
                return SampleResult(spec.empty(), S.STATUS_NO_DATA, 0)

            bands = self.service.reduce_mean(images, lat, lon, spec.scale_m)
            if not bands or any(bands.get(b) is None for b in spec.bands):
                # images exist but the pixel is masked at this point
                return SampleResult(spec.missing(), S.STATUS_NO_DATA, count)

            return SampleResult(spec.convert(bands), S.STATUS_OK, count)
        except Exception as e:
            print(f"⚠️ {spec.name} query failed at ({lat}, {lon}, {when.isoformat()}): {e}")
            return SampleResult(spec.missing(), S.STATUS_ERROR, 0)


def spec_by_name(name: str, specs: Optional[List[VariableSpec]] = None) -> VariableSpec:
    for spec in specs or DEFAULT_SPECS:
        if spec.name == name:
            return spec
    raise KeyError(f"Unknown variable: {name}")
