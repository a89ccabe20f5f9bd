from .geography import haversine_km, EARTH_RADIUS_KM
from .units import (
    kelvin_to_celsius,
    celsius_to_fahrenheit,
    wind_speed_ms,
    ms_to_mph,
    MS_TO_MPH,
)

__all__ = [
    'haversine_km',
    'EARTH_RADIUS_KM',
    'kelvin_to_celsius',
    'celsius_to_fahrenheit',
    'wind_speed_ms',
    'ms_to_mph',
    'MS_TO_MPH',
]
