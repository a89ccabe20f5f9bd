from __future__ import annotations

import math

KELVIN_OFFSET = 273.15
MS_TO_MPH = 2.23694     # fixed factor, metres/second → miles/hour


def kelvin_to_celsius(kelvin: float) -> float:
    return kelvin - KELVIN_OFFSET


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def wind_speed_ms(u: float, v: float) -> float:
    """Magnitude of the (u, v) wind vector."""
    return math.hypot(u, v)


def ms_to_mph(speed_ms: float) -> float:
    return round(speed_ms * MS_TO_MPH, 6)
