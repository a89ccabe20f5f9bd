from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, Hashable, Optional, Tuple

from .samplers import SampleResult, VariableSpec

QueryKey = Tuple[str, float, float, datetime, datetime]


class QueryCache:
    """In‑memory memo of sample results for one run.

    Keys are ``(variable, rounded lat, rounded lon, window start, window end)``
    so fixes that share a rounded coordinate and an identical time window are
    only queried once.  ``precision=None`` disables coordinate rounding.
    Nothing is ever evicted; the cache lives as long as the enricher.
    """

    def __init__(self, precision: Optional[int] = 4):
        self.precision = precision
        self._store: Dict[Hashable, SampleResult] = {}
        self._lock = Lock()

    # ------------------------------------------------------------------ keys
    def round_coord(self, value: float) -> float:
        if self.precision is None:
            return float(value)
        return round(float(value), self.precision)

    def key(self, spec: VariableSpec, lat: float, lon: float, when: datetime) -> QueryKey:
        start, end = spec.time_window(when)
        return (spec.name, self.round_coord(lat), self.round_coord(lon), start, end)

    # ------------------------------------------------------------------ api
    def get(self, key: QueryKey) -> Optional[SampleResult]:
        with self._lock:
            return self._store.get(key)

    def put(self, key: QueryKey, result: SampleResult) -> None:
        with self._lock:
            self._store[key] = result

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
