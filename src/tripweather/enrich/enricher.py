"""
Batched enrichment of location fixes with environmental variables.
File: src/tripweather/enrich/enricher.py

For every variable the enricher
1. maps each row to a cache key (variable, rounded coordinate, time window),
2. queries each *unique* missing key once, fanned out over a thread pool,
3. folds the results back in row order, and
4. writes a checkpoint file before moving on to the next variable.

Rows keep their input order and count.  A failing query only affects the
rows that share its key.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

import tripweather.schema as S
from tripweather.data_utils import read_checkpoint, require_columns, write_checkpoint
from .query_cache import QueryCache
from .samplers import DEFAULT_SPECS, PointSampler, SampleResult, VariableSpec
from .service import GeoQueryService


ROW_IDENTITY = [S.TRIP_ID, S.LAT, S.LON, S.TIMESTAMP]


def same_rows(saved: pd.DataFrame, df: pd.DataFrame) -> bool:
    """True when ``saved`` describes the same fixes as ``df``, row for row."""
    if len(saved) != len(df):
        return False
    for col in ROW_IDENTITY:
        if col not in df.columns:
            continue
        if col not in saved.columns:
            return False
        old, new = saved[col].reset_index(drop=True), df[col].reset_index(drop=True)
        if col == S.TIMESTAMP:
            old = pd.to_datetime(old, utc=True, errors="coerce")
            new = pd.to_datetime(new, utc=True, errors="coerce")
            if not ((old == new) | (old.isna() & new.isna())).all():
                return False
        elif col == S.TRIP_ID:
            if not (old.astype(str) == new.astype(str)).all():
                return False
        elif not np.allclose(old.astype(float), new.astype(float), equal_nan=True):
            return False
    return True


class LocationEnricher:
    """Attaches remote‑sourced environmental values to location rows."""

    def __init__(
        self,
        service: GeoQueryService,
        specs: Optional[List[VariableSpec]] = None,
        cache: Optional[QueryCache] = None,
        max_workers: int = 8,
        verbose: bool = True,
    ):
        self.service = service
        self.specs = list(specs) if specs is not None else list(DEFAULT_SPECS)
        self.cache = cache if cache is not None else QueryCache()
        self.max_workers = max(1, int(max_workers))
        self.verbose = verbose
        self.sampler = PointSampler(service, verbose=verbose)

    # ------------------------------------------------------------------ internals
    def _run_queries(self, spec: VariableSpec, pending: Dict[tuple, tuple]) -> None:
        def run(item):
            key, (lat, lon, when) = item
            return key, self.sampler.sample(spec, lat, lon, when)

        if self.max_workers == 1:
            for key, result in map(run, pending.items()):
                self.cache.put(key, result)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for key, result in pool.map(run, pending.items()):
                self.cache.put(key, result)

    # ------------------------------------------------------------------ api
    def enrich_variable(self, df: pd.DataFrame, spec: VariableSpec) -> pd.DataFrame:
        """Return a copy of ``df`` with ``spec.columns`` and its status column added."""
        require_columns(df, [S.LAT, S.LON, S.TIMESTAMP], "locations")
        df = df.copy()
        times = pd.to_datetime(df[S.TIMESTAMP], utc=True, errors="coerce")

        keys: List[Optional[tuple]] = []
        pending: Dict[tuple, tuple] = {}
        for lat, lon, ts in zip(df[S.LAT], df[S.LON], times):
            if pd.isna(lat) or pd.isna(lon) or pd.isna(ts):
                keys.append(None)
                continue
            when = ts.to_pydatetime()
            key = self.cache.key(spec, lat, lon, when)
            keys.append(key)
            if key not in self.cache and key not in pending:
                pending[key] = (key[1], key[2], when)

        print(f"🌍 {spec.name}: {len(df):,} rows → {len(pending):,} new queries "
              f"({len(self.cache):,} cached)")
        self._run_queries(spec, pending)

        invalid = SampleResult(spec.missing(), S.STATUS_ERROR)
        results = [self.cache.get(k) if k is not None else invalid for k in keys]

        for col in spec.columns:
            df[col] = np.array([r.values.get(col, np.nan) for r in results], dtype=float)
        df[S.status_column(spec.name)] = [r.status for r in results]

        statuses = df[S.status_column(spec.name)].value_counts().to_dict()
        print(f"✅ {spec.name} done: {statuses}")
        return df

    def enrich(
        self,
        df: pd.DataFrame,
        checkpoints: Optional[Dict[str, Path]] = None,
        resume: bool = True,
    ) -> pd.DataFrame:
        """
        Enrich ``df`` with every configured variable in turn.

        ``checkpoints`` maps a variable name to the file written after that
        variable completes.  With ``resume`` the variable's columns are copied
        from a checkpoint whose rows carry the same trip ids, coordinates and
        timestamps as ``df``; any other checkpoint is ignored and overwritten.
        """
        checkpoints = checkpoints or {}
        for spec in self.specs:
            path = checkpoints.get(spec.name)
            if resume and path is not None and Path(path).exists():
                saved = read_checkpoint(path)
                columns = list(spec.columns) + [S.status_column(spec.name)]
                if all(c in saved.columns for c in columns) and same_rows(saved, df):
                    print(f"⏭️  {spec.name}: resuming from {path}")
                    df = df.copy()
                    for col in columns:
                        df[col] = saved[col].to_numpy()
                    continue
                print(f"⚠️ {spec.name}: checkpoint {path} does not match the input, re-querying")

            df = self.enrich_variable(df, spec)
            if path is not None:
                write_checkpoint(df, path)
        return df
