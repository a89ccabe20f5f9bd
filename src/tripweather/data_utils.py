from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

import tripweather.schema as S
from tripweather.utils.geography import haversine_km

QUERY_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def load_raw_data(path: str | Path, parse_dates: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Load a raw CSV into a DataFrame.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    df = pd.read_csv(path, low_memory=False)
    for col in parse_dates or []:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], utc=True, errors="coerce")
    print(f"Loaded {path.name} with shape: {df.shape}")
    return df


def require_columns(df: pd.DataFrame, columns: Iterable[str], table: str = "table") -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{table} is missing required columns: {missing}")


def load_locations(path: str | Path) -> pd.DataFrame:
    df = load_raw_data(path, parse_dates=[S.TIMESTAMP])
    require_columns(df, [S.TRIP_ID, S.LAT, S.LON, S.TIMESTAMP], "locations")
    return df


def load_trips(path: str | Path) -> pd.DataFrame:
    df = load_raw_data(path, parse_dates=[S.START_TS, S.END_TS])
    require_columns(
        df,
        [S.TRIP_ID, S.START_LAT, S.START_LON, S.END_LAT, S.END_LON, S.START_TS, S.END_TS],
        "trips",
    )
    return df


def add_calendar_fields(df: pd.DataFrame) -> pd.DataFrame:
    """
    Derive calendar columns and the query timestamp string from the fix time.
    Rows whose timestamp failed to parse get NaN / empty values.
    """
    df = df.copy()
    ts = pd.to_datetime(df[S.TIMESTAMP], utc=True, errors="coerce")
    df[S.TIMESTAMP] = ts
    df[S.YEAR] = ts.dt.year
    df[S.MONTH] = ts.dt.month
    df[S.DAY] = ts.dt.day
    df[S.HOUR] = ts.dt.hour
    df[S.DAY_OF_WEEK] = ts.dt.dayofweek
    df[S.QUERY_TIME] = ts.dt.strftime(QUERY_TIME_FORMAT)
    return df


# ────────────────────────────────────────────────────────────────────────────
# Checkpoint files
# ────────────────────────────────────────────────────────────────────────────

def write_checkpoint(df: pd.DataFrame, path: str | Path) -> Path:
    """Overwrite ``path`` with ``df`` (no index column)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    print(f"💾 Wrote {len(df):,} rows → {path}")
    return path


def read_checkpoint(path: str | Path) -> pd.DataFrame:
    """Read a file written by ``write_checkpoint`` back with its timestamps parsed."""
    return load_raw_data(path, parse_dates=[S.TIMESTAMP, S.LOCATION_TIME, S.START_TS, S.END_TS])


# ────────────────────────────────────────────────────────────────────────────
# Join, derive, aggregate
# ────────────────────────────────────────────────────────────────────────────

def join_locations_to_trips(locations: pd.DataFrame, trips: pd.DataFrame) -> pd.DataFrame:
    """
    Inner‑join enriched fixes to trip metadata on the trip id.  Location rows
    whose trip id has no trip row are dropped silently.  Activity columns are
    removed and the fix time is renamed to ``location_time``.
    """
    require_columns(locations, [S.TRIP_ID], "locations")
    require_columns(trips, [S.TRIP_ID], "trips")

    # trip‑side duplicates of location columns would otherwise get suffixes
    overlap = [c for c in trips.columns if c in locations.columns and c != S.TRIP_ID]
    joined = locations.merge(trips.drop(columns=overlap), on=S.TRIP_ID, how="inner")

    joined = joined.drop(columns=[c for c in S.ACTIVITY_COLUMNS if c in joined.columns])
    joined = joined.rename(columns={S.TIMESTAMP: S.LOCATION_TIME})

    dropped = len(locations) - len(joined)
    print(f"Joined {len(joined):,} location rows to trips ({dropped:,} net rows dropped)")
    return joined


def derive_trip_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add ``duration_min`` (end − start) and ``distance_km`` (haversine between
    start and end coordinates).  No sign or range checks.
    """
    require_columns(df, [S.START_TS, S.END_TS, S.START_LAT, S.START_LON, S.END_LAT, S.END_LON], "joined")
    df = df.copy()
    start = pd.to_datetime(df[S.START_TS], utc=True, errors="coerce")
    end = pd.to_datetime(df[S.END_TS], utc=True, errors="coerce")
    df[S.DURATION] = (end - start).dt.total_seconds() / 60.0
    df[S.DISTANCE] = haversine_km(df[S.START_LAT], df[S.START_LON], df[S.END_LAT], df[S.END_LON])
    return df


def group_by_trip(df: pd.DataFrame, mean_columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Collapse enriched rows to one row per trip.  ``trip_count`` is the number
    of contributing rows; every other column is a NaN‑skipping mean, so a trip
    whose rows are all missing a value ends up with NaN rather than 0.
    """
    require_columns(df, [S.TRIP_ID], "enriched")
    if mean_columns is None:
        mean_columns = S.SUMMARY_MEAN_COLUMNS
    mean_columns = [c for c in mean_columns if c in df.columns]

    summary = df.groupby(S.TRIP_ID).size().rename(S.TRIP_COUNT).to_frame()
    if mean_columns:
        numeric = df[mean_columns].apply(pd.to_numeric, errors="coerce")
        numeric[S.TRIP_ID] = df[S.TRIP_ID]
        summary = summary.join(numeric.groupby(S.TRIP_ID).mean())

    return summary.reset_index()
