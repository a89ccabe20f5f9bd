"""Checks that each file on disk faithfully derives from the previous one.
Runs the whole pipeline against an in-memory service inside a temporary
project root. Uses column names from `schema.py` so it remains robust to
future renaming.
"""

import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

# ensure src/ is importable when the package isn't installed editable
sys.path.append(str(Path(__file__).parent.parent / "src"))

from fakes import FakeService  # noqa: E402

import tripweather.schema as S  # noqa: E402
from tripweather.config import PipelineConfig  # noqa: E402
from tripweather.data_utils import group_by_trip, read_checkpoint  # noqa: E402
from tripweather.pipeline import run_pipeline  # noqa: E402


class VaryingService(FakeService):
    """Band values that change with latitude so models have signal to fit."""

    def reduce_mean(self, images, lat, lon, scale):
        self.scales.append(scale)
        offset = (lat - 45.0) * 100
        values = {
            "temperature_2m": 280.0 + offset,
            "u_component_of_wind_10m": 1.0 + offset / 10,
            "v_component_of_wind_10m": 2.0,
            "absorbing_aerosol_index": -1.0 + (lon + 74.0),
        }
        return {b: values[b] for b in images["bands"]}


@pytest.fixture
def project(tmp_path):
    rng = np.random.default_rng(3)
    raw = tmp_path / "data" / "raw"
    raw.mkdir(parents=True)

    loc_rows, trip_rows = [], []
    for trip in range(1, 13):
        lat0, lon0 = 45.0 + trip * 0.02, -73.9 + rng.uniform(0, 0.3)
        start = pd.Timestamp("2023-06-01 08:00") + pd.Timedelta(hours=trip * 5)
        for k in range(2 + trip % 3):
            loc_rows.append({
                S.TRIP_ID: trip,
                S.LAT: lat0 + k * 0.001,
                S.LON: lon0 + k * 0.001,
                S.TIMESTAMP: (start + pd.Timedelta(minutes=10 * k)).strftime("%Y-%m-%d %H:%M:%S"),
            })
        trip_rows.append({
            S.TRIP_ID: trip,
            S.START_LAT: lat0,
            S.START_LON: lon0,
            S.END_LAT: lat0 + trip * 0.01,
            S.END_LON: lon0 + rng.uniform(0, 0.05),
            S.START_TS: start.strftime("%Y-%m-%d %H:%M:%S"),
            S.END_TS: (start + pd.Timedelta(minutes=20 + trip)).strftime("%Y-%m-%d %H:%M:%S"),
            "activitytype": "cycling",
            "activityconfidence": 80,
        })
    # a fix without a matching trip row
    loc_rows.append({S.TRIP_ID: 404, S.LAT: 45.9, S.LON: -73.5, S.TIMESTAMP: "2023-06-02 09:00:00"})

    pd.DataFrame(loc_rows).to_csv(raw / "rawlocations.csv", index=False)
    pd.DataFrame(trip_rows).to_csv(raw / "tripData.csv", index=False)

    config = PipelineConfig(project_root=tmp_path, max_workers=2, n_estimators=20)
    service = VaryingService()
    run_pipeline(config, stage="all", service=service)
    return config, service


def test_enrichment_checkpoints(project):
    config, service = project
    assert service.initialized
    locations = pd.read_csv(config.locations_path)
    for name, path in config.checkpoint_paths.items():
        df = read_checkpoint(path)
        assert len(df) == len(locations)
        assert S.status_column(name) in df.columns

    final = read_checkpoint(config.enriched_path)
    assert np.allclose(final[S.TEMP_F], final[S.TEMP_C] * 9 / 5 + 32)
    assert np.allclose(final[S.WIND_MPH], (final[S.WIND_MS] * 2.23694).round(6))


def test_join_drops_unmatched(project):
    config, _ = project
    enriched = read_checkpoint(config.enriched_path)
    joined = read_checkpoint(config.joined_path)

    assert len(joined) == len(enriched) - 1
    assert 404 not in set(joined[S.TRIP_ID])
    assert S.LOCATION_TIME in joined.columns
    assert (joined[S.DURATION] > 0).all()


def test_trip_aggregation(project):
    config, _ = project
    joined = read_checkpoint(config.joined_path)
    summary = read_checkpoint(config.summary_path)

    agg = group_by_trip(joined)
    merged = pd.merge(summary, agg, on=S.TRIP_ID, suffixes=("", "_calc"))
    assert len(merged) == len(summary) == 12

    for col in [S.TRIP_COUNT] + S.SUMMARY_MEAN_COLUMNS:
        assert np.allclose(merged[col], merged[f"{col}_calc"], equal_nan=True), col
    assert summary[S.TRIP_COUNT].sum() == len(joined)


def test_outputs_written(project):
    config, _ = project
    metrics = pd.read_csv(config.output_dir / "model_metrics.csv")
    assert "random_forest" in set(metrics["model"])
    assert (metrics["model"] == "ols").sum() == len(config.ols_subsets)
    assert (config.output_dir / "vif.csv").exists()
    assert (config.output_dir / "correlations.csv").exists()
    assert (config.figures_dir / "correlation_heatmap.png").exists()
    assert (config.figures_dir / "random_forest_diagnostics.png").exists()


def test_unknown_stage(tmp_path):
    with pytest.raises(ValueError):
        run_pipeline(PipelineConfig(project_root=tmp_path), stage="publish")
