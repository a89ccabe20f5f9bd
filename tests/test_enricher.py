"""
Test suite for batched enrichment
File: tests/test_enricher.py
"""

import sys
import threading
from pathlib import Path

import numpy as np
import pandas as pd

# Add src to path for imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from fakes import FakeService  # noqa: E402

import tripweather.schema as S  # noqa: E402
from tripweather.data_utils import add_calendar_fields  # noqa: E402
from tripweather.enrich import (  # noqa: E402
    AEROSOL,
    TEMPERATURE,
    WIND,
    LocationEnricher,
    QueryCache,
    SampleResult,
)


def make_locations():
    return add_calendar_fields(pd.DataFrame({
        S.TRIP_ID: [1, 1, 2, 3],
        S.LAT: [45.50001, 45.50002, 45.60, np.nan],
        S.LON: [-73.60001, -73.60002, -73.50, -73.40],
        S.TIMESTAMP: ["2023-06-01 10:00", "2023-06-01 10:00", "2023-06-01 12:00", "2023-06-01 13:00"],
    }))


class TestLocationEnricher:

    def setup_method(self):
        self.service = FakeService()
        self.enricher = LocationEnricher(self.service, max_workers=1, verbose=False)

    def test_adds_columns_in_row_order(self):
        df = self.enricher.enrich_variable(make_locations(), TEMPERATURE)
        assert len(df) == 4
        assert list(df[S.TRIP_ID]) == [1, 1, 2, 3]
        assert np.allclose(df[S.TEMP_C].iloc[:3], 20.0)
        assert list(df[S.status_column("temperature")]) == [
            S.STATUS_OK, S.STATUS_OK, S.STATUS_OK, S.STATUS_ERROR,
        ]

    def test_nearby_fixes_share_one_query(self):
        self.enricher.enrich_variable(make_locations(), TEMPERATURE)
        # rows 0 and 1 round to the same coordinate; row 3 has no latitude
        assert len(self.service.calls) == 2

    def test_no_rounding_queries_each_coordinate(self):
        enricher = LocationEnricher(self.service, cache=QueryCache(precision=None), max_workers=1, verbose=False)
        enricher.enrich_variable(make_locations(), TEMPERATURE)
        assert len(self.service.calls) == 3

    def test_cache_reused_across_calls(self):
        self.enricher.enrich_variable(make_locations(), TEMPERATURE)
        self.enricher.enrich_variable(make_locations(), TEMPERATURE)
        assert len(self.service.calls) == 2

    def test_wind_no_data_is_zero(self):
        enricher = LocationEnricher(FakeService(counts={WIND.collection_id: 0}), max_workers=1, verbose=False)
        df = enricher.enrich_variable(make_locations(), WIND)
        assert (df[S.WIND_MS].iloc[:3] == 0.0).all()
        assert (df[S.WIND_MPH].iloc[:3] == 0.0).all()
        assert set(df[S.status_column("wind")].iloc[:3]) == {S.STATUS_NO_DATA}

    def test_failure_does_not_abort_other_variables(self):
        service = FakeService(fail_on={AEROSOL.collection_id})
        enricher = LocationEnricher(service, max_workers=1, verbose=False)
        df = enricher.enrich(make_locations())

        assert df[S.AEROSOL].isna().all()
        assert set(df[S.status_column("aerosol")]) == {S.STATUS_ERROR}
        assert df[S.TEMP_C].notna().sum() == 3
        assert np.allclose(df[S.WIND_MS].iloc[:3], 5.0)

    def test_thread_pool_matches_sequential(self):
        sequential = self.enricher.enrich(make_locations())
        pooled = LocationEnricher(FakeService(), max_workers=4, verbose=False).enrich(make_locations())
        pd.testing.assert_frame_equal(sequential, pooled)


class TestCheckpoints:

    def checkpoints(self, tmp_path):
        return {name: tmp_path / f"locations_{name}.csv" for name in ("temperature", "wind", "aerosol")}

    def test_checkpoint_per_variable(self, tmp_path):
        paths = self.checkpoints(tmp_path)
        LocationEnricher(FakeService(), max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)

        temperature = pd.read_csv(paths["temperature"])
        aerosol = pd.read_csv(paths["aerosol"])
        assert S.TEMP_C in temperature.columns and S.WIND_MS not in temperature.columns
        assert all(c in aerosol.columns for c in [S.TEMP_C, S.WIND_MS, S.AEROSOL])
        assert len(aerosol) == 4

    def test_resume_skips_completed_variables(self, tmp_path):
        paths = self.checkpoints(tmp_path)
        LocationEnricher(FakeService(), max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)

        second = FakeService()
        df = LocationEnricher(second, max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)
        assert second.calls == []
        assert S.AEROSOL in df.columns

    def test_changed_input_of_same_length_requeries(self, tmp_path):
        paths = self.checkpoints(tmp_path)
        LocationEnricher(FakeService(), max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)

        fresh = make_locations()
        fresh[S.TRIP_ID] = [7, 7, 8, 9]
        fresh[S.LAT] = [40.1, 40.1, 40.2, 40.3]

        second = FakeService()
        df = LocationEnricher(second, max_workers=1, verbose=False).enrich(fresh, checkpoints=paths)
        assert list(df[S.TRIP_ID]) == [7, 7, 8, 9]
        assert list(df[S.LAT]) == [40.1, 40.1, 40.2, 40.3]
        assert len(second.calls) == 9          # 3 unique keys × 3 variables
        assert list(pd.read_csv(paths["aerosol"])[S.TRIP_ID]) == [7, 7, 8, 9]

    def test_resumed_variable_does_not_overwrite_requeried_one(self, tmp_path):
        paths = self.checkpoints(tmp_path)
        LocationEnricher(FakeService(), max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)
        paths["temperature"].unlink()

        warmer = {collection: dict(bands) for collection, bands in FakeService().bands.items()}
        warmer["ECMWF/ERA5_LAND/HOURLY"]["temperature_2m"] = 303.15
        second = FakeService(bands=warmer)
        df = LocationEnricher(second, max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)

        assert np.allclose(df[S.TEMP_C].iloc[:3], 30.0)
        assert np.allclose(df[S.WIND_MS].iloc[:3], 5.0)
        assert {c["collection"] for c in second.calls} == {"ECMWF/ERA5_LAND/HOURLY"}
        assert len(second.calls) == 2

    def test_no_resume_requeries(self, tmp_path):
        paths = self.checkpoints(tmp_path)
        LocationEnricher(FakeService(), max_workers=1, verbose=False).enrich(make_locations(), checkpoints=paths)

        second = FakeService()
        LocationEnricher(second, max_workers=1, verbose=False).enrich(
            make_locations(), checkpoints=paths, resume=False
        )
        assert len(second.calls) == 6          # 2 unique keys × 3 variables


class TestQueryCache:

    def test_nearby_coordinates_share_a_key(self):
        cache = QueryCache(precision=4)
        when = pd.Timestamp("2023-06-01 10:00", tz="UTC").to_pydatetime()
        a = cache.key(TEMPERATURE, 45.50001, -73.60001, when)
        b = cache.key(TEMPERATURE, 45.50002, -73.60002, when)
        assert a == b
        assert a != cache.key(WIND, 45.50001, -73.60001, when)

    def test_reads_wait_for_the_lock(self):
        cache = QueryCache()
        cache.put("k", SampleResult({}, S.STATUS_OK))
        seen = []

        with cache._lock:
            reader = threading.Thread(target=lambda: seen.append(("k" in cache, len(cache))))
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
            assert seen == []

        reader.join(timeout=5)
        assert seen == [(True, 1)]
