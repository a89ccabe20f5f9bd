"""
Stage functions for the enrichment → join → aggregate → model pipeline.

Each stage reads the file written by the previous one, so any stage can be
re‑run on its own once its input exists on disk.
"""

from __future__ import annotations

from typing import Dict, Optional

import pandas as pd

import tripweather.schema as S
from tripweather.config import PipelineConfig
from tripweather.data_utils import (
    add_calendar_fields,
    derive_trip_metrics,
    group_by_trip,
    join_locations_to_trips,
    load_locations,
    load_trips,
    read_checkpoint,
    write_checkpoint,
)
from tripweather.data_viz import plot_exploratory_battery
from tripweather.enrich import EarthEngineService, GeoQueryService, LocationEnricher, QueryCache
from tripweather.modeling import (
    fit_ols_subsets,
    fit_random_forest,
    metrics_table,
    plot_forest_diagnostics,
    plot_ols_diagnostics,
    vif_table,
)

STAGES = ["enrich", "join", "aggregate", "explore", "model"]


def run_enrichment(config: PipelineConfig, service: Optional[GeoQueryService] = None) -> pd.DataFrame:
    print("🛰️  ENRICHMENT")
    print("=" * 30)
    locations = add_calendar_fields(load_locations(config.locations_path))

    if service is None:
        service = EarthEngineService(project=config.ee_project)
    service.initialize()

    enricher = LocationEnricher(
        service,
        cache=QueryCache(precision=config.coordinate_precision),
        max_workers=config.max_workers,
        verbose=config.verbose,
    )
    return enricher.enrich(locations, checkpoints=config.checkpoint_paths, resume=config.resume)


def run_join(config: PipelineConfig) -> pd.DataFrame:
    print("\n🔗 JOIN & DERIVE")
    print("=" * 30)
    locations = read_checkpoint(config.enriched_path)
    trips = load_trips(config.trips_path)

    joined = derive_trip_metrics(join_locations_to_trips(locations, trips))
    write_checkpoint(joined, config.joined_path)
    return joined


def run_aggregation(config: PipelineConfig) -> pd.DataFrame:
    print("\n📦 AGGREGATION")
    print("=" * 30)
    joined = read_checkpoint(config.joined_path)
    summary = group_by_trip(joined)
    print(f"✅ {len(joined):,} rows → {len(summary):,} trips")
    write_checkpoint(summary, config.summary_path)
    return summary


def run_exploration(config: PipelineConfig):
    print("\n📊 EXPLORATION")
    print("=" * 30)
    joined = read_checkpoint(config.joined_path)
    summary = read_checkpoint(config.summary_path)

    columns = [c for c in [S.TRIP_COUNT] + S.SUMMARY_MEAN_COLUMNS if c in summary.columns]
    corr = summary[columns].corr()
    config.output_dir.mkdir(parents=True, exist_ok=True)
    corr.to_csv(config.output_dir / "correlations.csv")
    print(summary[columns].describe().T.to_string())

    return plot_exploratory_battery(joined, summary, config.figures_dir)


def run_modeling(config: PipelineConfig) -> Dict[str, pd.DataFrame]:
    print("\n📈 MODELING")
    print("=" * 30)
    summary = read_checkpoint(config.summary_path)
    config.output_dir.mkdir(parents=True, exist_ok=True)

    ols_reports = fit_ols_subsets(summary, config.target, config.ols_subsets)
    fitted = {tuple(r.predictors): r for r in ols_reports}
    # files are numbered by position in config.ols_subsets, skipped subsets leave a gap
    for i, predictors in enumerate(config.ols_subsets, 1):
        report = fitted.get(tuple(predictors))
        if report is None:
            continue
        plot_ols_diagnostics(report, save_path=config.figures_dir / f"ols_{i}_diagnostics.png")
        (config.output_dir / f"ols_{i}_summary.txt").write_text(report.summary_text)

    forest = None
    try:
        forest = fit_random_forest(
            summary,
            config.target,
            config.forest_features,
            test_size=config.test_size,
            random_state=config.random_state,
            n_estimators=config.n_estimators,
        )
    except ValueError as e:
        print(f"⚠️ Skipping random forest: {e}")
    else:
        plot_forest_diagnostics(forest, save_path=config.figures_dir / "random_forest_diagnostics.png")

    metrics = metrics_table(ols_reports, forest)
    vifs = vif_table(ols_reports)
    metrics.to_csv(config.output_dir / "model_metrics.csv", index=False)
    vifs.to_csv(config.output_dir / "vif.csv", index=False)
    print(f"✅ Model metrics saved → {config.output_dir / 'model_metrics.csv'}")

    return {"metrics": metrics, "vif": vifs}


def run_pipeline(config: PipelineConfig, stage: str = "all", service: Optional[GeoQueryService] = None) -> None:
    """Run one stage, or every stage in order when ``stage == "all"``."""
    if stage != "all" and stage not in STAGES:
        raise ValueError(f"Unknown stage {stage!r}; expected one of {STAGES + ['all']}")

    selected = STAGES if stage == "all" else [stage]
    for name in selected:
        if name == "enrich":
            run_enrichment(config, service)
        elif name == "join":
            run_join(config)
        elif name == "aggregate":
            run_aggregation(config)
        elif name == "explore":
            run_exploration(config)
        elif name == "model":
            run_modeling(config)
