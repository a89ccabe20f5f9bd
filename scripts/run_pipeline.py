#!/usr/bin/env python3
"""
Trip Weather Enrichment & Analysis
==================================

Runs the batch pipeline end to end, or a single stage:

1. enrich     – rawlocations.csv → temperature / wind / aerosol checkpoints
2. join       – enriched fixes ⋈ tripData.csv, duration and distance
3. aggregate  – one row per trip (trip_count + means)
4. explore    – correlations and exploratory figures
5. model      – OLS battery with VIF, random forest

Usage (from repo root):
    python3 scripts/run_pipeline.py
    python3 scripts/run_pipeline.py --stage join

Raw inputs are expected under data/raw/, intermediate files are written to
data/processed/ and figures/metrics to output/.
"""

import sys
import argparse
from pathlib import Path

SRC = Path(__file__).parent.parent / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))

from tripweather.config import PipelineConfig  # noqa: E402
from tripweather.pipeline import STAGES, run_pipeline  # noqa: E402


def main(argv=None):
    """Run the selected pipeline stage(s)."""

    parser = argparse.ArgumentParser(description='Enrich trip locations with weather data and model trip distance')
    parser.add_argument('--project-root', type=Path, default=None,
                       help='Project root directory (default: auto-detect)')
    parser.add_argument('--stage', choices=STAGES + ['all'], default='all',
                       help='Stage to run (default: all)')
    parser.add_argument('--ee-project', default=None,
                       help='Google Cloud project used for the Earth Engine session')
    parser.add_argument('--max-workers', type=int, default=8,
                       help='Concurrent remote queries (default: 8)')
    parser.add_argument('--precision', type=int, default=4,
                       help='Decimal places used to round coordinates for query deduplication (default: 4)')
    parser.add_argument('--no-resume', action='store_true',
                       help='Re-query every variable even when a checkpoint exists')
    parser.add_argument('--verbose', action='store_true',
                       help='Print one diagnostic line per remote query')

    args = parser.parse_args(argv)

    print("🌦️  TRIP WEATHER PIPELINE")
    print("=" * 60)
    print(f"Stage: {args.stage}")
    print("=" * 60)

    project_root = args.project_root or Path(__file__).parent.parent

    try:
        config = PipelineConfig(
            project_root=project_root,
            ee_project=args.ee_project,
            coordinate_precision=args.precision,
            max_workers=args.max_workers,
            resume=not args.no_resume,
            verbose=args.verbose,
        )
        run_pipeline(config, stage=args.stage)

        print(f"\n" + "=" * 60)
        print("✅ PIPELINE COMPLETE!")
        print("=" * 60)
        print(f"\nIntermediate files: {config.processed_dir}")
        print(f"Figures & metrics:  {config.output_dir}")
        return 0

    except Exception as e:
        print(f"❌ Error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
