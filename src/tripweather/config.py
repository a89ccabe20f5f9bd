from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import tripweather.schema as S

# Predictor subsets for the OLS battery (target: distance_km)
DEFAULT_OLS_SUBSETS: List[List[str]] = [
    [S.TEMP_C, S.WIND_MS, S.AEROSOL],
    [S.TEMP_C, S.WIND_MS],
    [S.TEMP_C],
    [S.TEMP_C, S.WIND_MS, S.AEROSOL, S.TRIP_COUNT],
]

DEFAULT_FOREST_FEATURES: List[str] = [S.TEMP_C, S.WIND_MS, S.AEROSOL]


@dataclass
class PipelineConfig:
    """Paths and tuning knobs for one run.  Every file is overwritten per run."""
    project_root: Path = field(default_factory=Path.cwd)

    raw_dir_name: str = "data/raw"
    processed_dir_name: str = "data/processed"
    output_dir_name: str = "output"

    locations_file: str = "rawlocations.csv"
    trips_file: str = "tripData.csv"
    checkpoint_files: Dict[str, str] = field(default_factory=lambda: {
        "temperature": "locations_temperature.csv",
        "wind": "locations_wind.csv",
        "aerosol": "locations_aerosol.csv",
    })
    joined_file: str = "trips_joined.csv"
    summary_file: str = "trip_summary.csv"

    # enrichment
    ee_project: Optional[str] = None
    coordinate_precision: Optional[int] = 4
    max_workers: int = 8
    resume: bool = True
    verbose: bool = False

    # modeling
    target: str = S.DISTANCE
    ols_subsets: List[List[str]] = field(default_factory=lambda: [list(s) for s in DEFAULT_OLS_SUBSETS])
    forest_features: List[str] = field(default_factory=lambda: list(DEFAULT_FOREST_FEATURES))
    test_size: float = 0.2
    random_state: int = 42
    n_estimators: int = 200

    def __post_init__(self):
        self.project_root = Path(self.project_root)

    # ------------------------------------------------------------------ paths
    @property
    def raw_dir(self) -> Path:
        return self.project_root / self.raw_dir_name

    @property
    def processed_dir(self) -> Path:
        return self.project_root / self.processed_dir_name

    @property
    def output_dir(self) -> Path:
        return self.project_root / self.output_dir_name

    @property
    def locations_path(self) -> Path:
        return self.raw_dir / self.locations_file

    @property
    def trips_path(self) -> Path:
        return self.raw_dir / self.trips_file

    @property
    def checkpoint_paths(self) -> Dict[str, Path]:
        return {name: self.processed_dir / fn for name, fn in self.checkpoint_files.items()}

    @property
    def enriched_path(self) -> Path:
        """Last checkpoint written by the enrichment stage."""
        return self.processed_dir / list(self.checkpoint_files.values())[-1]

    @property
    def joined_path(self) -> Path:
        return self.processed_dir / self.joined_file

    @property
    def summary_path(self) -> Path:
        return self.processed_dir / self.summary_file

    @property
    def figures_dir(self) -> Path:
        return self.output_dir / "figures"
