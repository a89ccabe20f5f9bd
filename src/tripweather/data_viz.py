from pathlib import Path

import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd

import tripweather.schema as S

LABELS = {
    S.TEMP_C: "Temperature (°C)",
    S.TEMP_F: "Temperature (°F)",
    S.WIND_MS: "Wind Speed (m/s)",
    S.WIND_MPH: "Wind Speed (mph)",
    S.AEROSOL: "Aerosol Index",
    S.DURATION: "Trip Duration (minutes)",
    S.DISTANCE: "Trip Distance (km)",
    S.TRIP_COUNT: "Location Fixes per Trip",
}


def _finish(save_path=None):
    """Save and close the current figure when a path is given, otherwise show it."""
    plt.tight_layout()
    if save_path is None:
        plt.show()
        return None
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(save_path, dpi=120)
    plt.close()
    return save_path


def plot_variable_distribution(df, column, bins=50, save_path=None):
    plt.figure(figsize=(10, 6))
    sns.histplot(df[column].dropna(), bins=bins, kde=True)
    plt.title(f"Distribution of {LABELS.get(column, column)}")
    plt.xlabel(LABELS.get(column, column))
    plt.ylabel("Frequency")
    plt.grid(True)
    return _finish(save_path)


def plot_correlation_heatmap(df, columns=None, save_path=None):
    if columns is None:
        columns = [c for c in [S.TRIP_COUNT] + S.SUMMARY_MEAN_COLUMNS if c in df.columns]
    corr = df[columns].corr()
    plt.figure(figsize=(10, 8))
    sns.heatmap(corr, annot=True, fmt=".2f", cmap="coolwarm", vmin=-1, vmax=1, square=True)
    plt.title("Correlation Matrix")
    return _finish(save_path)


def plot_distance_vs(df, column, target=S.DISTANCE, save_path=None):
    data = df[[column, target]].dropna()
    plt.figure(figsize=(10, 6))
    sns.regplot(data=data, x=column, y=target, scatter_kws={"alpha": 0.4}, line_kws={"color": "red"})
    plt.title(f"{LABELS.get(target, target)} vs {LABELS.get(column, column)}")
    plt.xlabel(LABELS.get(column, column))
    plt.ylabel(LABELS.get(target, target))
    plt.grid(True)
    return _finish(save_path)


def plot_fixes_by_hour(df_locations, save_path=None):
    hours = pd.to_datetime(df_locations[S.LOCATION_TIME if S.LOCATION_TIME in df_locations else S.TIMESTAMP],
                           utc=True, errors="coerce").dt.hour
    plt.figure(figsize=(10, 6))
    sns.histplot(hours.dropna(), bins=24, discrete=True, kde=False)
    plt.title("Distribution of Location Fixes by Hour (UTC)")
    plt.xlabel("Hour of Day")
    plt.ylabel("Number of Fixes")
    plt.grid(True)
    return _finish(save_path)


def plot_fixes_by_day_of_week(df_locations, save_path=None):
    ts_col = S.LOCATION_TIME if S.LOCATION_TIME in df_locations else S.TIMESTAMP
    days = pd.to_datetime(df_locations[ts_col], utc=True, errors="coerce").dt.day_name()
    order = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
    counts = days.value_counts().reindex(order, fill_value=0)
    plt.figure(figsize=(12, 6))
    sns.barplot(x=counts.index, y=counts.values)
    plt.title("Location Fixes by Day of Week")
    plt.xticks(rotation=45)
    plt.xlabel("Day of Week")
    plt.ylabel("Number of Fixes")
    plt.grid(True)
    return _finish(save_path)


def plot_location_map(df_locations, color_column=S.TEMP_C, save_path=None):
    """Lon/lat scatter of the fixes coloured by an environmental variable."""
    data = df_locations[[S.LON, S.LAT, color_column]].dropna()
    plt.figure(figsize=(10, 8))
    points = plt.scatter(data[S.LON], data[S.LAT], c=data[color_column], cmap="viridis", s=8, alpha=0.7)
    plt.colorbar(points, label=LABELS.get(color_column, color_column))
    plt.title(f"Location Fixes coloured by {LABELS.get(color_column, color_column)}")
    plt.xlabel("Longitude")
    plt.ylabel("Latitude")
    plt.grid(True, alpha=0.3)
    return _finish(save_path)


def plot_distance_by_temperature_band(df_summary, bands=5, save_path=None):
    data = df_summary[[S.TEMP_C, S.DISTANCE]].dropna().copy()
    data["temperature_band"] = pd.cut(data[S.TEMP_C], bins=bands)
    plt.figure(figsize=(12, 6))
    sns.boxplot(data=data, x="temperature_band", y=S.DISTANCE, color="lightcoral")
    plt.title("Trip Distance by Temperature Band")
    plt.xlabel("Temperature Band (°C)")
    plt.ylabel(LABELS[S.DISTANCE])
    plt.xticks(rotation=45)
    plt.grid(True, alpha=0.3)
    return _finish(save_path)


def plot_trip_count_distribution(df_summary, save_path=None):
    return plot_variable_distribution(df_summary, S.TRIP_COUNT, bins=30, save_path=save_path)


def plot_enrichment_coverage(df_locations, variables=("temperature", "wind", "aerosol"), save_path=None):
    """Stacked bars of ok / no_data / error outcomes per variable."""
    rows = {}
    for name in variables:
        col = S.status_column(name)
        if col in df_locations:
            rows[name] = df_locations[col].value_counts()
    coverage = pd.DataFrame(rows).T.fillna(0)
    if coverage.empty:
        return None

    fig, ax = plt.subplots(figsize=(10, 6))
    coverage.plot(kind="bar", stacked=True, ax=ax, colormap="Set2")
    ax.set_title("Enrichment Outcomes by Variable")
    ax.set_xlabel("Variable")
    ax.set_ylabel("Rows")
    ax.legend(title="Status")
    ax.grid(True, alpha=0.3)
    return _finish(save_path)


def plot_exploratory_battery(df_joined, df_summary, output_dir):
    """Write every exploratory plot into ``output_dir`` and return the paths."""
    output_dir = Path(output_dir)
    written = []

    for col in S.SUMMARY_MEAN_COLUMNS:
        if col in df_summary and df_summary[col].notna().any():
            written.append(plot_variable_distribution(df_summary, col, save_path=output_dir / f"dist_{col}.png"))

    written.append(plot_correlation_heatmap(df_summary, save_path=output_dir / "correlation_heatmap.png"))

    for col in [S.TEMP_C, S.WIND_MS, S.AEROSOL, S.TRIP_COUNT]:
        if col in df_summary and df_summary[[col, S.DISTANCE]].dropna().shape[0] > 1:
            written.append(plot_distance_vs(df_summary, col, save_path=output_dir / f"distance_vs_{col}.png"))

    written.append(plot_fixes_by_hour(df_joined, save_path=output_dir / "fixes_by_hour.png"))
    written.append(plot_fixes_by_day_of_week(df_joined, save_path=output_dir / "fixes_by_day_of_week.png"))

    if S.TEMP_C in df_joined and df_joined[S.TEMP_C].notna().any():
        written.append(plot_location_map(df_joined, save_path=output_dir / "location_map.png"))
    if S.TEMP_C in df_summary and df_summary[[S.TEMP_C, S.DISTANCE]].dropna().shape[0] > 1:
        written.append(plot_distance_by_temperature_band(df_summary, save_path=output_dir / "distance_by_temperature_band.png"))

    written.append(plot_trip_count_distribution(df_summary, save_path=output_dir / "dist_trip_count.png"))
    written.append(plot_enrichment_coverage(df_joined, save_path=output_dir / "enrichment_coverage.png"))

    written = [p for p in written if p is not None]
    print(f"📊 Wrote {len(written)} figures → {output_dir}")
    return written
