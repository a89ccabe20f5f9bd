"""Central place for column‑name constants so tests, enrichment, analysis
   and modeling all stay in sync.

‼️  **Edit here once** if the raw CSV schema changes.  All downstream code
    (including tests) should import from this module instead of hard‑coding
    strings.  """

# ────────────────────────────────────────────────────────────────────────────
# Identifiers
# ────────────────────────────────────────────────────────────────────────────

TRIP_ID = "tripid"                  # trip identifier shared by both raw files

# ────────────────────────────────────────────────────────────────────────────
# rawlocations.csv (one row per GPS fix)
# ────────────────────────────────────────────────────────────────────────────

LAT = "latitude"
LON = "longitude"
TIMESTAMP = "datetime"              # UTC time of the fix
LOCATION_TIME = "location_time"     # TIMESTAMP after the join (renamed)

# calendar fields derived from TIMESTAMP
YEAR = "year"
MONTH = "month"
DAY = "day"
HOUR = "hour"
DAY_OF_WEEK = "day_of_week"
QUERY_TIME = "query_time"           # ISO‑8601 string sent to the remote service

# ────────────────────────────────────────────────────────────────────────────
# tripData.csv (one row per trip)
# ────────────────────────────────────────────────────────────────────────────

START_LAT = "startlat"
START_LON = "startlon"
END_LAT = "endlat"
END_LON = "endlon"
START_TS = "starttime"
END_TS = "endtime"
ACTIVITY_COLUMNS = ["activitytype", "activityconfidence"]   # dropped after join

# ────────────────────────────────────────────────────────────────────────────
# Enrichment output
# ────────────────────────────────────────────────────────────────────────────

TEMP_C = "temperature_c"
TEMP_F = "temperature_f"
WIND_MS = "wind_speed_ms"
WIND_MPH = "wind_speed_mph"
AEROSOL = "aerosol_index"

STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"
STATUS_ERROR = "error"


def status_column(variable: str) -> str:
    """Name of the per-row query outcome column for ``variable``."""
    return f"{variable}_status"


# ────────────────────────────────────────────────────────────────────────────
# Derived / aggregated columns
# ────────────────────────────────────────────────────────────────────────────

DURATION = "duration_min"           # minutes between START_TS and END_TS
DISTANCE = "distance_km"            # great‑circle km between start and end
TRIP_COUNT = "trip_count"           # enriched rows contributing to a trip

ENV_COLUMNS = [TEMP_C, TEMP_F, WIND_MS, WIND_MPH, AEROSOL]
SUMMARY_MEAN_COLUMNS = ENV_COLUMNS + [DURATION, DISTANCE]
