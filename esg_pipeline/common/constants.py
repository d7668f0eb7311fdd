"""Application constants."""

USER_AGENT = "esg-pipeline/1.0 (+office geocoding; contact: configured-email)"
STAGES = (
    "metrics",
    "offices",
    "geocode",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

BASELINE_YEAR = 2022
REFERENCE_YEAR = 2024
TARGET_YEAR = 2030
GLOBAL_REGION = "Global"
MISSING_ID_SENTINEL = "NA"
NO_DATA_SENTINELS = frozenset({"TBD", "NA", "N/A", "-"})
DEFAULT_OFFICE_REGION = "NA"
OFFICE_ID_PREFIX = "office-"

NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
GEOCODE_MIN_INTERVAL_SECONDS = 1.1

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "dataset",
    "office",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
