"""Constants for the parsed asset URI store."""

from datetime import datetime


TABLE_NAME = "parsed_asset_uris"

# Column order used by every SELECT; must match the table definition.
COLUMNS: tuple[str, ...] = (
    "asset_uri",
    "raw_image_uri",
    "raw_animation_uri",
    "cdn_json_uri",
    "cdn_image_uri",
    "cdn_animation_uri",
    "json_parser_retry_count",
    "image_optimizer_retry_count",
    "animation_optimizer_retry_count",
    "inserted_at",
    "do_not_parse",
    "last_transaction_version",
)

# Placeholder timestamp for the zero-value record (Unix epoch, naive).
ZERO_TIMESTAMP = datetime(1970, 1, 1)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Retry defaults. The elapsed budget is a deployment tuning parameter.
DEFAULT_MAX_RETRY_SECONDS = 15.0
DEFAULT_INITIAL_INTERVAL_MS = 500
DEFAULT_MAX_INTERVAL_MS = 10_000
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_JITTER_FACTOR = 0.5

# Connection pool defaults
DEFAULT_POOL_SIZE = 5
DEFAULT_POOL_TIMEOUT_SECONDS = 30.0
# SQLite busy timeout per statement; stays below the retry budget.
DEFAULT_BUSY_TIMEOUT_SECONDS = 5.0
