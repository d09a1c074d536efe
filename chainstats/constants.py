"""Constants for chainstats."""

# Snapshot constants
SNAPSHOT_WINDOW = 30  # Most recent blocks kept in a snapshot
CACHE_KEY = "block-tpslist"  # Redis key holding the cached snapshot

# Refresh constants
REFRESH_INTERVAL = 10  # Seconds between scheduled refresh cycles

# Persisted cache field names
CACHE_FIELD_ID = "Id"
CACHE_FIELD_TX = "Tx"
CACHE_FIELD_LENGTH = "Length"
