from prometheus_client import Counter, Histogram, Gauge

# Refresh cycle metrics
REFRESH_CYCLES = Counter(
    'chainstats_refresh_cycles_total',
    'Total number of refresh cycles by outcome',
    ['outcome']
)
REFRESH_STAGE_FAILURES = Counter(
    'chainstats_refresh_stage_failures_total',
    'Total number of failed refresh stages',
    ['stage']
)
REFRESH_DURATION = Histogram(
    'chainstats_refresh_duration_seconds',
    'Duration of refresh cycles',
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 2, 5]
)
REFRESH_SKIPPED = Counter(
    'chainstats_refresh_skipped_total',
    'Scheduled refresh ticks skipped because a cycle was still running'
)

# Snapshot metrics
SNAPSHOT_BLOCKS = Gauge(
    'chainstats_snapshot_blocks',
    'Number of blocks in the most recently loaded snapshot'
)
LATEST_BLOCK_ID = Gauge(
    'chainstats_latest_block_id',
    'Highest block id seen by the last successful load'
)
CACHE_READS = Counter(
    'chainstats_cache_reads_total',
    'Snapshot cache reads by result',
    ['result']
)
