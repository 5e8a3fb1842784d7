"""
Prometheus metrics for the image resize service.
"""

from prometheus_client import Counter, Histogram


# ── Requests ─────────────────────────────────────────────────
resize_requests_total = Counter(
    "imageresize_resize_requests_total",
    "Resize URLs handed out",
    ["addressing"],
)

artifact_cache_hits_total = Counter(
    "imageresize_artifact_cache_hits_total",
    "Requests answered from an artifact already on disk",
    ["addressing"],
)

# ── Materialization ──────────────────────────────────────────
materializations_total = Counter(
    "imageresize_materializations_total",
    "Artifacts decoded, transformed and written",
    ["format"],
)

materialization_duration_seconds = Histogram(
    "imageresize_materialization_duration_seconds",
    "Time to decode, transform, encode and write one artifact",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
)

not_found_substitutions_total = Counter(
    "imageresize_not_found_substitutions_total",
    "Times the not-found image was used instead of the source",
    ["reason"],
)

modifier_validation_failures_total = Counter(
    "imageresize_modifier_validation_failures_total",
    "Modifier batches rejected by validation",
)

# ── Permalinks ───────────────────────────────────────────────
permalinks_created_total = Counter(
    "imageresize_permalinks_created_total",
    "Permalink rows created",
)

# ── Garbage collection ───────────────────────────────────────
gc_runs_total = Counter(
    "imageresize_gc_runs_total",
    "Garbage collection runs",
    ["trigger"],
)

gc_files_deleted_total = Counter(
    "imageresize_gc_files_deleted_total",
    "Artifacts deleted by garbage collection",
)
