# src/xml_transform/observability/names.py

"""Standard metric names for xml-transform observability.

Use these constants instead of hardcoded strings for consistency
across the codebase.

Note: All duration metrics are in milliseconds by convention.
"""

# ============================================================================
# Scan Metrics
# ============================================================================

# Duration
SCAN_DURATION = "scan_duration"

# Gauges
SCAN_RECORDS_FOUND = "scan_records_found"

# Counters
SCAN_BYTES = "scan_bytes"


# ============================================================================
# Record Metrics
# ============================================================================

# Duration (read + decode + transform, per record)
RECORD_TRANSFORM_DURATION = "record_transform_duration"

# Counters
RECORDS_TRANSFORMED_TOTAL = "records_transformed_total"
RECORD_ERRORS_TOTAL = "record_errors_total"


# ============================================================================
# Output Metrics
# ============================================================================

# Counters
BYTES_WRITTEN_TOTAL = "bytes_written_total"

# Duration (acquire to close, for run_transform)
PIPELINE_DURATION = "pipeline_duration"
