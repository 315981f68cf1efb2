"""constants.py - Key layout constants, timeouts and table names for casstorage."""

from __future__ import annotations

# Offsets and record ids are split into a partition (hi) and a clustering
# (lo) part. Changing the width is a data format migration.
PARTITION_BITS: int = 12
LOW_MASK: int = (1 << PARTITION_BITS) - 1
PARTITION_RECORD_COUNT: int = 1 << PARTITION_BITS

MAX_OFFSET: int = (1 << 63) - 1

# Read count meaning "until the end of the log"
READ_TO_THE_END: int = MAX_OFFSET

# view_records.qname is a smallint
MAX_QNAME_ID: int = (1 << 15) - 1

# Cluster setup
CONNECTION_TIMEOUT: float = 30.0  # seconds
ATTEMPTS: int = 5
RETRY_DELAY: float = 1.0  # seconds

# Page size for streamed reads; one log partition per page
FETCH_SIZE: int = PARTITION_RECORD_COUNT

# Tables
RECORDS = "records"
PLOG = "plog"
WLOG = "wlog"
VIEW_RECORDS = "view_records"
QNAMES = "qnames"
