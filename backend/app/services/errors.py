"""Domain exceptions raised by the analytics engine."""
from typing import Optional

FACILITY_NOT_FOUND = "facility not found"


class DataUnavailable(Exception):
    """
    Raised when the records needed for a report cannot be read.

    Covers an unknown facility, a stream that failed to respond within the
    reader timeout, and connectivity failures in the storage adapter. No
    partial report is ever built once this is raised.
    """
    def __init__(self, facility_id: str, reason: str, stream: Optional[str] = None):
        self.facility_id = facility_id
        self.reason = reason
        self.stream = stream
        where = f" ({stream})" if stream else ""
        super().__init__(f"DATA_UNAVAILABLE: facility {facility_id}{where}: {reason}")
