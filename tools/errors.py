from typing import Optional


class LeadSyncError(Exception):
    """Base error for the lead sync service."""


class UpstreamUnavailable(LeadSyncError):
    """Raised when Facebook or HubSpot cannot be reached or answers with an error."""

    def __init__(self, upstream: str, message: str, status_code: Optional[int] = None):
        self.upstream = upstream
        self.status_code = status_code
        super().__init__(f"{upstream}: {message}")
