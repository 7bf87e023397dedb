"""
Population errors.

Each carries the HTTP status and JSON body it is rendered with by the
exception handler in catalog_api.py.
"""

from typing import List, Optional


class PopulationError(Exception):
    status_code = 500

    def payload(self) -> dict:
        return {"error": str(self)}


class MissingContextError(PopulationError):
    """Required scope fields absent. Raised before the fetch guard is taken."""
    status_code = 400

    def __init__(self, kind: str, missing: List[str]):
        self.kind = kind
        self.missing = missing
        super().__init__(f"{kind}: missing {', '.join(missing)}")

    def payload(self) -> dict:
        return {"error": "Missing required contextual info"}


class RateLimitedError(PopulationError):
    status_code = 429

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"rate limited: {client_id}")

    def payload(self) -> dict:
        return {"message": "Too many population requests from this client. Please try again later."}


class FetchInProgressError(PopulationError):
    """Another request already holds the fetch guard for this scope."""
    status_code = 429

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"fetch in progress: {key}")

    def payload(self) -> dict:
        return {"message": "Fetch already in progress for this scope. Please wait for it to finish."}


class GeneratorError(Exception):
    """Generator unreachable, misconfigured, or returned unusable data."""


class PopulationFailedError(PopulationError):
    """Generator failure or unrecoverable store failure. Safe to retry."""
    status_code = 500

    def __init__(self, kind: str, cause: Optional[BaseException] = None):
        self.kind = kind
        self.cause = cause
        super().__init__(f"Failed to fetch {kind}")

    def payload(self) -> dict:
        return {"error": f"Failed to fetch {self.kind}"}
