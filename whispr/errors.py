from __future__ import annotations


class WhisprError(Exception):
    """Base class for errors raised by the moderation pipeline."""


class ValidationError(WhisprError):
    """Input rejected before any external call (too short, missing identity, bad label)."""


class CapabilityUnavailable(WhisprError):
    """The external judgment capability failed or returned something unusable."""


class ClassificationUnavailable(CapabilityUnavailable):
    pass


class GenerationUnavailable(CapabilityUnavailable):
    pass


class NotFound(WhisprError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class StoreError(WhisprError):
    """A document store read or write failed."""


class PermissionDenied(StoreError):
    """The store's access policy rejected a write."""

    def __init__(self, path: str, operation: str, message: str = ""):
        super().__init__(message or f"Missing or insufficient permissions: {operation} {path}")
        self.path = path
        self.operation = operation


class Unauthorized(WhisprError):
    """Acting identity is not a recognised moderator."""
