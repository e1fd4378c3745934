"""
Errors raised by chat store implementations.

The queue engine never catches these; they propagate to whoever invoked the
operation (request handler or sweep scheduler).
"""


class ChatStoreError(Exception):
    """Base class for store failures."""


class RecordNotFoundError(ChatStoreError):
    """Requested agent or chat session does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class DuplicateRecordError(ChatStoreError):
    """A record with the same id is already stored."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} already exists")


class ConcurrencyConflictError(ChatStoreError):
    """Record was modified by someone else since it was read."""

    def __init__(self, kind: str, record_id: str, expected: int, actual: int):
        self.kind = kind
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{kind} {record_id} version mismatch: read {expected}, stored {actual}"
        )
