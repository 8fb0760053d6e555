"""Adapter exceptions.

Not-found conditions are reported as ``None`` results, never raised.
Transport failures surface as StoreUnavailableError and are left for the
caller to handle; the adapter performs no retries.
"""


class AdapterError(Exception):
    """Base exception for all adapter errors."""

    def __init__(self, message: str = "Adapter error"):
        self.message = message
        super().__init__(self.message)


class DecodeError(AdapterError):
    """Raised when a stored record is present but malformed."""

    def __init__(
        self,
        entity: str,
        key: str,
        field: str,
        reason: str = "missing required field",
    ):
        self.entity = entity
        self.key = key
        self.field = field
        super().__init__(f"Cannot decode {entity} at '{key}': {reason} '{field}'")


class StoreUnavailableError(AdapterError):
    """Raised when the key-value store cannot be reached."""

    def __init__(self, message: str = "Key-value store is unavailable"):
        super().__init__(message)


class InvalidKeySegmentError(AdapterError, ValueError):
    """Raised when an identifier cannot be encoded into a key unambiguously."""

    def __init__(self, segment_name: str, value: str):
        self.segment_name = segment_name
        self.value = value
        super().__init__(
            f"Invalid {segment_name} {value!r}: must be non-empty and free of ':'",
        )


class InvalidRecordError(AdapterError, ValueError):
    """Raised when a record to be written lacks a required value."""

    def __init__(self, entity: str, field: str):
        self.entity = entity
        self.field = field
        super().__init__(f"Cannot encode {entity}: required field '{field}' is empty")
