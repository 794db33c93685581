"""Error taxonomy for the reconciliation pass."""
from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure kinds raised by the sync components."""
    UNAUTHORIZED = 'unauthorized'
    ROW_MISSING_ID = 'row_missing_id'
    DATA_INTEGRITY = 'data_integrity'
    REQUEST_FAILED = 'request_failed'
    RETRY_EXHAUSTED = 'retry_exhausted'
    TAB_NOT_FOUND = 'tab_not_found'


FATAL_KINDS = frozenset({
    ErrorKind.UNAUTHORIZED,
    ErrorKind.ROW_MISSING_ID,
    ErrorKind.DATA_INTEGRITY,
})


class SyncError(Exception):
    """Tagged error carrying a kind and a human readable message."""
    
    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message
    
    @property
    def is_fatal(self) -> bool:
        """Whether this error must abort the whole pass."""
        return self.kind in FATAL_KINDS
    
    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"
