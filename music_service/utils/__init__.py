# Utils module
from .errors import (
    MusicError,
    FetchError,
    MaterializationError,
    InvalidIndexError,
    BackendLoadError,
    ServiceClosedError,
)
from .decorators import ensure_open, absorb_errors, log_operation

__all__ = [
    # Errors
    "MusicError",
    "FetchError",
    "MaterializationError",
    "InvalidIndexError",
    "BackendLoadError",
    "ServiceClosedError",
    # Decorators
    "ensure_open",
    "absorb_errors",
    "log_operation",
]
