"""Error types raised by the endpoint document store.

The HTTP layer catches these and turns them into ``{"success": False,
"message": ...}`` payloads with a matching status code.
"""


class StoreError(Exception):
    """Base class for all document store failures"""

    status_code = 500


class ValidationError(StoreError):
    """A required input (filename, folder name) is missing or invalid"""

    status_code = 400


class Conflict(StoreError):
    """The target file or directory already exists"""

    status_code = 400


class NotFound(StoreError):
    """No document matches the requested id"""

    status_code = 404


class IOFailure(StoreError):
    """Reading, writing or parsing a file on disk failed"""

    status_code = 500


__all__ = [
    "StoreError",
    "ValidationError",
    "Conflict",
    "NotFound",
    "IOFailure",
]
