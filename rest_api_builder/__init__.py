"""REST API builder.

A mountable Starlette app for documenting and live-testing REST endpoints
whose definitions live as JSON files on disk.
"""

from .access import can_edit, is_localhost
from .config import BuilderConfig
from .http_server import create_app
from .store import DocumentStore, build_structure
from .tester import RequestTester

__all__ = [
    "BuilderConfig",
    "DocumentStore",
    "RequestTester",
    "build_structure",
    "can_edit",
    "create_app",
    "is_localhost",
]
