"""Endpoint document store package.

Stores one JSON document per API endpoint under a directory tree and
builds the folder/endpoint structure shown by the UI.
"""

from .document_store import DocumentStore, apply_patch
from .errors import Conflict, IOFailure, NotFound, StoreError, ValidationError
from .models import HTTPMethod, default_endpoint_fields, generate_id, sample_endpoint
from .structure import build_structure

__all__ = [
    "DocumentStore",
    "apply_patch",
    "build_structure",
    "StoreError",
    "ValidationError",
    "Conflict",
    "NotFound",
    "IOFailure",
    "HTTPMethod",
    "default_endpoint_fields",
    "generate_id",
    "sample_endpoint",
]
