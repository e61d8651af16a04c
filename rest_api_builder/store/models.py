"""Data models and defaults for endpoint documents.

Documents are stored and exchanged as plain JSON objects. The dataclasses
here only describe the default shapes the store fills in when a document
is created, plus the sample document written into a fresh project.
"""

import random
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

JSON_EXTENSION = ".json"

# Added on read, never written to disk
DERIVED_FIELDS = ("folder", "filename")

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


class HTTPMethod(Enum):
    """HTTP methods an endpoint document can describe"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


@dataclass
class APIParameter:
    """A query or path parameter of an endpoint

    Args:
        name: Parameter name
        type: Parameter type ("string", "integer", "boolean", ...)
        description: Human readable description
        required: Whether the parameter must be supplied
        example: Example value shown in the UI and used by the tester
    """
    name: str
    type: str = "string"
    description: str = ""
    required: bool = False
    example: Optional[Any] = None


@dataclass
class RequestBody:
    """Request body description of an endpoint"""
    required: bool = False
    content_type: str = "application/json"
    schema: Dict[str, Any] = field(default_factory=dict)
    example: Any = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "required": self.required,
            "contentType": self.content_type,
            "schema": self.schema,
            "example": self.example,
        }


@dataclass
class ResponseSpec:
    """One entry of an endpoint's ``responses`` mapping"""
    description: str
    content_type: str = "application/json"
    schema: Dict[str, Any] = field(default_factory=dict)
    example: Any = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "contentType": self.content_type,
            "schema": self.schema,
            "example": self.example,
        }


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Generate a document id from the current time and a random suffix

    Ids are unique in practice but not guaranteed; no collision check is
    made against existing documents.
    """
    return _to_base36(int(time.time() * 1000)) + _to_base36(random.getrandbits(52))


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_endpoint_fields() -> Dict[str, Any]:
    """Field values of a newly created endpoint before caller overrides"""
    return {
        "name": "New Endpoint",
        "method": HTTPMethod.GET.value,
        "path": "/endpoint",
        "description": "",
        "tags": [],
        "parameters": {
            "query": [],
            "path": [],
            "headers": {},
        },
        "requestBody": RequestBody().to_dict(),
        "responses": {
            "200": ResponseSpec("Success response").to_dict(),
        },
        "examples": {
            "request": {},
            "response": {},
        },
    }


def sample_endpoint() -> Dict[str, Any]:
    """The "Get Users" document written into a fresh project"""
    query: List[APIParameter] = [
        APIParameter("limit", "integer", "Number of users to return", example=10),
        APIParameter("page", "integer", "Page number for pagination", example=1),
    ]
    user_schema = {
        "type": "object",
        "properties": {
            "id": {"type": "string"},
            "name": {"type": "string"},
            "email": {"type": "string"},
        },
    }
    error_schema = {
        "type": "object",
        "properties": {
            "error": {"type": "string"},
            "message": {"type": "string"},
        },
    }
    timestamp = now_iso()
    return {
        "id": generate_id(),
        "name": "Get Users",
        "method": HTTPMethod.GET.value,
        "path": "/api/users",
        "description": "Retrieve a list of all users",
        "tags": ["users"],
        "parameters": {
            "query": [asdict(param) for param in query],
            "path": [],
            "headers": {"Authorization": "Bearer your-token"},
        },
        "requestBody": RequestBody().to_dict(),
        "responses": {
            "200": ResponseSpec(
                "Successful response",
                schema={
                    "type": "object",
                    "properties": {
                        "users": {"type": "array", "items": user_schema},
                        "total": {"type": "integer"},
                        "page": {"type": "integer"},
                    },
                },
                example={
                    "users": [
                        {"id": "1", "name": "John Doe", "email": "john@example.com"},
                        {"id": "2", "name": "Jane Smith", "email": "jane@example.com"},
                    ],
                    "total": 50,
                    "page": 1,
                },
            ).to_dict(),
            "401": ResponseSpec(
                "Unauthorized",
                schema=error_schema,
                example={
                    "error": "Unauthorized",
                    "message": "Invalid or missing authentication token",
                },
            ).to_dict(),
        },
        "examples": {
            "request": {
                "headers": {"Authorization": "Bearer your-token"},
                "query": {"limit": 10, "page": 1},
            },
            "response": {
                "users": [{"id": "1", "name": "John Doe", "email": "john@example.com"}],
                "total": 50,
                "page": 1,
            },
        },
        "createdAt": timestamp,
        "updatedAt": timestamp,
    }


__all__ = [
    "JSON_EXTENSION",
    "DERIVED_FIELDS",
    "HTTPMethod",
    "APIParameter",
    "RequestBody",
    "ResponseSpec",
    "generate_id",
    "now_iso",
    "default_endpoint_fields",
    "sample_endpoint",
]
