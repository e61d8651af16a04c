"""Edit access policy.

Mutating routes are allowed when the request's Host header names the
local machine or when the configuration allows external edits. The Host
header is supplied by the client, so this is a convenience default for
a single local operator and not a security control.
"""

from typing import Optional

from starlette.requests import Request

from .config import BuilderConfig

LOCAL_HOST_MARKERS = ("localhost", "127.0.0.1")


def is_localhost(host: Optional[str]) -> bool:
    """True if the Host header value mentions localhost or 127.0.0.1"""
    host = host or ""
    return any(marker in host for marker in LOCAL_HOST_MARKERS)


def can_edit(host: Optional[str], config: BuilderConfig) -> bool:
    """Decide whether a request with this Host header may modify the store"""
    return is_localhost(host) or bool(config.allow_external_edit)


def request_can_edit(request: Request, config: BuilderConfig) -> bool:
    """Apply ``can_edit`` to the Host header of a Starlette request"""
    return can_edit(request.headers.get("host"), config)


__all__ = [
    "is_localhost",
    "can_edit",
    "request_can_edit",
]
