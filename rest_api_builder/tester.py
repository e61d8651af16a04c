"""Outbound test requests issued from the documentation UI.

The tester sends exactly one HTTP request to the API under test and
reports status, headers, body and latency. Failures of the remote side
are results, never exceptions: the route always answers 200 and the
``success`` flag tells the UI what happened.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from .store.models import HTTPMethod

DEFAULT_TIMEOUT = 30.0


class RequestTester:
    """Sends test requests to external APIs

    Args:
        timeout: Total timeout for one request in seconds (default: 30.0)
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    @staticmethod
    def _failure(error: str) -> dict:
        return {"success": False, "message": "Request failed", "error": error}

    async def send(
        self,
        url: str,
        method: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> dict:
        """Send one request and describe the response

        Args:
            url: Absolute URL to call
            method: HTTP method name, case insensitive
            headers: Extra request headers, override the JSON content type
            body: Request body for non-GET methods; strings are sent as is,
                anything else is JSON encoded

        Returns:
            ``{"success": True, "data": {status, statusText, headers, body,
            responseTimeMs}}`` or ``{"success": False, "message", "error"}``
        """
        if not url or not isinstance(url, str):
            return self._failure("A url is required")
        try:
            http_method = HTTPMethod(str(method or "").upper())
        except ValueError:
            return self._failure(f"Unsupported HTTP method: {method}")

        request_headers = {"Content-Type": "application/json"}
        if isinstance(headers, dict):
            request_headers.update({str(key): str(value) for key, value in headers.items()})

        data = None
        if http_method != HTTPMethod.GET and body not in (None, ""):
            data = body if isinstance(body, str) else json.dumps(body)

        logging.info(f"[RequestTester] {http_method.value} {url}")
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            started = time.perf_counter()
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    http_method.value, url, headers=request_headers, data=data
                ) as response:
                    text = await response.text(errors="replace")
                    elapsed_ms = int((time.perf_counter() - started) * 1000)
                    return self._process_response(response, text, elapsed_ms)
        except asyncio.TimeoutError:
            error_msg = f"Request to {url} timed out after {self.timeout} seconds"
            logging.error(f"[RequestTester] {error_msg}")
            return self._failure(error_msg)
        except (aiohttp.ClientError, ValueError) as e:
            logging.error(f"[RequestTester] Request to {url} failed: {e}")
            return self._failure(str(e) or e.__class__.__name__)

    @staticmethod
    def _process_response(response: aiohttp.ClientResponse, text: str, elapsed_ms: int) -> dict:
        try:
            body = json.loads(text)
        except ValueError:
            body = text

        logging.info(f"[RequestTester] {response.method} {response.url} returned {response.status} in {elapsed_ms}ms")
        return {
            "success": True,
            "data": {
                "status": response.status,
                "statusText": response.reason or "",
                "headers": dict(response.headers),
                "body": body,
                "responseTimeMs": elapsed_ms,
            },
        }


__all__ = [
    "RequestTester",
    "DEFAULT_TIMEOUT",
]
