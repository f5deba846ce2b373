"""
commit_status/utils/http_client.py

WHAT THIS FILE IS FOR
---------------------
This module provides a minimal, synchronous HTTP client abstraction
used by commit status publishers to talk to the code-hosting API.

It exists to:
- Centralize basic HTTP call behavior (GET + POST JSON)
- Standardize timeout handling
- Avoid scattering raw `requests.get(...)` / `requests.post(...)` calls
  across the publishers

This client is intentionally kept *very thin*.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Retry or backoff logic
- Authentication headers (the publisher supplies PRIVATE-TOKEN)
- Response classification (see gitlab/response_classifier.py)
- Translating network errors into PublisherError

Network-level errors propagate as `requests.RequestException`; the
caller wraps them.

CONCURRENCY
-----------
Every call is blocking and independent. No session or connection pool
is shared between calls, so a client instance can be used from several
CI server threads at once.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

import requests

# Timeout can be:
# - single float -> applied to both connect + read
# - (connect_timeout, read_timeout)
TimeoutType = Union[float, Tuple[float, float]]


class HttpClient:
    """
    Minimal synchronous HTTP client wrapper.

    `timeout_seconds` is passed straight to `requests`; a per-call
    override is accepted by every method.
    """

    def __init__(self, timeout_seconds: TimeoutType = 30):
        self.timeout_seconds = timeout_seconds

    def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Optional[TimeoutType] = None,
    ) -> requests.Response:
        """
        Send a GET request.

        Raises:
            requests.RequestException on any network-level error.
        """
        return requests.get(
            url,
            headers={"Accept": "application/json", **(headers or {})},
            timeout=self._timeout(timeout_seconds),
        )

    def post_json(
        self,
        url: str,
        json_body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Optional[TimeoutType] = None,
    ) -> requests.Response:
        """
        Send a POST request with a JSON body.

        Raises:
            requests.RequestException on any network-level error.
        """
        return requests.post(
            url,
            json=json_body,
            headers=headers or {},
            timeout=self._timeout(timeout_seconds),
        )

    def _timeout(self, override: Optional[TimeoutType]) -> TimeoutType:
        return override if override is not None else self.timeout_seconds
