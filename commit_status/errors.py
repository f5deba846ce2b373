"""
commit_status/errors.py

Typed failures raised by commit status publishers.

- PublisherError:
    Any failure of a single publish / query call: missing configuration,
    unparsable repository URL, transport error (chained as __cause__).
- HttpPublisherError:
    The remote answered with a status >= 400 that is not a benign
    "already in that state" rejection. Carries the status code, the
    status text and the raw body for the caller to report.
"""

from __future__ import annotations

from typing import Optional


class PublisherError(RuntimeError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class HttpPublisherError(PublisherError):
    def __init__(
        self,
        status_code: int,
        status_text: Optional[str],
        body: Optional[str],
    ):
        self.status_code = status_code
        self.status_text = status_text or ""
        self.body = body or ""
        reason = f"{status_code} {self.status_text}".strip()
        super().__init__(f"HTTP response error (status={reason}): {self.body}")
