"""
commit_status/problems.py

Collects publishing problems so they can be shown against the build
that triggered them.

A problem is recorded when a publisher raises (or reports) a failure
for a lifecycle event. Only the latest problem of each build is kept,
per publisher id and in memory only; a new report for the same build
replaces the previous one.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PublisherProblem:
    publisher_id: str
    build_description: str
    message: str
    status_code: Optional[int] = None


@dataclass
class PublisherProblems:
    _problems: Dict[Tuple[str, str], PublisherProblem] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def report_problem(
        self,
        publisher_id: str,
        build_description: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> PublisherProblem:
        problem = PublisherProblem(publisher_id, build_description, message, status_code)
        with self._lock:
            self._problems[(publisher_id, build_description)] = problem
        logger.warning(
            "commit_status_publisher_problem",
            publisher_id=publisher_id,
            build=build_description,
            message=message,
            status_code=status_code,
        )
        return problem

    def problems(self, publisher_id: str) -> List[PublisherProblem]:
        with self._lock:
            return [p for (pid, _), p in self._problems.items() if pid == publisher_id]

    def clear(self, publisher_id: str) -> None:
        with self._lock:
            for key in [k for k in self._problems if k[0] == publisher_id]:
                del self._problems[key]
