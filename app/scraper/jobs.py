"""In-process registry of long-running scrape jobs.

The registry is the only mutable state shared across requests. The map itself
is guarded by one lock and every job carries its own lock, so all writes to a
job are serialised while reads take a deep-copied snapshot under that same
lock. Entries are evicted after ``JOB_TTL_SECONDS`` without updates, and the
least recently updated finished jobs are dropped once ``JOB_MAX_ENTRIES`` is
exceeded.
"""
from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from . import config
from .error_codes import DuplicateJobError, JobNotFoundError, JobNotReadyError, JobTerminalError
from .logging_utils import _scraper_event
from .utils import utc_now_iso

MAX_PROGRESS_BEFORE_COMPLETION = 99
JOB_DATA_FIELDS = ("text", "images", "videos", "tables", "lists")


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def _empty_data() -> Dict[str, list]:
    return {name: [] for name in JOB_DATA_FIELDS}


def _empty_metadata() -> Dict[str, Any]:
    return {"pageTitle": "", "pageDescription": "", "pageKeywords": [], "totalElements": 0}


@dataclass
class ScrapeJob:
    id: str
    url: str
    timestamp: str = field(default_factory=utc_now_iso)
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    data: Dict[str, list] = field(default_factory=_empty_data)
    metadata: Dict[str, Any] = field(default_factory=_empty_metadata)
    ai_analysis: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    updated_at: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "progress": self.progress,
            "data": self.data,
            "metadata": self.metadata,
        }
        if self.ai_analysis is not None:
            payload["aiAnalysis"] = self.ai_analysis
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class _JobEntry:
    job: ScrapeJob
    lock: threading.Lock = field(default_factory=threading.Lock)


def _merge_patch(job: ScrapeJob, patch: Mapping[str, Any]) -> None:
    data_patch = patch.get("data") or {}
    for name, values in data_patch.items():
        if name not in job.data:
            job.data[name] = []
        job.data[name].extend(values)

    metadata_patch = patch.get("metadata") or {}
    job.metadata.update(metadata_patch)

    if "aiAnalysis" in patch:
        job.ai_analysis = patch["aiAnalysis"]


class JobStore:
    def __init__(
        self,
        *,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = config.JOB_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.max_entries = max(1, config.JOB_MAX_ENTRIES if max_entries is None else max_entries)
        self._clock = clock
        self._jobs: Dict[str, _JobEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _is_expired(self, job: ScrapeJob, now: float) -> bool:
        return now - job.updated_at > self.ttl_seconds

    def _entry(self, job_id: str) -> _JobEntry:
        with self._lock:
            entry = self._jobs.get(job_id)
        if entry is None or self._is_expired(entry.job, self._clock()):
            raise JobNotFoundError(f"Job {job_id!r} not found")
        return entry

    def create(self, job_id: str, url: str) -> ScrapeJob:
        """Register a new pending job; an existing id raises ``DuplicateJobError``."""

        self.purge_expired()
        job = ScrapeJob(id=job_id, url=url, updated_at=self._clock())
        with self._lock:
            if job_id in self._jobs:
                raise DuplicateJobError("Job already exists with this ID")
            self._jobs[job_id] = _JobEntry(job=job)
            self._enforce_capacity()
            snapshot = copy.deepcopy(job)
        _scraper_event("state", phase="job", job_id=job_id, to_status=job.status.value, url=url)
        return snapshot

    def get(self, job_id: str) -> Optional[ScrapeJob]:
        try:
            entry = self._entry(job_id)
        except JobNotFoundError:
            return None
        with entry.lock:
            return copy.deepcopy(entry.job)

    def _apply(
        self,
        job_id: str,
        mutate: Callable[[ScrapeJob], None],
        *,
        action: str,
    ) -> ScrapeJob:
        entry = self._entry(job_id)
        with entry.lock:
            job = entry.job
            if job.status.is_terminal:
                _scraper_event(
                    "error",
                    phase="job",
                    job_id=job_id,
                    action=action,
                    current_status=job.status.value,
                    error="write_after_terminal",
                )
                raise JobTerminalError(f"Job {job_id!r} is already {job.status.value}")
            previous = job.status
            mutate(job)
            job.updated_at = self._clock()
            if job.status is not previous:
                _scraper_event(
                    "state",
                    phase="job",
                    job_id=job_id,
                    from_status=previous.value,
                    to_status=job.status.value,
                    progress=job.progress,
                )
            return copy.deepcopy(job)

    def advance(
        self, job_id: str, progress_delta: int = 0, patch: Optional[Mapping[str, Any]] = None
    ) -> ScrapeJob:
        """Raise progress by ``progress_delta`` (never down) and merge ``patch``.

        The first call moves a pending job to in-progress. Progress stays below
        100 until ``complete`` is called.
        """

        def _mutate(job: ScrapeJob) -> None:
            if job.status is JobStatus.PENDING:
                job.status = JobStatus.IN_PROGRESS
            job.progress = min(MAX_PROGRESS_BEFORE_COMPLETION, job.progress + max(0, int(progress_delta)))
            if patch:
                _merge_patch(job, patch)

        return self._apply(job_id, _mutate, action="advance")

    def advance_to(
        self,
        job_id: str,
        progress: int,
        patch: Optional[Mapping[str, Any]] = None,
        *,
        min_progress: Optional[int] = None,
    ) -> ScrapeJob:
        """Like ``advance`` but with an absolute stage value; lower values are no-ops.

        With ``min_progress`` the job must already be in-progress at or past that
        stage, checked under the job lock; otherwise ``JobNotReadyError``.
        """

        def _mutate(job: ScrapeJob) -> None:
            if min_progress is not None and (
                job.status is not JobStatus.IN_PROGRESS or job.progress < min_progress
            ):
                raise JobNotReadyError(f"Job {job_id!r} has not reached stage {min_progress}")
            if job.status is JobStatus.PENDING:
                job.status = JobStatus.IN_PROGRESS
            target = min(MAX_PROGRESS_BEFORE_COMPLETION, int(progress))
            job.progress = max(job.progress, target)
            if patch:
                _merge_patch(job, patch)

        return self._apply(job_id, _mutate, action="advance")

    def complete(self, job_id: str) -> ScrapeJob:
        def _mutate(job: ScrapeJob) -> None:
            job.status = JobStatus.COMPLETED
            job.progress = 100

        return self._apply(job_id, _mutate, action="complete")

    def fail(self, job_id: str, error: str) -> ScrapeJob:
        def _mutate(job: ScrapeJob) -> None:
            job.status = JobStatus.FAILED
            job.error = error

        return self._apply(job_id, _mutate, action="fail")

    def purge_expired(self) -> int:
        """Drop jobs idle longer than the TTL and return how many were removed."""

        now = self._clock()
        with self._lock:
            expired = [job_id for job_id, entry in self._jobs.items() if self._is_expired(entry.job, now)]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            _scraper_event("state", phase="job", kind="evicted_ttl", count=len(expired))
        return len(expired)

    def _enforce_capacity(self) -> None:
        # Caller holds self._lock.
        overflow = len(self._jobs) - self.max_entries
        if overflow <= 0:
            return
        finished = sorted(
            (entry.job.updated_at, job_id)
            for job_id, entry in self._jobs.items()
            if entry.job.status.is_terminal
        )
        evicted = [job_id for _, job_id in finished[:overflow]]
        for job_id in evicted:
            del self._jobs[job_id]
        _scraper_event(
            "state",
            phase="job",
            kind="evicted_capacity",
            count=len(evicted),
            remaining=len(self._jobs),
            max_entries=self.max_entries,
        )


__all__ = ["JobStatus", "ScrapeJob", "JobStore", "JOB_DATA_FIELDS"]
