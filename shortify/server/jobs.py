"""In-memory job store with cancellation and TTL cleanup.

WHY: The HTTP API tracks clip jobs through their lifecycle
(pending → transcribing → analyzing → segmenting → windowing →
completed | failed | cancelled). Jobs can take minutes because of provider
calls, so the API returns a job ID immediately and runs the pipeline in the
background. An in-memory store is sufficient for a single-service
deployment with no persistence requirements.

HOW: Three components work together:
  JobStatus:  enum of valid job states
  Job:        frozen dataclass snapshot of one job
  JobStore:   thread-safe dict of job id → latest snapshot, with
               create/get/list/update/cancel/delete and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock
- Updates replace the stored Job (dataclasses.replace); a Job handed out is
  never mutated afterwards, so readers always see a consistent snapshot
- Terminal jobs (completed, failed, cancelled) are never updated again
- Each job gets a dedicated temp directory for export files
- TTL-based expiry removes terminal jobs and their temp directories
- Job IDs are UUID4 hex strings generated at creation time
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from shortify.config import JOB_TTL_SECONDS, MAX_JOBS

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class JobStatus(str, enum.Enum):
    """Valid states for a clip job.

    Inherits from str so values serialize cleanly to JSON. The running
    states are the pipeline stages, in order.
    """

    PENDING = "pending"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    SEGMENTING = "segmenting"
    WINDOWING = "windowing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


class JobStoreFullError(ValueError):
    """Raised by create_job() when max_jobs jobs are already stored."""


@dataclass(frozen=True)
class Job:
    """Snapshot of a single clip job.

    RULES:
    - id: UUID4 hex string, unique and immutable after creation
    - source: media URL, or "transcript" for inline transcripts
    - output_dir: temp directory holding the export files
    - completed_at: set when the job reaches a terminal state
    - error / error_kind: set when status is FAILED
    - timing_source: "asr" or "heuristic" once tokenized
    - result: PipelineResult.to_dict() once COMPLETED
    """

    id: str
    status: JobStatus
    source: str
    output_dir: Path
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    timing_source: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)
    output_files: Tuple[str, ...] = ()
    result: Optional[Dict[str, Any]] = None


class JobStore:
    """Thread-safe in-memory store for clip jobs.

    RULES:
    - get_job() returns None for missing job IDs (no exceptions)
    - update_job() returns the new snapshot, or None if the job is gone
    - cancel_job() only affects non-terminal jobs
    - delete_job() removes the job and cleans up its temp directory
    """

    def __init__(
        self,
        ttl_seconds: int = JOB_TTL_SECONDS,
        max_jobs: int = MAX_JOBS,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(
        self,
        source: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """Create a new PENDING job with a dedicated temp directory.

        Raises:
            JobStoreFullError: max_jobs jobs are already stored.
        """
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise JobStoreFullError(
                    "Maximum number of concurrent jobs ({}) reached".format(
                        self.max_jobs
                    )
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            output_dir = Path(tempfile.mkdtemp(prefix="shortify_job_"))

            job = Job(
                id=job_id,
                status=JobStatus.PENDING,
                source=source,
                output_dir=output_dir,
                created_at=now,
                updated_at=now,
                config=config or {},
            )
            self._jobs[job_id] = job

        logger.info("Created job %s for %s", job_id, source)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """Return all jobs, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        error_kind: Optional[str] = None,
        timing_source: Optional[str] = None,
        output_files: Optional[List[str]] = None,
        result: Any = _UNSET,
    ) -> Optional[Job]:
        """Replace a job with a copy carrying the given changes.

        RULES:
        - Only non-None arguments are applied (result: any value but _UNSET)
        - updated_at is always bumped
        - completed_at is set when status becomes terminal
        - A job already in a terminal state is returned unchanged
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if job.status.is_terminal:
                logger.debug(
                    "Ignoring update of job %s in terminal state %s",
                    job_id, job.status.value,
                )
                return job

            now = time.time()
            changes: Dict[str, Any] = {"updated_at": now}
            if status is not None:
                changes["status"] = status
                if status.is_terminal:
                    changes["completed_at"] = now
            if error is not None:
                changes["error"] = error
            if error_kind is not None:
                changes["error_kind"] = error_kind
            if timing_source is not None:
                changes["timing_source"] = timing_source
            if output_files is not None:
                changes["output_files"] = tuple(output_files)
            if result is not _UNSET:
                changes["result"] = result

            job = dataclasses.replace(job, **changes)
            self._jobs[job_id] = job
            return job

    def cancel_job(self, job_id: str) -> Optional[Job]:
        """Mark a non-terminal job CANCELLED.

        The running pipeline notices at its next stage boundary via
        is_cancelled(). Terminal jobs are returned unchanged; unknown IDs
        return None.
        """
        job = self.update_job(job_id, status=JobStatus.CANCELLED)
        if job is not None and job.status is JobStatus.CANCELLED:
            logger.info("Cancelled job %s", job_id)
        return job

    def is_cancelled(self, job_id: str) -> bool:
        """True when the job was cancelled or no longer exists."""
        with self._lock:
            job = self._jobs.get(job_id)
        return job is None or job.status is JobStatus.CANCELLED

    def delete_job(self, job_id: str) -> bool:
        """Delete a job and clean up its temp directory.

        The directory is removed outside the lock (I/O should not hold it).
        Returns True if the job was found.
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False

        self.cleanup_output_dir(job.output_dir)
        logger.info("Deleted job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove terminal jobs whose completed_at is older than the TTL.

        Returns the number of removed jobs.
        """
        now = time.time()
        expired_jobs: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if not job.status.is_terminal or job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired_jobs.append(self._jobs.pop(job_id))

        for job in expired_jobs:
            self.cleanup_output_dir(job.output_dir)
            logger.info("Expired job %s (finished %.0fs ago)", job.id, now - job.completed_at)

        return len(expired_jobs)

    @staticmethod
    def cleanup_output_dir(output_dir: Path) -> None:
        """Remove a job's temp directory tree; never raises."""
        if output_dir.exists():
            try:
                shutil.rmtree(output_dir)
            except OSError:
                logger.warning("Failed to clean up temp dir: %s", output_dir)
