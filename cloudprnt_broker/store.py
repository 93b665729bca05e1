"""
Job Store
=========

In-memory, process-lifetime store of print jobs.

The store is the only owner of Job records. Every read and write goes
through one re-entrant lock, and dispatch uses claim_next_pending() so
that selecting a pending job and marking it as printing happen as one step.

Jobs handed out by the store are copies taken under the lock; changing
one has no effect on the stored record.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Dict, List, Any

from .errors import InvalidInput, InvalidState, NotFound
from .models import Job, JobStatus, make_token

logger = logging.getLogger(__name__)


def _snapshot(job: Optional[Job]) -> Optional[Job]:
    return replace(job) if job is not None else None


class JobStore:
    """FIFO job queue with token lookup."""

    def __init__(self, max_finished: int = 0):
        """
        Initialize an empty store.

        Args:
            max_finished: Number of done/error jobs to keep (0 = unbounded)
        """
        self.max_finished = max_finished
        self._jobs: List[Job] = []
        self._by_id: Dict[int, Job] = {}
        self._by_token: Dict[str, Job] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    # =========================================================================
    # Creation
    # =========================================================================

    def create(self, content) -> Job:
        """Queue new content as a pending job."""
        if not isinstance(content, str) or not content:
            raise InvalidInput("Missing 'text' field")

        with self._lock:
            job_id = self._next_id
            self._next_id += 1

            created_at = datetime.now()
            job = Job(
                id=job_id,
                token=make_token(job_id, created_at),
                content=content,
                created_at=created_at,
            )
            self._jobs.append(job)
            self._by_id[job.id] = job
            self._by_token[job.token] = job
            result = _snapshot(job)

        logger.info('New job queued: id=%s, token=%s', job.id, job.token)
        return result

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _first_pending(self) -> Optional[Job]:
        for job in self._jobs:
            if job.status == JobStatus.PENDING:
                return job
        return None

    def next_pending(self) -> Optional[Job]:
        """Oldest pending job, or None."""
        with self._lock:
            return _snapshot(self._first_pending())

    def mark_printing(self, job_id: int):
        """Move a pending job to printing."""
        with self._lock:
            job = self._by_id.get(job_id)
            if job is None:
                raise NotFound(f'Job {job_id} not found')
            if job.status != JobStatus.PENDING:
                raise InvalidState(f'Job {job_id} is {job.status}, not pending')
            job.start()

    def claim_next_pending(self) -> Optional[Job]:
        """Select the oldest pending job and mark it printing, atomically."""
        with self._lock:
            job = self._first_pending()
            if job is None:
                return None
            self.mark_printing(job.id)
            return _snapshot(job)

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, job_id: int) -> Optional[Job]:
        with self._lock:
            return _snapshot(self._by_id.get(job_id))

    def find_by_token(self, token: str) -> Optional[Job]:
        with self._lock:
            return _snapshot(self._by_token.get(token))

    def list_jobs(self) -> List[Job]:
        """All retained jobs in insertion order."""
        with self._lock:
            return [_snapshot(job) for job in self._jobs]

    def to_dicts(self) -> List[Dict[str, Any]]:
        """All retained jobs serialized for JSON, in insertion order."""
        with self._lock:
            return [job.to_dict() for job in self._jobs]

    def counts(self) -> Dict[str, int]:
        """Number of jobs per status."""
        with self._lock:
            result = {status: 0 for status in JobStatus.ALL}
            for job in self._jobs:
                result[job.status] += 1
            return result

    # =========================================================================
    # Completion
    # =========================================================================

    def set_terminal(self, token: str, outcome: str, device_status: Optional[str] = None) -> Job:
        """
        Record the printer's result for a dispatched job.

        Args:
            token: Job token handed out on poll
            outcome: JobStatus.DONE or JobStatus.ERROR
            device_status: Raw status code reported by the printer

        Raises:
            NotFound: Unknown token
            InvalidState: Job is still pending or already finished
        """
        if outcome not in JobStatus.TERMINAL:
            raise ValueError(f'Invalid outcome: {outcome}')

        with self._lock:
            job = self._by_token.get(token)
            if job is None:
                raise NotFound(f'Job not found: {token}')
            if job.status != JobStatus.PRINTING:
                raise InvalidState(f'Job {job.id} is {job.status}, cannot mark {outcome}')

            if outcome == JobStatus.DONE:
                job.complete(device_status)
            else:
                job.fail(device_status)

            result = _snapshot(job)
            self._evict_finished()
            return result

    def _evict_finished(self):
        """Drop the oldest finished jobs beyond max_finished. Caller holds the lock."""
        if self.max_finished <= 0:
            return

        finished = [j for j in self._jobs if j.is_terminal]
        excess = len(finished) - self.max_finished
        if excess <= 0:
            return

        dropped = finished[:excess]
        dropped_ids = {j.id for j in dropped}
        self._jobs = [j for j in self._jobs if j.id not in dropped_ids]
        for job in dropped:
            del self._by_id[job.id]
            del self._by_token[job.token]
        logger.debug('Evicted %d finished job(s)', excess)
