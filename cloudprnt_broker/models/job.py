"""
Print Job Model
===============

Represents a print job queued for the CloudPRNT device.

Lifecycle:
    pending -> printing -> done | error
"""

import time
from datetime import datetime
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any


class JobStatus:
    """Job status values."""

    PENDING = 'pending'
    PRINTING = 'printing'
    DONE = 'done'
    ERROR = 'error'

    ALL = (PENDING, PRINTING, DONE, ERROR)
    TERMINAL = (DONE, ERROR)


def make_token(job_id: int, created_at: Optional[datetime] = None) -> str:
    """Build the device token for a job: job-<id>-<epoch millis>."""
    if created_at is None:
        millis = int(time.time() * 1000)
    else:
        millis = int(created_at.timestamp() * 1000)
    return f'job-{job_id}-{millis}'


@dataclass
class Job:
    """Print job state."""

    # Identification
    id: int
    token: str
    content: str

    # Status
    status: str = JobStatus.PENDING
    device_status: Optional[str] = None  # raw status code from acknowledgement

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    printing_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in JobStatus.TERMINAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        # Convert datetime to ISO format
        for key in ['created_at', 'printing_at', 'finished_at']:
            if data.get(key):
                data[key] = data[key].isoformat()
        return data

    def start(self):
        """Mark job as handed to the printer."""
        self.status = JobStatus.PRINTING
        self.printing_at = datetime.now()

    def complete(self, device_status: Optional[str] = None):
        """Mark job as printed."""
        self.status = JobStatus.DONE
        self.device_status = device_status
        self.finished_at = datetime.now()

    def fail(self, device_status: Optional[str] = None):
        """Mark job as failed on the printer."""
        self.status = JobStatus.ERROR
        self.device_status = device_status
        self.finished_at = datetime.now()
