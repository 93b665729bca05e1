"""
CloudPRNT Broker Models
"""

from .job import Job, JobStatus, make_token

__all__ = ['Job', 'JobStatus', 'make_token']
