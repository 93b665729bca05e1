"""
CloudPRNT Protocol Handler
==========================

Transport-independent implementation of the broker endpoints.

Producer:
    POST   /api/order   {"text": "..."}        - Queue a job

Printer (CloudPRNT):
    POST   /cloudprnt   {printer status}       - Poll for a job
    GET    /cloudprnt?job_token=...            - Fetch job content (HEAD too)
    DELETE /cloudprnt?job_token=...&status=... - Report print result

Requests and responses are plain dataclasses so the handler can be driven
by Flask, by tests, or by any other transport.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Union

from . import config
from .errors import BrokerError, BadRequest, InvalidInput, InvalidState, NotFound
from .models import JobStatus
from .store import JobStore

logger = logging.getLogger(__name__)

JSON_TYPE = 'application/json'

ORDER_PATH = '/api/order'
CLOUDPRNT_PATH = '/cloudprnt'


@dataclass
class BrokerRequest:
    """Inbound request: method, path, query parameters and parsed body."""

    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass
class BrokerResponse:
    """Outbound response: status, body (dict for JSON, str for text) and content type."""

    status: int
    body: Union[Dict[str, Any], str]
    content_type: str = JSON_TYPE

    @property
    def is_json(self) -> bool:
        return self.content_type == JSON_TYPE

    @classmethod
    def json(cls, body: Dict[str, Any], status: int = 200) -> 'BrokerResponse':
        return cls(status=status, body=body)

    @classmethod
    def text(cls, body: str, status: int = 200,
             content_type: str = 'text/plain; charset=utf-8') -> 'BrokerResponse':
        return cls(status=status, body=body, content_type=content_type)


class ProtocolHandler:
    """Maps producer and printer requests onto JobStore operations."""

    def __init__(self, store: JobStore,
                 media_types: Optional[List[str]] = None,
                 poll_interval: int = config.POLL_INTERVAL,
                 content_type: str = config.CONTENT_TYPE,
                 success_status: str = config.SUCCESS_STATUS,
                 strict_ack: bool = config.STRICT_ACK):
        self.store = store
        self.media_types = list(media_types or config.MEDIA_TYPES)
        self.poll_interval = poll_interval
        self.content_type = content_type
        self.success_status = success_status
        self.strict_ack = strict_ack

        self._routes = {
            (ORDER_PATH, 'POST'): lambda r: self.submit(r.body),
            (CLOUDPRNT_PATH, 'POST'): lambda r: self.poll(r.body),
            (CLOUDPRNT_PATH, 'GET'): lambda r: self.fetch(r.query),
            (CLOUDPRNT_PATH, 'HEAD'): lambda r: self.fetch(r.query),
            (CLOUDPRNT_PATH, 'DELETE'): lambda r: self.acknowledge(r.query),
        }

    def handle(self, request: BrokerRequest) -> BrokerResponse:
        """Route a request to its operation."""
        method = request.method.upper()
        operation = self._routes.get((request.path, method))
        if operation is None:
            if any(path == request.path for path, _ in self._routes):
                return BrokerResponse.json({'error': 'Method not allowed'}, 405)
            return BrokerResponse.json({'error': 'Not found'}, 404)
        return operation(request)

    # =========================================================================
    # Producer
    # =========================================================================

    def submit(self, body: Any) -> BrokerResponse:
        """Queue an order's text as a new job."""
        text = body.get('text') if isinstance(body, dict) else None

        try:
            job = self.store.create(text)
        except InvalidInput as e:
            return BrokerResponse.json({'error': e.message}, e.status_code)

        return BrokerResponse.json({'ok': True, 'id': job.id, 'token': job.token})

    # =========================================================================
    # Printer
    # =========================================================================

    def poll(self, body: Any) -> BrokerResponse:
        """
        Answer a printer poll.

        The printer status body is logged only. When a pending job exists it
        is claimed (moved to printing) and its token is returned.
        """
        printer_status = body if body is not None else {}
        logger.info('CloudPRNT POST from printer: %s', json.dumps(printer_status, default=str))

        job = self.store.claim_next_pending()
        if job is None:
            return BrokerResponse.json({
                'jobReady': 0,
                'mediaTypes': list(self.media_types),
            })

        logger.info('Sending job info to printer: token=%s', job.token)
        return BrokerResponse.json({
            'jobReady': 1,
            'jobToken': job.token,
            'mediaTypes': list(self.media_types),
            'pollInterval': self.poll_interval,
        })

    def fetch(self, query: Dict[str, str]) -> BrokerResponse:
        """Return the raw content for a job token, regardless of job status."""
        try:
            token = self._require_token(query)
            job = self.store.find_by_token(token)
            if job is None:
                raise NotFound('Job not found')
        except BrokerError as e:
            return BrokerResponse.text(e.message, e.status_code)

        logger.info('Printer requesting job data: token=%s', token)
        return BrokerResponse.text(job.content, content_type=self.content_type)

    def acknowledge(self, query: Dict[str, str]) -> BrokerResponse:
        """Record the printer's result; status "0" is success, anything else an error."""
        try:
            token = self._require_token(query)
            if self.store.find_by_token(token) is None:
                raise NotFound('Job not found')
        except BrokerError as e:
            return BrokerResponse.text(e.message, e.status_code)

        status = query.get('status')
        outcome = JobStatus.DONE if status == self.success_status else JobStatus.ERROR

        try:
            self.store.set_terminal(token, outcome, device_status=status)
        except NotFound as e:
            # Evicted between lookup and update
            return BrokerResponse.text('Job not found', e.status_code)
        except InvalidState as e:
            logger.warning('Ignoring acknowledgement: token=%s, status=%s (%s)',
                           token, status, e.message)
            if self.strict_ack:
                return BrokerResponse.text(e.message, e.status_code)
            return BrokerResponse.text('OK')

        if outcome == JobStatus.DONE:
            logger.info('Job printed OK: token=%s', token)
        else:
            logger.warning('Job failed: token=%s, status=%s', token, status)

        return BrokerResponse.text('OK')

    @staticmethod
    def _require_token(query: Dict[str, str]) -> str:
        token = query.get('job_token') if query else None
        if not token:
            raise BadRequest('Missing job_token')
        return token
