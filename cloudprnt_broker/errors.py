"""
CloudPRNT Broker Errors
=======================

Exceptions raised by the job store and caught by the protocol handler.
Each carries the HTTP status the handler answers with.
"""


class BrokerError(Exception):
    """Base class for broker errors."""

    status_code = 500

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class InvalidInput(BrokerError):
    """Malformed or missing field in a producer submission."""

    status_code = 400


class BadRequest(BrokerError):
    """Missing identifier or parameter in a device request."""

    status_code = 400


class NotFound(BrokerError):
    """Token or id does not resolve to a known job."""

    status_code = 404


class InvalidState(BrokerError):
    """Transition not allowed from the job's current status."""

    status_code = 409
