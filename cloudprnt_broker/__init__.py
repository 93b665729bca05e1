"""
CloudPRNT Broker
================

Job broker between an order kiosk and a Star CloudPRNT printer.

The kiosk submits order text; the printer polls for work, fetches the
job content and reports the print result.

Usage:
    python -m cloudprnt_broker

API Endpoints:
    POST   /api/order        - Queue order text
    GET    /api/debug/jobs   - List jobs
    GET    /health           - Health check
    POST   /cloudprnt        - Printer poll
    GET    /cloudprnt        - Fetch job content (job_token)
    DELETE /cloudprnt        - Report print result (job_token, status)
"""

__version__ = '1.0.0'
