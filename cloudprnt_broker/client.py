"""
CloudPRNT Broker Client
=======================

Python SDK for interacting with the CloudPRNT broker.

Usage:
    from cloudprnt_broker.client import BrokerClient

    client = BrokerClient('http://localhost:3000')

    # Kiosk side
    result = client.submit_order('Order #1\n1x Margherita')

    # Printer side (simulating a CloudPRNT device)
    poll = client.poll({'statusCode': '200 OK'})
    if poll.get('jobReady'):
        content = client.fetch(poll['jobToken'])
        client.acknowledge(poll['jobToken'], status='0')
"""

import requests
from typing import Dict, Any, Optional, List


class BrokerClient:
    """Client for the CloudPRNT broker."""

    def __init__(self, base_url: str = 'http://localhost:3000', timeout: int = 30):
        """
        Initialize client.

        Args:
            base_url: Base URL of the broker
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        """Get request headers."""
        return {'Content-Type': 'application/json'}

    def _send(self, method: str, endpoint: str, data: Any = None,
              params: Dict[str, str] = None) -> requests.Response:
        """Send a request and return the raw response."""
        url = f'{self.base_url}{endpoint}'

        if method == 'GET':
            return requests.get(url, params=params, timeout=self.timeout)
        elif method == 'POST':
            return requests.post(url, json=data, headers=self._headers(), timeout=self.timeout)
        elif method == 'DELETE':
            return requests.delete(url, params=params, timeout=self.timeout)
        else:
            raise ValueError(f'Unknown method: {method}')

    def _request(self, method: str, endpoint: str, data: Any = None) -> Any:
        """Make JSON API request."""
        try:
            response = self._send(method, endpoint, data)
            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'error': f'Cannot connect to {self.base_url}'}
        except ValueError as e:
            return {'success': False, 'error': str(e)}

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        result = self.health()
        return result.get('status') == 'online'

    # =========================================================================
    # Kiosk
    # =========================================================================

    def submit_order(self, text: str) -> Dict[str, Any]:
        """
        Queue order text for printing.

        Returns:
            {'ok': True, 'id': ..., 'token': ...} or {'error': ...}
        """
        return self._request('POST', '/api/order', {'text': text})

    def list_jobs(self) -> List[Dict[str, Any]]:
        """List all jobs held by the broker."""
        result = self._request('GET', '/api/debug/jobs')
        return result if isinstance(result, list) else []

    # =========================================================================
    # Printer (CloudPRNT)
    # =========================================================================

    def poll(self, printer_status: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Poll for a job, reporting printer status."""
        return self._request('POST', '/cloudprnt', printer_status or {})

    def fetch(self, job_token: str) -> Optional[str]:
        """
        Fetch job content.

        Returns:
            Job content, or None if the token is unknown or the request failed
        """
        try:
            response = self._send('GET', '/cloudprnt', params={'job_token': job_token})
        except requests.exceptions.RequestException:
            return None

        if response.status_code != 200:
            return None
        return response.text

    def acknowledge(self, job_token: str, status: str = '0') -> bool:
        """
        Report the print result.

        Args:
            job_token: Token from poll
            status: Printer status code ("0" = printed OK)

        Returns:
            True if the broker accepted the acknowledgement
        """
        try:
            response = self._send('DELETE', '/cloudprnt',
                                  params={'job_token': job_token, 'status': status})
        except requests.exceptions.RequestException:
            return False

        return response.status_code == 200
