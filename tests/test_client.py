from types import SimpleNamespace

import pytest
import requests

from cloudprnt_broker import client as client_module
from cloudprnt_broker.client import BrokerClient
from cloudprnt_broker.models import JobStatus


BASE_URL = 'http://broker.test'


@pytest.fixture
def client(http, monkeypatch):
    """BrokerClient whose requests calls are served by the Flask test client."""

    def _path(url):
        assert url.startswith(BASE_URL)
        return url[len(BASE_URL):]

    def _wrap(resp):
        return SimpleNamespace(
            status_code=resp.status_code,
            text=resp.get_data(as_text=True),
            json=lambda: resp.get_json(force=True),
        )

    def fake_get(url, params=None, **kwargs):
        return _wrap(http.get(_path(url), query_string=params))

    def fake_post(url, json=None, **kwargs):
        return _wrap(http.post(_path(url), json=json))

    def fake_delete(url, params=None, **kwargs):
        return _wrap(http.delete(_path(url), query_string=params))

    monkeypatch.setattr(client_module.requests, 'get', fake_get)
    monkeypatch.setattr(client_module.requests, 'post', fake_post)
    monkeypatch.setattr(client_module.requests, 'delete', fake_delete)
    return BrokerClient(BASE_URL + '/')


def test_client_drives_full_cycle(client, store):
    order = client.submit_order('Order #1')
    assert order['ok'] is True

    poll = client.poll({'statusCode': '200 OK'})
    assert poll['jobReady'] == 1
    assert poll['jobToken'] == order['token']

    assert client.fetch(poll['jobToken']) == 'Order #1'
    assert client.acknowledge(poll['jobToken'], status='0') is True
    assert store.find_by_token(order['token']).status == JobStatus.DONE

    assert client.poll()['jobReady'] == 0


def test_client_error_paths(client):
    assert client.submit_order('') == {'error': "Missing 'text' field"}
    assert client.fetch('job-1-0') is None
    assert client.acknowledge('job-1-0') is False


def test_client_health_and_jobs(client):
    client.submit_order('A')

    assert client.is_online() is True
    jobs = client.list_jobs()
    assert [j['content'] for j in jobs] == ['A']


def test_client_connection_error(monkeypatch):
    def refuse(*args, **kwargs):
        raise requests.exceptions.ConnectionError('refused')

    for name in ('get', 'post', 'delete'):
        monkeypatch.setattr(client_module.requests, name, refuse)

    c = BrokerClient('http://nowhere.test')

    assert c.health() == {'success': False, 'error': 'Cannot connect to http://nowhere.test'}
    assert c.is_online() is False
    assert c.list_jobs() == []
    assert c.fetch('job-1-0') is None
    assert c.acknowledge('job-1-0') is False


def test_client_timeout(monkeypatch):
    def slow(*args, **kwargs):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(client_module.requests, 'post', slow)

    assert BrokerClient(BASE_URL).submit_order('A') == {'success': False, 'error': 'Request timeout'}
