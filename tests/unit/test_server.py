"""Unit Tests for the Flask host - JSON routes over JobService"""
import pytest

from awake.errors import StoreError
from awake.server import create_app


@pytest.fixture
def client(service):
    app = create_app(service)
    app.testing = True
    return app.test_client()


def _create(client, **overrides):
    payload = {'url': 'https://example.com/ping', 'intervalMs': 1000}
    payload.update(overrides)
    return client.post('/jobs', json=payload)


class TestCreateJob:
    """POST /jobs"""

    def test_create_returns_201(self, client, clock):
        """Created jobs come back in wire format"""
        resp = _create(client, method='post', body={'a': 1}, maxRetries=2, retryDelayMs=100)

        assert resp.status_code == 201
        data = resp.get_json()
        assert data['id'] == 1
        assert data['method'] == 'POST'
        assert data['body'] == {'a': 1}
        assert data['bodyIsJson'] is True
        assert data['maxRetries'] == 2
        assert data['retryDelayMs'] == 100
        assert data['nextRunAt'] == clock() + 1000
        assert data['active'] is True

    def test_missing_fields(self, client):
        resp = client.post('/jobs', json={'url': 'https://example.com'})

        assert resp.status_code == 400
        assert 'required' in resp.get_json()['error']

    def test_non_positive_interval(self, client):
        resp = _create(client, intervalMs=0)

        assert resp.status_code == 400
        assert 'intervalMs' in resp.get_json()['error']

    def test_negative_retries(self, client):
        assert _create(client, maxRetries=-1).status_code == 400

    def test_not_json(self, client):
        resp = client.post('/jobs', data='nope', content_type='text/plain')

        assert resp.status_code == 400


class TestJobRoutes:
    """Read, update, toggle, delete"""

    def test_list_and_get(self, client):
        _create(client)
        _create(client, url='https://second.example.com')

        jobs = client.get('/jobs').get_json()

        assert [j['id'] for j in jobs] == [2, 1]
        assert client.get('/jobs/2').get_json()['url'] == 'https://second.example.com'

    def test_get_missing(self, client):
        resp = client.get('/jobs/99')

        assert resp.status_code == 404
        assert resp.get_json() == {'error': 'not found'}

    def test_patch(self, client):
        _create(client)

        resp = client.patch('/jobs/1', json={'intervalMs': 3000, 'headers': {'X-A': 'b'}})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data['intervalMs'] == 3000
        assert data['headers'] == {'X-A': 'b'}

    def test_patch_nothing_updatable(self, client):
        _create(client)

        assert client.patch('/jobs/1', json={'active': False}).status_code == 400

    def test_disable_and_enable(self, client, scheduler):
        _create(client)

        disabled = client.post('/jobs/1/disable')
        assert disabled.status_code == 200
        assert disabled.get_json()['active'] is False
        assert not scheduler.has_wake(1)

        enabled = client.post('/jobs/1/enable')
        assert enabled.get_json()['active'] is True
        assert scheduler.has_wake(1)

    def test_enable_missing(self, client):
        assert client.post('/jobs/5/enable').status_code == 404

    def test_delete(self, client, scheduler):
        _create(client)

        assert client.delete('/jobs/1').get_json() == {'ok': True}
        assert client.get('/jobs/1').status_code == 404
        assert client.delete('/jobs/1').status_code == 404
        assert scheduler.pending_ids() == []


class TestRunsRoute:
    """GET /jobs/<id>/runs"""

    def test_runs_after_fire(self, client, timers):
        _create(client)
        timers.last.fire()

        resp = client.get('/jobs/1/runs?limit=5')

        runs = resp.get_json()['runs']
        assert len(runs) == 1
        assert runs[0]['jobId'] == 1
        assert runs[0]['success'] is True
        assert runs[0]['statusCode'] == 200
        assert runs[0]['attemptCount'] == 1

    def test_runs_missing_job(self, client):
        assert client.get('/jobs/3/runs').status_code == 404


class TestErrors:
    """Infrastructure responses"""

    def test_health(self, client):
        assert client.get('/health').get_json() == {'ok': True}

    def test_store_failure_is_500(self, client, store, monkeypatch):
        def broken():
            raise StoreError("database is locked")
        monkeypatch.setattr(store, 'list_all', broken)

        resp = client.get('/jobs')

        assert resp.status_code == 500
        assert resp.get_json() == {'error': 'storage unavailable'}
