"""Unit Tests for OutboundCaller - requests wrapper"""
from unittest import mock

import pytest
import requests

from awake.errors import TransportError
from awake.runner.caller import OutboundCaller


@pytest.fixture
def session():
    session = mock.Mock(spec=requests.Session)
    session.request.return_value = mock.Mock(status_code=200)
    return session


class TestPerform:
    """Single requests"""

    def test_returns_status_code(self, session):
        """Any status is returned as-is"""
        session.request.return_value = mock.Mock(status_code=503)

        status = OutboundCaller(session=session).perform('GET', 'https://example.com')

        assert status == 503

    def test_passes_request_through(self, session):
        """Method, headers, encoded body and timeout reach requests"""
        caller = OutboundCaller(timeout=7.5, session=session)

        caller.perform('POST', 'https://example.com/h', {'X-A': '1'}, '{"é": 1}')

        session.request.assert_called_once_with(
            'POST',
            'https://example.com/h',
            headers={'X-A': '1'},
            data='{"é": 1}'.encode('utf-8'),
            timeout=7.5,
            allow_redirects=True,
        )

    def test_no_timeout_by_default(self, session):
        OutboundCaller(session=session).perform('GET', 'https://example.com')

        assert session.request.call_args.kwargs['timeout'] is None
        assert session.request.call_args.kwargs['data'] is None

    @pytest.mark.parametrize("error", [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
        requests.exceptions.InvalidURL("bad"),
    ])
    def test_transport_failures_raise(self, session, error):
        """No response at all becomes TransportError"""
        session.request.side_effect = error

        with pytest.raises(TransportError) as exc:
            OutboundCaller(session=session).perform('GET', 'https://example.com')

        assert type(error).__name__ in str(exc.value)

    def test_close_releases_session(self, session):
        OutboundCaller(session=session).close()

        session.close.assert_called_once_with()
