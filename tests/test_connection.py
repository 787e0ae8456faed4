"""
Unit tests for the HTTP connection.
"""
import gzip
import ssl
from unittest.mock import Mock, PropertyMock

import pytest
import requests

from conftest import TEST_URL, make_response
from http_output.transmission.connection import Connection, TLSAdapter
from http_output.transmission.errors import EncodeError, HTTPStatusError, TransportError
from http_output.transmission.settings import ConnectionSettings


@pytest.fixture
def connection(settings, session_request) -> Connection:
    conn = Connection(settings)
    conn.session.request = session_request
    conn.connect()
    return conn


class TestConnectionState:

    def test_starts_disconnected(self, settings):
        assert not Connection(settings).is_connected()

    def test_connect_arms_without_network(self, settings):
        conn = Connection(settings)
        conn.session.request = Mock()
        conn.connect(timeout=1.0)

        assert conn.is_connected()
        conn.session.request.assert_not_called()

    def test_close_is_idempotent(self, connection):
        connection.close()
        connection.close()
        assert not connection.is_connected()


class TestRequest:

    def test_posts_encoded_body(self, connection, session_request):
        status, body = connection.request("POST", "", {"pipeline": "events"}, {"a": 1})

        assert status == 200
        assert body == b"{}"
        args, kwargs = session_request.call_args
        assert args == ("POST", TEST_URL + "?pipeline=events")
        assert kwargs["data"].read() == b'{"a":1}'
        assert kwargs["headers"]["Accept"] == "application/json"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == 5.0
        assert kwargs["auth"] is None

    def test_path_is_appended(self, connection, session_request):
        connection.request("POST", "bulk", None, {"a": 1})
        assert session_request.call_args[0][1] == TEST_URL + "/bulk"

    def test_none_body_sends_no_payload(self, connection, session_request):
        connection.request("GET", "", None, None)

        kwargs = session_request.call_args[1]
        assert kwargs["data"] is None
        assert "Content-Type" not in kwargs["headers"]
        assert kwargs["headers"]["Accept"] == "application/json"

    def test_encode_failure_sends_nothing(self, connection, session_request):
        with pytest.raises(EncodeError):
            connection.request("POST", "", None, {"bad": object()})

        session_request.assert_not_called()
        assert connection.is_connected()

    def test_basic_auth(self, session_request):
        conn = Connection(ConnectionSettings(url=TEST_URL, username="beat", password="secret"))
        conn.session.request = session_request
        conn.request("POST", "", None, {"a": 1})

        assert session_request.call_args[1]["auth"] == ("beat", "secret")

    def test_custom_headers(self, session_request):
        conn = Connection(ConnectionSettings(url=TEST_URL, headers={"X-Tenant": "acme"}))
        conn.session.request = session_request
        conn.request("POST", "", None, {"a": 1})

        assert session_request.call_args[1]["headers"]["X-Tenant"] == "acme"

    def test_gzip_body(self, session_request):
        conn = Connection(ConnectionSettings(url=TEST_URL, compression_level=5))
        conn.session.request = session_request
        conn.request("POST", "", None, {"a": 1})

        kwargs = session_request.call_args[1]
        assert kwargs["headers"]["Content-Encoding"] == "gzip"
        assert gzip.decompress(kwargs["data"].read()) == b'{"a":1}'


class TestExecute:

    def test_success_keeps_state_and_closes_response(self, connection, session_request):
        response = make_response(201, b'{"ok":true}')
        session_request.return_value = response

        status, body = connection.execute("POST", TEST_URL, None)

        assert (status, body) == (201, b'{"ok":true}')
        assert connection.is_connected()
        response.close.assert_called_once()

    @pytest.mark.parametrize("status", [301, 400, 429, 500, 503])
    def test_error_status_disconnects(self, connection, session_request, status):
        response = make_response(status, b"error body")
        session_request.return_value = response

        with pytest.raises(HTTPStatusError) as exc_info:
            connection.execute("POST", TEST_URL, None)

        assert exc_info.value.status_code == status
        assert not connection.is_connected()
        response.close.assert_called_once()

    @pytest.mark.parametrize("exc", [
        requests.ConnectionError("connection refused"),
        requests.Timeout("read timed out"),
        requests.exceptions.SSLError("handshake failure"),
    ])
    def test_transport_error_disconnects(self, connection, session_request, exc):
        session_request.side_effect = exc

        with pytest.raises(TransportError) as exc_info:
            connection.execute("POST", TEST_URL, None)

        assert exc_info.value.cause is exc
        assert not connection.is_connected()

    def test_body_read_failure_is_transport_error(self, connection, session_request):
        response = Mock(status_code=200, reason="OK")
        type(response).content = PropertyMock(
            side_effect=requests.exceptions.ChunkedEncodingError("truncated")
        )
        session_request.return_value = response

        with pytest.raises(TransportError):
            connection.execute("POST", TEST_URL, None)

        assert not connection.is_connected()
        response.close.assert_called_once()

    def test_close_error_is_logged_not_raised(self, connection, session_request):
        response = make_response(200)
        response.close.side_effect = OSError("socket already closed")
        session_request.return_value = response

        assert connection.execute("POST", TEST_URL, None) == (200, b"{}")


class TestIOStats:

    @pytest.fixture
    def counted(self, settings, observer, session_request) -> Connection:
        conn = Connection(settings, observer=observer)
        conn.session.request = session_request
        conn.connect()
        return conn

    def test_counts_request_and_response_bytes(self, counted, session_request, observer):
        session_request.return_value = make_response(200, b'{"ok":true}')

        counted.request("POST", "", None, {"a": 1})
        counted.request("POST", "", None, {"b": 22})

        assert observer.write_bytes == len(b'{"a":1}') + len(b'{"b":22}')
        assert observer.read_bytes == 2 * len(b'{"ok":true}')
        assert (observer.write_errors, observer.read_errors) == (0, 0)

    def test_gzip_counts_compressed_size(self, observer, session_request):
        conn = Connection(ConnectionSettings(url=TEST_URL, compression_level=6), observer=observer)
        conn.session.request = session_request
        conn.connect()

        conn.request("POST", "", None, {"a": 1})

        assert observer.write_bytes == len(session_request.call_args[1]["data"].getvalue())

    def test_rejected_request_counts_written_bytes_only(self, counted, session_request, observer):
        session_request.return_value = make_response(400, b"bad request")

        with pytest.raises(HTTPStatusError):
            counted.request("POST", "", None, {"a": 1})

        assert observer.write_bytes == len(b'{"a":1}')
        assert observer.read_bytes == 0

    def test_transport_error_is_write_error(self, counted, session_request, observer):
        session_request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(TransportError):
            counted.request("POST", "", None, {"a": 1})

        assert observer.write_errors == 1
        assert observer.write_bytes == 0

    def test_body_read_failure_is_read_error(self, counted, session_request, observer):
        response = Mock(status_code=200, reason="OK")
        type(response).content = PropertyMock(
            side_effect=requests.exceptions.ChunkedEncodingError("truncated")
        )
        session_request.return_value = response

        with pytest.raises(TransportError):
            counted.execute("POST", TEST_URL, None)

        assert (observer.write_errors, observer.read_errors) == (0, 1)

    def test_connection_without_observer(self, connection):
        assert connection.execute("POST", TEST_URL, None) == (200, b"{}")


class TestSession:

    def test_proxy_url(self):
        conn = Connection(ConnectionSettings(url=TEST_URL, proxy_url="http://proxy:3128"))
        assert conn.session.proxies == {"http": "http://proxy:3128", "https": "http://proxy:3128"}

    def test_tls_context_mounted(self):
        context = ssl.create_default_context()
        conn = Connection(ConnectionSettings(url="https://collector.example", tls=context))

        adapter = conn.session.get_adapter("https://collector.example")
        assert isinstance(adapter, TLSAdapter)
        assert adapter.ssl_context is context
        assert conn.session.verify is True

    def test_unverified_tls_disables_verify(self):
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        conn = Connection(ConnectionSettings(url="https://collector.example", tls=context))

        assert conn.session.verify is False
