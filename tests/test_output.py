"""
Unit tests for building clients from configuration.
"""
import threading

import pytest

from http_output.config import Config
from http_output.output import make_http
from http_output.transmission.backoff import BackoffClient
from http_output.transmission.errors import ConfigError
from http_output.transmission.observer import CountingObserver


class TestMakeHTTP:

    def test_one_client_per_host(self):
        config = Config(hosts=["a.example", "b.example:9000"], path="ingest")

        clients = make_http(config)

        assert [c.url for c in clients] == [
            "http://a.example:80/ingest",
            "http://b.example:9000/ingest",
        ]
        assert all(isinstance(c, BackoffClient) for c in clients)
        assert not any(c.is_connected() for c in clients)

    def test_settings_carried_into_clients(self):
        observer = CountingObserver()
        config = Config(
            hosts=["a.example"],
            username="beat",
            password="secret",
            compression_level=4,
            headers={"X-Tenant": "acme"},
            params={"pipeline": "events"},
            batch_publish=True,
            backoff_init_s=2.0,
            backoff_max_s=10.0,
        )

        client = make_http(config, observer)[0]

        settings = client.client.settings
        assert (settings.username, settings.password) == ("beat", "secret")
        assert settings.compression_level == 4
        assert settings.headers == {"X-Tenant": "acme"}
        assert settings.batch_publish is True
        assert settings.content_type is None
        assert client.client.params == {"pipeline": "events"}
        assert client.client.observer is observer
        assert (client.backoff.init, client.backoff.max) == (2.0, 10.0)

    def test_https_gets_tls_context(self):
        client = make_http(Config(hosts=["a.example"], protocol="https"))[0]

        assert client.url == "https://a.example:443"
        assert client.client.settings.tls is not None

    def test_shared_done_event(self):
        done = threading.Event()
        clients = make_http(Config(hosts=["a.example", "b.example"]), done=done)

        assert all(c.backoff.done is done for c in clients)

    def test_invalid_proxy(self):
        with pytest.raises(ConfigError):
            make_http(Config(proxy_url="not a url"))
