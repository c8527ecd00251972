"""
Tests for payer name enrichment
"""

import httpx
import pytest

from emi_engine.identity import (
    HttpIdentityClient, IdentityDirectory, StaticIdentityDirectory,
    create_identity_directory, placeholder_name
)


def client_with(handler, **kwargs):
    client = HttpIdentityClient(base_url="http://identity.local/", **kwargs)
    client._client = httpx.Client(transport=httpx.MockTransport(handler))
    return client


class TestHttpIdentityClient:

    def test_full_name(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "u1", "full_name": "Asha Rao"})

        client = client_with(handler)

        assert client.get_user_name("u1") == "Asha Rao"
        assert str(seen[0].url) == "http://identity.local/users/u1"
        assert "authorization" not in seen[0].headers

    def test_first_and_last_name(self):
        client = client_with(lambda request: httpx.Response(200, json={"first_name": "Asha", "last_name": "Rao"}))
        assert client.get_user_name("u1") == "Asha Rao"

    def test_api_key_sent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"name": "Ops"})

        client = client_with(handler, api_key="secret")

        assert client.get_user_name("u1") == "Ops"
        assert seen[0].headers["authorization"] == "Bearer secret"

    @pytest.mark.parametrize("response", [
        httpx.Response(404, json={"detail": "not found"}),
        httpx.Response(500),
        httpx.Response(200, json={}),
    ])
    def test_missing_name(self, response):
        client = client_with(lambda request: response)
        assert client.get_user_name("u1") is None

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = client_with(handler)

        assert client.get_user_name("u1") is None
        assert client.display_name("u1") == "User #u1"

    def test_user_id_is_escaped(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(404)

        client = client_with(handler)

        assert client.get_user_name("team/ops desk") is None
        assert seen[0].url.raw_path == b"/users/team%2Fops%20desk"

    def test_close(self):
        client = client_with(lambda request: httpx.Response(200))
        client.close()
        assert client._client.is_closed

    def test_disabled_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        client = client_with(handler, enabled=False)
        assert client.get_user_name("u1") is None

    def test_health_check(self):
        assert client_with(lambda request: httpx.Response(200)).health_check()
        assert not client_with(lambda request: httpx.Response(503)).health_check()


class TestDisplayName:

    def test_static_directory(self):
        directory = StaticIdentityDirectory({"u1": "Asha Rao"})

        assert directory.display_name("u1") == "Asha Rao"
        assert directory.display_name("u2") == "User #u2"

    def test_raising_directory_falls_back(self):
        class BrokenDirectory(IdentityDirectory):
            def get_user_name(self, user_id):
                raise RuntimeError("directory down")

        assert BrokenDirectory().display_name("42") == placeholder_name("42") == "User #42"


class TestCreateIdentityDirectory:

    def test_url_configured(self):
        directory = create_identity_directory("http://identity.local", timeout=1.5)

        assert isinstance(directory, HttpIdentityClient)
        assert directory.timeout == 1.5
        directory.close()

    def test_url_missing(self):
        assert isinstance(create_identity_directory(""), StaticIdentityDirectory)
