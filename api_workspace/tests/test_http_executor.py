"""
Tests for translating request definitions into httpx calls and back.
"""

import asyncio
import base64

import httpx

from api_workspace.schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    BinaryBody,
    Cookie,
    FormUrlEncodedBody,
    MultipartBody,
    MultipartField,
    ProxyConfig,
    RawBody,
)
from api_workspace.services.http_executor import (
    build_client,
    build_httpx_arguments,
    execute_request,
    parse_json_body,
    to_snapshot,
)


class TestBuildArguments:

    def test_bearer_and_cookies(self):
        request = ApiRequest(
            method="POST",
            url="https://x.io",
            cookies=[Cookie(name="a", value="1"), Cookie(name="b", value="2")],
            auth=BearerAuth(token="t"),
            body=RawBody(content="{}", content_type="application/json"),
        )

        arguments = build_httpx_arguments(request)

        assert arguments["method"] == "POST"
        assert arguments["headers"] == {
            "Authorization": "Bearer t",
            "Cookie": "a=1; b=2",
            "Content-Type": "application/json",
        }
        assert arguments["content"] == "{}"
        assert arguments["params"] is None

    def test_explicit_headers_win(self):
        request = ApiRequest(
            url="https://x.io",
            headers={"authorization": "Custom", "content-type": "text/csv"},
            auth=BearerAuth(token="t"),
            body=RawBody(content="a,b", content_type="application/json"),
        )

        headers = build_httpx_arguments(request)["headers"]

        assert headers == {"authorization": "Custom", "content-type": "text/csv"}

    def test_api_key_in_query(self):
        request = ApiRequest(url="https://x.io", query_params={"q": "1"}, auth=ApiKeyAuth(key="k", value="v", add_to="query"))
        assert build_httpx_arguments(request)["params"] == {"q": "1", "k": "v"}

    def test_api_key_in_header(self):
        request = ApiRequest(url="https://x.io", auth=ApiKeyAuth(key="X-Key", value="v"))
        assert build_httpx_arguments(request)["headers"] == {"X-Key": "v"}

    def test_basic_auth(self):
        arguments = build_httpx_arguments(ApiRequest(url="https://x.io", auth=BasicAuth(username="u", password="p")))
        assert isinstance(arguments["auth"], httpx.BasicAuth)

    def test_form_bodies(self):
        form = build_httpx_arguments(ApiRequest(body=FormUrlEncodedBody(fields={"a": "1"})))
        assert form["data"] == {"a": "1"}

        multipart = build_httpx_arguments(ApiRequest(body=MultipartBody(fields=[
            MultipartField(name="title", value="x"),
            MultipartField(name="upload", kind="file", filename="f.bin", content_type="application/octet-stream"),
        ])))
        assert multipart["files"] == [
            ("title", (None, "x")),
            ("upload", ("f.bin", b"", "application/octet-stream")),
        ]

    def test_binary_body(self):
        data = base64.b64encode(b"\x00\x01").decode()
        arguments = build_httpx_arguments(ApiRequest(body=BinaryBody(data_base64=data)))

        assert arguments["content"] == b"\x00\x01"
        assert arguments["headers"]["Content-Type"] == "application/octet-stream"

    def test_invalid_base64_sends_empty_body(self):
        arguments = build_httpx_arguments(ApiRequest(body=BinaryBody(data_base64="***")))
        assert arguments["content"] == b""


class TestClient:

    def test_transport_settings(self):
        request = ApiRequest(
            timeout_ms=2500,
            follow_redirects=False,
            max_redirects=3,
            proxy=ProxyConfig(url="http://proxy.local:8080", username="u", password="p"),
        )

        client = build_client(request)

        assert client.timeout.read == 2.5
        assert client.follow_redirects is False
        assert client.max_redirects == 3
        asyncio.run(client.aclose())


class TestSnapshot:

    def test_parse_json_body(self):
        assert parse_json_body('{"a": 1}', "application/json; charset=utf-8") == {"a": 1}
        assert parse_json_body("{broken", "application/json") is None
        assert parse_json_body('{"a": 1}', "text/plain") is None
        assert parse_json_body(None, "application/json") is None

    def test_to_snapshot(self):
        response = httpx.Response(
            201,
            json={"id": 7},
            request=httpx.Request("POST", "https://x.io/items"),
        )

        snapshot = to_snapshot(response, 12)

        assert snapshot.status_code == 201
        assert snapshot.status_text == "Created"
        assert snapshot.body_json == {"id": 7}
        assert snapshot.response_time_ms == 12
        assert snapshot.response_size == len(response.content)
        assert snapshot.redirects == []


class TestExecute:

    def test_url_without_scheme_is_invalid(self):
        result = asyncio.run(execute_request(ApiRequest(url="not-a-url")))

        assert result.error_type == "invalid_url"
        assert result.error == "Invalid URL"
