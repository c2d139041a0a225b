"""
Request and Response (dactyl/request.py, dactyl/response.py)
"""

import datetime
import json

import pytest

from dactyl.exceptions import BadRequestException, HttpException
from dactyl.request import Headers, Request
from dactyl.response import Response
from dactyl.testing import make_test_receive, make_test_request, make_test_scope


class TestHeaders:

    def test_case_insensitive(self):
        headers = Headers([(b"Content-Type", b"application/json")])
        assert headers["content-type"] == "application/json"
        assert headers.get("CONTENT-TYPE") == "application/json"
        assert "Content-type" in headers

    def test_repeated_headers_joined(self):
        headers = Headers([(b"accept", b"a"), (b"Accept", b"b")])
        assert headers["accept"] == "a, b"
        assert len(headers) == 1


class TestRequest:

    def test_basic_properties(self):
        request = make_test_request("post", "/dinosaurs", query_string="a=1&b=2&a=3")
        assert request.method == "POST"
        assert request.path == "/dinosaurs"
        assert request.query_params == {"a": "1", "b": "2"}
        assert request.query_param("missing", "x") == "x"
        assert request.path_params == {}

    def test_content_type(self):
        request = make_test_request(headers=[("Content-Type", "Application/JSON; charset=utf-8")])
        assert request.content_type == "application/json"

    @pytest.mark.asyncio
    async def test_chunked_body_cached(self):
        scope = make_test_scope("POST", "/")
        request = Request(scope, make_test_receive(chunks=[b'{"a"', b": 1}"]))
        assert await request.body() == b'{"a": 1}'
        assert await request.json() == {"a": 1}
        assert await request.parsed_body() == {"a": 1}

    @pytest.mark.asyncio
    async def test_body_too_large(self):
        scope = make_test_scope("POST", "/")
        request = Request(scope, make_test_receive(b"x" * 11), max_body_size=10)
        with pytest.raises(HttpException) as exc_info:
            await request.body()
        assert exc_info.value.status == 413

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        request = make_test_request("POST", body=b"{oops")
        with pytest.raises(BadRequestException):
            await request.json()

    @pytest.mark.asyncio
    async def test_empty_body(self):
        request = make_test_request("POST")
        assert await request.json() is None
        assert await request.parsed_body() is None

    @pytest.mark.asyncio
    async def test_form_body(self):
        request = make_test_request(
            "POST",
            headers=[("content-type", "application/x-www-form-urlencoded")],
            body=b"name=Rex&period=Late",
        )
        assert await request.parsed_body() == {"name": "Rex", "period": "Late"}

    @pytest.mark.asyncio
    async def test_text_body(self):
        request = make_test_request("POST", headers=[("content-type", "text/plain")], body=b"roar")
        assert await request.parsed_body() == "roar"


class TestResponse:

    def test_status_tracking(self):
        response = Response()
        assert response.status == 200
        assert response.status_set is False
        response.status = 201
        assert response.status_set is True
        assert Response(status=204).status_set is True

    def test_render_json(self):
        when = datetime.date(2020, 5, 1)
        content, content_type = Response({"when": when, "tags": {"a"}}).render()
        assert content_type == "application/json"
        assert json.loads(content) == {"when": "2020-05-01", "tags": ["a"]}

    def test_render_other_bodies(self):
        assert Response().render() == (b"", "")
        assert Response(b"raw").render() == (b"raw", "application/octet-stream")
        assert Response("hi").render() == (b"hi", "text/plain; charset=utf-8")

    def test_render_unserializable(self):
        with pytest.raises(TypeError):
            Response({"x": object()}).render()

    @pytest.mark.asyncio
    async def test_send_asgi(self):
        sent = []

        async def send(message):
            sent.append(message)

        response = Response.json({"ok": True}, status=201, headers={"X-Custom": "1"})
        await response.send_asgi(send)

        start, body = sent
        assert start["status"] == 201
        headers = dict(start["headers"])
        assert headers[b"content-type"] == b"application/json"
        assert headers[b"x-custom"] == b"1"
        assert headers[b"content-length"] == str(len(body["body"])).encode()
        assert json.loads(body["body"]) == {"ok": True}
