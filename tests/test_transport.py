import json

import httpx
import pytest

from gateway_harness.config import HarnessConfig
from gateway_harness.errors import TransportError
from gateway_harness.transport import HttpTransport, RequestSpec, ResponseDescriptor


def make_transport(handler, **overrides):
    return HttpTransport(HarnessConfig(**overrides), transport=httpx.MockTransport(handler))


def test_post_sends_curl_like_headers_and_json_body():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(200, json={"token": "abc"})

    transport = make_transport(handler)
    result = transport.execute(RequestSpec("post", "http://gw/api/auth/login", body={"username": "bob"}))

    request = seen["request"]
    assert request.method == "POST"
    assert request.headers["user-agent"] == "curl/8.4.0"
    assert request.headers["accept"] == "*/*"
    assert request.headers["connection"] == "close"
    assert request.headers["content-type"] == "application/json"
    assert "authorization" not in request.headers
    assert json.loads(request.content) == {"username": "bob"}
    assert result.status_code == 200
    assert result.json_field("token") == "abc"


def test_auth_token_and_custom_headers():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(204)

    transport = make_transport(handler, user_agent="harness/1.0")
    transport.execute(RequestSpec("DELETE", "http://gw/api/orders/1", headers={"X-Trace": "t1"}, auth_token="tok"))

    request = seen["request"]
    assert request.headers["authorization"] == "Bearer tok"
    assert request.headers["x-trace"] == "t1"
    assert request.headers["user-agent"] == "harness/1.0"
    assert "content-type" not in request.headers


def test_redirects_are_returned_not_followed():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(302, headers={"Location": "http://gw/login"})

    result = make_transport(handler).execute(RequestSpec("GET", "http://gw/api/orders"))
    assert result.status_code == 302
    assert result.headers["location"] == "http://gw/login"
    assert calls == ["/api/orders"]


def test_cookies_are_not_carried_between_calls():
    seen = []

    def handler(request):
        seen.append(request.headers.get("cookie"))
        return httpx.Response(200, headers={"Set-Cookie": "XSRF-TOKEN=abc; Path=/"})

    transport = make_transport(handler)
    transport.execute(RequestSpec("GET", "http://gw/api/auth/health"))
    transport.execute(RequestSpec("GET", "http://gw/api/auth/health"))
    assert seen == [None, None]


def test_status_codes_are_not_interpreted():
    result = make_transport(lambda request: httpx.Response(503, text="busy")).execute(
        RequestSpec("PUT", "http://gw/api/orders/1", body={"quantity": 3})
    )
    assert result.status_code == 503
    assert result.body == "busy"
    assert not result.ok


@pytest.mark.parametrize("error", [
    httpx.ConnectError("connection refused"),
    httpx.ReadTimeout("timed out"),
])
def test_network_failures_become_transport_errors(error):
    def handler(request):
        raise error

    with pytest.raises(TransportError) as info:
        make_transport(handler).execute(RequestSpec("GET", "http://gw/actuator/health"))
    assert info.value.__cause__ is error
    assert "GET http://gw/actuator/health" in str(info.value)


def test_request_spec_is_immutable_and_validated():
    spec = RequestSpec("get", "http://gw", headers={"A": "1"}, body={"x": 1})
    assert spec.method == "GET"
    with pytest.raises(TypeError):
        spec.headers["B"] = "2"
    with pytest.raises(TypeError):
        spec.body["x"] = 2
    with pytest.raises(ValueError):
        RequestSpec("PATCH", "http://gw")


def test_response_descriptor_parses_lazily():
    empty = ResponseDescriptor(201, {}, "  ")
    assert empty.is_empty
    assert empty.json_or_none() is None
    assert empty.json_field("orderNumber") is None
    with pytest.raises(ValueError):
        empty.json()

    listing = ResponseDescriptor(200, {}, '[{"orderNumber": "A"}]')
    assert listing.json() == [{"orderNumber": "A"}]
    assert listing.json_field("orderNumber") is None

    broken = ResponseDescriptor(200, {}, "<html>")
    assert broken.json_or_none() is None


def test_caller_headers_replace_defaults_case_insensitively():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(200)

    make_transport(handler).execute(RequestSpec(
        "POST", "http://gw/api/orders",
        headers={"user-agent": "mine", "authorization": "Basic xyz", "content-type": "text/plain"},
        body={"quantity": 1},
        auth_token="tok",
    ))

    headers = seen["request"].headers
    assert headers.get_list("user-agent") == ["mine"]
    assert headers.get_list("authorization") == ["Basic xyz"]
    assert headers.get_list("content-type") == ["text/plain"]


@pytest.mark.parametrize("version,http1,http2", [
    ("HTTP/1.1", True, False),
    ("HTTP/2", False, True),
])
def test_protocol_version_is_forced_on_the_client(monkeypatch, version, http1, http2):
    seen = {}

    def fake_client(**kwargs):
        seen.update(kwargs)
        return object()

    monkeypatch.setattr(httpx, "Client", fake_client)
    HttpTransport(HarnessConfig(http_version=version))._client()

    assert seen["http1"] is http1
    assert seen["http2"] is http2
    assert seen["follow_redirects"] is False
