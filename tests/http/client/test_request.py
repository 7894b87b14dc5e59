import json
from dataclasses import dataclass

import aiohttp
import pytest
from lxml import etree

from fluentreq.errors import DecodeError, EncodeError
from fluentreq.http.codec import element_to_dict
from fluentreq.http.request import Request
from tests.utils import FakeRawResponse, FakeSession


BASE = "https://api.example.com"


def _request(responses=(), method="GET", path="/widgets"):
    session = FakeSession(responses)
    return Request(session, method, BASE, path), session


@dataclass
class Widget:
    name: str


@dataclass
class ApiError:
    message: str


# ------------------------
# Configuration
# ------------------------

def test_methods_chain():
    req, _ = _request()

    out = (
        req.with_string("x")
        .with_header("X-A", "1")
        .with_content_type("text/plain")
        .with_expected_status(200)
        .with_retry(1)
    )

    assert out is req


def test_url_is_base_plus_path():
    req, _ = _request(path="/widgets/7")
    assert req.url == "https://api.example.com/widgets/7"


def test_with_bytes_body_verbatim():
    req, _ = _request()
    data = b"\x00\x01binary\xff"

    assert req.with_bytes(data).prepare().body == data


def test_with_string_body_utf8():
    req, _ = _request()

    assert req.with_string("héllo").prepare().body == "héllo".encode("utf-8")


def test_with_json_sets_body_and_content_type():
    req, _ = _request()
    value = {"name": "foo", "tags": ["a", "b"], "count": 3}

    prepared = req.with_json(value).prepare()

    assert json.loads(prepared.body) == value
    assert prepared.headers["Content-Type"] == "application/json"


def test_with_xml_sets_body_and_content_type():
    req, _ = _request()
    value = {"widget": {"@id": "7", "name": "foo", "tag": ["a", "b"]}}

    prepared = req.with_xml(value).prepare()

    assert element_to_dict(etree.fromstring(prepared.body)) == value
    assert prepared.headers["Content-Type"] == "application/xml"


def test_header_overwrite_keeps_last_value():
    req, _ = _request()

    headers = req.with_header("X", "a").with_header("X", "b").prepare().headers

    assert headers.getall("X") == ["b"]


def test_last_body_writer_wins():
    req, _ = _request()

    prepared = req.with_json({"a": 1}).with_string("plain").prepare()

    assert prepared.body == b"plain"


def test_no_body_by_default():
    req, _ = _request()
    assert req.prepare().body is None


def test_negative_retry_rejected():
    req, _ = _request()
    with pytest.raises(ValueError):
        req.with_retry(-1)


def test_json_encode_failure_is_sticky():
    req, _ = _request()

    req.with_json({"bad": object()})

    assert isinstance(req.error, EncodeError)
    # later body configuration does not clear or replace the error
    req.with_string("fine").with_json({"ok": True})
    assert isinstance(req.error, EncodeError)
    assert req.body is None


def test_xml_encode_failure_is_sticky():
    req, _ = _request()

    req.with_xml({"a": 1, "b": 2})

    assert isinstance(req.error, EncodeError)


def test_error_is_none_when_configuration_succeeds():
    req, _ = _request()
    assert req.with_json({"a": 1}).error is None


# ------------------------
# Execution
# ------------------------

@pytest.mark.asyncio
async def test_do_materializes_transport_request():
    req, session = _request([FakeRawResponse(200, b"ok")], method="post")

    res = await req.with_string("body").with_header("X-Trace", "abc").do()
    await res.close()

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.example.com/widgets"
    assert call["data"] == b"body"
    assert call["headers"]["X-Trace"] == "abc"


@pytest.mark.asyncio
async def test_do_returns_response_owned_by_caller():
    raw = FakeRawResponse(200, b"ok")
    req, _ = _request([raw])

    res = await req.do()

    assert res.status_code == 200
    assert raw.release_calls == 0
    await res.close()
    assert raw.release_calls == 1


@pytest.mark.asyncio
async def test_bytes_and_string_release():
    raw_a, raw_b = FakeRawResponse(200, b"abc"), FakeRawResponse(200, "é".encode())
    req, _ = _request([raw_a, raw_b])

    assert await req.bytes() == b"abc"
    assert await req.string() == "é"
    assert raw_a.release_calls == 1
    assert raw_b.release_calls == 1


@pytest.mark.asyncio
async def test_json_decodes_into_shape():
    req, _ = _request([FakeRawResponse(200, b'{"name": "foo"}')])

    widget = await req.json(into=Widget)

    assert widget == Widget(name="foo")


@pytest.mark.asyncio
async def test_json_decode_error_releases():
    raw = FakeRawResponse(200, b"not json")
    req, _ = _request([raw])

    with pytest.raises(DecodeError):
        await req.json()

    assert raw.release_calls == 1


@pytest.mark.asyncio
async def test_xml_returns_element():
    req, _ = _request([FakeRawResponse(200, b"<widget><name>foo</name></widget>")])

    root = await req.xml()

    assert root.tag == "widget"
    assert root.findtext("name") == "foo"


@pytest.mark.asyncio
async def test_sticky_error_short_circuits_every_terminal_method():
    req, session = _request([FakeRawResponse(200, b"{}")])
    req.with_json({"bad": {1, 2}})
    err = req.error

    for terminal in (req.do, req.bytes, req.string, req.json, req.xml,
                     req.json_with_error, req.xml_with_error):
        with pytest.raises(EncodeError) as info:
            await terminal()
        assert info.value is err

    assert session.call_count == 0


@pytest.mark.asyncio
async def test_transport_error_propagates_unwrapped():
    req, session = _request([aiohttp.ClientConnectionError("refused")])

    with pytest.raises(aiohttp.ClientConnectionError):
        await req.with_expected_status(200).with_retry(3).bytes()

    assert session.call_count == 1


@pytest.mark.asyncio
async def test_retry_only_with_expected_status():
    req, session = _request([FakeRawResponse(500), FakeRawResponse(200)])

    res = await req.with_retry(3).do()
    await res.close()

    assert session.call_count == 1
    assert res.status_code == 500


@pytest.mark.asyncio
async def test_retry_exhausted_returns_last_response():
    req, session = _request([FakeRawResponse(500, b"a"), FakeRawResponse(502, b"b")])

    body = await req.with_expected_status(200).with_retry(1).bytes()

    assert session.call_count == 2
    assert body == b"b"


@pytest.mark.asyncio
async def test_json_with_error_expected():
    req, _ = _request([FakeRawResponse(200, b'{"name": "foo"}')])

    expected, value = await req.with_expected_status(200).json_with_error(Widget, ApiError)

    assert expected is True
    assert value == Widget(name="foo")


@pytest.mark.asyncio
async def test_json_with_error_unexpected_decodes_error_shape():
    req, _ = _request([FakeRawResponse(404, b'{"message": "missing"}')])

    expected, value = await req.with_expected_status(200).json_with_error(Widget, ApiError)

    assert expected is False
    assert value == ApiError(message="missing")


@pytest.mark.asyncio
async def test_json_with_error_without_expectation_is_expected():
    req, _ = _request([FakeRawResponse(500, b'{"name": "foo"}')])

    expected, value = await req.json_with_error()

    assert expected is True
    assert value == {"name": "foo"}


@pytest.mark.asyncio
async def test_json_with_error_happy_path_decode_error_raises():
    raw = FakeRawResponse(200, b"{broken")
    req, _ = _request([raw])

    with pytest.raises(DecodeError):
        await req.with_expected_status(200).json_with_error()

    assert raw.release_calls == 1


@pytest.mark.asyncio
async def test_xml_with_error_unexpected():
    body = b"<error><message>nope</message></error>"
    req, _ = _request([FakeRawResponse(400, body)])

    expected, value = await req.with_expected_status(200).xml_with_error(error_into=ApiError)

    assert expected is False
    assert value == ApiError(message="nope")


@pytest.mark.asyncio
async def test_post_widgets_retries_until_created():
    req, session = _request(
        [
            FakeRawResponse(500, b'{"error": "boom"}'),
            FakeRawResponse(500, b'{"error": "boom"}'),
            FakeRawResponse(201, b'{"id": 1, "name": "foo"}'),
        ],
        method="POST",
    )

    res = await (
        req.with_json({"name": "foo"})
        .with_expected_status(201)
        .with_retry(2)
        .do()
    )
    async with res:
        assert res.status_code == 201
        assert res.attempts == 3
        assert await res.json() == {"id": 1, "name": "foo"}

    assert session.call_count == 3
    assert [json.loads(c["data"]) for c in session.calls] == [{"name": "foo"}] * 3


def test_json_nan_sets_sticky_error():
    req, _ = _request()

    req.with_json({"v": float("nan")})

    assert isinstance(req.error, EncodeError)
    assert req.body is None
