from typing import Any, Awaitable, Callable, Mapping

from fluentreq.errors import EncodeError
from fluentreq.http.codec import JSON_CONTENT_TYPE, XML_CONTENT_TYPE, encode_json, encode_xml
from fluentreq.http.context import Context
from fluentreq.http.headers import HeaderStore
from fluentreq.http.prepared import PreparedRequest
from fluentreq.http.response import Response
from fluentreq.http.retry import RetryPolicy, send_with_retry, status_matches


class Request:
    """
    Fluent builder for a single HTTP request.

    Configuration methods return the builder itself so calls can be chained;
    terminal coroutines (`do`, `bytes`, `string`, `json`, `xml`,
    `json_with_error`, `xml_with_error`) execute it::

        widget = await (
            client.post("/widgets")
            .with_json({"name": "foo"})
            .with_expected_status(201)
            .with_retry(2)
            .json()
        )

    A failure while encoding a JSON or XML body is stored on the builder
    (see `error`) instead of being raised. Once stored, later body
    configuration is ignored and every terminal coroutine raises that error
    without touching the transport.

    A builder is meant for one caller. Header updates are synchronized; the
    other fields are not.
    """

    def __init__(
        self,
        session,
        method: str,
        base_url: str,
        path: str = "",
        *,
        headers: Mapping[str, str] | None = None,
        expected_status: int | None = None,
        retry_count: int = 0,
    ):
        self._session = session
        self.method = method.upper()
        self.base_url = base_url
        self.path = path
        self.headers = HeaderStore(headers)
        self.expected_status = expected_status
        self.retry_count = retry_count
        self.body: bytes | None = None
        self.context: Context | None = None
        self._error: EncodeError | None = None

    @property
    def error(self) -> EncodeError | None:
        return self._error

    @property
    def url(self) -> str:
        return self.base_url + self.path

    # ── configuration ───────────────────────────────────────────

    def with_bytes(self, body: bytes) -> "Request":
        if self._error is None:
            self.body = bytes(body)
        return self

    def with_string(self, body: str) -> "Request":
        if self._error is None:
            self.body = body.encode("utf-8")
        return self

    def with_json(self, value: Any) -> "Request":
        self.with_content_type(JSON_CONTENT_TYPE)
        return self._encode_body(encode_json, value)

    def with_xml(self, value: Any) -> "Request":
        self.with_content_type(XML_CONTENT_TYPE)
        return self._encode_body(encode_xml, value)

    def _encode_body(self, encoder: Callable[[Any], bytes], value: Any) -> "Request":
        if self._error is not None:
            return self
        try:
            self.body = encoder(value)
        except EncodeError as exc:
            self._error = exc
            self.body = None
        return self

    def with_context(self, context: Context) -> "Request":
        self.context = context
        return self

    def with_content_type(self, content_type: str) -> "Request":
        return self.with_header("Content-Type", content_type)

    def with_header(self, key: str, value: str) -> "Request":
        self.headers.set(key, value)
        return self

    def with_expected_status(self, status: int) -> "Request":
        """
        Set the status code that counts as success. Retries (see `with_retry`)
        are triggered by any other status, and the *_with_error decoders
        report any other status as unexpected.
        """
        self.expected_status = status
        return self

    def with_retry(self, count: int) -> "Request":
        """
        Set how many times to resend after the first attempt. Only a status
        other than the expected one triggers a resend, so this has no effect
        without `with_expected_status`.
        """
        if count < 0:
            raise ValueError(f"retry count must be >= 0, got {count}")
        self.retry_count = count
        return self

    # ── execution ───────────────────────────────────────────────

    def prepare(self) -> PreparedRequest:
        if self._error is not None:
            raise self._error
        return PreparedRequest(
            method=self.method,
            url=self.url,
            headers=self.headers.snapshot(),
            body=self.body,
            context=self.context,
        )

    async def do(self) -> Response:
        """
        Execute the request and return the raw Response. The caller must
        release it with `Response.close()` or ``async with``.
        """
        prepared = self.prepare()
        policy = RetryPolicy(self.expected_status, self.retry_count)
        raw, attempts = await send_with_retry(self._session, prepared, policy)
        return Response(raw, url=prepared.url, attempts=attempts, context=prepared.context)

    async def bytes(self) -> bytes:
        async with await self.do() as res:
            return await res.bytes()

    async def string(self) -> str:
        async with await self.do() as res:
            return await res.string()

    async def json(self, into: Callable | None = None) -> Any:
        async with await self.do() as res:
            return await res.json(into)

    async def xml(self, into: Callable | None = None) -> Any:
        async with await self.do() as res:
            return await res.xml(into)

    async def json_with_error(
        self, into: Callable | None = None, error_into: Callable | None = None
    ) -> tuple[bool, Any]:
        """
        Like `json`, but when an expected status is set and the response
        carries a different one, the body is decoded with `error_into`
        instead and ``(False, error_value)`` is returned. Otherwise returns
        ``(True, value)``. Decode failures raise on both paths.
        """
        return await self._decode_with_error(Response.json, into, error_into)

    async def xml_with_error(
        self, into: Callable | None = None, error_into: Callable | None = None
    ) -> tuple[bool, Any]:
        """XML counterpart of `json_with_error`."""
        return await self._decode_with_error(Response.xml, into, error_into)

    async def _decode_with_error(
        self,
        decode: Callable[[Response, Callable | None], Awaitable[Any]],
        into: Callable | None,
        error_into: Callable | None,
    ) -> tuple[bool, Any]:
        async with await self.do() as res:
            if not status_matches(self.expected_status, res.status_code):
                return False, await decode(res, error_into)
            return True, await decode(res, into)

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"
