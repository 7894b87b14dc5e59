import inspect
from typing import Any, Callable

from multidict import CIMultiDictProxy

from fluentreq.errors import BodyConsumedError, ResponseClosedError
from fluentreq.http.codec import decode_json, decode_xml
from fluentreq.http.context import Context


async def release_raw(raw) -> None:
    """Return the transport response's connection to its pool."""
    released = raw.release()
    if inspect.isawaitable(released):
        await released


class Response:
    """
    Wraps one transport response.

    The body can be decoded exactly once; any further decode raises
    `BodyConsumedError`. The caller owns the response and must release it
    with `close()` or by using it as an async context manager::

        async with await request.do() as res:
            data = await res.json()
    """

    def __init__(
        self,
        raw,
        url: str | None = None,
        attempts: int = 1,
        context: Context | None = None,
    ):
        self._raw = raw
        # bounds the body read as well as the send that produced `raw`
        self.context = context
        self.url = url
        self.attempts = attempts
        self._consumed = False
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._raw.status

    @property
    def headers(self) -> CIMultiDictProxy[str]:
        return self._raw.headers

    @property
    def closed(self) -> bool:
        return self._closed

    async def bytes(self) -> bytes:
        if self._closed:
            raise ResponseClosedError()
        if self._consumed:
            raise BodyConsumedError()
        self._consumed = True
        if self.context is not None:
            return await self.context.run(self._raw.read())
        return await self._raw.read()

    async def string(self) -> str:
        data = await self.bytes()
        charset = getattr(self._raw, "charset", None) or "utf-8"
        try:
            return data.decode(charset, errors="replace")
        except LookupError:
            # unknown charset label from the server
            return data.decode("utf-8", errors="replace")

    async def json(self, into: Callable | None = None) -> Any:
        return decode_json(await self.bytes(), into)

    async def xml(self, into: Callable | None = None) -> Any:
        return decode_xml(await self.bytes(), into)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await release_raw(self._raw)

    async def __aenter__(self) -> "Response":
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}] {self.url}>"
