import asyncio

from multidict import CIMultiDict, CIMultiDictProxy


class FakeRawResponse:
    """
    Stand-in for `aiohttp.ClientResponse`: a status, headers, a body and a
    release counter.
    """
    def __init__(self, status: int, body: bytes = b"", headers=None, charset=None, read_delay: float = 0):
        self.status = status
        self._read_delay = read_delay
        self._body = body
        self.headers = CIMultiDictProxy(CIMultiDict(headers or {}))
        self.charset = charset
        self.read_calls = 0
        self.release_calls = 0

    async def read(self):
        self.read_calls += 1
        if self._read_delay:
            await asyncio.sleep(self._read_delay)
        return self._body

    def release(self):
        self.release_calls += 1


class FakeSession:
    """
    Each .request() pops the next response (or raises it, if it is an
    exception) and records what was sent.
    """
    def __init__(self, responses, delay: float = 0):
        self._responses = list(responses)
        self._delay = delay
        self.calls = []

    @property
    def call_count(self):
        return len(self.calls)

    async def request(self, method, url, *, headers=None, data=None, **kwargs):
        self.calls.append({
            "method": method,
            "url": url,
            "headers": dict(headers or {}),
            "data": data,
        })
        if self._delay:
            await asyncio.sleep(self._delay)
        if not self._responses:
            raise RuntimeError("No more fake responses")
        nxt = self._responses.pop(0)
        if isinstance(nxt, BaseException):
            raise nxt
        return nxt

    async def close(self):
        pass
