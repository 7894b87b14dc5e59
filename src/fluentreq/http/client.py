import aiohttp

from fluentreq.http.request import Request
from fluentreq.http.stats import ClientStats, build_trace_config
from fluentreq.settings import CLIENT_SETTINGS
from fluentreq.util.logging import get_logger

log = get_logger(__name__)


class Client:
    """
    Factory for Request builders sharing one base URL, one set of default
    headers and one aiohttp session.

    ```python
    async with Client("https://api.example.com") as client:
        widgets = await client.get("/widgets").with_expected_status(200).json()
    ```

    An existing session may be passed in; the client then never closes it.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        session: aiohttp.ClientSession | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        expected_status: int | None = None,
        retry_count: int | None = None,
    ):
        self.base_url = base_url
        self._headers = dict(CLIENT_SETTINGS.headers) | (headers or {})
        self._timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else CLIENT_SETTINGS.timeout
        )
        self.expected_status = (
            expected_status if expected_status is not None else CLIENT_SETTINGS.expected_status
        )
        self.retry_count = retry_count if retry_count is not None else CLIENT_SETTINGS.retry_count

        self._session = session
        self._owns_session = session is None
        self._stats = ClientStats()

    def build_session(self) -> aiohttp.ClientSession:
        trace_config = build_trace_config(self._stats)
        return aiohttp.ClientSession(timeout=self._timeout, trace_configs=[trace_config])

    @property
    def stats(self) -> ClientStats:
        return self._stats

    @property
    def closed(self) -> bool:
        return self._session is None

    async def __aenter__(self) -> "Client":
        if self._session is None:
            self._session = self.build_session()
            self._owns_session = True
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            log.debug("session closed", extra={"url": self.base_url})
        self._session = None

    def request(self, method: str, path: str = "") -> Request:
        if self._session is None:
            raise RuntimeError("client is not open; use 'async with Client(...)'")
        return Request(
            self._session,
            method,
            self.base_url,
            path,
            headers=self._headers,
            expected_status=self.expected_status,
            retry_count=self.retry_count,
        )

    def get(self, path: str = "") -> Request:
        return self.request("GET", path)

    def head(self, path: str = "") -> Request:
        return self.request("HEAD", path)

    def post(self, path: str = "") -> Request:
        return self.request("POST", path)

    def put(self, path: str = "") -> Request:
        return self.request("PUT", path)

    def patch(self, path: str = "") -> Request:
        return self.request("PATCH", path)

    def delete(self, path: str = "") -> Request:
        return self.request("DELETE", path)
