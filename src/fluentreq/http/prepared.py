import time
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlsplit

from fluentreq.http.context import Context
from fluentreq.http.response import release_raw


@dataclass(frozen=True)
class PreparedRequest:
    """
    A fully materialized transport request. Immutable, so the same instance
    (body included) is replayed unchanged on every retry attempt.
    """
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    context: Context | None = None

    created_at: float = field(default_factory=time.monotonic, compare=False)

    @property
    def hostname(self) -> str:
        return urlsplit(self.url).hostname or ""

    async def send(self, session):
        """One transport call. Transport errors propagate as raised."""
        pending = session.request(
            self.method,
            self.url,
            headers=dict(self.headers),
            data=self.body,
        )
        if self.context is not None:
            return await self.context.run(pending, discard=release_raw)
        return await pending
