import threading
from typing import Iterator

from multidict import CIMultiDict, CIMultiDictProxy


class HeaderStore:
    """
    Header name -> value mapping shared by the configuration calls of one
    Request. Names are case-insensitive and a later `set` replaces any
    earlier value, so each name appears exactly once.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._lock = threading.Lock()
        self._headers: CIMultiDict[str] = CIMultiDict()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def set(self, key: str, value: str) -> None:
        if not isinstance(key, str) or not key:
            raise TypeError(f"header name must be a non-empty str, got {key!r}")
        if not isinstance(value, str):
            raise TypeError(f"header {key!r} value must be str, got {type(value).__name__}")
        with self._lock:
            self._headers[key] = value

    def get(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            return self._headers.get(key, default)

    def snapshot(self) -> CIMultiDictProxy[str]:
        """Read-only copy taken once when the request is materialized."""
        with self._lock:
            return CIMultiDictProxy(self._headers.copy())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._headers

    def __len__(self) -> int:
        with self._lock:
            return len(self._headers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"HeaderStore({dict(self.snapshot())!r})"
