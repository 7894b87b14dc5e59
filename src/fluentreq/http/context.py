"""
Cancellation and deadline tokens for requests.

A Context is attached to a Request with `Request.with_context`. Every
transport send of that request is raced against the context: when the
context is cancelled or its deadline passes, the in-flight send is aborted
and `RequestCancelled` (or its subclass `RequestTimeout`) is raised.

```python
ctx, cancel = Context.background().with_cancel()
ctx = ctx.with_timeout(5)
body = await client.get("/slow").with_context(ctx).bytes()
```

Contexts form a tree: cancelling a parent cancels every context derived
from it, and a child's deadline never outlives its parent's.
"""
import asyncio
import contextlib
import time
import weakref
from typing import Awaitable, Callable, TypeVar

from fluentreq.errors import RequestCancelled, RequestTimeout

T = TypeVar("T")


class Context:
    def __init__(self, deadline: float | None = None, parent: "Context | None" = None):
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline  # time.monotonic() based
        self._cancelled = asyncio.Event()
        # weak: a child lives only as long as whoever holds it
        self._children: "weakref.WeakSet[Context]" = weakref.WeakSet()
        if parent is not None:
            parent._children.add(self)
            if parent.cancelled:
                self._cancel()

    @classmethod
    def background(cls) -> "Context":
        """A root context that is never cancelled and has no deadline."""
        return cls()

    def with_cancel(self) -> "tuple[Context, Callable[[], None]]":
        child = Context(parent=self)
        return child, child._cancel

    def with_timeout(self, seconds: float) -> "Context":
        return Context(deadline=time.monotonic() + seconds, parent=self)

    def with_deadline(self, deadline: float) -> "Context":
        return Context(deadline=deadline, parent=self)

    def _cancel(self) -> None:
        self._cancelled.set()
        for child in list(self._children):
            child._cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def done(self) -> bool:
        return self.error is not None

    @property
    def error(self) -> RequestCancelled | None:
        if self.cancelled:
            return RequestCancelled("context cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return RequestTimeout("context deadline exceeded")
        return None

    def raise_if_done(self) -> None:
        err = self.error
        if err is not None:
            raise err

    async def wait(self) -> None:
        """Block until the context is cancelled or its deadline passes."""
        try:
            await asyncio.wait_for(self._cancelled.wait(), self.remaining())
        except asyncio.TimeoutError:
            pass

    async def run(
        self, aw: Awaitable[T], discard: Callable[[T], Awaitable[None]] | None = None
    ) -> T:
        """
        Await `aw`, aborting it if the context fires first. A result that
        still arrives after the context fired is handed to `discard`.
        """
        self.raise_if_done()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()

        with contextlib.suppress(asyncio.CancelledError):
            late = await task
            if discard is not None:
                await discard(late)
        # the waiter only returns once the context was cancelled or its deadline hit
        if self.cancelled:
            raise RequestCancelled("context cancelled")
        raise RequestTimeout("context deadline exceeded")

    def __repr__(self) -> str:
        return f"Context(deadline={self.deadline!r}, cancelled={self.cancelled})"
