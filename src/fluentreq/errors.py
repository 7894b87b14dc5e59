"""
Exceptions raised by fluentreq.

Transport failures are not wrapped: whatever the session raises
(``aiohttp.ClientError``, ``asyncio.TimeoutError``...) reaches the caller
unchanged. Everything fluentreq raises itself derives from
``FluentRequestError``.
"""


class FluentRequestError(Exception):
    pass


class EncodeError(FluentRequestError, ValueError):
    """A request body could not be encoded. Sticky on the Request."""

    def __init__(self, fmt: str, reason: str):
        self.fmt = fmt
        self.reason = reason
        super().__init__(f"cannot encode {fmt} body: {reason}")


class DecodeError(FluentRequestError, ValueError):
    """A response body could not be decoded into the requested shape."""


class BodyConsumedError(DecodeError):
    def __init__(self):
        super().__init__("response body has already been consumed")


class ResponseClosedError(DecodeError):
    def __init__(self):
        super().__init__("response has been closed")


class RequestCancelled(FluentRequestError):
    pass


class RequestTimeout(RequestCancelled):
    pass
