from .errors import (
    BodyConsumedError,
    DecodeError,
    EncodeError,
    FluentRequestError,
    RequestCancelled,
    RequestTimeout,
    ResponseClosedError,
)
from .http import Client, Context, Request, Response
from .util.logging import configure_logging

__all__ = [
    'Client',
    'Context',
    'Request',
    'Response',
    'configure_logging',
    'FluentRequestError',
    'EncodeError',
    'DecodeError',
    'BodyConsumedError',
    'ResponseClosedError',
    'RequestCancelled',
    'RequestTimeout',
]
