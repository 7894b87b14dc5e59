from fluentreq.http.client import Client
from fluentreq.http.context import Context
from fluentreq.http.prepared import PreparedRequest
from fluentreq.http.request import Request
from fluentreq.http.response import Response
from fluentreq.http.retry import RetryPolicy, send_with_retry, status_matches

__all__ = [
    'Client',
    'Context',
    'PreparedRequest',
    'Request',
    'Response',
    'RetryPolicy',
    'send_with_retry',
    'status_matches',
]
