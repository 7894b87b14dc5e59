from fluentreq.http.prepared import PreparedRequest
from fluentreq.http.response import release_raw
from fluentreq.util.logging import get_logger

log = get_logger(__name__)


def status_matches(expected: int | None, actual: int) -> bool:
    """
    True when `actual` counts as success. An unset (None or 0) expected status
    accepts anything. Shared by the retry loop and the *_with_error decoders.
    """
    if not expected or expected <= 0:
        return True
    return actual == expected


class RetryPolicy:
    def __init__(self, expected_status: int | None = None, retry_count: int = 0):
        if retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {retry_count}")
        self.expected_status = expected_status
        self.retry_count = retry_count

    def should_retry(self, retries: int, status: int) -> bool:
        if retries >= self.retry_count:
            return False
        return not status_matches(self.expected_status, status)


async def send_with_retry(session, prepared: PreparedRequest, policy: RetryPolicy):
    """
    Send `prepared` and resend it immediately while the status does not match
    the policy's expected status and retries remain.

    Returns ``(raw_response, attempts)``. The last response is returned even
    when its status still mismatches. Transport errors are raised on the
    attempt that hit them and are never retried.
    """
    retries = 0
    while True:
        attempt = retries + 1
        log.debug(
            "sending",
            extra={"method": prepared.method, "url": prepared.url, "attempt": attempt},
        )
        raw = await prepared.send(session)

        if not policy.should_retry(retries, raw.status):
            return raw, attempt

        log.info(
            "unexpected status, retrying",
            extra={
                "method": prepared.method,
                "url": prepared.url,
                "attempt": attempt,
                "status": raw.status,
                "expected": policy.expected_status,
            },
        )
        # the mismatched response is discarded, so free its connection
        await release_raw(raw)
        retries += 1
