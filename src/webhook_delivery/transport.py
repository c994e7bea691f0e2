import json
import logging
import time

import requests

from src.models.delivery import DeliveryOutcome, DeliveryResult

logger = logging.getLogger(__name__)

MAX_RESPONSE_BODY_CHARS = 2048
MAX_RESPONSE_BODY_BYTES = 16 * 1024


class DeadlineExceeded(Exception):
    """The response body was still arriving when the attempt's time ran out."""


def classify(status_code: int | None) -> DeliveryOutcome:
    """A delivery succeeds iff the subscriber answered with a 2xx status."""
    if status_code is not None and 200 <= status_code < 300:
        return DeliveryOutcome.SUCCESS
    return DeliveryOutcome.FAILURE


class HttpTransport:
    """Performs single, bounded-timeout webhook POSTs.

    The timeout caps the whole attempt, body included. Never raises for
    network, HTTP or request-encoding errors: every outcome is reported as a
    DeliveryResult.
    """

    def __init__(self, session: requests.Session | None = None, timeout_ms: int = 8000):
        self.session = session or requests.Session()
        self.timeout_ms = timeout_ms

    def deliver(
        self,
        url: str,
        headers: dict[str, str],
        body: str,
        timeout_ms: int | None = None,
    ) -> DeliveryResult:
        timeout = (timeout_ms if timeout_ms is not None else self.timeout_ms) / 1000
        request_headers = {"Content-Type": "application/json", **headers}

        start = time.monotonic()
        deadline = start + timeout
        status_code = None
        error = None
        response_body = None

        try:
            with self.session.post(
                url,
                data=body.encode("utf-8"),
                headers=request_headers,
                timeout=timeout,
                stream=True,
            ) as resp:
                content = _read_content(resp, deadline)
                status_code = resp.status_code
                response_body = _decode_body(content, resp.encoding)
        except (requests.exceptions.Timeout, DeadlineExceeded):
            error = "timeout"
        except requests.exceptions.ConnectionError:
            error = "connection_error"
        except requests.exceptions.RequestException as e:
            error = str(e)
        except ValueError as e:
            # Header values http.client cannot encode, e.g. non Latin-1 event names
            error = f"invalid_request: {e}"

        elapsed_ms = (time.monotonic() - start) * 1000

        if error is not None:
            logger.debug("POST %s failed after %.1fms: %s", url, elapsed_ms, error)

        return DeliveryResult(
            outcome=classify(status_code),
            status_code=status_code,
            duration_ms=elapsed_ms,
            error=error,
            response_body=response_body,
        )

    def close(self) -> None:
        self.session.close()


def _read_content(resp: requests.Response, deadline: float) -> bytes:
    # One byte per read; the deadline is checked between reads.
    content = bytearray()
    for chunk in resp.iter_content(chunk_size=1):
        if time.monotonic() > deadline:
            raise DeadlineExceeded()
        content += chunk
        if len(content) >= MAX_RESPONSE_BODY_BYTES:
            break
    return bytes(content)


def _decode_body(content: bytes, encoding: str | None):
    if not content:
        return None
    text = content.decode(encoding or "utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text[:MAX_RESPONSE_BODY_CHARS]
