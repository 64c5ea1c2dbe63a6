# hookwise/utils/http.py
import time

import requests

# bytes kept from a probed response body; callers only show a preview
BODY_READ_LIMIT = 16 * 1024


class DeadlineExceeded(requests.exceptions.Timeout):
    """The whole call ran past its deadline (not just one socket read)."""


def read_body(resp, deadline: float, limit: int = BODY_READ_LIMIT) -> str:
    """
    Read a streamed response body, giving up once time.monotonic() passes deadline.

    requests' timeout only bounds each socket read, so a server that drips
    bytes could otherwise hold the call open indefinitely. The response is
    always closed.
    """
    buf = bytearray()
    try:
        if time.monotonic() >= deadline:
            raise DeadlineExceeded("response headers arrived after the deadline")
        try:
            # one byte at a time so a slow sender can't block past the deadline
            for chunk in resp.iter_content(chunk_size=1):
                buf.extend(chunk)
                if len(buf) >= limit:
                    break
                if time.monotonic() >= deadline:
                    raise DeadlineExceeded("response body still arriving at the deadline")
        except requests.exceptions.ConnectionError as e:
            # requests re-raises a mid-body read timeout as ConnectionError
            if time.monotonic() >= deadline:
                raise DeadlineExceeded(str(e)) from e
            raise
    finally:
        resp.close()
    return bytes(buf[:limit]).decode(resp.encoding or "utf-8", errors="replace")
