import json
import logging
import re
import socket
import time
import requests
from typing import Any, Callable, Optional, Tuple

from cournot_por.config import (
    GATEWAY_URL,
    MAX_ATTEMPTS,
    TIMEOUT_S,
    HTTP_CONNECT_TIMEOUT_S,
    BACKOFF_BASE_MS,
    BACKOFF_CAP_MS,
    TRANSIENT_STATUSES,
    REDACTION_MARKER,
)
from cournot_por.schemas.envelopes import build_envelope

logger = logging.getLogger(__name__)

class CournotError(RuntimeError):
    def __init__(self, code: str, message: str, retryable: bool, details: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.details = details

class GatewayError(CournotError):
    def __init__(self, code: str, message: str, retryable: bool, path: str,
                 status: Optional[int] = None, details: Optional[dict] = None):
        super().__init__(code, message, retryable, details)
        self.path = path
        self.status = status

class FatalGatewayError(GatewayError):
    def __init__(self, message: str, path: str, status: Optional[int] = None, code: str = "GATEWAY_HTTP_ERROR"):
        super().__init__(code, message, False, path, status)

class TransientExhaustedError(GatewayError):
    def __init__(self, message: str, path: str, status: Optional[int] = None):
        super().__init__("RETRIES_EXHAUSTED", message, True, path, status)

class NetworkError(GatewayError):
    def __init__(self, message: str, path: str):
        super().__init__("GATEWAY_UNREACHABLE", message, True, path)

# Exceptions that always mean the gateway could not be reached
_NETWORK_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
    socket.timeout,
)

# Fallback for transports that raise something less specific
_NETWORK_MARKERS = (
    "abort",
    "fetch",
    "network",
    "connection refused",
    "connection reset",
    "connection broken",
    "econnrefused",
    "econnreset",
    "etimedout",
    "timed out",
    "socket",
)

def redact_code(text: str, code: str) -> str:
    """Replace every literal occurrence of the access code with the redaction marker."""
    if not code:
        return text
    return re.sub(re.escape(code), lambda _m: REDACTION_MARKER, text)

def is_transient_status(status: int) -> bool:
    return status >= 500 or status in TRANSIENT_STATUSES

def is_network_error(err: BaseException) -> bool:
    if isinstance(err, _NETWORK_ERRORS):
        return True
    text = f"{type(err).__name__}: {err}".lower()
    return any(marker in text for marker in _NETWORK_MARKERS)

class GatewayClient:
    """
    Calls the Cournot gateway with bounded retry.

    Transient statuses (5xx, 429, 408) and network failures are retried up to
    `max_attempts` times with exponential backoff; every other failure is
    raised on first occurrence. The access code is redacted from all error
    messages and log lines.
    """

    def __init__(
        self,
        code: str,
        transport: Callable[..., requests.Response] = requests.post,
        sleep_fn: Callable[[float], None] = time.sleep,
        gateway_url: str = GATEWAY_URL,
        max_attempts: int = MAX_ATTEMPTS,
        timeout_s: float = TIMEOUT_S,
        connect_timeout_s: float = HTTP_CONNECT_TIMEOUT_S,
        backoff_base_ms: int = BACKOFF_BASE_MS,
        backoff_cap_ms: int = BACKOFF_CAP_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._code = code
        self.transport = transport
        self.sleep_fn = sleep_fn
        self.gateway_url = gateway_url
        self.max_attempts = max_attempts
        self.timeout_s = timeout_s
        self.timeout = (connect_timeout_s, timeout_s)
        self.backoff_base_ms = backoff_base_ms
        self.backoff_cap_ms = backoff_cap_ms
        self.clock = clock

    def __repr__(self) -> str:
        return f"GatewayClient(gateway_url={self.gateway_url!r}, code={REDACTION_MARKER!r})"

    def redact(self, text: str) -> str:
        return redact_code(text, self._code)

    def backoff_ms(self, attempt: int) -> int:
        return min(self.backoff_base_ms * 2 ** attempt, self.backoff_cap_ms)

    def _post(self, envelope: dict) -> Tuple[requests.Response, bytes]:
        # requests only bounds each socket read; the body is streamed so the whole attempt stays under timeout_s
        deadline = self.clock() + self.timeout_s
        resp = self.transport(self.gateway_url, json=envelope, headers={"Content-Type": "application/json"},
                              timeout=self.timeout, stream=True)
        chunks = []
        for chunk in resp.iter_content(chunk_size=64 * 1024):
            if self.clock() > deadline:
                resp.close()
                raise requests.exceptions.Timeout(f"Gateway call aborted after {self.timeout_s:g}s")
            chunks.append(chunk)
        return resp, b"".join(chunks)

    def call(self, path: str, method: str, payload: Any) -> Any:
        envelope = build_envelope(self._code, path, method, payload).model_dump()

        last_error: Optional[GatewayError] = None

        for attempt in range(self.max_attempts):
            if attempt > 0:
                delay_ms = self.backoff_ms(attempt)
                logger.warning("Retrying %s in %dms (attempt %d/%d) after: %s",
                               path, delay_ms, attempt + 1, self.max_attempts, last_error)
                self.sleep_fn(delay_ms / 1000)

            logger.debug("POST %s path=%s method=%s attempt=%d", self.gateway_url, path, method, attempt + 1)

            try:
                resp, content = self._post(envelope)
            except Exception as e:
                if not is_network_error(e):
                    raise
                last_error = NetworkError(self.redact(f"Network error calling {path}: {e}"), path)
                continue

            if resp.status_code < 200 or resp.status_code >= 300:
                body = self.redact(content.decode(resp.encoding or "utf-8", errors="replace"))
                message = f"Gateway returned {resp.status_code} for {path}: {body}"

                if is_transient_status(resp.status_code):
                    last_error = TransientExhaustedError(message, path, resp.status_code)
                    continue

                raise FatalGatewayError(message, path, resp.status_code)

            try:
                return json.loads(content)
            except ValueError:
                raise FatalGatewayError(f"Gateway returned non-JSON for {path}", path, resp.status_code,
                                        code="BAD_RESPONSE") from None

        if last_error is not None:
            raise last_error
        raise TransientExhaustedError(f"Failed after {self.max_attempts} retries for {path}", path)
