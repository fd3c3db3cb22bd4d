"""HTTP client for Google Cloud Vision text detection.

Uses httpx with configurable timeouts and tenacity for retry with
exponential backoff on 429/5xx responses and connection errors.
"""

import base64
import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class VisionServiceUnavailable(Exception):
    """Vision API is temporarily unavailable (retryable: 429, 5xx, connection error)."""


class VisionServiceError(Exception):
    """Vision API rejected the request or the image (non-retryable)."""


class VisionClient:
    """Text detection client with retry and backoff."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        feature_type: str | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
    ):
        self._api_key = api_key if api_key is not None else settings.GOOGLE_VISION_API_KEY
        self._feature_type = feature_type or settings.VISION_FEATURE_TYPE
        self._retry_attempts = retry_attempts if retry_attempts is not None else settings.VISION_RETRY_ATTEMPTS
        self._retry_delay = retry_delay if retry_delay is not None else settings.VISION_RETRY_DELAY
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.VISION_RETRY_BACKOFF

        read_timeout = timeout if timeout is not None else settings.VISION_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.VISION_CONNECT_TIMEOUT

        self._client = httpx.Client(
            base_url=(base_url or settings.VISION_API_URL).rstrip("/"),
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    def close(self):
        self._client.close()

    def detect_text(self, content: bytes) -> str:
        """Run text detection on image or PDF bytes.

        Returns the full detected text, or "" when nothing was found.
        Raises VisionServiceUnavailable (retryable) or VisionServiceError.
        """
        payload = {
            "requests": [{
                "image": {"content": base64.b64encode(content).decode()},
                "features": [{"type": self._feature_type, "maxResults": 1}],
            }]
        }
        return self._detect_with_retry(payload)

    def _detect_with_retry(self, payload: dict) -> str:
        """Retry wrapper, configured per client."""

        @retry(
            retry=retry_if_exception_type(VisionServiceUnavailable),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=30,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Vision API unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_detect() -> str:
            return self._send_annotate(payload)

        return _do_detect()

    def _send_annotate(self, payload: dict) -> str:
        """Send a single images:annotate request."""
        try:
            resp = self._client.post("/images:annotate", params={"key": self._api_key}, json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning("Vision API connection failed: %s", e)
            raise VisionServiceUnavailable(f"Cannot connect to Vision API: {e}") from e
        except httpx.ReadTimeout as e:
            logger.warning("Vision API read timeout: %s", e)
            raise VisionServiceUnavailable(f"Vision API read timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Vision API HTTP error: %s", e)
            raise VisionServiceError(f"Vision API HTTP error: {e}") from e

        if resp.status_code in RETRYABLE_STATUS:
            detail = _error_message(resp)
            logger.warning("Vision API returned %d: %s", resp.status_code, detail)
            raise VisionServiceUnavailable(detail)

        if resp.status_code != 200:
            detail = _error_message(resp)
            logger.error("Vision API error %d: %s", resp.status_code, detail)
            raise VisionServiceError(detail)

        responses = resp.json().get("responses") or [{}]
        first = responses[0]
        if first.get("error"):
            message = first["error"].get("message", "unknown error")
            raise VisionServiceError(f"Vision API error: {message}")

        annotations = first.get("textAnnotations") or []
        if not annotations:
            return ""
        return annotations[0].get("description", "")


def _error_message(resp: httpx.Response) -> str:
    try:
        return resp.json().get("error", {}).get("message") or f"HTTP {resp.status_code}"
    except ValueError:
        return f"HTTP {resp.status_code}"
