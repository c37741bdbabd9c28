# ABOUTME: HTTP transport shared by the wave model and buoy clients
# ABOUTME: Maps requests failures onto ProviderError categories and applies the retry policy

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from surfwatch.config import Config
from surfwatch.errors import ProviderError, ProviderErrorCategory

log = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """
    Retry schedule for upstream fetches.

    Timeouts and 5xx responses are retried up to max_retries times after
    retry_delay seconds. A 429 is retried once after rate_limit_delay.
    Everything else is terminal.
    """
    max_retries: int = 2
    retry_delay: float = 1.0
    rate_limit_delay: float = 5.0
    max_rate_limit_retries: int = 1

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_retries=Config.MAX_RETRIES,
            retry_delay=Config.RETRY_DELAY_SECONDS,
            rate_limit_delay=Config.RATE_LIMIT_DELAY_SECONDS,
        )

    def delay_for(self, error: ProviderError, retries: int, rate_limit_retries: int) -> Optional[float]:
        """
        Decide whether to retry after an error.

        Args:
            error: The failure from the last attempt
            retries: Transient retries already made
            rate_limit_retries: Rate-limit retries already made

        Returns:
            Seconds to wait before the next attempt, or None to give up
        """
        if error.category == ProviderErrorCategory.RATE_LIMITED:
            if rate_limit_retries < self.max_rate_limit_retries:
                return self.rate_limit_delay
            return None

        if error.category in (ProviderErrorCategory.TIMEOUT, ProviderErrorCategory.SERVER_ERROR):
            if retries < self.max_retries:
                return self.retry_delay
            return None

        return None


def classify_status(status_code: int) -> Optional[ProviderError]:
    """Return the ProviderError for a non-2xx status, or None on success."""
    if 200 <= status_code < 300:
        return None
    if status_code == 429:
        return ProviderError(ProviderErrorCategory.RATE_LIMITED, "Rate limit exceeded", status=status_code)
    if status_code >= 500:
        return ProviderError(ProviderErrorCategory.SERVER_ERROR, "Upstream service unavailable", status=status_code)
    return ProviderError(ProviderErrorCategory.CLIENT_ERROR, "Request rejected", status=status_code)


class HttpTransport:
    """Blocking GET with timeout, header injection and retries"""

    def __init__(
        self,
        timeout: float = None,
        retry_policy: RetryPolicy = None,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout if timeout is not None else Config.HTTP_TIMEOUT_SECONDS
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "surfwatch/1.0"})

    def _attempt(self, url: str, headers: Optional[dict], params: Optional[dict]) -> tuple[int, str]:
        try:
            response = self.session.get(url, headers=headers, params=params, timeout=self.timeout)
        except requests.exceptions.SSLError as e:
            raise ProviderError(ProviderErrorCategory.CERTIFICATE_VALIDATION_FAILED, str(e)) from e
        except requests.exceptions.Timeout as e:
            raise ProviderError(ProviderErrorCategory.TIMEOUT, f"Request timeout after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise ProviderError(ProviderErrorCategory.CONNECTION, f"Network error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(ProviderErrorCategory.CONNECTION, f"Request failed: {e}") from e

        error = classify_status(response.status_code)
        if error is not None:
            raise error
        return response.status_code, response.text

    def get(
        self,
        url: str,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
        cancelled: Optional[threading.Event] = None,
    ) -> tuple[int, str]:
        """
        GET a URL, retrying transient failures per the retry policy.

        Args:
            cancelled: Set by the caller once the result is no longer wanted.
                An in-flight request still runs to completion, but no further
                retries are made after it.

        Returns:
            (status_code, body) for a 2xx response

        Raises:
            ProviderError: once the failure is terminal, retries are exhausted
                or the fetch was cancelled
        """
        retries = 0
        rate_limit_retries = 0

        while True:
            try:
                return self._attempt(url, headers, params)
            except ProviderError as e:
                delay = self.retry_policy.delay_for(e, retries, rate_limit_retries)
                if delay is None:
                    log.error(f"GET {url} failed: {e}")
                    raise
                if cancelled is not None and cancelled.is_set():
                    log.info(f"GET {url} cancelled, not retrying ({e})")
                    raise
                if e.category == ProviderErrorCategory.RATE_LIMITED:
                    rate_limit_retries += 1
                else:
                    retries += 1
                log.warning(f"GET {url} failed ({e}), retrying in {delay}s")
                self.sleep(delay)
                if cancelled is not None and cancelled.is_set():
                    log.info(f"GET {url} cancelled during backoff ({e})")
                    raise
