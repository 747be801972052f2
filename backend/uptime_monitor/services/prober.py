"""Prober - performs a single bounded-time HTTP availability check."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Monitor-Secret"


def is_up(status_code: Optional[int]) -> bool:
    """A status code counts as up only inside the 2xx range."""
    return status_code is not None and 200 <= status_code < 300


@dataclass
class ProbeResult:
    """Outcome of one probe. ``status_code`` is 0 on transport failure."""
    status_code: int
    latency_ms: int
    error: Optional[str] = None

    @property
    def is_up(self) -> bool:
        return is_up(self.status_code)


class Prober:
    """Issues HEAD requests against monitored URLs."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = settings.probe_timeout_seconds
        self.user_agent = settings.probe_user_agent
        self._transport = transport

    async def probe(self, url: str, secret: Optional[str] = None) -> ProbeResult:
        """Probe ``url`` once, no retries.

        Timeouts and connection errors are reported as status 0 with the
        error message; they never raise.
        """
        headers = {"User-Agent": self.user_agent}
        if secret:
            headers[SECRET_HEADER] = secret

        start = datetime.now()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.head(url, headers=headers)
            return ProbeResult(status_code=response.status_code, latency_ms=self._elapsed_ms(start))
        except httpx.TimeoutException:
            return ProbeResult(status_code=0, latency_ms=self._elapsed_ms(start), error="Request timeout")
        except httpx.ConnectError as e:
            return ProbeResult(status_code=0, latency_ms=self._elapsed_ms(start), error=f"Connection error: {e}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Probe of {url} failed: {type(e).__name__}: {e}")
            return ProbeResult(status_code=0, latency_ms=self._elapsed_ms(start), error=str(e) or type(e).__name__)

    @staticmethod
    def _elapsed_ms(start: datetime) -> int:
        return int((datetime.now() - start).total_seconds() * 1000)
