"""
Readiness polling.

poll_until() is a small synchronous retry utility: call a probe every
`interval` seconds until it returns True or `ceiling` seconds have passed.
It never sleeps past the ceiling, so the total wait is bounded by the
ceiling plus at most one probe.

HealthWaiter builds HTTP probes for the backend and frontend on top of it.
A timeout raises HealthCheckTimeout; callers treat it as a warning because
a slow service is not a broken one.
"""

import logging
import time
from collections.abc import Callable

import httpx
from pydantic import BaseModel, Field

from kaictl.core.config.models import HealthConfig
from kaictl.core.exceptions import HealthCheckTimeout

logger = logging.getLogger(__name__)

Probe = Callable[[], bool]


class PollResult(BaseModel):
    """Outcome of poll_until()."""

    ready: bool = Field(description="Probe succeeded before the ceiling")
    attempts: int = Field(ge=0, description="Number of probe calls")
    elapsed_s: float = Field(ge=0, description="Seconds spent polling")


def poll_until(
    probe: Probe,
    interval: float,
    ceiling: float,
    *,
    on_attempt: Callable[[int], None] | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """
    Call `probe` until it returns True or `ceiling` seconds elapse.

    Exceptions raised by the probe count as "not ready".

    Args:
        probe: Readiness check
        interval: Seconds between attempts
        ceiling: Maximum seconds to keep polling
        on_attempt: Called with the attempt number after each failed probe
        clock: Monotonic clock (injectable for tests)
        sleep: Sleep function (injectable for tests)

    Returns:
        PollResult

    Raises:
        ValueError: If interval or ceiling is not positive
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    if ceiling <= 0:
        raise ValueError("ceiling must be positive")

    start = clock()
    attempts = 0
    while True:
        attempts += 1
        try:
            ready = bool(probe())
        except Exception as e:
            logger.debug(f"Probe raised {type(e).__name__}: {e}")
            ready = False

        elapsed = clock() - start
        if ready:
            return PollResult(ready=True, attempts=attempts, elapsed_s=elapsed)

        remaining = ceiling - elapsed
        if remaining <= 0:
            return PollResult(ready=False, attempts=attempts, elapsed_s=elapsed)

        if on_attempt is not None:
            on_attempt(attempts)
        sleep(min(interval, remaining))


class HealthWaiter:
    """
    Wait for HTTP services to answer.

    Args:
        config: Probe settings (interval, ceilings, host, backend path)
        http_client: Optional httpx client (tests pass one with a mock
            transport)
        sleep: Sleep function used between attempts
    """

    def __init__(
        self,
        config: HealthConfig,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._http_client = http_client
        self._sleep = sleep

    def http_probe(self, url: str) -> Probe:
        """
        Build a probe that GETs `url` and succeeds on a 2xx response.

        Each request times out after one poll interval.
        """

        def probe() -> bool:
            client = self._http_client
            if client is None:
                with httpx.Client(timeout=self.config.interval, follow_redirects=True) as c:
                    return c.get(url).is_success
            return client.get(url, timeout=self.config.interval).is_success

        return probe

    def wait_for_http(
        self,
        url: str,
        ceiling: float,
        on_attempt: Callable[[int], None] | None = None,
    ) -> PollResult:
        """
        Poll `url` until it answers with a 2xx status.

        Raises:
            HealthCheckTimeout: If the ceiling elapses first
        """
        logger.debug(f"Waiting up to {ceiling:.0f}s for {url}")
        result = poll_until(
            self.http_probe(url),
            interval=self.config.interval,
            ceiling=ceiling,
            on_attempt=on_attempt,
            sleep=self._sleep,
        )
        if not result.ready:
            raise HealthCheckTimeout(url, result.elapsed_s, attempts=result.attempts)
        return result

    def backend_url(self, port: int) -> str:
        return f"http://{self.config.host}:{port}{self.config.backend_path}"

    def frontend_url(self, port: int) -> str:
        return f"http://{self.config.host}:{port}/"
