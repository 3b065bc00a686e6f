"""Health probe port."""

import time
from abc import ABC, abstractmethod

import httpx
from loguru import logger
from pydantic import BaseModel


class ProbeOutcome(BaseModel):
    healthy: bool
    status_code: int
    latency_ms: float
    message: str


class HealthProbe(ABC):
    """Checks a URL or target and reports health, latency and status code."""

    @abstractmethod
    async def check(self, target: str, timeout: float) -> ProbeOutcome:
        """Probe ``target``; never raises for an unreachable target."""

    async def aclose(self) -> None:
        """Release any held resources."""


class HttpHealthProbe(HealthProbe):
    """HTTP GET probe; any 2xx response counts as healthy."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self.http_client = client or httpx.AsyncClient(follow_redirects=True)

    async def check(self, target: str, timeout: float) -> ProbeOutcome:
        started = time.perf_counter()
        try:
            response = await self.http_client.get(target, timeout=timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            latency_ms = (time.perf_counter() - started) * 1000
            logger.debug(f"Health probe {target} failed: {e}")
            return ProbeOutcome(healthy=False, status_code=0, latency_ms=latency_ms, message=f"Health check error: {e}")

        latency_ms = (time.perf_counter() - started) * 1000
        if response.is_success:
            return ProbeOutcome(healthy=True, status_code=response.status_code, latency_ms=latency_ms, message="Service is healthy")
        return ProbeOutcome(
            healthy=False,
            status_code=response.status_code,
            latency_ms=latency_ms,
            message=f"Health check failed: HTTP {response.status_code}",
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()
