from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - circular import guard
    from .engine import LifecycleEngine
    from .organization import OrganizationReport


logger = logging.getLogger(__name__)


@dataclass
class OrganizationTelemetry:
    """Rolling telemetry captured for the background organization scheduler."""

    checks: int = 0
    passes: int = 0
    consecutive_failures: int = 0
    total_failures: int = 0
    last_started_at: float | None = None
    last_completed_at: float | None = None
    last_error: str | None = None

    def record(self, *, started_at: float, completed_at: float, ran: bool, errors: List[str]) -> None:
        """Update telemetry counters based on the outcome of a check."""

        self.checks += 1
        self.last_started_at = started_at
        self.last_completed_at = completed_at

        if errors:
            self.total_failures += 1
            self.consecutive_failures += 1
            self.last_error = "; ".join(errors)
        else:
            if ran:
                self.passes += 1
            self.consecutive_failures = 0
            self.last_error = None

    @property
    def last_duration(self) -> float | None:
        if self.last_started_at is None or self.last_completed_at is None:
            return None
        return max(0.0, self.last_completed_at - self.last_started_at)

    def as_dict(self) -> Dict[str, Any]:
        """Serialise telemetry for reporting."""

        return {
            "checks": self.checks,
            "passes": self.passes,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "last_started_at": self.last_started_at,
            "last_completed_at": self.last_completed_at,
            "last_duration_seconds": self.last_duration,
            "last_error": self.last_error,
        }


class OrganizationScheduler:
    """Run Organization from a background asyncio task whenever it is due."""

    def __init__(
        self,
        engine: "LifecycleEngine",
        *,
        check_interval: float = 3600.0,
        min_interval: float = 30.0,
        report_sink: Callable[["OrganizationReport"], Awaitable[None] | None] | None = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._engine = engine
        self._check_interval = max(0.0, float(check_interval))
        self._min_interval = max(0.0, float(min_interval))
        self._report_sink = report_sink
        self._log = log or logger.getChild("scheduler")
        self._telemetry = OrganizationTelemetry()
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def telemetry(self) -> OrganizationTelemetry:
        return self._telemetry

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def compute_next_delay(self) -> float:
        """Delay before the next check; shortened while failures persist."""

        base = self._check_interval
        if base <= 0:
            base = self._min_interval or 0.0

        if self._telemetry.consecutive_failures == 0:
            return max(base, self._min_interval)

        backoff_divisor = min(4, self._telemetry.consecutive_failures + 1)
        delay = base / backoff_divisor if base > 0 else self._min_interval
        return max(self._min_interval, delay)

    async def run_once(self, *, triggered_by: str = "manual") -> Optional["OrganizationReport"]:
        """Check the schedule once and run Organization if due."""

        async with self._lock:
            started_at = time.time()
            errors: List[str] = []
            report = None
            try:
                report = await self._engine.run_organization_if_due()
                if report.ran and self._report_sink is not None:
                    result = self._report_sink(report)
                    if asyncio.iscoroutine(result):
                        await result
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                errors.append(f"organization failed: {exc}")
                self._log.exception("Organization check triggered by %s failed", triggered_by)

            self._telemetry.record(
                started_at=started_at,
                completed_at=time.time(),
                ran=bool(report and report.ran),
                errors=errors,
            )
            return report

    def start(self) -> None:
        """Start the background loop on the running event loop."""

        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        self._log.debug("Started organization scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._log.info("Organization scheduler stopped")

    async def _loop(self) -> None:
        self._log.info(f"Starting organization loop with check interval: {self._check_interval} seconds")
        try:
            while True:
                await self.run_once(triggered_by="schedule")
                await asyncio.sleep(self.compute_next_delay())
        except asyncio.CancelledError:
            self._log.info("Organization task cancelled")
            raise
